import contextlib
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Optional

import pytest

from liferpg.models.game_state import (
    ActivityLog,
    GameState,
    Gender,
    UserDocument,
    UserProfile,
)
from liferpg.utils.helper import to_millis

# A Wednesday; the week started on Sunday 2024-05-12
FIXED_NOW = datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc)


@dataclass
class FakeDB:
    fetchone_results: list[Any] = field(default_factory=list)
    fetchall_results: list[Any] = field(default_factory=list)
    executed: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    last_query: str | None = None
    last_params: tuple[Any, ...] | None = None
    fail_with: Optional[Exception] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def fetchone(self, query: str, params=None):
        self.last_query = query
        self.last_params = tuple(params or ())
        if self.fail_with:
            raise self.fail_with
        if self.fetchone_results:
            return self.fetchone_results.pop(0)

    def fetchall(self, query: str, params=None):
        self.last_query = query
        self.last_params = tuple(params or ())
        if self.fail_with:
            raise self.fail_with
        if self.fetchall_results:
            return self.fetchall_results.pop(0)
        return []

    def execute(self, query: str, params=None) -> None:
        if self.fail_with:
            raise self.fail_with
        self.executed.append((query, tuple(params or ())))


class FakeDBManager:
    def __init__(self, db: FakeDB):
        self._db = db

    def __call__(self):
        return self._db


@contextlib.contextmanager
def patched_dbmanager(monkeypatch, target_module, db: FakeDB) -> Iterator[FakeDB]:
    monkeypatch.setattr(target_module, 'DBManager', FakeDBManager(db))
    yield db


class FakeDocumentStore:
    def __init__(self, documents: Optional[dict[str, UserDocument]] = None):
        self.documents = dict(documents or {})
        self.saves: list[tuple[str, UserProfile, GameState]] = []
        self.fail = False
        self.loads: list[str] = []

    def save(self, user_id, profile, state) -> bool:
        self.saves.append((user_id, profile, state))
        if self.fail:
            return False
        self.documents[user_id] = UserDocument(profile=profile, state=state)
        return True

    def load(self, user_id) -> Optional[UserDocument]:
        self.loads.append(user_id)
        return self.documents.get(user_id)


class DictCache:
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)


class ScriptedOracle:
    '''Returns queued replies in order; an Exception in the queue is raised.'''

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else 'The path continues.'
        if isinstance(reply, Exception):
            raise reply
        return reply


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    @property
    def millis(self) -> int:
        return to_millis(self.now)


def make_log(activity_id: str, timestamp: int, amount: float = 1, xp: int = 10) -> ActivityLog:
    return ActivityLog(
        id=f'{timestamp}-{activity_id}',
        activity_id=activity_id,
        amount=amount,
        xp_gained=xp,
        timestamp=timestamp,
    )


@pytest.fixture()
def fake_db() -> FakeDB:
    return FakeDB()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def now_ms(clock) -> int:
    return clock.millis


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture()
def profile() -> UserProfile:
    return UserProfile(
        name='Ana',
        dob='1995-03-02',
        weight=70.0,
        height=175.0,
        gender=Gender.FEMALE,
        profession='Nurse',
    )


@pytest.fixture()
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture()
def cache() -> DictCache:
    return DictCache()
