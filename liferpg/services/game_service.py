import asyncio
import json
import logging
import random
from dataclasses import replace
from datetime import datetime, time
from typing import Any, Callable, Coroutine, Optional

from liferpg.models.activity import CATALOG, ActivityCatalog
from liferpg.models.game_state import GameState, UserDocument, UserProfile, XpBuff
from liferpg.services.buffs import sleep_buff
from liferpg.services.interfaces import DocumentStore, KeyValueCache
from liferpg.services.narrator import Narrator, NarratorTrigger, build_context
from liferpg.services.progression import (
    ClaimResult,
    LogOutcome,
    apply_activity,
    claim_quest,
)
from liferpg.services.quest_generator import QuestRefresh, generate_quests
from liferpg.utils.constants import (
    CACHED_PROFILE_KEY,
    CACHED_STATE_KEY,
    NEEDS_SYNC_KEY,
)
from liferpg.utils.helper import local_now, to_millis
from liferpg.utils.tracing import trace_span

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

WELCOME_TEXT = 'Welcome to LifeRPG.'
QUEST_CLAIMED_TEXT = 'Quest reward claimed!'


class GameSession:
    '''Owns one player's game state.

    Every mutation is computed by the pure calculators and committed with a
    single assignment before any I/O starts. Remote saves and narrator calls
    run afterwards as background tasks and never feed back into the state.
    '''

    def __init__(
        self,
        user_id: str,
        profile: UserProfile,
        state: GameState,
        *,
        store: DocumentStore,
        cache: KeyValueCache,
        narrator: Narrator,
        catalog: ActivityCatalog = CATALOG,
        clock: Clock = local_now,
        rng: Optional[random.Random] = None,
    ):
        self.user_id = str(user_id)
        self._profile = profile
        self._state = state
        self._store = store
        self._cache = cache
        self._narrator = narrator
        self._catalog = catalog
        self._clock = clock
        self._rng = rng or random.Random()
        self._save_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self.narration: Optional[asyncio.Task] = None
        self.narrator_text = WELCOME_TEXT

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def needs_sync(self) -> bool:
        return self._cache_get(self._key(NEEDS_SYNC_KEY)) == 'true'

    # --- Commands ---

    def log_activity(self, activity_id: str, amount: Any) -> LogOutcome:
        '''Apply a logged activity. Raises InvalidLogError without side effects.'''
        now_ms = to_millis(self._clock())
        with trace_span(
            'game.log_activity', {'user_id': self.user_id, 'activity': activity_id}
        ) as span:
            outcome = apply_activity(
                self._state, self._profile, activity_id, amount, now_ms, self._catalog
            )
            self._commit(outcome.state)
            span.metadata['xp'] = outcome.gain.xp_gained
            span.metadata['level'] = outcome.state.level

        self._schedule_save()
        trigger = (
            NarratorTrigger.LEVEL_UP
            if outcome.gain.leveled_up
            else NarratorTrigger.ACTIVITY
        )
        self._schedule_narration(
            build_context(
                trigger,
                self._profile,
                outcome.state,
                now_ms,
                activity=outcome.activity,
                buffed=outcome.gain.buff_applied,
            )
        )
        return outcome

    def claim_quest(self, quest_id: str) -> ClaimResult:
        '''Collect a completed quest's reward. Raises QuestClaimError otherwise.'''
        now_ms = to_millis(self._clock())
        result = claim_quest(self._state, quest_id, now_ms)
        self._commit(result.state)
        self.narrator_text = QUEST_CLAIMED_TEXT
        self._schedule_save()
        return result

    def register_sleep(self, bed_time: time, wake_time: time) -> Optional[XpBuff]:
        '''Turn last night's sleep into an XP buff, replacing any current one.'''
        buff = sleep_buff(bed_time, wake_time, self._clock())
        if buff is None:
            return None
        self._commit(replace(self._state, active_buff=buff))
        self.narrator_text = f'Sleep registered! {buff.description} is active.'
        self._schedule_save()
        return buff

    def refresh_quests(self) -> QuestRefresh:
        '''Roll over expired daily/weekly quests; a no-op inside the same period.'''
        state = self._state
        refresh = generate_quests(
            state.quests,
            state.archetype,
            state.last_daily_quest_gen,
            state.last_weekly_quest_gen,
            self._clock(),
            self._rng,
            self._catalog,
        )
        if refresh.daily_fired or refresh.weekly_fired:
            self._commit(
                replace(
                    state,
                    quests=refresh.quests,
                    last_daily_quest_gen=refresh.last_daily,
                    last_weekly_quest_gen=refresh.last_weekly,
                )
            )
            self._schedule_save()
        return refresh

    def update_profile(self, profile: UserProfile) -> None:
        self._profile = profile
        self._write_snapshot()
        self._schedule_save()

    def greet(self) -> None:
        now_ms = to_millis(self._clock())
        self._schedule_narration(
            build_context(NarratorTrigger.LOGIN, self._profile, self._state, now_ms)
        )

    def mark_needs_sync(self) -> None:
        self._cache_set(self._key(NEEDS_SYNC_KEY), 'true')

    async def on_reconnect(self) -> bool:
        '''Retry the last known state once if an earlier save failed.'''
        if not self.needs_sync:
            return False
        with trace_span('game.resync', {'user_id': self.user_id}):
            return await self._save_remote()

    async def drain(self) -> None:
        '''Wait for outstanding background work (used on shutdown and in tests).'''
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- State commit and local snapshot ---

    def _commit(self, state: GameState) -> None:
        self._state = state
        self._write_snapshot()

    def _key(self, prefix: str) -> str:
        return f'{prefix}:{self.user_id}'

    def _write_snapshot(self) -> None:
        self._cache_set(self._key(CACHED_PROFILE_KEY), json.dumps(self._profile.to_dict()))
        self._cache_set(self._key(CACHED_STATE_KEY), json.dumps(self._state.to_dict()))

    def _cache_get(self, key: str) -> Optional[str]:
        try:
            return self._cache.get(key)
        except Exception:
            logger.warning(f'Local cache read failed for {key}', exc_info=True)
            return None

    def _cache_set(self, key: str, value: str) -> None:
        try:
            self._cache.set(key, value)
        except Exception:
            logger.warning(f'Local cache write failed for {key}', exc_info=True)

    def _cache_remove(self, key: str) -> None:
        try:
            self._cache.remove(key)
        except Exception:
            logger.warning(f'Local cache delete failed for {key}', exc_info=True)

    # --- Background work ---

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (scripts, REPL): the state is committed, finish inline
            asyncio.run(coro)
            return None
        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _schedule_save(self) -> None:
        self._spawn(self._save_remote(), f'save:{self.user_id}')

    def _schedule_narration(self, context) -> None:
        self.narration = self._spawn(
            self._narrate(context), f'narrate:{self.user_id}:{context.trigger.value}'
        )

    async def _save_remote(self) -> bool:
        # Saves are serialised and always send the newest state
        async with self._save_lock:
            try:
                ok = await asyncio.to_thread(
                    self._store.save, self.user_id, self._profile, self._state
                )
            except Exception:
                logger.error(f'Remote save raised for {self.user_id}', exc_info=True)
                ok = False
            if ok:
                self._cache_remove(self._key(NEEDS_SYNC_KEY))
            else:
                logger.warning(f'Remote save failed for {self.user_id}; flagged for sync')
                self.mark_needs_sync()
            return ok

    async def _narrate(self, context) -> str:
        text = await asyncio.to_thread(self._narrator.narrate, context)
        self.narrator_text = text
        return text


class GameService:
    '''Registry of live sessions plus login, onboarding and resync.'''

    def __init__(
        self,
        store: DocumentStore,
        cache: KeyValueCache,
        narrator: Narrator,
        *,
        catalog: ActivityCatalog = CATALOG,
        clock: Clock = local_now,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.cache = cache
        self.narrator = narrator
        self.catalog = catalog
        self.clock = clock
        self.rng = rng or random.Random()
        self._sessions: dict[str, GameSession] = {}

    def get(self, user_id: str) -> Optional[GameSession]:
        return self._sessions.get(str(user_id))

    def _new_session(
        self, user_id: str, profile: UserProfile, state: GameState
    ) -> GameSession:
        session = GameSession(
            user_id,
            profile,
            state,
            store=self.store,
            cache=self.cache,
            narrator=self.narrator,
            catalog=self.catalog,
            clock=self.clock,
            rng=self.rng,
        )
        self._sessions[session.user_id] = session
        return session

    def _has_pending_sync(self, user_id: str) -> bool:
        try:
            return self.cache.get(f'{NEEDS_SYNC_KEY}:{user_id}') == 'true'
        except Exception:
            logger.warning(f'Local cache unavailable for {user_id}', exc_info=True)
            return False

    def _cached_document(self, user_id: str) -> Optional[UserDocument]:
        try:
            raw_profile = self.cache.get(f'{CACHED_PROFILE_KEY}:{user_id}')
            raw_state = self.cache.get(f'{CACHED_STATE_KEY}:{user_id}')
        except Exception:
            logger.warning(f'Local cache unavailable for {user_id}', exc_info=True)
            return None
        if not raw_profile or not raw_state:
            return None
        try:
            return UserDocument(
                profile=UserProfile.from_dict(json.loads(raw_profile)),
                state=GameState.from_dict(json.loads(raw_state)),
            )
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.warning(f'Ignoring unreadable cached state for {user_id}', exc_info=True)
            return None

    async def open_session(self, user_id: str) -> Optional[GameSession]:
        '''Return the player's session, loading it on first use (login).

        Returns None for players who have not been onboarded yet.
        '''
        user_id = str(user_id)
        session = self._sessions.get(user_id)
        if session is not None:
            session.refresh_quests()
            return session

        with trace_span('game.open_session', {'user_id': user_id}) as span:
            document = None
            from_device = False
            if self._has_pending_sync(user_id):
                # Unsynced progress on this device is newer than the remote copy
                document = self._cached_document(user_id)
                from_device = document is not None
            if document is None:
                document = await asyncio.to_thread(self.store.load, user_id)
            if document is None:
                document = self._cached_document(user_id)
                from_device = document is not None
            span.metadata['source'] = 'device' if from_device else 'remote'
            if document is None:
                return None

            session = self._new_session(user_id, document.profile, document.state)
            session.refresh_quests()
            if from_device:
                # Push the device copy up once
                session.mark_needs_sync()
                await session.on_reconnect()
            session.greet()
        return session

    async def create_session(self, user_id: str, profile: UserProfile) -> GameSession:
        '''Onboard a new player with a fresh state and their first quests.'''
        session = self._new_session(str(user_id), profile, GameState())
        session.refresh_quests()
        session.greet()
        logger.info(f'Onboarded player {session.user_id} ({profile.name})')
        return session

    async def resync_pending(self) -> int:
        '''Retry flagged saves after connectivity returns; returns successes.'''
        results = await asyncio.gather(
            *(s.on_reconnect() for s in list(self._sessions.values()))
        )
        synced = sum(1 for ok in results if ok)
        if synced:
            logger.info(f'Resynced {synced} pending player state(s)')
        return synced

    async def shutdown(self) -> None:
        await asyncio.gather(*(s.drain() for s in list(self._sessions.values())))
