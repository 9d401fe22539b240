import asyncio
import json
from dataclasses import replace
from datetime import time

import pytest

from liferpg.models.activity import Attribute
from liferpg.models.game_state import GameState, Quest, QuestType, UserDocument
from liferpg.services.game_service import QUEST_CLAIMED_TEXT, GameService, GameSession
from liferpg.services.narrator import Narrator
from liferpg.services.progression import InvalidLogError, QuestClaimError
from liferpg.utils.constants import NARRATOR_FALLBACK_ERROR
from tests.conftest import ScriptedOracle

SYNC_KEY = 'liferpg_needs_sync:42'


@pytest.fixture()
def oracle():
    return ScriptedOracle()


@pytest.fixture()
def make_session(store, cache, clock, rng, profile, oracle):
    def _make(state=None, narrator=None):
        return GameSession(
            '42',
            profile,
            state or GameState(),
            store=store,
            cache=cache,
            narrator=narrator or Narrator(oracle),
            clock=clock,
            rng=rng,
        )

    return _make


@pytest.fixture()
def service(store, cache, clock, rng, oracle):
    return GameService(store, cache, Narrator(oracle), clock=clock, rng=rng)


def test_log_commits_caches_and_saves(make_session, store, cache, oracle):
    oracle.replies.append('Your lungs thank you.')
    session = make_session()

    outcome = session.log_activity('run', 2)

    assert session.state is outcome.state
    assert session.state.total_xp == 60
    saved_user, _, saved_state = store.saves[-1]
    assert saved_user == '42'
    assert saved_state is outcome.state
    cached = json.loads(cache.data['liferpg_game:42'])
    assert cached['total_xp'] == 60
    assert json.loads(cache.data['liferpg_user:42'])['name'] == 'Ana'
    assert session.narrator_text == 'Your lungs thank you.'
    assert 'Activity: Running' in oracle.prompts[0]
    assert not session.needs_sync


def test_invalid_log_changes_nothing(make_session, store, cache):
    session = make_session()
    before = session.state

    with pytest.raises(InvalidLogError):
        session.log_activity('run', -5)

    assert session.state is before
    assert store.saves == []
    assert cache.data == {}


def test_failed_save_flags_and_reconnect_clears(make_session, store, cache):
    store.fail = True
    session = make_session()

    session.log_activity('walk', 1)

    assert session.state.total_xp == 15
    assert cache.data[SYNC_KEY] == 'true'
    assert session.needs_sync

    store.fail = False
    assert asyncio.run(session.on_reconnect()) is True
    assert SYNC_KEY not in cache.data
    assert store.documents['42'].state is session.state


def test_reconnect_makes_exactly_one_attempt(make_session, store):
    store.fail = True
    session = make_session()
    session.log_activity('walk', 1)
    attempts = len(store.saves)

    assert asyncio.run(session.on_reconnect()) is False
    assert len(store.saves) == attempts + 1
    assert session.needs_sync


def test_reconnect_without_pending_sync_is_a_no_op(make_session, store):
    session = make_session()
    assert asyncio.run(session.on_reconnect()) is False
    assert store.saves == []


def test_narrator_failure_keeps_the_committed_state(make_session, oracle):
    oracle.replies.append(RuntimeError('quota exceeded'))
    session = make_session()

    outcome = session.log_activity('study', 4)

    assert session.state is outcome.state
    assert session.narrator_text == NARRATOR_FALLBACK_ERROR


def test_level_up_uses_level_up_narration(make_session, oracle):
    session = make_session(GameState(current_xp=90))
    outcome = session.log_activity('walk', 1)
    assert outcome.gain.leveled_up
    assert 'Event: Level up' in oracle.prompts[0]
    assert 'Activity: LEVEL UP' in oracle.prompts[0]


def test_work_runs_in_background_inside_a_loop(make_session, store, oracle):
    oracle.replies.append('Steady pace.')
    session = make_session()

    async def scenario():
        outcome = session.log_activity('walk', 2)
        # committed before any background work had a chance to run
        assert session.state is outcome.state
        assert store.saves == []
        text = await session.narration
        await session.drain()
        return text

    assert asyncio.run(scenario()) == 'Steady pace.'
    assert store.saves[-1][2] is session.state


def test_claim_quest_saves_and_announces(make_session, store):
    quest = Quest(
        id='daily-1-walk', type=QuestType.DAILY, activity_id='walk',
        target_amount=3, current_amount=3, xp_reward=54, is_claimed=False, created_at=1,
    )
    session = make_session(GameState(quests=(quest,)))

    result = session.claim_quest('daily-1-walk')

    assert session.state is result.state
    assert session.state.total_xp == 54
    assert session.narrator_text == QUEST_CLAIMED_TEXT
    assert store.saves[-1][2] is session.state

    with pytest.raises(QuestClaimError):
        session.claim_quest('daily-1-walk')
    assert session.state is result.state


def test_register_sleep_sets_buff(make_session, store):
    session = make_session()
    buff = session.register_sleep(time(23, 0), time(7, 0))

    assert session.state.active_buff == buff
    assert '+16%' in session.narrator_text
    assert store.saves[-1][2].active_buff == buff


def test_refresh_quests_only_saves_when_something_rolled(make_session, store, clock):
    session = make_session()
    assert session.refresh_quests().daily_fired
    assert len(session.state.quests) == 6
    saves = len(store.saves)

    clock.advance(hours=2)
    refresh = session.refresh_quests()
    assert not refresh.daily_fired and not refresh.weekly_fired
    assert len(store.saves) == saves


def test_open_session_for_unknown_player(service):
    assert asyncio.run(service.open_session('nobody')) is None


def test_open_session_loads_remote_without_reclassifying(service, store, profile, oracle):
    attributes = {**GameState().attributes, Attribute.STR: 50}
    stored = GameState(class_title='Driver', attributes=attributes, level=3)
    store.documents['42'] = UserDocument(profile=profile, state=stored)

    async def scenario():
        session = await service.open_session('42')
        again = await service.open_session(42)
        await service.shutdown()
        return session, again

    session, again = asyncio.run(scenario())

    assert again is session
    assert session.state.class_title == 'Driver'
    assert session.state.level == 3
    assert len(session.state.quests) == 6
    assert any('Event: Player login' in p for p in oracle.prompts)


def test_open_session_falls_back_to_device_copy(service, store, cache, profile):
    device_state = GameState(level=2, total_xp=150, current_xp=50)
    cache.set('liferpg_user:42', json.dumps(profile.to_dict()))
    cache.set('liferpg_game:42', json.dumps(device_state.to_dict()))

    async def scenario():
        session = await service.open_session('42')
        await service.shutdown()
        return session

    session = asyncio.run(scenario())

    assert session.state.total_xp == 150
    assert store.documents['42'].state.total_xp == 150
    assert not session.needs_sync


def test_device_copy_stays_flagged_while_offline(service, store, cache, profile):
    store.fail = True
    cache.set('liferpg_user:42', json.dumps(profile.to_dict()))
    cache.set('liferpg_game:42', json.dumps(GameState().to_dict()))

    async def scenario():
        session = await service.open_session('42')
        await service.shutdown()
        return session

    session = asyncio.run(scenario())
    assert session.needs_sync


def test_flagged_device_copy_wins_over_stale_remote(service, store, cache, profile):
    store.documents['42'] = UserDocument(profile=profile, state=GameState(total_xp=10))
    device_state = GameState(level=3, current_xp=100, total_xp=400)
    cache.set('liferpg_user:42', json.dumps(profile.to_dict()))
    cache.set('liferpg_game:42', json.dumps(device_state.to_dict()))
    cache.set('liferpg_needs_sync:42', 'true')

    async def scenario():
        session = await service.open_session('42')
        await service.resync_pending()
        await service.shutdown()
        return session

    session = asyncio.run(scenario())

    assert store.loads == []
    assert session.state.total_xp == 400
    assert store.documents['42'].state.total_xp == 400
    assert json.loads(cache.get('liferpg_game:42'))['total_xp'] == 400
    assert not session.needs_sync


def test_unflagged_device_copy_does_not_shadow_remote(service, store, cache, profile):
    store.documents['42'] = UserDocument(profile=profile, state=GameState(total_xp=90))
    cache.set('liferpg_user:42', json.dumps(profile.to_dict()))
    cache.set('liferpg_game:42', json.dumps(GameState(total_xp=5).to_dict()))

    async def scenario():
        session = await service.open_session('42')
        await service.shutdown()
        return session

    assert asyncio.run(scenario()).state.total_xp == 90


def test_create_session_onboards_and_saves(service, store, profile, oracle):
    async def scenario():
        session = await service.create_session('7', profile)
        await service.shutdown()
        return session

    session = asyncio.run(scenario())

    assert service.get('7') is session
    assert len(session.state.quests) == 6
    assert store.documents['7'].state is session.state
    assert any('new' in p for p in oracle.prompts)


def test_resync_pending_counts_successes(service, store, profile):
    async def scenario():
        store.fail = True
        first = await service.create_session('1', profile)
        await service.create_session('2', profile)
        await service.shutdown()
        store.fail = False
        second_flag = service.get('2').needs_sync
        synced = await service.resync_pending()
        return first, second_flag, synced

    first, second_flag, synced = asyncio.run(scenario())
    assert second_flag
    assert synced == 2
    assert not first.needs_sync


def test_update_profile_is_saved(make_session, store, profile):
    session = make_session()
    heavier = replace(profile, weight=90.0)
    session.update_profile(heavier)
    assert session.profile == heavier
    assert store.saves[-1][1] == heavier
