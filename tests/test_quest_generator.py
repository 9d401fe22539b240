import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from liferpg.models.activity import CATALOG, Category
from liferpg.models.archetype import Archetype
from liferpg.models.game_state import QuestType
from liferpg.services.quest_generator import (
    class_activities,
    generate_quests,
    quest_reward,
    quest_target,
)
from liferpg.utils.helper import to_millis
from tests.conftest import FIXED_NOW


def _daily(quests):
    return [q for q in quests if q.type is QuestType.DAILY]


def _weekly(quests):
    return [q for q in quests if q.type is QuestType.WEEKLY]


def test_first_run_generates_both_boards(rng):
    refresh = generate_quests((), Archetype.NPC, None, None, FIXED_NOW, rng)

    assert refresh.daily_fired and refresh.weekly_fired
    assert refresh.last_daily == to_millis(FIXED_NOW)
    assert refresh.last_weekly == to_millis(FIXED_NOW)
    daily = _daily(refresh.quests)
    assert len(daily) == 3
    assert len(_weekly(refresh.quests)) == 3
    assert len({q.activity_id for q in daily}) == 3
    assert all(q.activity_id in CATALOG.basic_ids for q in refresh.quests)
    assert len({q.id for q in refresh.quests}) == 6


def test_class_gets_one_affinity_quest(rng):
    refresh = generate_quests((), Archetype.MAGE, None, None, FIXED_NOW, rng)
    daily = _daily(refresh.quests)

    basic = [q for q in daily if q.activity_id in CATALOG.basic_ids]
    special = [q for q in daily if q.activity_id not in CATALOG.basic_ids]
    assert len(basic) == 2
    assert len(special) == 1
    assert CATALOG.get(special[0].activity_id).category is Category.INTELLECT


def test_same_day_is_a_no_op(rng):
    first = generate_quests((), Archetype.NPC, None, None, FIXED_NOW, rng)
    later = FIXED_NOW + timedelta(hours=5)

    again = generate_quests(
        first.quests, Archetype.WARRIOR, first.last_daily, first.last_weekly, later, rng
    )

    assert again.quests == first.quests
    assert not again.daily_fired and not again.weekly_fired
    assert again.last_daily == first.last_daily


def test_new_day_replaces_daily_and_keeps_weekly(rng):
    first = generate_quests((), Archetype.NPC, None, None, FIXED_NOW, rng)
    tomorrow = FIXED_NOW + timedelta(days=1)

    refresh = generate_quests(
        first.quests, Archetype.NPC, first.last_daily, first.last_weekly, tomorrow, rng
    )

    assert refresh.daily_fired and not refresh.weekly_fired
    assert _weekly(refresh.quests) == _weekly(first.quests)
    assert all(q.created_at == to_millis(tomorrow) for q in _daily(refresh.quests))
    assert refresh.last_weekly == first.last_weekly


def test_week_rolls_over_on_sunday(rng):
    saturday = datetime(2024, 5, 18, 20, 0, tzinfo=timezone.utc)
    sunday = datetime(2024, 5, 19, 9, 0, tzinfo=timezone.utc)
    first = generate_quests((), Archetype.NPC, None, None, saturday, rng)

    refresh = generate_quests(
        first.quests, Archetype.NPC, first.last_daily, first.last_weekly, sunday, rng
    )
    assert refresh.daily_fired and refresh.weekly_fired


def test_sunday_to_saturday_is_one_week(rng):
    sunday = datetime(2024, 5, 12, 8, 0, tzinfo=timezone.utc)
    saturday = datetime(2024, 5, 18, 23, 0, tzinfo=timezone.utc)
    first = generate_quests((), Archetype.NPC, None, None, sunday, rng)

    refresh = generate_quests(
        first.quests, Archetype.NPC, first.last_daily, first.last_weekly, saturday, rng
    )
    assert refresh.daily_fired and not refresh.weekly_fired


def test_expired_daily_progress_is_discarded(rng):
    first = generate_quests((), Archetype.NPC, None, None, FIXED_NOW, rng)
    progressed = tuple(replace(q, current_amount=1) for q in first.quests)
    refresh = generate_quests(
        progressed,
        Archetype.NPC,
        first.last_daily,
        first.last_weekly,
        FIXED_NOW + timedelta(days=1),
        rng,
    )
    assert all(q.current_amount == 0 for q in _daily(refresh.quests))
    assert all(q.current_amount == 1 for q in _weekly(refresh.quests))


def test_targets_and_rewards():
    walk = CATALOG.get('walk')
    assert quest_target(walk, QuestType.DAILY) == 3
    assert quest_target(walk, QuestType.WEEKLY) == 21
    assert quest_reward(walk, 3, QuestType.DAILY) == 54
    assert quest_reward(walk, 21, QuestType.WEEKLY) == 630

    assert quest_target(CATALOG.get('gym'), QuestType.DAILY) == 3
    assert quest_target(CATALOG.get('drive'), QuestType.DAILY) == 20
    assert quest_target(CATALOG.get('water'), QuestType.DAILY) == 6
    assert quest_target(CATALOG.get('archery'), QuestType.DAILY) == 1


def test_unmapped_class_draws_from_the_whole_pool():
    pool = class_activities(Archetype.CROSSFITTER)
    assert pool == CATALOG.class_pool()
    assert not any(a.id in CATALOG.basic_ids for a in pool)


def test_same_seed_same_board():
    a = generate_quests((), Archetype.RUNNER, None, None, FIXED_NOW, random.Random(3))
    b = generate_quests((), Archetype.RUNNER, None, None, FIXED_NOW, random.Random(3))
    assert a.quests == b.quests
