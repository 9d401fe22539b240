import logging
import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from liferpg.models.activity import (
    CATALOG,
    ActivityCatalog,
    ActivityType,
    Attribute,
    Category,
)
from liferpg.models.archetype import Archetype
from liferpg.models.game_state import Quest, QuestType
from liferpg.utils.constants import (
    BASIC_DAILY_QUESTS,
    CLASS_DAILY_QUESTS,
    DAILY_REWARD_MULTIPLIER,
    DAILY_TARGET_BY_ACTIVITY,
    DAILY_TARGET_BY_UNIT,
    WEEKLY_REWARD_MULTIPLIER,
    WEEKLY_TARGET_DAYS,
)
from liferpg.utils.helper import start_of_day, start_of_week, to_millis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Affinity:
    '''Which activities feed a class: by category, primary attribute or id.'''

    categories: frozenset[Category] = field(default_factory=frozenset)
    attributes: frozenset[Attribute] = field(default_factory=frozenset)
    activity_ids: frozenset[str] = field(default_factory=frozenset)

    def matches(self, activity: ActivityType) -> bool:
        return (
            activity.category in self.categories
            or activity.primary_attribute in self.attributes
            or activity.id in self.activity_ids
        )


_MIGHT = Affinity(
    categories=frozenset({Category.COMBAT}),
    attributes=frozenset({Attribute.STR}),
    activity_ids=frozenset({'gym'}),
)
_CARDIO = Affinity(
    attributes=frozenset({Attribute.VIG}),
    activity_ids=frozenset({'bike', 'hiit'}),
)
_PRECISION = Affinity(
    categories=frozenset({Category.COMBAT}),
    attributes=frozenset({Attribute.DEX}),
)
_SOCIAL = Affinity(categories=frozenset({Category.SOCIAL}))

CLASS_AFFINITY: dict[Archetype, Affinity] = {
    Archetype.MAGE: Affinity(categories=frozenset({Category.INTELLECT})),
    Archetype.HEALER: _SOCIAL,
    Archetype.COUNSELOR: _SOCIAL,
    Archetype.DRIVER: Affinity(activity_ids=frozenset({'drive'})),
    Archetype.TANK: _MIGHT,
    Archetype.FIGHTER: _MIGHT,
    Archetype.BERSERKER: _MIGHT,
    Archetype.WARRIOR: _MIGHT,
    Archetype.RUNNER: _CARDIO,
    Archetype.BIKER: _CARDIO,
    Archetype.SPRINTER: _CARDIO,
    Archetype.MARKSMAN: _PRECISION,
    Archetype.SWORDSMAN: _PRECISION,
}


@dataclass(frozen=True)
class QuestRefresh:
    quests: tuple[Quest, ...]
    last_daily: Optional[int]
    last_weekly: Optional[int]
    daily_fired: bool = False
    weekly_fired: bool = False


def class_activities(
    archetype: Archetype, catalog: ActivityCatalog = CATALOG
) -> list[ActivityType]:
    '''Candidate activities for a class quest, never empty for a non-empty pool.'''
    pool = catalog.class_pool()
    affinity = CLASS_AFFINITY.get(archetype)
    if affinity is None:
        return pool
    matching = [a for a in pool if affinity.matches(a)]
    return matching or pool


def daily_target(activity: ActivityType) -> int:
    if activity.id in DAILY_TARGET_BY_ACTIVITY:
        return DAILY_TARGET_BY_ACTIVITY[activity.id]
    return DAILY_TARGET_BY_UNIT.get(activity.unit, 1)


def quest_target(activity: ActivityType, quest_type: QuestType) -> int:
    target = daily_target(activity)
    if quest_type is QuestType.WEEKLY:
        return target * WEEKLY_TARGET_DAYS
    return target


def quest_reward(activity: ActivityType, target: float, quest_type: QuestType) -> int:
    multiplier = (
        WEEKLY_REWARD_MULTIPLIER
        if quest_type is QuestType.WEEKLY
        else DAILY_REWARD_MULTIPLIER
    )
    return math.floor(target * activity.xp_per_unit * multiplier)


def _select_activities(
    archetype: Archetype, catalog: ActivityCatalog, rng: random.Random
) -> list[ActivityType]:
    basic = catalog.basic()
    if archetype.is_baseline:
        count = min(len(basic), BASIC_DAILY_QUESTS + CLASS_DAILY_QUESTS)
        return rng.sample(basic, count)

    selected = rng.sample(basic, min(len(basic), BASIC_DAILY_QUESTS))
    candidates = class_activities(archetype, catalog)
    if candidates:
        selected.append(rng.choice(candidates))
    return selected


def _build_quests(
    quest_type: QuestType,
    archetype: Archetype,
    catalog: ActivityCatalog,
    rng: random.Random,
    now_ms: int,
) -> list[Quest]:
    quests = []
    for activity in _select_activities(archetype, catalog, rng):
        target = quest_target(activity, quest_type)
        quests.append(
            Quest(
                id=f'{quest_type.value}-{now_ms}-{activity.id}',
                type=quest_type,
                activity_id=activity.id,
                target_amount=target,
                current_amount=0,
                xp_reward=quest_reward(activity, target, quest_type),
                is_claimed=False,
                created_at=now_ms,
            )
        )
    return quests


def generate_quests(
    quests: Sequence[Quest],
    archetype: Archetype,
    last_daily: Optional[int],
    last_weekly: Optional[int],
    now: datetime,
    rng: random.Random,
    catalog: ActivityCatalog = CATALOG,
) -> QuestRefresh:
    '''Regenerate daily and weekly quests whose period has rolled over.

    Daily quests expire at local midnight, weekly ones at the start of the
    week. An expired period drops every quest of that type, progress and all.
    When nothing expired the input is handed back untouched.
    '''
    now_ms = to_millis(now)
    daily_due = not last_daily or last_daily < to_millis(start_of_day(now))
    weekly_due = not last_weekly or last_weekly < to_millis(start_of_week(now))

    if not daily_due and not weekly_due:
        return QuestRefresh(tuple(quests), last_daily, last_weekly)

    result = list(quests)
    if daily_due:
        result = [q for q in result if q.type is not QuestType.DAILY]
        result.extend(_build_quests(QuestType.DAILY, archetype, catalog, rng, now_ms))
        last_daily = now_ms
    if weekly_due:
        result = [q for q in result if q.type is not QuestType.WEEKLY]
        result.extend(_build_quests(QuestType.WEEKLY, archetype, catalog, rng, now_ms))
        last_weekly = now_ms

    logger.debug(
        f'Quests regenerated for {archetype.value}: '
        f'daily={daily_due} weekly={weekly_due} total={len(result)}'
    )
    return QuestRefresh(
        quests=tuple(result),
        last_daily=last_daily,
        last_weekly=last_weekly,
        daily_fired=daily_due,
        weekly_fired=weekly_due,
    )
