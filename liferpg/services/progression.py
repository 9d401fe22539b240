import math
import numbers
from dataclasses import dataclass, replace
from typing import Any, Optional

from liferpg.models.activity import CATALOG, ActivityCatalog, ActivityType, Attribute
from liferpg.models.game_state import (
    ActivityLog,
    GameState,
    Quest,
    UserProfile,
    XpBuff,
)
from liferpg.services.classifier import determine_class
from liferpg.utils.constants import (
    MAX_LOG_HISTORY,
    SECONDARY_ATTRIBUTE_SHARE,
    XP_PER_LEVEL,
)


class InvalidLogError(ValueError):
    '''The logged activity or amount was rejected before touching state.'''


class QuestClaimError(ValueError):
    '''The quest cannot be claimed (missing, already claimed or incomplete).'''


@dataclass(frozen=True)
class GainResult:
    level: int
    current_xp: int
    total_xp: int
    xp_gained: int
    leveled_up: bool
    buff_applied: bool = False


@dataclass(frozen=True)
class LogOutcome:
    state: GameState
    log: ActivityLog
    activity: ActivityType
    gain: GainResult


@dataclass(frozen=True)
class ClaimResult:
    state: GameState
    quest: Quest
    gain: GainResult


def experience_required(level: int) -> int:
    if level < 1:
        raise ValueError(f'Level must be at least 1, got {level}')
    return level * XP_PER_LEVEL


def apply_gain(
    state: GameState, raw_gain: int, buff: Optional[XpBuff], now_ms: int
) -> GainResult:
    '''Add XP to the state's level track, carrying over as many levels as needed.'''
    if raw_gain < 0:
        raise ValueError(f'XP gain cannot be negative, got {raw_gain}')

    gained = int(raw_gain)
    buff_applied = False
    if buff is not None and buff.is_active(now_ms):
        gained = math.floor(raw_gain * buff.multiplier)
        buff_applied = True

    level = state.level
    current = state.current_xp + gained
    leveled_up = False
    needed = experience_required(level)
    while current >= needed:
        current -= needed
        level += 1
        leveled_up = True
        needed = experience_required(level)

    return GainResult(
        level=level,
        current_xp=current,
        total_xp=state.total_xp + gained,
        xp_gained=gained,
        leveled_up=leveled_up,
        buff_applied=buff_applied,
    )


def _parse_amount(amount: Any) -> float:
    if isinstance(amount, bool):
        raise InvalidLogError('Amount must be a number')
    if isinstance(amount, str):
        try:
            amount = float(amount.strip())
        except ValueError:
            raise InvalidLogError(f'Amount {amount!r} is not a number') from None
    if not isinstance(amount, numbers.Real):
        raise InvalidLogError('Amount must be a number')
    value = float(amount)
    if not math.isfinite(value) or value <= 0:
        raise InvalidLogError('Amount must be greater than zero')
    return value


def _unique_log_id(now_ms: int, logs: tuple[ActivityLog, ...]) -> str:
    taken = {log.id for log in logs}
    candidate = str(now_ms)
    suffix = 1
    while candidate in taken:
        candidate = f'{now_ms}-{suffix}'
        suffix += 1
    return candidate


def _add_attribute_points(
    attributes: dict[Attribute, float], activity: ActivityType, amount: float
) -> dict[Attribute, float]:
    updated = dict(attributes)
    points = math.ceil(amount)
    if activity.primary_attribute is not None:
        attr = activity.primary_attribute
        updated[attr] = updated.get(attr, 0) + points
    if activity.secondary_attribute is not None:
        attr = activity.secondary_attribute
        updated[attr] = updated.get(attr, 0) + math.ceil(
            points * SECONDARY_ATTRIBUTE_SHARE
        )
    return updated


def apply_activity(
    state: GameState,
    profile: Optional[UserProfile],
    activity_id: str,
    amount: Any,
    now_ms: int,
    catalog: ActivityCatalog = CATALOG,
) -> LogOutcome:
    '''Run a logged activity through XP, attributes, quests, history and class.

    Pure: returns the next state without touching the one passed in. Raises
    InvalidLogError for unknown activities and non-positive amounts.
    '''
    activity = catalog.get(activity_id)
    if activity is None:
        raise InvalidLogError(f'Unknown activity {activity_id!r}')
    value = _parse_amount(amount)

    raw_gain = math.floor(value * activity.xp_per_unit)
    gain = apply_gain(state, raw_gain, state.active_buff, now_ms)

    attributes = _add_attribute_points(dict(state.attributes), activity, value)

    quests = tuple(
        replace(q, current_amount=q.current_amount + value)
        if not q.is_claimed and q.activity_id == activity.id
        else q
        for q in state.quests
    )

    log = ActivityLog(
        id=_unique_log_id(now_ms, state.logs),
        activity_id=activity.id,
        amount=value,
        xp_gained=gain.xp_gained,
        timestamp=now_ms,
    )
    logs = ((log,) + state.logs)[:MAX_LOG_HISTORY]

    weight = profile.weight if profile else 0
    height = profile.height if profile else 0
    archetype = determine_class(attributes, weight, height, logs, catalog)

    buff = state.active_buff
    if buff is not None and not buff.is_active(now_ms):
        buff = None

    new_state = replace(
        state,
        level=gain.level,
        current_xp=gain.current_xp,
        total_xp=gain.total_xp,
        logs=logs,
        attributes=attributes,
        class_title=archetype.value,
        active_buff=buff,
        quests=quests,
    )
    return LogOutcome(state=new_state, log=log, activity=activity, gain=gain)


def claim_quest(state: GameState, quest_id: str, now_ms: int) -> ClaimResult:
    '''Pay out a completed quest. Quest rewards ignore the active buff.'''
    quest = next((q for q in state.quests if q.id == quest_id), None)
    if quest is None:
        raise QuestClaimError(f'No quest with id {quest_id!r}')
    if quest.is_claimed:
        raise QuestClaimError('Quest reward was already claimed')
    if not quest.is_complete:
        raise QuestClaimError(
            f'Quest is not complete yet ({quest.current_amount}/{quest.target_amount})'
        )

    gain = apply_gain(state, quest.xp_reward, None, now_ms)
    claimed = replace(quest, is_claimed=True)
    new_state = replace(
        state,
        level=gain.level,
        current_xp=gain.current_xp,
        total_xp=gain.total_xp,
        quests=tuple(claimed if q.id == quest_id else q for q in state.quests),
    )
    return ClaimResult(state=new_state, quest=claimed, gain=gain)
