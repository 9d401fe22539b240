import logging
import math
import numbers
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

from liferpg.models.activity import CATALOG, ActivityCatalog, Attribute, Category
from liferpg.models.archetype import Archetype
from liferpg.models.game_state import ActivityLog
from liferpg.utils.constants import (
    CLASS_MIN_ATTRIBUTE_WEIGHT,
    HEAVY_BMI,
    MAX_LOG_HISTORY,
    SECONDARY_RELEVANCE_RATIO,
)
from liferpg.utils.helper import body_mass_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassSignals:
    '''Everything the decision table looks at besides the primary attribute.'''

    secondary: Optional[Attribute]  # None unless relevant
    heavy: bool
    combat_logs: int
    fitness_logs: int


def _strength(s: ClassSignals) -> Archetype:
    if s.heavy and s.secondary in (None, Attribute.END):
        return Archetype.TANK
    if s.secondary is Attribute.DEX:
        return Archetype.FIGHTER
    if s.secondary is Attribute.AGI:
        return Archetype.BERSERKER
    if s.combat_logs > s.fitness_logs:
        return Archetype.FIGHTER
    return Archetype.WARRIOR


def _vigor(s: ClassSignals) -> Archetype:
    if s.secondary is Attribute.STR:
        return Archetype.BIKER
    return Archetype.RUNNER


def _endurance(s: ClassSignals) -> Archetype:
    if s.secondary is Attribute.STR:
        return Archetype.TANK if s.heavy else Archetype.CROSSFITTER
    return Archetype.ENDURANCE_ATHLETE


def _agility(s: ClassSignals) -> Archetype:
    if s.secondary is Attribute.DEX:
        return Archetype.SWORDSMAN
    return Archetype.SPRINTER


def _dexterity(s: ClassSignals) -> Archetype:
    if s.secondary is Attribute.STR:
        return Archetype.FIGHTER
    if s.secondary is Attribute.AGI:
        return Archetype.SWORDSMAN
    return Archetype.MARKSMAN


def _charisma(s: ClassSignals) -> Archetype:
    if s.secondary is Attribute.INT:
        return Archetype.COUNSELOR
    return Archetype.HEALER


DECISION_TABLE: dict[Attribute, Callable[[ClassSignals], Archetype]] = {
    Attribute.STR: _strength,
    Attribute.VIG: _vigor,
    Attribute.END: _endurance,
    Attribute.AGI: _agility,
    Attribute.DEX: _dexterity,
    Attribute.INT: lambda _: Archetype.MAGE,
    Attribute.CHA: _charisma,
    Attribute.DRV: lambda _: Archetype.DRIVER,
}


def _weights(attributes: Mapping[Attribute, float]) -> Optional[list[tuple[Attribute, float]]]:
    '''Attribute weights in canonical order, or None if any weight is unusable.'''
    weights = []
    for attr in Attribute:
        value = attributes.get(attr, 0)
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            return None
        if math.isnan(value) or value < 0:
            return None
        weights.append((attr, float(value)))
    return weights


def _count_categories(
    logs: Sequence[ActivityLog], catalog: ActivityCatalog
) -> tuple[int, int]:
    combat = fitness = 0
    for log in logs[:MAX_LOG_HISTORY]:
        activity = catalog.get(log.activity_id)
        if activity is None:
            continue
        if activity.category is Category.COMBAT:
            combat += 1
        elif activity.category is Category.FITNESS:
            fitness += 1
    return combat, fitness


def determine_class(
    attributes: Mapping[Attribute, float],
    weight: Optional[float],
    height: Optional[float],
    logs: Sequence[ActivityLog],
    catalog: ActivityCatalog = CATALOG,
) -> Archetype:
    '''Classify a player from attribute weights, body mass and recent activity.'''
    weights = _weights(attributes)
    if weights is None:
        logger.warning(f'Malformed attribute vector, falling back to NPC: {attributes!r}')
        return Archetype.NPC

    # max() keeps the first of equal weights, i.e. canonical order wins ties
    primary, primary_weight = max(weights, key=lambda item: item[1])
    if primary_weight < CLASS_MIN_ATTRIBUTE_WEIGHT:
        return Archetype.NPC

    others = [item for item in weights if item[0] is not primary]
    secondary, secondary_weight = max(others, key=lambda item: item[1])
    relevant = secondary_weight > primary_weight * SECONDARY_RELEVANCE_RATIO

    combat, fitness = _count_categories(logs, catalog)
    signals = ClassSignals(
        secondary=secondary if relevant else None,
        heavy=body_mass_index(weight, height) >= HEAVY_BMI,
        combat_logs=combat,
        fitness_logs=fitness,
    )

    rule = DECISION_TABLE.get(primary)
    if rule is None:
        return Archetype.ADVENTURER
    return rule(signals)
