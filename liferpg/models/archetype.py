from enum import Enum
from typing import Optional


class Archetype(str, Enum):
    NPC = 'NPC'  # no class yet
    ADVENTURER = 'Adventurer'  # generic fallback
    WARRIOR = 'Warrior'
    TANK = 'Tank'
    FIGHTER = 'Fighter'
    BERSERKER = 'Berserker'
    RUNNER = 'Runner'
    BIKER = 'Biker'
    CROSSFITTER = 'Crossfitter'
    ENDURANCE_ATHLETE = 'Endurance Athlete'
    SWORDSMAN = 'Swordsman'
    SPRINTER = 'Sprinter'
    MARKSMAN = 'Marksman'
    MAGE = 'Mage'
    COUNSELOR = 'Counselor'
    HEALER = 'Healer'
    DRIVER = 'Driver'

    @property
    def is_baseline(self) -> bool:
        return self in BASELINE_ARCHETYPES

    @classmethod
    def from_label(cls, label: Optional[str]) -> 'Archetype':
        '''Resolve a stored class title; unknown titles map to the fallback.'''
        if not label:
            return cls.NPC
        try:
            return cls(label)
        except ValueError:
            return cls.ADVENTURER


BASELINE_ARCHETYPES = frozenset({Archetype.NPC, Archetype.ADVENTURER})
