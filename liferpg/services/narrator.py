'''Narrator flavor text backed by the Gemini REST API.

The narrator is cosmetic: every public entry point returns a string and never
raises, whatever happens to the text oracle behind it.
'''

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import requests

from liferpg.models.activity import ActivityType, Category
from liferpg.models.archetype import Archetype
from liferpg.models.game_state import GameState, UserProfile
from liferpg.services.interfaces import TextOracle
from liferpg.services.quest_generator import CLASS_AFFINITY
from liferpg.utils.constants import (
    CLASS_TITLE_FALLBACK_ERROR,
    CLASS_TITLE_FALLBACK_NO_KEY,
    INACTIVE_HOURS,
    LEVEL_UP_LABEL,
    NARRATOR_FALLBACK_EMPTY,
    NARRATOR_FALLBACK_ERROR,
    NARRATOR_FALLBACK_NO_KEY,
    RECENT_HOURS,
)
from liferpg.utils.env import env_float

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = 'https://generativelanguage.googleapis.com/v1beta'
DEFAULT_MODEL = 'gemini-3-flash-preview'

_MS_PER_HOUR = 60 * 60 * 1000

TONE_GUIDELINES = '''\
1. Never say "mana"; real mages use knowledge, focus and mental capacity.
2. Replace fantasy monsters with real challenges: inertia, laziness, limits, weakness, atrophy.
3. Be motivating but realistic. If the player is not training, warn that their attributes will drop.
4. Use RPG terms (XP, level, guild, quest) applied to real life, e.g. "your stamina grew".'''


class NarratorTrigger(str, Enum):
    LOGIN = 'login'
    ACTIVITY = 'activity'
    LEVEL_UP = 'level_up'


_EVENT_NAMES = {
    NarratorTrigger.LOGIN: 'Player login',
    NarratorTrigger.ACTIVITY: 'Activity completed',
    NarratorTrigger.LEVEL_UP: 'Level up',
}


@dataclass(frozen=True)
class NarratorContext:
    trigger: NarratorTrigger
    name: str
    archetype: str
    level: int
    note: str = ''
    activity_label: Optional[str] = None


@dataclass
class OracleConfig:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    timeout: float = 15.0

    @classmethod
    def from_env(cls) -> 'OracleConfig':
        return cls(
            api_key=os.getenv('GEMINI_API_KEY') or None,
            model=os.getenv('NARRATOR_MODEL', DEFAULT_MODEL),
            api_base=os.getenv('NARRATOR_API_BASE', DEFAULT_API_BASE),
            timeout=env_float('NARRATOR_TIMEOUT', 15.0),
        )


class GeminiOracle:
    def __init__(self, config: OracleConfig, session: Optional[requests.Session] = None):
        if not config.api_key:
            raise ValueError('GeminiOracle needs an API key')
        self.config = config
        self._http = session or requests.Session()

    def complete(self, prompt: str) -> str:
        url = f'{self.config.api_base.rstrip("/")}/models/{self.config.model}:generateContent'
        response = self._http.post(
            url,
            headers={'x-goog-api-key': self.config.api_key or ''},
            json={'contents': [{'parts': [{'text': prompt}]}]},
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return _extract_text(response.json())


def _extract_text(payload: dict[str, Any]) -> str:
    candidates = payload.get('candidates') or []
    if not candidates:
        return ''
    parts = (candidates[0].get('content') or {}).get('parts') or []
    return ''.join(part.get('text', '') for part in parts)


def _login_note(state: GameState, now_ms: int) -> str:
    if not state.logs:
        return 'The player is new. Welcome them to the path of self-improvement.'
    hours_idle = (now_ms - state.logs[0].timestamp) / _MS_PER_HOUR
    if hours_idle > INACTIVE_HOURS:
        days = int(hours_idle // 24)
        return (
            f'The player has not logged anything for {days} days. Use a realistic '
            'warning tone: muscles are atrophying, technique is rusting, '
            'inertia is winning.'
        )
    if hours_idle < RECENT_HOURS:
        return 'The player trained recently. Praise their discipline and consistency.'
    return ''


def _activity_note(archetype: Archetype, activity: ActivityType) -> str:
    affinity = CLASS_AFFINITY.get(archetype)
    if affinity is not None and affinity.matches(activity):
        if archetype is Archetype.MAGE and activity.category is Category.INTELLECT:
            return (
                f'The activity ({activity.label}) expands the Mage\'s knowledge '
                'and focus. Praise the sharp mind.'
            )
        return (
            f'The activity ({activity.label}) is core to the {archetype.value} '
            'class. Praise the specialization.'
        )
    return (
        f'The activity ({activity.label}) is a versatile pick for a '
        f'{archetype.value}. Praise the balance.'
    )


def build_context(
    trigger: NarratorTrigger,
    profile: UserProfile,
    state: GameState,
    now_ms: int,
    activity: Optional[ActivityType] = None,
    buffed: bool = False,
) -> NarratorContext:
    '''Summarise the player's situation for the narrator prompt.'''
    note = ''
    label: Optional[str] = None
    if trigger is NarratorTrigger.LOGIN:
        note = _login_note(state, now_ms)
    elif trigger is NarratorTrigger.LEVEL_UP:
        label = LEVEL_UP_LABEL
    elif activity is not None:
        note = _activity_note(state.archetype, activity)
        label = activity.label + (' (Buffed)' if buffed else '')

    return NarratorContext(
        trigger=trigger,
        name=profile.name,
        archetype=state.class_title,
        level=state.level,
        note=note,
        activity_label=label,
    )


def build_prompt(context: NarratorContext) -> str:
    lines = [
        'Act as a real-life RPG game master (the Narrator).',
        '',
        f'Event: {_EVENT_NAMES[context.trigger]}',
    ]
    if context.activity_label:
        lines.append(f'Activity: {context.activity_label}')
    lines += [
        '',
        'Profile:',
        f'Name: {context.name}',
        f'Class: {context.archetype}',
        f'Level: {context.level}',
        '',
        f'Specific context: {context.note}',
        '',
        'Mandatory tone guidelines:',
        TONE_GUIDELINES,
        '',
        'Write a short message (2 sentences max) for the player.',
        'No Markdown. Plain text only.',
    ]
    return '\n'.join(lines)


def build_class_title_prompt(state: GameState) -> str:
    strongest = max(state.attributes.items(), key=lambda item: item[1])[0]
    return '\n'.join(
        [
            'Analyse the profile of a fitness / real-life RPG player.',
            f'Level: {state.level}',
            f'Total XP: {state.total_xp}',
            f'Main attribute: {strongest.value}',
            '',
            'Create a creative, realistic class title '
            '(e.g. "Iron Scholar", "Master of Motion", "Sage of Vitality").',
            'Only the title, nothing else. 4 words max.',
        ]
    )


class Narrator:
    def __init__(self, oracle: Optional[TextOracle] = None):
        self.oracle = oracle

    @property
    def enabled(self) -> bool:
        return self.oracle is not None

    def narrate(self, context: NarratorContext) -> str:
        if self.oracle is None:
            return NARRATOR_FALLBACK_NO_KEY
        try:
            text = self.oracle.complete(build_prompt(context))
        except Exception:
            logger.warning(
                f'Narrator generation failed for trigger={context.trigger.value}',
                exc_info=True,
            )
            return NARRATOR_FALLBACK_ERROR
        return (text or '').strip() or NARRATOR_FALLBACK_EMPTY

    def suggest_class_title(self, state: GameState) -> str:
        if self.oracle is None:
            return CLASS_TITLE_FALLBACK_NO_KEY
        try:
            text = self.oracle.complete(build_class_title_prompt(state))
        except Exception:
            logger.warning('Class title generation failed', exc_info=True)
            return CLASS_TITLE_FALLBACK_ERROR
        return (text or '').strip() or CLASS_TITLE_FALLBACK_NO_KEY


def build_narrator(config: Optional[OracleConfig] = None) -> Narrator:
    config = config or OracleConfig.from_env()
    if not config.api_key:
        logger.info('GEMINI_API_KEY not set; narrator will use fallback lines')
        return Narrator(None)
    return Narrator(GeminiOracle(config))
