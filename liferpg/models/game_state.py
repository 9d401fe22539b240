from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from liferpg.models.activity import Attribute
from liferpg.models.archetype import Archetype
from liferpg.utils.constants import MAX_LOG_HISTORY


class QuestType(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'


class Gender(str, Enum):
    MALE = 'male'
    FEMALE = 'female'
    OTHER = 'other'


def empty_attributes() -> dict[Attribute, float]:
    return {attr: 0 for attr in Attribute}


def _attributes_from_dict(raw: Optional[Mapping[str, Any]]) -> dict[Attribute, float]:
    attributes = empty_attributes()
    for code, value in (raw or {}).items():
        try:
            attributes[Attribute(code)] = value
        except ValueError:
            continue  # attribute codes from older saves
    return attributes


@dataclass(frozen=True)
class ActivityLog:
    id: str
    activity_id: str
    amount: float
    xp_gained: int
    timestamp: int  # epoch ms

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'activity_id': self.activity_id,
            'amount': self.amount,
            'xp_gained': self.xp_gained,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ActivityLog':
        return cls(
            id=str(data['id']),
            activity_id=data['activity_id'],
            amount=data['amount'],
            xp_gained=int(data.get('xp_gained', 0)),
            timestamp=int(data['timestamp']),
        )


@dataclass(frozen=True)
class XpBuff:
    multiplier: float
    expires_at: int  # epoch ms
    description: str

    def is_active(self, now_ms: int) -> bool:
        return now_ms < self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            'multiplier': self.multiplier,
            'expires_at': self.expires_at,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'XpBuff':
        return cls(
            multiplier=float(data['multiplier']),
            expires_at=int(data['expires_at']),
            description=data.get('description', ''),
        )


@dataclass(frozen=True)
class Quest:
    id: str
    type: QuestType
    activity_id: str
    target_amount: float
    current_amount: float
    xp_reward: int
    is_claimed: bool
    created_at: int

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'activity_id': self.activity_id,
            'target_amount': self.target_amount,
            'current_amount': self.current_amount,
            'xp_reward': self.xp_reward,
            'is_claimed': self.is_claimed,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Quest':
        return cls(
            id=data['id'],
            type=QuestType(data['type']),
            activity_id=data['activity_id'],
            target_amount=data['target_amount'],
            current_amount=data.get('current_amount', 0),
            xp_reward=int(data.get('xp_reward', 0)),
            is_claimed=bool(data.get('is_claimed', False)),
            created_at=int(data.get('created_at', 0)),
        )


@dataclass(frozen=True)
class GameState:
    '''Snapshot of one player's progression. Replaced, never mutated.'''

    level: int = 1
    current_xp: int = 0
    total_xp: int = 0
    logs: tuple[ActivityLog, ...] = ()  # newest first
    class_title: str = Archetype.NPC.value
    attributes: Mapping[Attribute, float] = field(default_factory=empty_attributes)
    active_buff: Optional[XpBuff] = None
    quests: tuple[Quest, ...] = ()
    last_daily_quest_gen: Optional[int] = None
    last_weekly_quest_gen: Optional[int] = None

    @property
    def archetype(self) -> Archetype:
        return Archetype.from_label(self.class_title)

    def to_dict(self) -> dict[str, Any]:
        return {
            'level': self.level,
            'current_xp': self.current_xp,
            'total_xp': self.total_xp,
            'logs': [log.to_dict() for log in self.logs],
            'class_title': self.class_title,
            'attributes': {attr.value: v for attr, v in self.attributes.items()},
            'active_buff': self.active_buff.to_dict() if self.active_buff else None,
            'quests': [q.to_dict() for q in self.quests],
            'last_daily_quest_gen': self.last_daily_quest_gen,
            'last_weekly_quest_gen': self.last_weekly_quest_gen,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GameState':
        buff = data.get('active_buff')
        return cls(
            level=int(data.get('level', 1)),
            current_xp=int(data.get('current_xp', 0)),
            total_xp=int(data.get('total_xp', 0)),
            logs=tuple(
                ActivityLog.from_dict(log)
                for log in (data.get('logs') or [])[:MAX_LOG_HISTORY]
            ),
            class_title=data.get('class_title') or Archetype.NPC.value,
            attributes=_attributes_from_dict(data.get('attributes')),
            active_buff=XpBuff.from_dict(buff) if buff else None,
            quests=tuple(Quest.from_dict(q) for q in (data.get('quests') or [])),
            last_daily_quest_gen=data.get('last_daily_quest_gen') or None,
            last_weekly_quest_gen=data.get('last_weekly_quest_gen') or None,
        )


@dataclass(frozen=True)
class UserProfile:
    name: str
    dob: str
    weight: float  # kg
    height: float  # cm
    gender: Gender
    profession: str

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'dob': self.dob,
            'weight': self.weight,
            'height': self.height,
            'gender': self.gender.value,
            'profession': self.profession,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'UserProfile':
        try:
            gender = Gender(data.get('gender', Gender.OTHER.value))
        except ValueError:
            gender = Gender.OTHER
        return cls(
            name=data.get('name', ''),
            dob=data.get('dob', ''),
            weight=float(data.get('weight') or 0),
            height=float(data.get('height') or 0),
            gender=gender,
            profession=data.get('profession', ''),
        )


@dataclass(frozen=True)
class UserDocument:
    '''What the document store keeps per user.'''

    profile: UserProfile
    state: GameState
