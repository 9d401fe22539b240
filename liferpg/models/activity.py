from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional


class Category(str, Enum):
    FITNESS = 'fitness'
    INTELLECT = 'intellect'
    HEALTH = 'health'
    COMBAT = 'combat'
    SOCIAL = 'social'
    BAD_HABIT = 'bad_habit'


class Attribute(str, Enum):
    '''Attribute codes, declared in canonical (tie-break) order.'''

    STR = 'STR'  # strength, low reps
    END = 'END'  # muscular endurance, high reps
    VIG = 'VIG'  # vigor, cardio
    AGI = 'AGI'
    DEX = 'DEX'
    INT = 'INT'
    CHA = 'CHA'
    DRV = 'DRV'  # drive, behind the wheel


ATTRIBUTE_LABELS = {
    Attribute.STR: 'Strength',
    Attribute.END: 'Endurance',
    Attribute.VIG: 'Vigor',
    Attribute.AGI: 'Agility',
    Attribute.DEX: 'Dexterity',
    Attribute.INT: 'Intellect',
    Attribute.CHA: 'Charisma',
    Attribute.DRV: 'Drive',
}


@dataclass(frozen=True)
class ActivityType:
    id: str
    label: str
    xp_per_unit: float
    unit: str
    icon: str
    category: Category
    primary_attribute: Optional[Attribute] = None
    secondary_attribute: Optional[Attribute] = None

    def __post_init__(self) -> None:
        if self.xp_per_unit <= 0:
            raise ValueError(f'Activity {self.id!r} must yield positive XP per unit')


class ActivityCatalog:
    '''Immutable lookup over the recognised activity types.'''

    def __init__(self, activities: Iterable[ActivityType], basic_ids: Iterable[str]):
        self._activities = tuple(activities)
        self._by_id = {a.id: a for a in self._activities}
        if len(self._by_id) != len(self._activities):
            raise ValueError('Activity ids must be unique')
        self.basic_ids = frozenset(basic_ids)
        unknown = self.basic_ids - self._by_id.keys()
        if unknown:
            raise ValueError(f'Unknown basic activity ids: {sorted(unknown)}')

    def __iter__(self) -> Iterator[ActivityType]:
        return iter(self._activities)

    def __len__(self) -> int:
        return len(self._activities)

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._by_id

    def get(self, activity_id: str) -> Optional[ActivityType]:
        return self._by_id.get(activity_id)

    def basic(self) -> list[ActivityType]:
        return [a for a in self._activities if a.id in self.basic_ids]

    def class_pool(self) -> list[ActivityType]:
        '''Non-basic activities that may back a class quest.'''
        return [
            a
            for a in self._activities
            if a.id not in self.basic_ids and a.category is not Category.BAD_HABIT
        ]


BASIC_ACTIVITY_IDS = ('walk', 'run', 'pushup', 'abs', 'water')

ACTIVITIES = (
    # Basic activities, the default daily quest pool
    ActivityType('walk', 'Light Walk', 15, 'km', 'Footprints', Category.FITNESS, Attribute.VIG),
    ActivityType('run', 'Running', 30, 'km', 'Wind', Category.FITNESS, Attribute.VIG, Attribute.AGI),
    ActivityType('pushup', 'Push-ups', 2, 'reps', 'Dumbbell', Category.FITNESS, Attribute.STR, Attribute.END),
    ActivityType('abs', 'Sit-ups', 2, 'reps', 'ArrowBigUp', Category.FITNESS, Attribute.END, Attribute.STR),
    # Hydration only gives XP, no attribute points
    ActivityType('water', 'Hydration', 10, 'glasses', 'Droplets', Category.HEALTH),
    # Class-specific
    ActivityType('squat', 'Squats', 3, 'reps', 'ArrowBigUp', Category.FITNESS, Attribute.STR, Attribute.END),
    ActivityType('bike', 'Cycling', 20, 'km', 'Bike', Category.FITNESS, Attribute.VIG, Attribute.STR),
    ActivityType('gym', 'Weight Training', 10, 'set', 'Biceps', Category.FITNESS),
    ActivityType('hiit', 'HIIT / Intense Cardio', 8, 'min', 'Flame', Category.FITNESS, Attribute.AGI, Attribute.VIG),
    ActivityType('resistance', 'Resistance Training', 5, 'min', 'Shield', Category.FITNESS, Attribute.END, Attribute.VIG),
    # Combat
    ActivityType('fight', 'Fight / Boxing Training', 10, 'min', 'Swords', Category.COMBAT, Attribute.STR, Attribute.DEX),
    ActivityType('sword', 'Fencing / Staff', 10, 'min', 'Sword', Category.COMBAT, Attribute.DEX, Attribute.AGI),
    ActivityType('archery', 'Archery', 40, 'session', 'Crosshair', Category.COMBAT, Attribute.DEX),
    ActivityType('shooting', 'Aim / Shooting Practice', 20, 'session', 'Target', Category.COMBAT, Attribute.DEX, Attribute.INT),
    # Intellect, social and others
    ActivityType('study', 'Study / Reading', 5, 'pages/min', 'BookOpen', Category.INTELLECT, Attribute.INT),
    ActivityType('drive', 'Driving', 2, 'km', 'Car', Category.INTELLECT, Attribute.DRV, Attribute.DEX),
    ActivityType('volunteer', 'Good Deed / Helping Out', 150, 'action', 'Heart', Category.SOCIAL, Attribute.CHA, Attribute.INT),
    ActivityType('listen', 'Listening / Counselling', 10, 'min', 'Brain', Category.SOCIAL, Attribute.CHA),
)  # fmt: skip

CATALOG = ActivityCatalog(ACTIVITIES, BASIC_ACTIVITY_IDS)


def get_activity(activity_id: str) -> Optional[ActivityType]:
    return CATALOG.get(activity_id)
