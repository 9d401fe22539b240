from datetime import datetime, time, timedelta
from typing import Optional

from liferpg.models.game_state import XpBuff
from liferpg.utils.constants import SLEEP_BONUS_PER_HOUR, SLEEP_IDEAL_HOURS
from liferpg.utils.helper import to_millis


def sleep_hours(bed_time: time, wake_time: time) -> float:
    bed = bed_time.hour * 60 + bed_time.minute
    wake = wake_time.hour * 60 + wake_time.minute
    if wake >= bed:
        return (wake - bed) / 60
    return (24 * 60 - bed + wake) / 60


def sleep_bonus_percent(hours: float) -> float:
    '''Each hour slept is worth 2%, up to 9 hours; oversleeping eats it back.'''
    if hours <= SLEEP_IDEAL_HOURS:
        return hours * SLEEP_BONUS_PER_HOUR
    peak = SLEEP_IDEAL_HOURS * SLEEP_BONUS_PER_HOUR
    return max(0.0, peak - (hours - SLEEP_IDEAL_HOURS) * SLEEP_BONUS_PER_HOUR)


def sleep_buff(bed_time: time, wake_time: time, now: datetime) -> Optional[XpBuff]:
    '''XP buff earned by a night's sleep, lasting until the next bed time.

    Raises ValueError for a zero-length night. Returns None when the sleep
    earned no bonus at all.
    '''
    hours = sleep_hours(bed_time, wake_time)
    if hours <= 0:
        raise ValueError('Bed time and wake time cannot be the same')

    percent = sleep_bonus_percent(hours)
    multiplier = round(1 + percent / 100, 2)
    if multiplier <= 1:
        return None

    expires = now.replace(
        hour=bed_time.hour, minute=bed_time.minute, second=0, microsecond=0
    )
    if expires < now and now.hour > bed_time.hour:
        expires += timedelta(days=1)

    return XpBuff(
        multiplier=multiplier,
        expires_at=to_millis(expires),
        description=f'Sleep buff: +{percent:.0f}% XP',
    )
