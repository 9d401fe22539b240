import logging
import os
from datetime import datetime, timedelta, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from liferpg.utils.constants import NEUTRAL_BMI, WEEK_START_WEEKDAY

logger = logging.getLogger(__name__)

HOST_ZONE_FILE = Path('/etc/localtime')


def local_zone() -> Optional[tzinfo]:
    '''The calendar zone days and weeks are counted in.

    ``LIFERPG_TZ`` (an IANA name) wins, then ``TZ``, then the host's zone file.
    Returns None when no DST-aware zone can be found.
    '''
    for var in ('LIFERPG_TZ', 'TZ'):
        name = (os.getenv(var) or '').strip().lstrip(':')
        if not name:
            continue
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f'Unknown time zone {name!r} in {var}')
    if HOST_ZONE_FILE.exists():
        try:
            with HOST_ZONE_FILE.open('rb') as f:
                return ZoneInfo.from_file(f, key='localtime')
        except (OSError, ValueError):
            logger.warning('Could not read the host time zone', exc_info=True)
    return None


def local_now() -> datetime:
    '''Current wall-clock time, aware, in a zone that follows DST changes.'''
    zone = local_zone()
    if zone is None:
        return datetime.now().astimezone()
    return datetime.now(zone)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime, week_start: int = WEEK_START_WEEKDAY) -> datetime:
    days_back = (moment.weekday() - week_start) % 7
    return start_of_day(moment) - timedelta(days=days_back)


def body_mass_index(weight: float | None, height: float | None) -> float:
    '''BMI from kg and cm; unusable inputs give a neutral index.'''
    if not weight or not height or weight <= 0 or height <= 0:
        return NEUTRAL_BMI
    height_m = height / 100
    return weight / (height_m * height_m)
