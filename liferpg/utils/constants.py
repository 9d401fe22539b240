XP_PER_LEVEL = 100
MAX_LOG_HISTORY = 50

# Class classifier
CLASS_MIN_ATTRIBUTE_WEIGHT = 10
SECONDARY_RELEVANCE_RATIO = 0.4
NEUTRAL_BMI = 22.0
HEAVY_BMI = 28.0
SECONDARY_ATTRIBUTE_SHARE = 0.5

# Quests
DAILY_REWARD_MULTIPLIER = 1.2
WEEKLY_REWARD_MULTIPLIER = 2.0
WEEKLY_TARGET_DAYS = 7
WEEK_START_WEEKDAY = 6  # Sunday, datetime.weekday() numbering
BASIC_DAILY_QUESTS = 2
CLASS_DAILY_QUESTS = 1

DAILY_TARGET_BY_UNIT = {
    'km': 3,
    'reps': 20,
    'min': 20,
    'glasses': 6,
    'pages/min': 15,
}
DAILY_TARGET_BY_ACTIVITY = {
    'drive': 20,
    'gym': 3,
}

# Sleep buff
SLEEP_BONUS_PER_HOUR = 2
SLEEP_IDEAL_HOURS = 9

# Narrator
NARRATOR_FALLBACK_NO_KEY = 'Adventurer, keep walking your path!'
NARRATOR_FALLBACK_EMPTY = 'Your legend grows with every day!'
NARRATOR_FALLBACK_ERROR = 'Destiny awaits your next steps.'
CLASS_TITLE_FALLBACK_NO_KEY = 'Adventurer'
CLASS_TITLE_FALLBACK_ERROR = 'Warrior'
LEVEL_UP_LABEL = 'LEVEL UP'
INACTIVE_HOURS = 48
RECENT_HOURS = 24

# Local cache keys, suffixed with the user id
NEEDS_SYNC_KEY = 'liferpg_needs_sync'
CACHED_PROFILE_KEY = 'liferpg_user'
CACHED_STATE_KEY = 'liferpg_game'
