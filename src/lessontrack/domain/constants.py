"""Centralized constants for lessontrack.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scoring ----------
WORDS_PER_MINUTE_AVERAGE = 200
TIME_WEIGHT = 0.4
SCROLL_WEIGHT = 0.4
ENGAGEMENT_WEIGHT = 0.2
ENGAGEMENT_CAP = 10  # points needed for a full engagement score

HIGH_ENGAGEMENT_SCORE = 0.7
HIGH_ENGAGEMENT_POINTS = 5
MEDIUM_ENGAGEMENT_SCORE = 0.4
MEDIUM_ENGAGEMENT_POINTS = 2

# ---------- Completion ----------
COMPLETION_TIME_THRESHOLD_MS = 5 * 60 * 1000
COMPLETION_SCROLL_THRESHOLD = 80.0
COMPLETED_SCORE_THRESHOLD = 0.8  # statistics: a lesson counts as completed

# ---------- Scroll sampling ----------
SLOW_SCROLL_SPEED = 0.5  # px per ms
MIN_DWELL_MS = 2000
SCROLL_REPORT_THRESHOLD = 10.0  # percent

# ---------- Timers ----------
TICK_INTERVAL_MS = 10_000
DWELL_BONUS_MS = 30_000
DWELL_BONUS_POINTS = 2
FLUSH_DELAY_MS = 500

# ---------- Bounds ----------
MAX_EVENTS = 500
LESSON_CACHE_SIZE = 50

# ---------- Reading positions ----------
SCROLL_SAVE_THRESHOLD = 100  # px
LAST_READ_MAX_AGE_MS = 30 * 24 * 60 * 60 * 1000

# ---------- Storage keys ----------
PROGRESS_KEY_PREFIX = "lesson_progress"
EVENTS_KEY = "lesson_events"
SCROLL_POSITIONS_KEY = "lesson_scroll_positions"
LAST_READ_KEY = "last_read_lesson"
ANONYMOUS_USER = "anonymous"

# ---------- HTTP ----------
REQUEST_TIMEOUT = 10.0
