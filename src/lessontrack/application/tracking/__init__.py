# Application Tracking Package
from .event_log import EventLog
from .gateway import ProgressGateway
from .score_engine import ScoreBreakdown, ScoreEngine
from .session_tracker import SessionTracker, scroll_percent
from .statistics import compute_streaks, summarize
from .visibility import ForegroundSignal

__all__ = [
    "EventLog",
    "ForegroundSignal",
    "ProgressGateway",
    "ScoreBreakdown",
    "ScoreEngine",
    "SessionTracker",
    "compute_streaks",
    "scroll_percent",
    "summarize",
]
