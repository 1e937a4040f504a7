"""lessontrack: reading-progress tracking for lesson readers."""

from lessontrack.consts import VERSION

__version__ = VERSION
