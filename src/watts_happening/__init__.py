"""Incremental sync of Strava indoor rides into local JSON files."""

from watts_happening.models import (
    Activity,
    ActivityStreams,
    ActivityWithStreams,
    ActivitySummary,
    ActivityIndex,
    SyncResult,
)
from watts_happening.errors import (
    WattsHappeningError,
    ConfigError,
    AuthError,
    ApiError,
    DecodeError,
    FilesystemError,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    'Activity',
    'ActivityStreams',
    'ActivityWithStreams',
    'ActivitySummary',
    'ActivityIndex',
    'SyncResult',
    # Errors
    'WattsHappeningError',
    'ConfigError',
    'AuthError',
    'ApiError',
    'DecodeError',
    'FilesystemError',
]
