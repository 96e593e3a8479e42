"""Calendar sync domain errors"""


class CalendarSyncError(Exception):
    """Base class for calendar sync failures"""

    pass


class InvalidSyncScopeError(CalendarSyncError, ValueError):
    """Raised when the identifiers given don't address an entity at the requested level"""

    pass


class SettingsWriteError(CalendarSyncError):
    """Raised when the database rejects a settings upsert or delete"""

    pass


class ProjectionWriteError(CalendarSyncError):
    """Raised when a calendar projection can't be created, updated or removed"""

    pass
