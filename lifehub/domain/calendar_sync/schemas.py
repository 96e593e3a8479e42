"""Calendar sync domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import normalize_uuid
from .exceptions import InvalidSyncScopeError

# Settings levels, most general first
SYNC_LEVELS = ("project", "track", "subtrack", "event")
GLOBAL_SOURCE = "global"
SYNC_SOURCES = SYNC_LEVELS + (GLOBAL_SOURCE,)

TARGET_CALENDAR_TYPES = ("personal", "shared", "both")
SHARED_TARGETS = ("shared", "both")
PERSONAL_TARGETS = ("personal", "both")

SYNCABLE_ENTITY_TYPES = ("roadmap_event", "task", "mindmesh_event")

# Which stored filter gates which entity type (non-event levels only)
ENTITY_FILTER_FIELDS = {
    "roadmap_event": "sync_roadmap_events",
    "task": "sync_tasks_with_dates",
    "mindmesh_event": "sync_mindmesh_events",
}

# Parent of each non-event level; the event level may defer to any ancestor
PARENT_LEVEL = {
    "project": GLOBAL_SOURCE,
    "track": "project",
    "subtrack": "track",
}


def inherit_flag_field(ancestor: str) -> str:
    """Column holding a row's inherit flag towards the given ancestor level"""
    return f"inherit_from_{ancestor}"


def _check_level(value: str) -> str:
    if value not in SYNC_LEVELS:
        raise InvalidSyncScopeError(f"level must be one of: {', '.join(SYNC_LEVELS)}")
    return value


class SyncScope(BaseModel):
    """Position of an entity in the project → track → subtrack → event hierarchy"""

    project_id: str
    track_id: Optional[str] = None
    subtrack_id: Optional[str] = None
    event_id: Optional[str] = None
    entity_type: str = "roadmap_event"

    @field_validator("project_id")
    @classmethod
    def validate_project_id(cls, v):
        normalized = normalize_uuid(v, "project_id")
        if normalized is None:
            raise ValueError("project_id is required")
        return normalized

    @field_validator("track_id", "subtrack_id", "event_id")
    @classmethod
    def validate_optional_ids(cls, v, info):
        return normalize_uuid(v, info.field_name)

    @field_validator("entity_type")
    @classmethod
    def validate_entity_type(cls, v):
        if v not in SYNCABLE_ENTITY_TYPES:
            raise ValueError(f"entity_type must be one of: {', '.join(SYNCABLE_ENTITY_TYPES)}")
        return v

    def missing_ids_for(self, level: str) -> list[str]:
        """Identifiers a scope at this level must carry but doesn't"""
        _check_level(level)
        required = {
            "project": [],
            "track": ["track_id"],
            "subtrack": ["track_id", "subtrack_id"],
            "event": ["event_id"],
        }[level]
        return [name for name in required if getattr(self, name) is None]

    def narrowed_to(self, level: str) -> "SyncScope":
        """
        Drop identifiers below the given level.

        A track-level panel resolves the track itself, so a stray subtrack or
        event id must not make resolution more specific than the level edited.
        """
        _check_level(level)
        depth = SYNC_LEVELS.index(level)
        return SyncScope(
            project_id=self.project_id,
            track_id=self.track_id if depth >= 1 else None,
            subtrack_id=self.subtrack_id if depth >= 2 else None,
            event_id=self.event_id if depth >= 3 else None,
            entity_type=self.entity_type if depth >= 3 else "roadmap_event",
        )


class SyncSettingsUpsert(SyncScope):
    """Schema for saving settings at one level"""

    sync_enabled: bool = False
    target_calendar_type: str = "personal"
    target_space_id: Optional[str] = None
    # False = explicit override of the parent level
    inherit_from_parent: bool = True
    sync_roadmap_events: Optional[bool] = None
    sync_tasks_with_dates: Optional[bool] = None
    sync_mindmesh_events: Optional[bool] = None

    @field_validator("target_calendar_type")
    @classmethod
    def validate_target_calendar_type(cls, v):
        if v not in TARGET_CALENDAR_TYPES:
            raise ValueError(f"target_calendar_type must be one of: {', '.join(TARGET_CALENDAR_TYPES)}")
        return v

    @field_validator("target_space_id")
    @classmethod
    def validate_target_space_id(cls, v):
        return normalize_uuid(v, "target_space_id")

    @model_validator(mode="after")
    def require_space_for_shared_target(self):
        if self.target_calendar_type in SHARED_TARGETS and not self.target_space_id:
            raise ValueError("target_space_id is required when the target includes a shared calendar")
        if self.target_calendar_type == "personal":
            self.target_space_id = None
        return self


class SyncSettingsResponse(BaseModel):
    """Schema for a stored settings row"""

    id: str
    level: str
    project_id: str
    track_id: Optional[str] = None
    subtrack_id: Optional[str] = None
    event_id: Optional[str] = None
    entity_type: Optional[str] = None
    sync_enabled: bool
    sync_roadmap_events: Optional[bool] = None
    sync_tasks_with_dates: Optional[bool] = None
    sync_mindmesh_events: Optional[bool] = None
    target_calendar_type: str
    target_space_id: Optional[str] = None
    inherit_from_global: Optional[bool] = None
    inherit_from_project: Optional[bool] = None
    inherit_from_track: Optional[bool] = None
    inherit_from_subtrack: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EffectiveSync(BaseModel):
    """Resolved (post-inheritance) sync outcome for one entity"""

    should_sync: bool
    target_calendar: str = "personal"
    target_space_id: Optional[str] = None
    source: str


class ExecutionResult(BaseModel):
    """Outcome of syncing a single event"""

    executed: bool
    action: str  # created, updated, deleted, noop
    calendar_event_id: Optional[str] = None
    projection_id: Optional[str] = None
    reason: str


class BulkSyncError(BaseModel):
    event_id: str
    reason: str


class BulkSyncResult(BaseModel):
    """Aggregate outcome of propagating settings to every event in a scope"""

    scanned_count: int = 0
    synced_count: int = 0
    unsynced_count: int = 0
    skipped_count: int = 0
    errors_count: int = 0
    errors: list[BulkSyncError] = []

    def record_error(self, event_id: str, reason: str) -> None:
        self.errors.append(BulkSyncError(event_id=event_id, reason=reason))
        self.errors_count = len(self.errors)


class SyncSummary(BaseModel):
    """Single-line notice shown after a save or unsync"""

    message: str
    level: str = "success"  # success, warning


class SharedSpaceResponse(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class PanelFormState(BaseModel):
    """Values the settings panel shows in its controls"""

    sync_enabled: bool = False
    target_calendar_type: str = "personal"
    target_space_id: Optional[str] = None
    inherit_from_parent: bool = True


class PanelState(BaseModel):
    level: str
    settings: Optional[SyncSettingsResponse] = None
    effective: EffectiveSync
    form: PanelFormState
    is_explicit: bool
    is_inheriting: bool
    inheritance_text: str
    global_sync_enabled: bool
    shared_spaces: list[SharedSpaceResponse] = []


class SaveSettingsResponse(BaseModel):
    settings: SyncSettingsResponse
    effective: EffectiveSync
    execution: Optional[ExecutionResult] = None
    bulk: Optional[BulkSyncResult] = None
    summary: Optional[SyncSummary] = None


class UnsyncResponse(BaseModel):
    removed: bool
    effective: EffectiveSync
    execution: Optional[ExecutionResult] = None
    bulk: Optional[BulkSyncResult] = None
    summary: Optional[SyncSummary] = None


class RoadmapEventPreview(BaseModel):
    id: str
    title: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    track_id: Optional[str] = None
    subtrack_id: Optional[str] = None

    class Config:
        from_attributes = True
