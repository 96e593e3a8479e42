"""
Calendar sync settings model

One generic row type for the four settings levels (project, track, subtrack,
event). The level decides which identity columns are meaningful and which
inherit_from_* flag points at the row's parent.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


class CalendarSyncSettings(Base):
    __tablename__ = "calendar_sync_settings"
    __table_args__ = (UniqueConstraint("user_id", "scope_key", name="uq_calendar_sync_settings_scope"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    level = Column(String(20), nullable=False)  # project, track, subtrack, event
    # Canonical identity string, e.g. "track:<project_id>:<track_id>"; NULL-safe uniqueness
    scope_key = Column(String(200), nullable=False)

    project_id = Column(
        String(36), ForeignKey("master_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    track_id = Column(String(36), ForeignKey("guardrails_tracks.id", ondelete="CASCADE"), nullable=True)
    subtrack_id = Column(String(36), ForeignKey("guardrails_subtracks.id", ondelete="CASCADE"), nullable=True)
    event_id = Column(String(36), nullable=True)
    entity_type = Column(String(30), nullable=True)  # roadmap_event, task, mindmesh_event

    # Sync configuration (explicit opt-in)
    sync_enabled = Column(Boolean, default=False, nullable=False)
    sync_roadmap_events = Column(Boolean, default=True, nullable=True)
    sync_tasks_with_dates = Column(Boolean, default=True, nullable=True)
    sync_mindmesh_events = Column(Boolean, default=True, nullable=True)

    # Target calendar selection
    target_calendar_type = Column(String(20), default="personal", nullable=False)  # personal, shared, both
    target_space_id = Column(String(36), ForeignKey("spaces.id", ondelete="SET NULL"), nullable=True)

    # Inheritance: NULL or True = defer to that ancestor, False = explicit override
    inherit_from_global = Column(Boolean, nullable=True)
    inherit_from_project = Column(Boolean, nullable=True)
    inherit_from_track = Column(Boolean, nullable=True)
    inherit_from_subtrack = Column(Boolean, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
