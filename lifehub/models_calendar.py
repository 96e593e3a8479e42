"""
Calendar projection models

A roadmap event is projected into a user's personal calendar (a row in
calendar_events inside their household) and/or into a shared space calendar
(a row in shared_calendar_projections).
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(String(36), primary_key=True, default=generate_id)
    household_id = Column(String(36), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    all_day = Column(Boolean, default=False)
    color = Column(String(30), default="blue")

    # Source linkage (which guardrails entity this event mirrors)
    source_type = Column(String(30), nullable=True, index=True)  # roadmap_event, task, mindmesh_event
    source_entity_id = Column(String(36), nullable=True, index=True)
    source_project_id = Column(String(36), nullable=True)
    source_track_id = Column(String(36), nullable=True)
    source_subtrack_id = Column(String(36), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SharedCalendarProjection(Base):
    __tablename__ = "shared_calendar_projections"
    __table_args__ = (
        UniqueConstraint("user_id", "space_id", "source_entity_id", name="uq_shared_projection_source"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    space_id = Column(String(36), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)

    # Other members see these projections, so they carry their own display context
    context_label = Column(String(255), nullable=False)  # project name
    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    time_scope = Column(String(20), default="all_day")
    status = Column(String(20), default="accepted")

    source_type = Column(String(30), nullable=False, default="roadmap_event")
    source_entity_id = Column(String(36), nullable=False, index=True)
    source_project_id = Column(String(36), nullable=True)
    source_track_id = Column(String(36), nullable=True)
    source_subtrack_id = Column(String(36), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
