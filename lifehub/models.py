import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    # Subject claim of the auth backend's access token
    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    calendar_sync_preference = relationship(
        "CalendarSyncPreference", back_populates="user", uselist=False
    )
    space_memberships = relationship("SpaceMember", back_populates="user")


class CalendarSyncPreference(Base):
    """Global (account-wide) calendar sync switches, the root of the settings cascade"""

    __tablename__ = "calendar_sync_preferences"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    sync_guardrails_to_personal = Column(Boolean, default=False, nullable=False)
    sync_tasks_to_personal = Column(Boolean, default=False, nullable=False)
    sync_fitness_to_personal = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="calendar_sync_preference")


class Space(Base):
    __tablename__ = "spaces"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    space_type = Column(String(20), default="shared", nullable=False)  # household, shared
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    members = relationship("SpaceMember", back_populates="space", cascade="all, delete-orphan")


class SpaceMember(Base):
    __tablename__ = "space_members"
    __table_args__ = (UniqueConstraint("space_id", "user_id", name="uq_space_member"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    space_id = Column(String(36), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, accepted, declined
    created_at = Column(DateTime, server_default=func.now())

    space = relationship("Space", back_populates="members")
    user = relationship("User", back_populates="space_memberships")


class MasterProject(Base):
    __tablename__ = "master_projects"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    tracks = relationship("GuardrailsTrack", back_populates="project", cascade="all, delete-orphan")


class GuardrailsTrack(Base):
    __tablename__ = "guardrails_tracks"

    id = Column(String(36), primary_key=True, default=generate_id)
    master_project_id = Column(
        String(36), ForeignKey("master_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    project = relationship("MasterProject", back_populates="tracks")
    subtracks = relationship("GuardrailsSubtrack", back_populates="track", cascade="all, delete-orphan")


class GuardrailsSubtrack(Base):
    __tablename__ = "guardrails_subtracks"

    id = Column(String(36), primary_key=True, default=generate_id)
    track_id = Column(
        String(36), ForeignKey("guardrails_tracks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    track = relationship("GuardrailsTrack", back_populates="subtracks")


class RoadmapItem(Base):
    __tablename__ = "roadmap_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    master_project_id = Column(
        String(36), ForeignKey("master_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    track_id = Column(String(36), ForeignKey("guardrails_tracks.id", ondelete="CASCADE"), nullable=False, index=True)
    subtrack_id = Column(
        String(36), ForeignKey("guardrails_subtracks.id", ondelete="SET NULL"), nullable=True, index=True
    )
    type = Column(String(30), nullable=False, default="task")  # event, task, milestone, ...
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String(30), default="not_started")
    item_metadata = Column("metadata", JSON, default=dict, nullable=True)  # color, ...
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
