"""Calendar sync repository - Database operations for sync settings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import CalendarSyncPreference
from ...models_calendar_sync import CalendarSyncSettings
from .schemas import PARENT_LEVEL, SyncScope, SyncSettingsUpsert, inherit_flag_field


def build_scope_key(level: str, scope: SyncScope) -> str:
    """Canonical identity of a settings row at the given level"""
    if level == "project":
        return f"project:{scope.project_id}"
    if level == "track":
        return f"track:{scope.project_id}:{scope.track_id}"
    if level == "subtrack":
        return f"subtrack:{scope.project_id}:{scope.track_id}:{scope.subtrack_id}"
    return f"event:{scope.project_id}:{scope.entity_type}:{scope.event_id}"


def build_settings_values(level: str, data: SyncSettingsUpsert) -> dict:
    """
    Column values for an upsert, with defaults applied.

    Non-event rows carry one inherit flag (towards their parent) and the
    entity-type filters. Event rows carry a flag for every ancestor in the
    chain they were saved with; a subtrack flag is only written when the event
    sits in a subtrack.
    """
    values = {
        "level": level,
        "project_id": data.project_id,
        "track_id": data.track_id if level != "project" else None,
        "subtrack_id": data.subtrack_id if level in ("subtrack", "event") else None,
        "event_id": data.event_id if level == "event" else None,
        "entity_type": data.entity_type if level == "event" else None,
        "sync_enabled": data.sync_enabled,
        "target_calendar_type": data.target_calendar_type,
        "target_space_id": data.target_space_id,
        "inherit_from_global": None,
        "inherit_from_project": None,
        "inherit_from_track": None,
        "inherit_from_subtrack": None,
    }

    if level == "event":
        values["inherit_from_subtrack"] = data.inherit_from_parent if data.subtrack_id else None
        values["inherit_from_track"] = data.inherit_from_parent
        values["inherit_from_project"] = data.inherit_from_parent
        values["sync_roadmap_events"] = None
        values["sync_tasks_with_dates"] = None
        values["sync_mindmesh_events"] = None
    else:
        values[inherit_flag_field(PARENT_LEVEL[level])] = data.inherit_from_parent
        values["sync_roadmap_events"] = (
            data.sync_roadmap_events if data.sync_roadmap_events is not None else True
        )
        values["sync_tasks_with_dates"] = (
            data.sync_tasks_with_dates if data.sync_tasks_with_dates is not None else True
        )
        values["sync_mindmesh_events"] = (
            data.sync_mindmesh_events if data.sync_mindmesh_events is not None else True
        )

    return values


class SyncSettingsRepository:
    """Repository for calendar sync settings database operations"""

    @staticmethod
    def get_settings(
        db: Session, user_id: str, level: str, scope: SyncScope
    ) -> Optional[CalendarSyncSettings]:
        """Get the settings row for one entity, or None when it fully inherits"""
        return (
            db.query(CalendarSyncSettings)
            .filter(
                CalendarSyncSettings.user_id == user_id,
                CalendarSyncSettings.scope_key == build_scope_key(level, scope),
            )
            .first()
        )

    @staticmethod
    def list_settings_for_project(
        db: Session, user_id: str, project_id: str, level: Optional[str] = None
    ) -> list[CalendarSyncSettings]:
        """Get all settings rows of a project, optionally for one level"""
        query = db.query(CalendarSyncSettings).filter(
            CalendarSyncSettings.user_id == user_id,
            CalendarSyncSettings.project_id == project_id,
        )

        if level:
            query = query.filter(CalendarSyncSettings.level == level)

        return query.order_by(CalendarSyncSettings.created_at.asc()).all()

    @staticmethod
    def upsert_settings(
        db: Session, user_id: str, level: str, data: SyncSettingsUpsert
    ) -> CalendarSyncSettings:
        """Create or update the settings row for one entity"""
        scope_key = build_scope_key(level, data)
        values = build_settings_values(level, data)

        settings = (
            db.query(CalendarSyncSettings)
            .filter(
                CalendarSyncSettings.user_id == user_id,
                CalendarSyncSettings.scope_key == scope_key,
            )
            .first()
        )

        if settings:
            for key, value in values.items():
                setattr(settings, key, value)
        else:
            settings = CalendarSyncSettings(user_id=user_id, scope_key=scope_key, **values)
            db.add(settings)

        db.commit()
        db.refresh(settings)
        return settings

    @staticmethod
    def delete_settings(db: Session, user_id: str, level: str, scope: SyncScope) -> bool:
        """
        Delete the settings row for one entity.
        Returns False when there was nothing to delete.
        """
        deleted = (
            db.query(CalendarSyncSettings)
            .filter(
                CalendarSyncSettings.user_id == user_id,
                CalendarSyncSettings.scope_key == build_scope_key(level, scope),
            )
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted > 0

    @staticmethod
    def get_global_sync_enabled(db: Session, user_id: str) -> bool:
        """Global guardrails → personal calendar switch (False when never set)"""
        preference = (
            db.query(CalendarSyncPreference)
            .filter(CalendarSyncPreference.user_id == user_id)
            .first()
        )
        return bool(preference and preference.sync_guardrails_to_personal)
