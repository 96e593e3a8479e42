"""
Calendar Sync Execution
Applies the resolved sync intent of one guardrails event to the calendars

Every calendar write caused by sync settings goes through
CalendarSyncExecutor.execute_calendar_sync_for_event(). It is idempotent:
running it twice with unchanged settings updates the same rows.
"""
import logging
from datetime import date, datetime, time
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import CALENDAR_SYNC_UNKNOWN_PROJECT_NAME
from ..calendar.repository import CalendarProjectionRepository
from ..roadmap.repository import RoadmapRepository
from .exceptions import ProjectionWriteError
from .resolver import SyncSettingsResolver
from .schemas import PERSONAL_TARGETS, SHARED_TARGETS, EffectiveSync, ExecutionResult, SyncScope

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59)


def projection_window(start_date: date, end_date: Optional[date]) -> tuple[datetime, datetime]:
    """All-day window covering a roadmap event's dates"""
    start_at = datetime.combine(start_date, time.min)
    end_at = datetime.combine(end_date or start_date, END_OF_DAY)
    return start_at, end_at


def _noop(reason: str) -> ExecutionResult:
    return ExecutionResult(executed=False, action="noop", reason=reason)


class CalendarSyncExecutor:
    """Executes calendar sync for single events based on resolver output"""

    def __init__(
        self,
        db: Session,
        resolver: Optional[SyncSettingsResolver] = None,
        roadmap_repo=None,
        projection_repo=None,
    ):
        self.db = db
        self.resolver = resolver or SyncSettingsResolver(db)
        self.roadmap_repo = roadmap_repo or RoadmapRepository()
        self.projection_repo = projection_repo or CalendarProjectionRepository()

    def get_project_name(self, project_id: str) -> str:
        """Project name used as the label of shared projections"""
        name = self.roadmap_repo.get_project_name(self.db, project_id)
        if not name:
            logger.warning(
                f"⚠️ Could not fetch project name for {project_id}, using '{CALENDAR_SYNC_UNKNOWN_PROJECT_NAME}'"
            )
            return CALENDAR_SYNC_UNKNOWN_PROJECT_NAME
        return name

    async def execute_calendar_sync_for_event(
        self,
        user_id: str,
        event_id: str,
        entity_type: str,
        project_id: str,
        project_name: str,
        track_id: Optional[str] = None,
        subtrack_id: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Resolve the event's effective sync and create, update or delete its
        calendar projections accordingly.

        Errors are raised to the caller; a failed database read or write is
        reported as ProjectionWriteError after the session is rolled back.
        """
        log_prefix = f"📅 Event {event_id} ({entity_type})"

        scope = SyncScope(
            project_id=project_id,
            track_id=track_id,
            subtrack_id=subtrack_id,
            event_id=event_id,
            entity_type=entity_type,
        )
        try:
            effective = await self.resolver.resolve_effective_sync(user_id, scope)
            logger.info(
                f"{log_prefix} - Resolved: should_sync={effective.should_sync}, "
                f"target={effective.target_calendar}, source={effective.source}"
            )

            if not effective.should_sync:
                return self._unsync(user_id, event_id, entity_type, effective, log_prefix)

            # Only roadmap events are projected into calendars
            if entity_type != "roadmap_event":
                logger.info(f"{log_prefix} - Skipped: entity type '{entity_type}' not supported")
                return _noop(f"Entity type '{entity_type}' not supported")

            event = self.roadmap_repo.get_item(self.db, event_id)
            if not event:
                logger.info(f"{log_prefix} - Skipped: event not found")
                return _noop("Event not found")

            if not event.start_date:
                # An event that lost its dates must not linger in any calendar
                self._remove_projections(user_id, event_id, entity_type)
                logger.info(f"{log_prefix} - Skipped: event has no start date")
                return _noop("Event has no start date")

            return self._sync(
                user_id,
                event,
                entity_type,
                effective,
                project_id,
                project_name,
                track_id or event.track_id,
                subtrack_id or event.subtrack_id,
                log_prefix,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ {log_prefix} - Calendar sync failed: {str(e)}")
            raise ProjectionWriteError(f"Failed to sync calendar projection for event {event_id}") from e

    async def sync_roadmap_item(self, user_id: str, item: Any) -> Optional[ExecutionResult]:
        """
        Sync a roadmap item after it was created or updated.

        Used as a save hook, so it never raises: failures are logged and None
        is returned.
        """
        if item.type != "event":
            return None

        try:
            project_name = self.get_project_name(item.master_project_id)
            return await self.execute_calendar_sync_for_event(
                user_id,
                item.id,
                "roadmap_event",
                item.master_project_id,
                project_name,
                item.track_id,
                item.subtrack_id,
            )
        except Exception as e:
            logger.error(f"❌ Calendar sync for roadmap item {item.id} failed: {str(e)}")
            return None

    def _remove_projections(self, user_id: str, event_id: str, entity_type: str) -> tuple[bool, int]:
        personal_removed = self.projection_repo.delete_personal_event(
            self.db, user_id, entity_type, event_id
        )
        shared_removed = self.projection_repo.delete_shared_projections(self.db, user_id, event_id)
        return personal_removed, shared_removed

    def _unsync(
        self,
        user_id: str,
        event_id: str,
        entity_type: str,
        effective: EffectiveSync,
        log_prefix: str,
    ) -> ExecutionResult:
        personal_removed, shared_removed = self._remove_projections(user_id, event_id, entity_type)

        if personal_removed or shared_removed:
            logger.info(
                f"{log_prefix} - Unsynced: personal_removed={personal_removed}, "
                f"shared_removed={shared_removed}"
            )
            return ExecutionResult(
                executed=True,
                action="deleted",
                reason=f"Sync disabled (source: {effective.source})",
            )

        logger.info(f"{log_prefix} - Skipped: sync disabled (source: {effective.source})")
        return _noop(f"Sync disabled (source: {effective.source})")

    def _sync(
        self,
        user_id: str,
        event: Any,
        entity_type: str,
        effective: EffectiveSync,
        project_id: str,
        project_name: str,
        track_id: Optional[str],
        subtrack_id: Optional[str],
        log_prefix: str,
    ) -> ExecutionResult:
        target = effective.target_calendar
        start_at, end_at = projection_window(event.start_date, event.end_date)
        source_fields = {
            "source_type": entity_type,
            "source_entity_id": event.id,
            "source_project_id": project_id,
            "source_track_id": track_id,
            "source_subtrack_id": subtrack_id,
        }

        written = []  # (channel, action)
        reasons = []
        removed_stale = False
        calendar_event_id = None
        projection_id = None

        # Personal calendar
        if target in PERSONAL_TARGETS:
            household_id = self.projection_repo.get_household_id(self.db, user_id)
            if not household_id:
                logger.warning(f"⚠️ {log_prefix} - Personal sync skipped: user has no household")
                reasons.append("Personal: user does not belong to a household")
            else:
                metadata = getattr(event, "item_metadata", None) or {}
                calendar_event, created = self.projection_repo.upsert_personal_event(
                    self.db,
                    user_id,
                    household_id,
                    title=event.title,
                    description=event.description or "",
                    start_at=start_at,
                    end_at=end_at,
                    all_day=True,
                    color=metadata.get("color") or "blue",
                    **source_fields,
                )
                action = "created" if created else "updated"
                calendar_event_id = calendar_event.id
                written.append(action)
                reasons.append(f"Personal: {action} calendar event")
                logger.info(f"{log_prefix} - Personal sync: {action} calendar event {calendar_event_id}")
        else:
            removed_stale = (
                self.projection_repo.delete_personal_event(self.db, user_id, entity_type, event.id)
                or removed_stale
            )

        # Shared calendar
        if target in SHARED_TARGETS:
            space_id = effective.target_space_id
            if not space_id:
                logger.warning(f"⚠️ {log_prefix} - Shared sync skipped: no target space configured")
                reasons.append("Shared: no target space configured")
            else:
                projection, created = self.projection_repo.upsert_shared_projection(
                    self.db,
                    user_id,
                    space_id,
                    context_label=project_name,
                    title=event.title,
                    description=event.description or "",
                    start_at=start_at,
                    end_at=end_at,
                    time_scope="all_day",
                    status="accepted",
                    **source_fields,
                )
                action = "created" if created else "updated"
                projection_id = projection.id
                written.append(action)
                reasons.append(f"Shared: {action} projection")
                logger.info(f"{log_prefix} - Shared sync: {action} projection {projection_id} in space {space_id}")

                # The target space may have changed since the last sync
                moved = self.projection_repo.delete_shared_projections(
                    self.db, user_id, event.id, except_space_id=space_id
                )
                removed_stale = removed_stale or moved > 0
        else:
            removed_stale = (
                self.projection_repo.delete_shared_projections(self.db, user_id, event.id) > 0
                or removed_stale
            )

        if written:
            action = "created" if "created" in written else "updated"
            return ExecutionResult(
                executed=True,
                action=action,
                calendar_event_id=calendar_event_id,
                projection_id=projection_id,
                reason=", ".join(reasons),
            )

        if removed_stale:
            return ExecutionResult(
                executed=True,
                action="deleted",
                reason=", ".join(reasons + ["removed projections from previous target"]),
            )

        return _noop(", ".join(reasons) or "No sync executed")
