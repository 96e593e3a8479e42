"""
Calendar Sync Bulk Propagation
Re-applies sync settings to every roadmap event under a changed node

When settings change at project, track or subtrack level, every event in that
scope is re-resolved and re-executed. Each event is isolated: a failure is
recorded in the result and the remaining events are still processed. There is
no rollback of the settings change and no retry.
"""
import asyncio
import logging
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from ...config import CALENDAR_SYNC_BATCH_SIZE
from ..roadmap.repository import RoadmapRepository
from .execution import CalendarSyncExecutor
from .schemas import BulkSyncResult

logger = logging.getLogger(__name__)


class BulkSyncPropagator:
    """Fans a settings change out to the events it affects"""

    def __init__(
        self,
        db: Session,
        executor: Optional[CalendarSyncExecutor] = None,
        roadmap_repo=None,
        batch_size: int = CALENDAR_SYNC_BATCH_SIZE,
    ):
        self.db = db
        self.roadmap_repo = roadmap_repo or RoadmapRepository()
        self.executor = executor or CalendarSyncExecutor(db, roadmap_repo=self.roadmap_repo)
        self.batch_size = max(1, batch_size)

    async def bulk_sync_project_roadmap_events(self, user_id: str, project_id: str) -> BulkSyncResult:
        """Apply effective sync settings to all roadmap events in a project"""
        items = self.roadmap_repo.get_items_by_project(self.db, project_id)
        return await self._propagate(user_id, project_id, items, f"Project {project_id}")

    async def bulk_sync_track_roadmap_events(
        self, user_id: str, project_id: str, track_id: str
    ) -> BulkSyncResult:
        """Apply effective sync settings to all roadmap events in a track"""
        items = self.roadmap_repo.get_items_by_track(self.db, track_id)
        return await self._propagate(user_id, project_id, items, f"Track {track_id}")

    async def bulk_sync_subtrack_roadmap_events(
        self, user_id: str, project_id: str, track_id: str, subtrack_id: str
    ) -> BulkSyncResult:
        """Apply effective sync settings to all roadmap events in a subtrack"""
        items = self.roadmap_repo.get_items_by_subtrack(self.db, subtrack_id)
        return await self._propagate(user_id, project_id, items, f"Subtrack {subtrack_id}")

    async def bulk_sync_for_level(
        self,
        user_id: str,
        level: str,
        project_id: str,
        track_id: Optional[str] = None,
        subtrack_id: Optional[str] = None,
    ) -> BulkSyncResult:
        """Dispatch to the bulk sync matching a settings level"""
        if level == "project":
            return await self.bulk_sync_project_roadmap_events(user_id, project_id)
        if level == "track":
            return await self.bulk_sync_track_roadmap_events(user_id, project_id, track_id)
        if level == "subtrack":
            return await self.bulk_sync_subtrack_roadmap_events(user_id, project_id, track_id, subtrack_id)
        raise ValueError(f"Bulk sync is not defined for level '{level}'")

    async def _propagate(
        self, user_id: str, project_id: str, items: Sequence[Any], label: str
    ) -> BulkSyncResult:
        logger.info(f"🔄 [BulkCalendarSync] {label} - Starting bulk sync")

        events = [item for item in items if item.type == "event"]
        result = BulkSyncResult(scanned_count=len(events))
        logger.info(f"🔄 [BulkCalendarSync] {label} - Found {len(events)} roadmap events")

        if not events:
            return result

        project_name = self.executor.get_project_name(project_id)

        for start in range(0, len(events), self.batch_size):
            batch = events[start : start + self.batch_size]
            batch_index = start // self.batch_size + 1
            logger.info(f"🔄 [BulkCalendarSync] {label} - Processing batch {batch_index} ({len(batch)} events)")

            for event in batch:
                await self._process_event(user_id, event, project_name, result)

            # Let other requests run between batches
            if start + self.batch_size < len(events):
                await asyncio.sleep(0)

        logger.info(
            f"✅ [BulkCalendarSync] {label} - Complete: scanned={result.scanned_count}, "
            f"synced={result.synced_count}, unsynced={result.unsynced_count}, "
            f"skipped={result.skipped_count}, errors={result.errors_count}"
        )
        return result

    async def _process_event(
        self, user_id: str, event: Any, project_name: str, result: BulkSyncResult
    ) -> None:
        # Dateless events are never calendar-eligible
        if not event.start_date:
            logger.info(f"⏭️ [BulkCalendarSync] Skipped event {event.id}: no start date")
            result.skipped_count += 1
            return

        try:
            execution = await self.executor.execute_calendar_sync_for_event(
                user_id,
                event.id,
                "roadmap_event",
                event.master_project_id,
                project_name,
                event.track_id,
                event.subtrack_id,
            )
        except Exception as e:
            logger.warning(f"⚠️ [BulkCalendarSync] Error processing event {event.id}: {str(e)}")
            result.record_error(event.id, str(e))
            return

        if not execution.executed:
            return

        if execution.action == "deleted":
            result.unsynced_count += 1
        else:
            result.synced_count += 1
