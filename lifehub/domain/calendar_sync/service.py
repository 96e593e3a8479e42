"""Calendar sync service - Business logic behind the sync settings panel"""

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import CALENDAR_SYNC_BATCH_SIZE
from ...models import User
from ...shared.validators import normalize_uuid
from ..calendar.repository import CalendarProjectionRepository
from ..roadmap.repository import RoadmapRepository
from .exceptions import CalendarSyncError, InvalidSyncScopeError, SettingsWriteError
from .execution import CalendarSyncExecutor
from .propagation import BulkSyncPropagator
from .repository import SyncSettingsRepository
from .resolver import SyncSettingsResolver, applicable_ancestors, chain_levels, is_explicit_override
from .schemas import (
    GLOBAL_SOURCE,
    SHARED_TARGETS,
    SYNC_LEVELS,
    BulkSyncResult,
    EffectiveSync,
    ExecutionResult,
    PanelFormState,
    PanelState,
    SaveSettingsResponse,
    SharedSpaceResponse,
    SyncScope,
    SyncSettingsResponse,
    SyncSettingsUpsert,
    SyncSummary,
    UnsyncResponse,
)

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save settings. Please try again."
CLEANUP_FAILED_MESSAGE = "Sync disabled, but cleanup encountered errors"

LEVEL_LABELS = {
    "project": "Project",
    "track": "Track",
    "subtrack": "Subtrack",
    "event": "Event",
}


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def build_sync_summary(result: BulkSyncResult, after_unsync: bool = False) -> Optional[SyncSummary]:
    """
    One-line notice for a bulk propagation result.

    Returns None when nothing happened. After an unsync, removals are listed
    first and synced events are the ones that still sync through a parent.
    """
    removed = f"Removed {_plural(result.unsynced_count, 'event')} from calendar"
    synced = f"Synced {_plural(result.synced_count, 'event')}"
    if after_unsync:
        synced += " (inherited from parent)"

    parts = []
    if after_unsync:
        if result.unsynced_count:
            parts.append(removed)
        if result.synced_count:
            parts.append(synced)
    else:
        if result.synced_count:
            parts.append(synced)
        if result.unsynced_count:
            parts.append(removed)

    if result.skipped_count:
        parts.append(f"Skipped {_plural(result.skipped_count, 'event')} with no dates")
    if result.errors_count:
        parts.append(f"{_plural(result.errors_count, 'error')} occurred")

    if not parts:
        return None

    return SyncSummary(
        message=", ".join(parts),
        level="warning" if result.errors_count else "success",
    )


def build_execution_summary(result: ExecutionResult) -> Optional[SyncSummary]:
    """One-line notice for a single event sync"""
    if not result.executed:
        return None
    if result.action == "deleted":
        return SyncSummary(message="Event removed from calendar")
    return SyncSummary(message="Event synced to calendar")


class CalendarSyncService:
    """Service layer for calendar sync settings"""

    def __init__(
        self,
        db: Session,
        settings_repo=None,
        roadmap_repo=None,
        projection_repo=None,
        batch_size: int = CALENDAR_SYNC_BATCH_SIZE,
    ):
        self.db = db
        self.repo = settings_repo or SyncSettingsRepository()
        self.roadmap_repo = roadmap_repo or RoadmapRepository()
        self.projection_repo = projection_repo or CalendarProjectionRepository()
        self.resolver = SyncSettingsResolver(db, self.repo)
        self.executor = CalendarSyncExecutor(db, self.resolver, self.roadmap_repo, self.projection_repo)
        self.propagator = BulkSyncPropagator(db, self.executor, self.roadmap_repo, batch_size)

    def validate_scope(self, level: str, scope: SyncScope) -> SyncScope:
        """Check the scope addresses an entity at this level and drop deeper ids"""
        try:
            missing = scope.missing_ids_for(level)
            if missing:
                raise InvalidSyncScopeError(f"{', '.join(missing)} required for {level} settings")
            return scope.narrowed_to(level)
        except InvalidSyncScopeError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def get_shared_spaces(self, user: User) -> list:
        """Get shared spaces the user can send events to"""
        return self.projection_repo.get_shared_spaces(self.db, user.id)

    async def get_effective_sync(self, user: User, scope: SyncScope) -> EffectiveSync:
        """Resolve effective sync for the most specific entity in the scope"""
        return await self.resolver.resolve_effective_sync(user.id, scope)

    def list_project_settings(
        self, user: User, project_id: str, level: Optional[str] = None
    ) -> list:
        """Get every stored settings row of a project"""
        if level and level not in SYNC_LEVELS:
            raise HTTPException(status_code=400, detail=f"Unknown settings level '{level}'")
        try:
            project_id = normalize_uuid(project_id, "project_id")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return self.repo.list_settings_for_project(self.db, user.id, project_id, level)

    async def get_panel_state(self, user: User, level: str, scope: SyncScope) -> PanelState:
        """Everything the settings panel needs to render one level"""
        scope = self.validate_scope(level, scope)

        settings = self.repo.get_settings(self.db, user.id, level, scope)
        effective = await self.resolver.resolve_effective_sync(user.id, scope)
        global_sync_enabled = self.repo.get_global_sync_enabled(self.db, user.id)

        is_explicit = is_explicit_override(settings, applicable_ancestors(level, chain_levels(scope)))

        if is_explicit:
            form = PanelFormState(
                sync_enabled=settings.sync_enabled,
                target_calendar_type=settings.target_calendar_type,
                target_space_id=settings.target_space_id,
                inherit_from_parent=False,
            )
        elif settings is not None:
            form = PanelFormState(
                sync_enabled=effective.should_sync,
                target_calendar_type=effective.target_calendar,
                target_space_id=effective.target_space_id,
                inherit_from_parent=True,
            )
        else:
            form = PanelFormState()

        return PanelState(
            level=level,
            settings=SyncSettingsResponse.model_validate(settings) if settings else None,
            effective=effective,
            form=form,
            is_explicit=is_explicit,
            is_inheriting=not is_explicit,
            inheritance_text=self._inheritance_text(level, is_explicit, effective, scope),
            global_sync_enabled=global_sync_enabled,
            shared_spaces=[
                SharedSpaceResponse.model_validate(space) for space in self.get_shared_spaces(user)
            ],
        )

    async def save_settings(self, user: User, level: str, data: SyncSettingsUpsert) -> SaveSettingsResponse:
        """
        Save settings at one level and apply them.

        The saved row stays even when propagation fails; failures end up in the
        summary.
        """
        self.validate_scope(level, data)

        if data.target_calendar_type in SHARED_TARGETS:
            space_ids = {space.id for space in self.get_shared_spaces(user)}
            if data.target_space_id not in space_ids:
                logger.warning(f"⚠️ User {user.id} tried to sync into unknown space {data.target_space_id}")
                raise HTTPException(status_code=400, detail="Target space not found")

        logger.info(
            f"💾 Saving {level} calendar sync settings for user {user.id}: "
            f"sync_enabled={data.sync_enabled}, target={data.target_calendar_type}, "
            f"inherit={data.inherit_from_parent}"
        )

        try:
            settings = self._write(lambda: self.repo.upsert_settings(self.db, user.id, level, data))
        except SettingsWriteError as e:
            raise HTTPException(status_code=500, detail=SAVE_FAILED_MESSAGE) from e

        scope = data.narrowed_to(level)
        effective = await self.resolver.resolve_effective_sync(user.id, scope)
        response = SaveSettingsResponse(
            settings=SyncSettingsResponse.model_validate(settings),
            effective=effective,
        )

        if level == "event":
            try:
                response.execution = await self._execute_event(user, scope)
                response.summary = build_execution_summary(response.execution)
            except (CalendarSyncError, SQLAlchemyError) as e:
                self.db.rollback()
                logger.error(f"❌ Calendar sync after saving event settings failed: {str(e)}")
                response.summary = SyncSummary(
                    message="Settings saved, but the calendar could not be updated",
                    level="warning",
                )
            return response

        try:
            response.bulk = await self._propagate(user, level, scope)
            response.summary = build_sync_summary(response.bulk)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Bulk calendar sync after saving {level} settings failed: {str(e)}")
            response.summary = SyncSummary(
                message="Settings saved, but calendar sync encountered errors",
                level="warning",
            )
        return response

    async def unsync_settings(self, user: User, level: str, scope: SyncScope) -> UnsyncResponse:
        """
        Remove the settings row for one level and re-apply what is now inherited.

        Calling it when there is no row is not an error.
        """
        scope = self.validate_scope(level, scope)
        logger.info(f"🗑️ Removing {level} calendar sync settings for user {user.id}")

        try:
            removed = self._write(lambda: self.repo.delete_settings(self.db, user.id, level, scope))
        except SettingsWriteError as e:
            raise HTTPException(status_code=500, detail=SAVE_FAILED_MESSAGE) from e

        effective = await self.resolver.resolve_effective_sync(user.id, scope)
        response = UnsyncResponse(removed=removed, effective=effective)

        try:
            if level == "event":
                response.execution = await self._execute_event(user, scope)
                response.summary = build_execution_summary(response.execution)
            else:
                response.bulk = await self._propagate(user, level, scope)
                response.summary = build_sync_summary(response.bulk, after_unsync=True)
        except (CalendarSyncError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.error(f"❌ Calendar cleanup after removing {level} settings failed: {str(e)}")
            response.summary = SyncSummary(message=CLEANUP_FAILED_MESSAGE, level="warning")

        return response

    def preview_events(self, user: User, level: str, scope: SyncScope) -> list:
        """Roadmap events a change at this level would reach"""
        scope = self.validate_scope(level, scope)

        if level == "event":
            item = self.roadmap_repo.get_item(self.db, scope.event_id)
            items = [item] if item else []
        elif level == "subtrack":
            items = self.roadmap_repo.get_items_by_subtrack(self.db, scope.subtrack_id)
        elif level == "track":
            items = self.roadmap_repo.get_items_by_track(self.db, scope.track_id)
        else:
            items = self.roadmap_repo.get_items_by_project(self.db, scope.project_id)

        return [item for item in items if item.type == "event" and item.start_date]

    async def sync_roadmap_item(self, user: User, item_id: str) -> Optional[ExecutionResult]:
        """Re-run calendar sync for one roadmap item after it was saved"""
        item = self.roadmap_repo.get_item(self.db, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Roadmap item not found")
        if item.type != "event":
            raise HTTPException(status_code=400, detail="Only roadmap events can be synced to a calendar")

        return await self.executor.sync_roadmap_item(user.id, item)

    def _write(self, operation) -> Any:
        try:
            return operation()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Calendar sync settings write failed: {str(e)}")
            raise SettingsWriteError(SAVE_FAILED_MESSAGE) from e

    async def _execute_event(self, user: User, scope: SyncScope) -> ExecutionResult:
        return await self.executor.execute_calendar_sync_for_event(
            user.id,
            scope.event_id,
            scope.entity_type,
            scope.project_id,
            self.executor.get_project_name(scope.project_id),
            scope.track_id,
            scope.subtrack_id,
        )

    async def _propagate(self, user: User, level: str, scope: SyncScope) -> BulkSyncResult:
        return await self.propagator.bulk_sync_for_level(
            user.id, level, scope.project_id, scope.track_id, scope.subtrack_id
        )

    def _inheritance_text(
        self, level: str, is_explicit: bool, effective: EffectiveSync, scope: SyncScope
    ) -> str:
        if is_explicit:
            return f"Explicitly set for this {LEVEL_LABELS[level].lower()}"
        if effective.source == GLOBAL_SOURCE:
            return "Inheriting from global calendar settings"
        if effective.source == "project":
            project_name = self.roadmap_repo.get_project_name(self.db, scope.project_id)
            if project_name:
                return f'Inheriting from Project "{project_name}"'
        return f"Inheriting from {LEVEL_LABELS[effective.source]}"
