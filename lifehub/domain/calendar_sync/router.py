"""Calendar sync router - FastAPI endpoints for calendar sync settings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import (
    EffectiveSync,
    ExecutionResult,
    PanelState,
    RoadmapEventPreview,
    SaveSettingsResponse,
    SharedSpaceResponse,
    SyncScope,
    SyncSettingsResponse,
    SyncSettingsUpsert,
    UnsyncResponse,
)
from .service import CalendarSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar-sync", tags=["Calendar Sync"])


def get_calendar_sync_service(db: Session = Depends(get_db)) -> CalendarSyncService:
    """Dependency injection for CalendarSyncService"""
    return CalendarSyncService(db)


def get_sync_scope(
    project_id: str = Query(...),
    track_id: Optional[str] = Query(None),
    subtrack_id: Optional[str] = Query(None),
    event_id: Optional[str] = Query(None),
    entity_type: str = Query("roadmap_event"),
) -> SyncScope:
    """Build a SyncScope from query parameters"""
    try:
        return SyncScope(
            project_id=project_id,
            track_id=track_id,
            subtrack_id=subtrack_id,
            event_id=event_id,
            entity_type=entity_type,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])


# ============================================================================
# SETTINGS
# ============================================================================


@router.get("/spaces", response_model=list[SharedSpaceResponse])
async def get_shared_spaces(
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Get shared spaces available as sync targets"""
    return service.get_shared_spaces(current_user)


@router.get("/effective", response_model=EffectiveSync)
async def get_effective_sync(
    scope: SyncScope = Depends(get_sync_scope),
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Resolve effective sync for the most specific entity in the scope"""
    return await service.get_effective_sync(current_user, scope)


@router.get("/projects/{project_id}/settings", response_model=list[SyncSettingsResponse])
async def list_project_settings(
    project_id: str,
    level: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Get every stored settings row of a project"""
    return service.list_project_settings(current_user, project_id, level)


@router.get("/settings/{level}", response_model=PanelState)
async def get_panel_state(
    level: str,
    scope: SyncScope = Depends(get_sync_scope),
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Get stored settings, effective sync and inheritance view for one level"""
    return await service.get_panel_state(current_user, level, scope)


@router.put("/settings/{level}", response_model=SaveSettingsResponse)
async def save_settings(
    level: str,
    data: SyncSettingsUpsert,
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Save settings at one level and apply them to the affected events"""
    return await service.save_settings(current_user, level, data)


@router.delete("/settings/{level}", response_model=UnsyncResponse)
async def unsync_settings(
    level: str,
    scope: SyncScope = Depends(get_sync_scope),
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Remove settings at one level and re-apply what is inherited"""
    return await service.unsync_settings(current_user, level, scope)


# ============================================================================
# EVENTS
# ============================================================================


@router.get("/preview/{level}", response_model=list[RoadmapEventPreview])
async def preview_events(
    level: str,
    scope: SyncScope = Depends(get_sync_scope),
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Get the dated roadmap events a change at this level would reach"""
    return service.preview_events(current_user, level, scope)


@router.post("/roadmap-items/{item_id}/sync", response_model=Optional[ExecutionResult])
async def sync_roadmap_item(
    item_id: str,
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_calendar_sync_service),
):
    """Re-run calendar sync for a roadmap item after it was created or updated"""
    return await service.sync_roadmap_item(current_user, item_id)
