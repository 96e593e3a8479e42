"""
Tests for the settings panel service: saving, unsyncing, panel state and summaries.
"""

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from lifehub.domain.calendar_sync.schemas import BulkSyncResult, ExecutionResult, SyncScope, SyncSettingsUpsert
from lifehub.domain.calendar_sync.service import (
    CalendarSyncService,
    build_execution_summary,
    build_sync_summary,
)
from tests.conftest import (
    OTHER_SPACE_ID,
    PROJECT_ID,
    SPACE_ID,
    SUBTRACK_ID,
    TRACK_ID,
    USER_ID,
    make_item,
    new_id,
)


@pytest.fixture
def service(session, settings_store, roadmap, projections):
    return CalendarSyncService(
        session,
        settings_repo=settings_store,
        roadmap_repo=roadmap,
        projection_repo=projections,
        batch_size=2,
    )


# ------------------------------------------------------------------ #
# Summary messages                                                    #
# ------------------------------------------------------------------ #


class TestBuildSyncSummary:
    def test_full_message_after_save(self):
        result = BulkSyncResult(scanned_count=7, synced_count=3, unsynced_count=1, skipped_count=2)
        result.record_error(new_id(), "boom")

        summary = build_sync_summary(result)

        assert summary.message == (
            "Synced 3 events, Removed 1 event from calendar, Skipped 2 events with no dates, 1 error occurred"
        )
        assert summary.level == "warning"

    def test_single_event_is_not_pluralised(self):
        summary = build_sync_summary(BulkSyncResult(scanned_count=1, synced_count=1))

        assert summary.message == "Synced 1 event"
        assert summary.level == "success"

    def test_unsync_lists_removals_first(self):
        result = BulkSyncResult(scanned_count=3, synced_count=1, unsynced_count=2)

        summary = build_sync_summary(result, after_unsync=True)

        assert summary.message == "Removed 2 events from calendar, Synced 1 event (inherited from parent)"

    def test_nothing_happened(self):
        assert build_sync_summary(BulkSyncResult(scanned_count=2)) is None

    def test_execution_summary(self):
        deleted = ExecutionResult(executed=True, action="deleted", reason="Sync disabled")
        noop = ExecutionResult(executed=False, action="noop", reason="Event not found")

        assert build_execution_summary(deleted).message == "Event removed from calendar"
        assert build_execution_summary(noop) is None


# ------------------------------------------------------------------ #
# Save / unsync                                                       #
# ------------------------------------------------------------------ #


class TestSaveSettings:
    @pytest.mark.asyncio
    async def test_project_save_propagates_to_events(self, service, user, roadmap, projections):
        roadmap.add(make_item(), make_item(), make_item(start_date=None))

        response = await service.save_settings(
            user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
        )

        assert response.settings.level == "project"
        assert response.settings.inherit_from_global is False
        assert response.effective.source == "project"
        assert response.bulk.synced_count == 2
        assert response.bulk.skipped_count == 1
        assert response.summary.message == "Synced 2 events, Skipped 1 event with no dates"
        assert len(projections.personal) == 2

    @pytest.mark.asyncio
    async def test_event_save_executes_single_event(self, service, user, roadmap, projections):
        item = make_item()
        roadmap.add(item)

        response = await service.save_settings(
            user,
            "event",
            SyncSettingsUpsert(
                project_id=PROJECT_ID,
                track_id=TRACK_ID,
                event_id=item.id,
                sync_enabled=True,
                inherit_from_parent=False,
            ),
        )

        assert response.bulk is None
        assert response.execution.action == "created"
        assert response.summary.message == "Event synced to calendar"
        assert item.id in projections.personal_entity_ids(USER_ID)

    @pytest.mark.asyncio
    async def test_missing_ids_for_level_are_rejected(self, service, user, settings_store):
        with pytest.raises(HTTPException) as exc_info:
            await service.save_settings(user, "subtrack", SyncSettingsUpsert(project_id=PROJECT_ID, track_id=TRACK_ID))

        assert exc_info.value.status_code == 400
        assert settings_store.rows == {}

    @pytest.mark.asyncio
    async def test_unknown_level_is_rejected(self, service, user):
        with pytest.raises(HTTPException) as exc_info:
            await service.save_settings(user, "workspace", SyncSettingsUpsert(project_id=PROJECT_ID))

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_space_outside_membership_is_rejected(self, service, user, settings_store):
        data = SyncSettingsUpsert(project_id=PROJECT_ID, target_calendar_type="shared", target_space_id=OTHER_SPACE_ID)

        with pytest.raises(HTTPException) as exc_info:
            await service.save_settings(user, "project", data)

        assert exc_info.value.status_code == 400
        assert settings_store.rows == {}

    @pytest.mark.asyncio
    async def test_write_failure_aborts_without_propagation(
        self, service, session, user, settings_store, roadmap, projections
    ):
        roadmap.add(make_item())
        settings_store.fail_writes = True

        with pytest.raises(HTTPException) as exc_info:
            await service.save_settings(
                user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
            )

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Failed to save settings. Please try again."
        assert projections.personal == {}
        assert session.rollbacks == 1

    @pytest.mark.asyncio
    async def test_propagation_errors_do_not_undo_the_save(self, service, user, settings_store, roadmap, projections):
        item = make_item()
        roadmap.add(item)
        projections.failing_entities.add(item.id)

        response = await service.save_settings(
            user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
        )

        assert response.bulk.errors_count == 1
        assert response.summary.level == "warning"
        assert len(settings_store.rows) == 1

    @pytest.mark.asyncio
    async def test_failed_fan_out_rolls_back_and_warns(self, service, session, user, settings_store, roadmap):
        def unavailable(db, project_id):
            raise SQLAlchemyError("database is unavailable")

        roadmap.get_items_by_project = unavailable

        response = await service.save_settings(
            user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
        )

        assert response.bulk is None
        assert response.summary.message == "Settings saved, but calendar sync encountered errors"
        assert response.summary.level == "warning"
        assert session.rollbacks == 1
        assert len(settings_store.rows) == 1


class TestUnsyncSettings:
    @pytest.mark.asyncio
    async def test_unsync_removes_row_and_events(self, service, user, settings_store, roadmap, projections):
        roadmap.add(make_item(), make_item())
        await service.save_settings(
            user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
        )

        response = await service.unsync_settings(user, "project", SyncScope(project_id=PROJECT_ID))

        assert response.removed is True
        assert response.effective.source == "global"
        assert response.bulk.unsynced_count == 2
        assert response.summary.message == "Removed 2 events from calendar"
        assert settings_store.rows == {}
        assert projections.personal == {}

    @pytest.mark.asyncio
    async def test_unsync_is_idempotent(self, service, user):
        scope = SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID)

        first = await service.unsync_settings(user, "track", scope)
        second = await service.unsync_settings(user, "track", scope)

        assert first.removed is False
        assert second.removed is False
        assert second.summary is None

    @pytest.mark.asyncio
    async def test_unsync_track_falls_back_to_project(self, service, user, roadmap, projections):
        roadmap.add(make_item())
        await service.save_settings(
            user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
        )
        await service.save_settings(
            user,
            "track",
            SyncSettingsUpsert(project_id=PROJECT_ID, track_id=TRACK_ID, sync_enabled=False, inherit_from_parent=False),
        )
        assert projections.personal == {}

        response = await service.unsync_settings(user, "track", SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID))

        assert response.effective.source == "project"
        assert response.bulk.synced_count == 1
        assert response.summary.message == "Synced 1 event (inherited from parent)"


# ------------------------------------------------------------------ #
# Panel state / preview / roadmap hook                                #
# ------------------------------------------------------------------ #


class TestPanelState:
    @pytest.mark.asyncio
    async def test_nothing_stored(self, service, user):
        state = await service.get_panel_state(user, "track", SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID))

        assert state.settings is None
        assert state.is_explicit is False
        assert state.is_inheriting is True
        assert state.form.sync_enabled is False
        assert state.form.inherit_from_parent is True
        assert state.inheritance_text == "Inheriting from global calendar settings"
        assert [space.id for space in state.shared_spaces] == [SPACE_ID]

    @pytest.mark.asyncio
    async def test_explicit_row_shows_stored_values(self, service, user):
        await service.save_settings(
            user,
            "track",
            SyncSettingsUpsert(
                project_id=PROJECT_ID,
                track_id=TRACK_ID,
                sync_enabled=True,
                target_calendar_type="shared",
                target_space_id=SPACE_ID,
                inherit_from_parent=False,
            ),
        )

        state = await service.get_panel_state(user, "track", SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID))

        assert state.is_explicit is True
        assert state.form.target_calendar_type == "shared"
        assert state.form.target_space_id == SPACE_ID
        assert state.form.inherit_from_parent is False
        assert state.inheritance_text == "Explicitly set for this track"

    @pytest.mark.asyncio
    async def test_inheriting_row_shows_effective_values(self, service, user):
        await service.save_settings(
            user, "project", SyncSettingsUpsert(project_id=PROJECT_ID, sync_enabled=True, inherit_from_parent=False)
        )
        await service.save_settings(
            user,
            "subtrack",
            SyncSettingsUpsert(project_id=PROJECT_ID, track_id=TRACK_ID, subtrack_id=SUBTRACK_ID, sync_enabled=False),
        )

        state = await service.get_panel_state(
            user, "subtrack", SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID, subtrack_id=SUBTRACK_ID)
        )

        assert state.settings is not None
        assert state.is_inheriting is True
        assert state.form.sync_enabled is True
        assert state.inheritance_text == 'Inheriting from Project "Launch"'


class TestPreviewAndHook:
    def test_preview_lists_dated_events_in_scope(self, service, user, roadmap):
        dated = make_item(subtrack_id=SUBTRACK_ID)
        roadmap.add(dated, make_item(subtrack_id=SUBTRACK_ID, start_date=None), make_item(item_type="task"))

        track_preview = service.preview_events(user, "track", SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID))
        subtrack_preview = service.preview_events(
            user, "subtrack", SyncScope(project_id=PROJECT_ID, track_id=TRACK_ID, subtrack_id=SUBTRACK_ID)
        )

        assert [item.id for item in track_preview] == [dated.id]
        assert [item.id for item in subtrack_preview] == [dated.id]

    @pytest.mark.asyncio
    async def test_sync_roadmap_item_unknown_item(self, service, user):
        with pytest.raises(HTTPException) as exc_info:
            await service.sync_roadmap_item(user, new_id())

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_sync_roadmap_item_uses_current_settings(self, service, user, settings_store, roadmap, projections):
        settings_store.global_sync_enabled = True
        item = make_item()
        roadmap.add(item)

        result = await service.sync_roadmap_item(user, item.id)

        assert result.action == "created"
        assert item.id in projections.personal_entity_ids(USER_ID)


class TestListProjectSettings:
    def test_malformed_project_id_is_rejected(self, service, user):
        with pytest.raises(HTTPException) as exc_info:
            service.list_project_settings(user, "not-a-uuid")

        assert exc_info.value.status_code == 400

    def test_project_id_is_normalised(self, service, user, settings_store):
        settings_store.upsert_settings(None, USER_ID, "project", SyncSettingsUpsert(project_id=PROJECT_ID))

        rows = service.list_project_settings(user, PROJECT_ID.upper())

        assert [row.project_id for row in rows] == [PROJECT_ID]
