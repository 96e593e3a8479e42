"""
Tests for bulk propagation of settings changes to roadmap events.
"""

import pytest

from lifehub.domain.calendar_sync.execution import CalendarSyncExecutor
from lifehub.domain.calendar_sync.propagation import BulkSyncPropagator
from lifehub.domain.calendar_sync.resolver import SyncSettingsResolver
from lifehub.domain.calendar_sync.schemas import SyncSettingsUpsert
from tests.conftest import (
    OTHER_SUBTRACK_ID,
    PROJECT_ID,
    SUBTRACK_ID,
    TRACK_ID,
    USER_ID,
    make_item,
    new_id,
)


@pytest.fixture
def propagator(session, settings_store, roadmap, projections):
    executor = CalendarSyncExecutor(
        session,
        resolver=SyncSettingsResolver(session, settings_store),
        roadmap_repo=roadmap,
        projection_repo=projections,
    )
    return BulkSyncPropagator(session, executor=executor, roadmap_repo=roadmap, batch_size=2)


def save(store, level, **fields):
    store.upsert_settings(None, USER_ID, level, SyncSettingsUpsert(project_id=PROJECT_ID, **fields))


class TestBulkSyncProject:
    @pytest.mark.asyncio
    async def test_dateless_events_are_skipped(self, propagator, settings_store, roadmap, projections):
        dated = [make_item() for _ in range(3)]
        dateless = [make_item(start_date=None) for _ in range(2)]
        roadmap.add(dated[0], dateless[0], dated[1], dateless[1], dated[2])
        save(settings_store, "project", sync_enabled=True, inherit_from_parent=False)

        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.scanned_count == 5
        assert result.synced_count == 3
        assert result.skipped_count == 2
        assert result.unsynced_count == 0
        assert result.errors_count == 0
        assert projections.personal_entity_ids(USER_ID) == {item.id for item in dated}

    @pytest.mark.asyncio
    async def test_only_event_items_are_considered(self, propagator, settings_store, roadmap):
        roadmap.add(make_item(), make_item(item_type="task"), make_item(item_type="milestone"))
        save(settings_store, "project", sync_enabled=True, inherit_from_parent=False)

        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.scanned_count == 1
        assert result.synced_count == 1

    @pytest.mark.asyncio
    async def test_empty_project(self, propagator):
        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.scanned_count == 0
        assert result.synced_count == 0

    @pytest.mark.asyncio
    async def test_failing_event_does_not_stop_the_rest(self, propagator, settings_store, roadmap, projections):
        items = [make_item() for _ in range(5)]
        roadmap.add(*items)
        projections.failing_entities.add(items[1].id)
        save(settings_store, "project", sync_enabled=True, inherit_from_parent=False)

        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.synced_count == 4
        assert result.errors_count == 1
        assert result.errors[0].event_id == items[1].id
        assert items[4].id in projections.personal_entity_ids(USER_ID)

    @pytest.mark.asyncio
    async def test_unreadable_settings_roll_back_and_continue(self, propagator, session, settings_store, roadmap):
        items = [make_item() for _ in range(3)]
        roadmap.add(*items)
        settings_store.failing_events.add(items[0].id)
        save(settings_store, "project", sync_enabled=True, inherit_from_parent=False)

        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.errors_count == 1
        assert result.errors[0].event_id == items[0].id
        assert result.synced_count == 2
        assert session.rollbacks == 1

    @pytest.mark.asyncio
    async def test_disabling_counts_removed_events(self, propagator, settings_store, roadmap, projections):
        items = [make_item() for _ in range(3)]
        roadmap.add(*items)
        save(settings_store, "project", sync_enabled=True, inherit_from_parent=False)
        await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        save(settings_store, "project", sync_enabled=False, inherit_from_parent=False)
        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.unsynced_count == 3
        assert result.synced_count == 0
        assert projections.personal == {}

    @pytest.mark.asyncio
    async def test_noops_are_not_counted(self, propagator, roadmap):
        roadmap.add(make_item(), make_item())

        result = await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        assert result.scanned_count == 2
        assert result.synced_count == 0
        assert result.unsynced_count == 0


class TestBulkSyncNarrowerLevels:
    @pytest.mark.asyncio
    async def test_subtrack_override_applies_to_its_events_only(
        self, propagator, settings_store, roadmap, projections
    ):
        inside = make_item(subtrack_id=SUBTRACK_ID)
        sibling = make_item(subtrack_id=OTHER_SUBTRACK_ID)
        roadmap.add(inside, sibling)
        save(settings_store, "project", sync_enabled=True, inherit_from_parent=False)
        await propagator.bulk_sync_project_roadmap_events(USER_ID, PROJECT_ID)

        save(
            settings_store,
            "subtrack",
            track_id=TRACK_ID,
            subtrack_id=SUBTRACK_ID,
            sync_enabled=False,
            inherit_from_parent=False,
        )
        result = await propagator.bulk_sync_subtrack_roadmap_events(USER_ID, PROJECT_ID, TRACK_ID, SUBTRACK_ID)

        assert result.scanned_count == 1
        assert result.unsynced_count == 1
        assert projections.personal_entity_ids(USER_ID) == {sibling.id}

    @pytest.mark.asyncio
    async def test_track_level(self, propagator, settings_store, roadmap):
        roadmap.add(make_item(), make_item(track_id=new_id()))
        save(settings_store, "track", track_id=TRACK_ID, sync_enabled=True, inherit_from_parent=False)

        result = await propagator.bulk_sync_track_roadmap_events(USER_ID, PROJECT_ID, TRACK_ID)

        assert result.scanned_count == 1
        assert result.synced_count == 1

    @pytest.mark.asyncio
    async def test_for_level_dispatch(self, propagator, settings_store, roadmap):
        roadmap.add(make_item())
        save(settings_store, "track", track_id=TRACK_ID, sync_enabled=True, inherit_from_parent=False)

        result = await propagator.bulk_sync_for_level(USER_ID, "track", PROJECT_ID, TRACK_ID)

        assert result.synced_count == 1

    @pytest.mark.asyncio
    async def test_event_level_has_no_bulk_sync(self, propagator):
        with pytest.raises(ValueError):
            await propagator.bulk_sync_for_level(USER_ID, "event", PROJECT_ID)
