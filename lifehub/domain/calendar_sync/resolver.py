"""
Calendar sync settings resolver

Resolution order is strict specificity: event > subtrack > track > project >
global. The first row that explicitly overrides its applicable ancestors wins;
a missing row and a fully inheriting row are treated the same.

resolve_settings_chain() is pure and works on any objects exposing the
settings columns (ORM rows or test doubles). SyncSettingsResolver loads the
chain for a scope and hands it over. Nothing is cached between calls.
"""
import logging
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from .repository import SyncSettingsRepository
from .schemas import (
    ENTITY_FILTER_FIELDS,
    GLOBAL_SOURCE,
    PARENT_LEVEL,
    EffectiveSync,
    SyncScope,
    inherit_flag_field,
)

logger = logging.getLogger(__name__)

# (level, settings row or None), most specific level first
SettingsChain = Sequence[tuple[str, Optional[Any]]]


def chain_levels(scope: SyncScope) -> list[str]:
    """Levels to consult for a scope, most specific first"""
    levels = []
    if scope.event_id:
        levels.append("event")
    if scope.subtrack_id and scope.track_id:
        levels.append("subtrack")
    if scope.track_id:
        levels.append("track")
    levels.append("project")
    return levels


def applicable_ancestors(level: str, chain_level_names: Sequence[str]) -> list[str]:
    """
    Ancestor levels whose inherit flag counts for a row at this level.

    Non-event rows only point at their direct parent. An event row may defer to
    any ancestor present in the chain it is resolved with; a subtrack flag on an
    event that is resolved without a subtrack is ignored.
    """
    if level == "event":
        return [name for name in chain_level_names if name != "event"]
    return [PARENT_LEVEL[level]]


def is_explicit_override(settings: Any, ancestors: Sequence[str]) -> bool:
    """True when the row opts out of at least one applicable ancestor"""
    if settings is None:
        return False
    return any(getattr(settings, inherit_flag_field(a), None) is False for a in ancestors)


def effective_from_settings(level: str, settings: Any, entity_type: str) -> EffectiveSync:
    should_sync = bool(settings.sync_enabled)

    if level != "event":
        filter_field = ENTITY_FILTER_FIELDS.get(entity_type)
        if filter_field and getattr(settings, filter_field, None) is False:
            should_sync = False

    return EffectiveSync(
        should_sync=should_sync,
        target_calendar=settings.target_calendar_type or "personal",
        target_space_id=settings.target_space_id,
        source=level,
    )


def global_default(global_sync_enabled: bool) -> EffectiveSync:
    return EffectiveSync(
        should_sync=bool(global_sync_enabled),
        target_calendar="personal",
        target_space_id=None,
        source=GLOBAL_SOURCE,
    )


def resolve_settings_chain(
    chain: SettingsChain,
    global_sync_enabled: bool,
    entity_type: str = "roadmap_event",
) -> EffectiveSync:
    """Pick the first explicit row in the chain, else the global preference"""
    level_names = [level for level, _ in chain]

    for level, settings in chain:
        if is_explicit_override(settings, applicable_ancestors(level, level_names)):
            return effective_from_settings(level, settings, entity_type)

    return global_default(global_sync_enabled)


class SyncSettingsResolver:
    """Loads the settings chain for a scope and resolves it"""

    def __init__(self, db: Session, settings_repo=None):
        self.db = db
        self.settings_repo = settings_repo or SyncSettingsRepository()

    def load_chain(self, user_id: str, scope: SyncScope) -> list[tuple[str, Optional[Any]]]:
        return [
            (level, self.settings_repo.get_settings(self.db, user_id, level, scope))
            for level in chain_levels(scope)
        ]

    async def resolve_effective_sync(self, user_id: str, scope: SyncScope) -> EffectiveSync:
        chain = self.load_chain(user_id, scope)
        global_sync_enabled = self.settings_repo.get_global_sync_enabled(self.db, user_id)

        effective = resolve_settings_chain(chain, global_sync_enabled, scope.entity_type)
        logger.debug(
            f"🔎 Resolved sync for project={scope.project_id} track={scope.track_id} "
            f"subtrack={scope.subtrack_id} event={scope.event_id}: "
            f"should_sync={effective.should_sync} target={effective.target_calendar} "
            f"source={effective.source}"
        )
        return effective
