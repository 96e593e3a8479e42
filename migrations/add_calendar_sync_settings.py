"""
Add calendar sync settings

- calendar_sync_settings table: one row per (user, level, entity) that has
  settings of its own. Rows are keyed by scope_key, e.g.
  "subtrack:<project_id>:<track_id>:<subtrack_id>".
- calendar_sync_preferences table: account-wide switches, the fallback when no
  level overrides its parent.
- calendar_events / shared_calendar_projections: targets written by sync.

Tables are created from the models, so the script works on Postgres and
SQLite and can be run more than once.
"""

# Ensure this script can be run directly from the repo root
import sys
from pathlib import Path

CURRENT_DIR = Path(__file__).resolve().parent
ROOT_DIR = CURRENT_DIR.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from lifehub import models  # noqa: E402
from lifehub.database import Base, engine  # noqa: E402
from lifehub.models_calendar import CalendarEvent, SharedCalendarProjection  # noqa: E402
from lifehub.models_calendar_sync import CalendarSyncSettings  # noqa: E402

# Referenced tables first
TABLES = [
    models.User.__table__,
    models.Space.__table__,
    models.SpaceMember.__table__,
    models.MasterProject.__table__,
    models.GuardrailsTrack.__table__,
    models.GuardrailsSubtrack.__table__,
    models.RoadmapItem.__table__,
    models.CalendarSyncPreference.__table__,
    CalendarEvent.__table__,
    SharedCalendarProjection.__table__,
    CalendarSyncSettings.__table__,
]


def upgrade():
    Base.metadata.create_all(bind=engine, tables=TABLES, checkfirst=True)
    print("Migration add_calendar_sync_settings applied successfully")


def downgrade():
    # Only the settings table belongs to this migration alone
    CalendarSyncSettings.__table__.drop(bind=engine, checkfirst=True)
    print("Migration add_calendar_sync_settings rolled back")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage calendar sync settings migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        downgrade()
    else:
        upgrade()
