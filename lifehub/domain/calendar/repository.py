"""Calendar repository - Personal calendar events, shared projections and spaces"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Space, SpaceMember
from ...models_calendar import CalendarEvent, SharedCalendarProjection


class CalendarProjectionRepository:
    """Repository for calendar projection database operations"""

    # Spaces

    @staticmethod
    def get_household_id(db: Session, user_id: str) -> Optional[str]:
        """Get the household a user's personal calendar lives in"""
        membership = (
            db.query(SpaceMember)
            .join(Space, Space.id == SpaceMember.space_id)
            .filter(
                SpaceMember.user_id == user_id,
                SpaceMember.status == "accepted",
                Space.space_type == "household",
            )
            .order_by(SpaceMember.created_at.asc())
            .first()
        )
        return membership.space_id if membership else None

    @staticmethod
    def get_shared_spaces(db: Session, user_id: str) -> list[Space]:
        """Get shared spaces the user is an accepted member of"""
        return (
            db.query(Space)
            .join(SpaceMember, SpaceMember.space_id == Space.id)
            .filter(
                SpaceMember.user_id == user_id,
                SpaceMember.status == "accepted",
                Space.space_type == "shared",
            )
            .order_by(Space.name.asc())
            .all()
        )

    # Personal calendar

    @staticmethod
    def find_personal_event(
        db: Session, user_id: str, source_type: str, source_entity_id: str
    ) -> Optional[CalendarEvent]:
        """Find the personal calendar event mirroring a guardrails entity"""
        return (
            db.query(CalendarEvent)
            .filter(
                CalendarEvent.created_by == user_id,
                CalendarEvent.source_type == source_type,
                CalendarEvent.source_entity_id == source_entity_id,
            )
            .first()
        )

    @staticmethod
    def upsert_personal_event(
        db: Session, user_id: str, household_id: str, **event_data
    ) -> tuple[CalendarEvent, bool]:
        """
        Create or update the personal calendar event for a source entity.
        Returns (event, created)
        """
        event = CalendarProjectionRepository.find_personal_event(
            db, user_id, event_data["source_type"], event_data["source_entity_id"]
        )
        created = event is None

        if created:
            event = CalendarEvent(created_by=user_id, household_id=household_id, **event_data)
            db.add(event)
        else:
            event.household_id = household_id
            for key, value in event_data.items():
                setattr(event, key, value)

        db.commit()
        db.refresh(event)
        return event, created

    @staticmethod
    def delete_personal_event(
        db: Session, user_id: str, source_type: str, source_entity_id: str
    ) -> bool:
        """Delete the personal calendar event for a source entity, if any"""
        event = CalendarProjectionRepository.find_personal_event(
            db, user_id, source_type, source_entity_id
        )
        if not event:
            return False

        db.delete(event)
        db.commit()
        return True

    # Shared calendars

    @staticmethod
    def find_shared_projections(
        db: Session, user_id: str, source_entity_id: str
    ) -> list[SharedCalendarProjection]:
        """Find every shared projection of a source entity created by this user"""
        return (
            db.query(SharedCalendarProjection)
            .filter(
                SharedCalendarProjection.user_id == user_id,
                SharedCalendarProjection.source_entity_id == source_entity_id,
            )
            .all()
        )

    @staticmethod
    def upsert_shared_projection(
        db: Session, user_id: str, space_id: str, **projection_data
    ) -> tuple[SharedCalendarProjection, bool]:
        """
        Create or update the projection of a source entity into a shared space.
        Returns (projection, created)
        """
        projection = (
            db.query(SharedCalendarProjection)
            .filter(
                SharedCalendarProjection.user_id == user_id,
                SharedCalendarProjection.space_id == space_id,
                SharedCalendarProjection.source_entity_id == projection_data["source_entity_id"],
            )
            .first()
        )
        created = projection is None

        if created:
            projection = SharedCalendarProjection(user_id=user_id, space_id=space_id, **projection_data)
            db.add(projection)
        else:
            for key, value in projection_data.items():
                setattr(projection, key, value)

        db.commit()
        db.refresh(projection)
        return projection, created

    @staticmethod
    def delete_shared_projections(
        db: Session,
        user_id: str,
        source_entity_id: str,
        except_space_id: Optional[str] = None,
    ) -> int:
        """
        Delete shared projections of a source entity.
        Projections in except_space_id are kept. Returns the number removed.
        """
        query = db.query(SharedCalendarProjection).filter(
            SharedCalendarProjection.user_id == user_id,
            SharedCalendarProjection.source_entity_id == source_entity_id,
        )

        if except_space_id:
            query = query.filter(SharedCalendarProjection.space_id != except_space_id)

        deleted = query.delete(synchronize_session=False)
        db.commit()
        return deleted
