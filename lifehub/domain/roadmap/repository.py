"""Roadmap repository - Read-only access to guardrails roadmap items"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import MasterProject, RoadmapItem


class RoadmapRepository:
    """Repository for roadmap item queries"""

    @staticmethod
    def get_item(db: Session, item_id: str) -> Optional[RoadmapItem]:
        """Get a single roadmap item"""
        return db.query(RoadmapItem).filter(RoadmapItem.id == item_id).first()

    @staticmethod
    def get_items_by_project(db: Session, project_id: str) -> list[RoadmapItem]:
        """Get every roadmap item of a project"""
        return (
            db.query(RoadmapItem)
            .filter(RoadmapItem.master_project_id == project_id)
            .order_by(RoadmapItem.start_date.asc(), RoadmapItem.created_at.asc())
            .all()
        )

    @staticmethod
    def get_items_by_track(db: Session, track_id: str) -> list[RoadmapItem]:
        """Get every roadmap item of a track, subtracks included"""
        return (
            db.query(RoadmapItem)
            .filter(RoadmapItem.track_id == track_id)
            .order_by(RoadmapItem.start_date.asc(), RoadmapItem.created_at.asc())
            .all()
        )

    @staticmethod
    def get_items_by_subtrack(db: Session, subtrack_id: str) -> list[RoadmapItem]:
        """Get every roadmap item of a subtrack"""
        return (
            db.query(RoadmapItem)
            .filter(RoadmapItem.subtrack_id == subtrack_id)
            .order_by(RoadmapItem.start_date.asc(), RoadmapItem.created_at.asc())
            .all()
        )

    @staticmethod
    def get_project_name(db: Session, project_id: str) -> Optional[str]:
        """Get a project's display name"""
        project = db.query(MasterProject).filter(MasterProject.id == project_id).first()
        return project.name if project else None
