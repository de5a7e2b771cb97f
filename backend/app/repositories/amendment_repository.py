from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.amendments import TimeAmendment


class TimeAmendmentRepository(BaseRepository[TimeAmendment]):
    """Repository for TimeAmendment model operations."""

    def __init__(self):
        super().__init__(TimeAmendment)

    def get_all_for_organization(self, organization_id: UUID, status: Optional[str] = None) -> List[TimeAmendment]:
        """
        Get amendment requests of an organization.

        Args:
            organization_id: The organization UUID
            status: Optional status filter (pending, approved, rejected)

        Returns:
            List of TimeAmendment instances, newest first
        """
        query = self.session.query(TimeAmendment).filter_by(organization_id=organization_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(TimeAmendment.created_at.desc()).all()

    def get_for_worker(self, worker_id: UUID) -> List[TimeAmendment]:
        return self.session.query(TimeAmendment).filter_by(
            worker_id=worker_id
        ).order_by(TimeAmendment.created_at.desc()).all()

    def get_pending_for_entry(self, clock_entry_id: UUID) -> Optional[TimeAmendment]:
        return self.session.query(TimeAmendment).filter_by(
            clock_entry_id=clock_entry_id,
            status='pending'
        ).first()

    def count_pending(self, organization_id: UUID) -> int:
        return self.session.query(TimeAmendment).filter_by(
            organization_id=organization_id,
            status='pending'
        ).count()
