from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.jobs import Job


class JobRepository(BaseRepository[Job]):
    """Repository for Job (site) model operations."""

    def __init__(self):
        super().__init__(Job)

    def get_all_for_organization(self, organization_id: UUID, active_only: bool = False) -> List[Job]:
        """
        Get jobs of an organization.

        Args:
            organization_id: The organization UUID
            active_only: Only return active jobs

        Returns:
            List of Job instances ordered by code
        """
        query = self.session.query(Job).filter_by(organization_id=organization_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(Job.code).all()

    def get_by_code(self, code: str, organization_id: UUID) -> Optional[Job]:
        return self.session.query(Job).filter_by(
            code=code,
            organization_id=organization_id
        ).first()

    def count_active(self, organization_id: UUID) -> int:
        return self.session.query(Job).filter_by(
            organization_id=organization_id,
            is_active=True
        ).count()
