from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.workers import Worker
from ..utils import normalize_email


class WorkerRepository(BaseRepository[Worker]):
    """Repository for Worker model operations."""

    def __init__(self):
        super().__init__(Worker)

    def get_all_for_organization(
        self,
        organization_id: UUID,
        active_only: bool = False,
        search: Optional[str] = None
    ) -> List[Worker]:
        """
        Get workers of an organization, optionally filtered.

        Args:
            organization_id: The organization UUID
            active_only: Only return active workers
            search: Case-insensitive substring match on name or email

        Returns:
            List of Worker instances ordered by name
        """
        query = self.session.query(Worker).filter_by(organization_id=organization_id)
        if active_only:
            query = query.filter_by(is_active=True)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(Worker.name.ilike(pattern) | Worker.email.ilike(pattern))
        return query.order_by(Worker.name).all()

    def get_by_user_id(self, user_id: UUID) -> Optional[Worker]:
        return self.session.query(Worker).filter_by(user_id=user_id).first()

    def get_by_email(self, email: str, organization_id: UUID) -> Optional[Worker]:
        return self.session.query(Worker).filter_by(
            email=normalize_email(email),
            organization_id=organization_id
        ).first()

    def count_active(self, organization_id: UUID) -> int:
        return self.session.query(Worker).filter_by(
            organization_id=organization_id,
            is_active=True
        ).count()

    def get_by_ids(self, ids: List[UUID]) -> List[Worker]:
        if not ids:
            return []
        return self.session.query(Worker).filter(Worker.id.in_(ids)).all()
