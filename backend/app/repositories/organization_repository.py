from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.organization import Organization, SubscriptionUsage


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization model operations."""

    def __init__(self):
        super().__init__(Organization)

    def get_active_organizations(self) -> List[Organization]:
        """
        Get all active organizations.

        Returns:
            List of active Organization instances, ordered by name
        """
        return self.session.query(Organization).filter_by(
            is_active=True
        ).order_by(Organization.name).all()

    def get_by_name(self, name: str) -> Optional[Organization]:
        return self.session.query(Organization).filter_by(name=name).first()


class SubscriptionUsageRepository(BaseRepository[SubscriptionUsage]):
    """Repository for subscription usage periods."""

    def __init__(self):
        super().__init__(SubscriptionUsage)

    def get_active(self, organization_id: UUID) -> Optional[SubscriptionUsage]:
        """
        Get the currently active usage row for an organization.

        Args:
            organization_id: The organization UUID

        Returns:
            The active SubscriptionUsage or None
        """
        return self.session.query(SubscriptionUsage).filter_by(
            organization_id=organization_id,
            is_active=True
        ).order_by(SubscriptionUsage.started_at.desc()).first()

    def get_history(self, organization_id: UUID) -> List[SubscriptionUsage]:
        return self.session.query(SubscriptionUsage).filter_by(
            organization_id=organization_id
        ).order_by(SubscriptionUsage.started_at.desc()).all()

    def close_active(self, organization_id: UUID, ended_at) -> int:
        """
        Mark every active usage row as ended. Does not commit.

        Returns:
            Number of rows closed
        """
        rows = self.session.query(SubscriptionUsage).filter_by(
            organization_id=organization_id,
            is_active=True
        ).all()
        for row in rows:
            row.is_active = False
            row.ended_at = ended_at
        return len(rows)
