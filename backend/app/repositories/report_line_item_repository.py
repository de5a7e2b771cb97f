from datetime import date
from typing import List
from uuid import UUID
from .base import BaseRepository
from ..models.reports import ReportLineItem


class ReportLineItemRepository(BaseRepository[ReportLineItem]):
    """Repository for weekly report line items."""

    def __init__(self):
        super().__init__(ReportLineItem)

    def get_for_week(self, organization_id: UUID, week_start: date) -> List[ReportLineItem]:
        """
        Get persisted, non-deleted line items of a week.

        Args:
            organization_id: The organization UUID
            week_start: Monday of the report week

        Returns:
            List of ReportLineItem instances ordered by work date
        """
        return self.session.query(ReportLineItem).filter_by(
            organization_id=organization_id,
            week_start=week_start
        ).filter(ReportLineItem.is_deleted.is_(False)).order_by(ReportLineItem.work_date).all()

    def delete_week(self, organization_id: UUID, week_start: date) -> int:
        """
        Hard-delete every line item of a week, soft-deleted ones included.
        Does not commit.

        Returns:
            Number of rows deleted
        """
        return self.session.query(ReportLineItem).filter_by(
            organization_id=organization_id,
            week_start=week_start
        ).delete(synchronize_session=False)

    def worker_has_items(self, worker_id: UUID) -> bool:
        return self.session.query(
            self.session.query(ReportLineItem).filter_by(worker_id=worker_id).exists()
        ).scalar()
