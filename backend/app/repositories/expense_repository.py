from datetime import date
from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.expenses import ExpenseType, AdditionalCost


class ExpenseTypeRepository(BaseRepository[ExpenseType]):
    """Repository for ExpenseType model operations."""

    def __init__(self):
        super().__init__(ExpenseType)

    def get_all_for_organization(self, organization_id: UUID, active_only: bool = False) -> List[ExpenseType]:
        query = self.session.query(ExpenseType).filter_by(organization_id=organization_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(ExpenseType.name).all()

    def get_by_name(self, name: str, organization_id: UUID) -> Optional[ExpenseType]:
        return self.session.query(ExpenseType).filter_by(
            name=name,
            organization_id=organization_id
        ).first()


class AdditionalCostRepository(BaseRepository[AdditionalCost]):
    """Repository for AdditionalCost (worker expense) operations."""

    def __init__(self):
        super().__init__(AdditionalCost)

    def get_for_organization_in_range(
        self,
        organization_id: UUID,
        start_date: date,
        end_date: date,
        worker_id: Optional[UUID] = None
    ) -> List[AdditionalCost]:
        """
        Get expenses dated within [start_date, end_date], inclusive.

        Args:
            organization_id: The organization UUID
            start_date: First day of the range
            end_date: Last day of the range
            worker_id: Optional worker filter

        Returns:
            List of AdditionalCost instances ordered by date
        """
        query = self.session.query(AdditionalCost).filter(
            AdditionalCost.organization_id == organization_id,
            AdditionalCost.date >= start_date,
            AdditionalCost.date <= end_date
        )
        if worker_id:
            query = query.filter(AdditionalCost.worker_id == worker_id)
        return query.order_by(AdditionalCost.date).all()

    def get_for_worker(self, worker_id: UUID) -> List[AdditionalCost]:
        return self.session.query(AdditionalCost).filter_by(
            worker_id=worker_id
        ).order_by(AdditionalCost.date.desc()).all()

    def is_type_in_use(self, expense_type_id: UUID) -> bool:
        return self.session.query(
            self.session.query(AdditionalCost).filter_by(expense_type_id=expense_type_id).exists()
        ).scalar()

    def worker_has_costs(self, worker_id: UUID) -> bool:
        return self.session.query(
            self.session.query(AdditionalCost).filter_by(worker_id=worker_id).exists()
        ).scalar()
