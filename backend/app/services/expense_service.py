import logging

from ..errors import NotFoundError, ValidationError, ConflictError
from ..utils import parse_iso_date, to_uuid

logger = logging.getLogger(__name__)

CALCULATION_TYPES = ('flat_rate', 'hourly_multiplied')


def _amount(value, field='amount'):
    try:
        amount = round(float(value), 2)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if amount < 0:
        raise ValidationError(f'{field} cannot be negative')
    return amount


class ExpenseService:
    def __init__(self, expense_type_repo, additional_cost_repo, clock_repo):
        self.expense_type_repo = expense_type_repo
        self.additional_cost_repo = additional_cost_repo
        self.clock_repo = clock_repo

    def create_expense_type(self, organization_id, data: dict):
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError('Name is required')
        if self.expense_type_repo.get_by_name(name, organization_id):
            raise ConflictError(f'An expense type named {name} already exists')
        calculation_type = data.get('calculation_type') or 'flat_rate'
        if calculation_type not in CALCULATION_TYPES:
            raise ValidationError(f"calculation_type must be one of {', '.join(CALCULATION_TYPES)}")
        return self.expense_type_repo.create(
            organization_id=organization_id,
            name=name,
            description=data.get('description'),
            amount=_amount(data.get('amount', 0)),
            calculation_type=calculation_type,
            is_active=data.get('is_active', True),
        )

    def update_expense_type(self, expense_type, data: dict):
        if 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                raise ValidationError('Name cannot be empty')
            existing = self.expense_type_repo.get_by_name(name, expense_type.organization_id)
            if existing and existing.id != expense_type.id:
                raise ConflictError(f'An expense type named {name} already exists')
            expense_type.name = name
        if 'description' in data:
            expense_type.description = data['description']
        if 'amount' in data:
            expense_type.amount = _amount(data['amount'])
        if 'calculation_type' in data:
            if data['calculation_type'] not in CALCULATION_TYPES:
                raise ValidationError(f"calculation_type must be one of {', '.join(CALCULATION_TYPES)}")
            expense_type.calculation_type = data['calculation_type']
        if 'is_active' in data:
            expense_type.is_active = bool(data['is_active'])
        self.expense_type_repo.commit()
        return expense_type

    def record_cost(self, worker, data: dict):
        """
        Record an additional cost for a worker.

        The amount defaults to the expense type's amount; a linked clock
        entry must belong to the same worker.
        """
        try:
            expense_type_id = to_uuid(data.get('expense_type_id'))
            clock_entry_id = to_uuid(data.get('clock_entry_id'))
        except ValueError:
            raise ValidationError('Invalid expense_type_id or clock_entry_id')
        if not expense_type_id:
            raise ValidationError('expense_type_id is required')

        expense_type = self.expense_type_repo.get_for_organization(expense_type_id, worker.organization_id)
        if not expense_type:
            raise NotFoundError('Expense type not found')
        if not expense_type.is_active:
            raise ValidationError('Expense type is not active')

        if clock_entry_id:
            entry = self.clock_repo.get_by_id(clock_entry_id)
            if not entry or entry.worker_id != worker.id:
                raise NotFoundError('Clock entry not found')

        try:
            cost_date = parse_iso_date(data.get('date'))
        except ValueError:
            raise ValidationError('date must be YYYY-MM-DD')
        if not cost_date:
            raise ValidationError('date is required')

        amount = data.get('amount')
        cost = self.additional_cost_repo.create(
            organization_id=worker.organization_id,
            worker_id=worker.id,
            clock_entry_id=clock_entry_id,
            expense_type_id=expense_type.id,
            amount=_amount(amount) if amount not in (None, '') else float(expense_type.amount or 0),
            description=data.get('description'),
            date=cost_date,
        )
        logger.info(f"Worker {worker.id} recorded {expense_type.name} cost {cost.id}")
        return cost
