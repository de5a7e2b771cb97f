import logging
import traceback
from datetime import timedelta
from flask import Blueprint, request, g
from ..repositories import ExpenseTypeRepository, AdditionalCostRepository, ClockEntryRepository, WorkerRepository
from ..services.expense_service import ExpenseService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, worker_required, MANAGEMENT_ROLES, ROLE_WORKER
from ..utils import parse_week_start, to_uuid
from .utils import api_response, model_to_dict, models_to_list, service_error_response

logger = logging.getLogger(__name__)

expenses_bp = Blueprint('expenses', __name__, url_prefix='/api')
expense_type_repo = ExpenseTypeRepository()
cost_repo = AdditionalCostRepository()
worker_repo = WorkerRepository()
expense_service = ExpenseService(expense_type_repo, cost_repo, ClockEntryRepository())


def cost_to_dict(cost):
    data = model_to_dict(cost)
    data['worker_name'] = cost.worker.name if cost.worker else None
    data['expense_type_name'] = cost.expense_type.name if cost.expense_type else None
    return data


@expenses_bp.route('/expense-types', methods=['GET'])
@token_required
def get_expense_types():
    only_active = request.args.get('active', 'false').lower() == 'true' or g.current_user.role == ROLE_WORKER
    types = expense_type_repo.get_all_for_organization(g.organization_id, active_only=only_active)
    return api_response(data=models_to_list(types))


@expenses_bp.route('/expense-types', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def create_expense_type():
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")
    try:
        expense_type = expense_service.create_expense_type(g.organization_id, data)
        return api_response(data=model_to_dict(expense_type), message="Expense type created", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to create expense type")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create expense type", error=str(e))


@expenses_bp.route('/expense-types/<uuid:type_id>', methods=['PUT'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def update_expense_type(type_id):
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    expense_type = expense_type_repo.get_for_organization(type_id, g.organization_id)
    if not expense_type:
        return api_response(status_code=404, message="Expense type not found", error="Not Found")

    try:
        expense_type = expense_service.update_expense_type(expense_type, data)
        return api_response(data=model_to_dict(expense_type), message="Expense type updated")
    except ServiceError as e:
        expense_type_repo.rollback()
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to update expense type {type_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update expense type", error=str(e))


@expenses_bp.route('/expense-types/<uuid:type_id>', methods=['DELETE'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def delete_expense_type(type_id):
    """Expense types already used by costs are deactivated rather than deleted."""
    expense_type = expense_type_repo.get_for_organization(type_id, g.organization_id)
    if not expense_type:
        return api_response(status_code=404, message="Expense type not found", error="Not Found")
    try:
        if cost_repo.is_type_in_use(expense_type.id):
            expense_type.is_active = False
            expense_type_repo.commit()
            return api_response(data=model_to_dict(expense_type), message="Expense type is in use and was deactivated")
        expense_type_repo.delete(type_id)
        return api_response(message="Expense type deleted")
    except Exception as e:
        logger.exception(f"Failed to delete expense type {type_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete expense type", error=str(e))


@expenses_bp.route('/expenses', methods=['GET'])
@token_required
def get_expenses():
    """Additional costs. Workers see their own; managers see a week (optionally one worker)."""
    if g.current_user.role == ROLE_WORKER:
        worker = worker_repo.get_by_user_id(g.current_user.id)
        if not worker:
            return api_response(status_code=403, message="Worker profile not found", error="Forbidden")
        return api_response(data=[cost_to_dict(c) for c in cost_repo.get_for_worker(worker.id)])

    try:
        week_start = parse_week_start(request.args.get('week_start'))
        worker_id = to_uuid(request.args.get('worker_id'))
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")

    costs = cost_repo.get_for_organization_in_range(
        g.organization_id, week_start, week_start + timedelta(days=6), worker_id=worker_id
    )
    return api_response(data=[cost_to_dict(c) for c in costs])


@expenses_bp.route('/expenses', methods=['POST'])
@token_required
@worker_required
def record_expense():
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")
    try:
        cost = expense_service.record_cost(g.worker, data)
        return api_response(data=cost_to_dict(cost), message="Expense recorded", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to record expense for worker {g.worker.id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to record expense", error=str(e))
