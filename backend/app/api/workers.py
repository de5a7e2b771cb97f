import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import (
    OrganizationRepository, SubscriptionUsageRepository, UserRepository, WorkerRepository,
    ClockEntryRepository, AuditEventRepository, NotificationRepository, AdditionalCostRepository,
    ReportLineItemRepository,
)
from ..services.worker_service import WorkerService
from ..services.subscription_service import SubscriptionService
from ..services.email_service import EmailService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, MANAGEMENT_ROLES
from .utils import api_response, model_to_dict, models_to_list, service_error_response

logger = logging.getLogger(__name__)

workers_bp = Blueprint('workers', __name__, url_prefix='/api/workers')
repo = WorkerRepository()
user_repo = UserRepository()
subscription_service = SubscriptionService(
    OrganizationRepository(), SubscriptionUsageRepository(), user_repo, repo, AuditEventRepository()
)
worker_service = WorkerService(
    repo, user_repo, ClockEntryRepository(), subscription_service, EmailService(),
    NotificationRepository(), AdditionalCostRepository(), ReportLineItemRepository(),
)


def _get_worker(worker_id):
    return repo.get_for_organization(worker_id, g.organization_id)


@workers_bp.route('', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_workers():
    """Get all workers in the current organization, optionally filtered by name/email or active status."""
    only_active = request.args.get('active', 'false').lower() == 'true'
    search = request.args.get('search')
    workers = repo.get_all_for_organization(g.organization_id, active_only=only_active, search=search)
    return api_response(
        data=models_to_list(workers),
        meta={'capacity': subscription_service.worker_capacity(g.organization)}
    )


@workers_bp.route('', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def create_worker():
    """Create a worker with its login and email an invitation."""
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        worker, temporary_password, email_sent = worker_service.create_worker(g.organization, data)
        return api_response(data={
            'worker': model_to_dict(worker),
            'temporary_password': temporary_password,
            'email_sent': email_sent
        }, message="Worker created successfully", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to create worker")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create worker", error=str(e))


@workers_bp.route('/<uuid:worker_id>', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_worker(worker_id):
    worker = _get_worker(worker_id)
    if not worker:
        return api_response(status_code=404, message="Worker not found", error="Not Found")
    return api_response(data=model_to_dict(worker))


@workers_bp.route('/<uuid:worker_id>', methods=['PUT'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def update_worker(worker_id):
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    worker = _get_worker(worker_id)
    if not worker:
        return api_response(status_code=404, message="Worker not found", error="Not Found")

    try:
        worker = worker_service.update_worker(worker, data)
        return api_response(data=model_to_dict(worker), message="Worker updated successfully")
    except ServiceError as e:
        repo.rollback()
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to update worker {worker_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update worker", error=str(e))


@workers_bp.route('/<uuid:worker_id>/activate', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def activate_worker(worker_id):
    return _set_active(worker_id, True)


@workers_bp.route('/<uuid:worker_id>/deactivate', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def deactivate_worker(worker_id):
    return _set_active(worker_id, False)


def _set_active(worker_id, active):
    worker = _get_worker(worker_id)
    if not worker:
        return api_response(status_code=404, message="Worker not found", error="Not Found")
    try:
        worker = worker_service.set_active(g.organization, worker, active)
        return api_response(data=model_to_dict(worker), message="Worker activated" if active else "Worker deactivated")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to change active state of worker {worker_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update worker", error=str(e))


@workers_bp.route('/<uuid:worker_id>', methods=['DELETE'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def delete_worker(worker_id):
    worker = _get_worker(worker_id)
    if not worker:
        return api_response(status_code=404, message="Worker not found", error="Not Found")
    try:
        worker_service.delete_worker(worker)
        return api_response(message="Worker deleted successfully")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to delete worker {worker_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete worker", error=str(e))
