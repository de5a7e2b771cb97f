import logging
import traceback
from flask import Blueprint, request, g
from sqlalchemy.exc import IntegrityError
from ..repositories import (
    OrganizationRepository, SubscriptionUsageRepository, UserRepository, WorkerRepository, AuditEventRepository,
    TutorialCompletionRepository,
)
from ..services.account_service import AccountService
from ..services.subscription_service import SubscriptionService
from ..services.email_service import EmailService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, ROLE_SUPER_ADMIN, ROLE_MANAGER
from .utils import api_response, user_to_dict, service_error_response

logger = logging.getLogger(__name__)

managers_bp = Blueprint('managers', __name__, url_prefix='/api/managers')
user_repo = UserRepository()
tutorial_repo = TutorialCompletionRepository()
audit_repo = AuditEventRepository()
subscription_service = SubscriptionService(
    OrganizationRepository(), SubscriptionUsageRepository(), user_repo, WorkerRepository(), audit_repo
)
account_service = AccountService(user_repo, audit_repo, EmailService(), subscription_service=subscription_service)


def _get_manager(manager_id):
    manager = user_repo.get_for_organization(manager_id, g.organization_id)
    if not manager or manager.role != ROLE_MANAGER:
        return None
    return manager


@managers_bp.route('', methods=['GET'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def get_managers():
    managers = user_repo.get_by_role(ROLE_MANAGER, g.organization_id)
    return api_response(
        data=[user_to_dict(m) for m in managers],
        meta={'capacity': subscription_service.manager_capacity(g.organization)}
    )


@managers_bp.route('', methods=['POST'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def create_manager():
    """Create a manager and email an invitation with a temporary password."""
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        manager, temporary_password, email_sent = account_service.create_manager(g.organization, data)
        return api_response(data={
            'manager': user_to_dict(manager),
            'temporary_password': temporary_password,
            'email_sent': email_sent
        }, message="Manager created successfully", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to create manager")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create manager", error=str(e))


@managers_bp.route('/<uuid:manager_id>', methods=['GET'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def get_manager(manager_id):
    manager = _get_manager(manager_id)
    if not manager:
        return api_response(status_code=404, message="Manager not found", error="Not Found")
    return api_response(data=user_to_dict(manager))


@managers_bp.route('/<uuid:manager_id>', methods=['PUT'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def update_manager(manager_id):
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    manager = _get_manager(manager_id)
    if not manager:
        return api_response(status_code=404, message="Manager not found", error="Not Found")

    try:
        manager = account_service.update_manager(manager, data)
        return api_response(data=user_to_dict(manager), message="Manager updated successfully")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to update manager {manager_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update manager", error=str(e))


@managers_bp.route('/<uuid:manager_id>/deactivate', methods=['POST'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def deactivate_manager(manager_id):
    if not _get_manager(manager_id):
        return api_response(status_code=404, message="Manager not found", error="Not Found")
    user_repo.deactivate(manager_id, g.organization_id)
    return api_response(message="Manager deactivated")


@managers_bp.route('/<uuid:manager_id>/activate', methods=['POST'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def activate_manager(manager_id):
    manager = _get_manager(manager_id)
    if not manager:
        return api_response(status_code=404, message="Manager not found", error="Not Found")
    user_repo.activate(manager_id, g.organization_id)
    return api_response(message="Manager activated")


@managers_bp.route('/<uuid:manager_id>', methods=['DELETE'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def delete_manager(manager_id):
    if not _get_manager(manager_id):
        return api_response(status_code=404, message="Manager not found", error="Not Found")
    try:
        tutorial_repo.delete_for_users([manager_id])
        user_repo.delete(manager_id)
        return api_response(message="Manager deleted successfully")
    except IntegrityError:
        user_repo.rollback()
        return api_response(status_code=409, message="Manager has recorded activity; deactivate instead", error="Conflict")
    except Exception as e:
        logger.exception(f"Failed to delete manager {manager_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete manager", error=str(e))
