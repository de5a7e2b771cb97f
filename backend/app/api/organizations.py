import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import (
    OrganizationRepository, SubscriptionUsageRepository, UserRepository, TutorialCompletionRepository,
    WorkerRepository, JobRepository, ClockEntryRepository, ClockEntryHistoryRepository,
    TimeAmendmentRepository, ExpenseTypeRepository, AdditionalCostRepository,
    ReportLineItemRepository, NotificationRepository, AuditEventRepository,
)
from ..services.organization_service import OrganizationService
from ..services.subscription_service import SubscriptionService
from ..errors import ServiceError, DeletionCascadeError
from ..auth_utils import token_required, role_required, encode_auth_token, ROLE_SUPER_ADMIN
from .utils import api_response, model_to_dict, user_to_dict, service_error_response

logger = logging.getLogger(__name__)

organizations_bp = Blueprint('organizations', __name__, url_prefix='/api/organizations')

organization_repo = OrganizationRepository()
user_repo = UserRepository()
worker_repo = WorkerRepository()
usage_repo = SubscriptionUsageRepository()
audit_repo = AuditEventRepository()
subscription_service = SubscriptionService(organization_repo, usage_repo, user_repo, worker_repo, audit_repo)
organization_service = OrganizationService(
    organization_repo=organization_repo,
    user_repo=user_repo,
    worker_repo=worker_repo,
    job_repo=JobRepository(),
    clock_repo=ClockEntryRepository(),
    history_repo=ClockEntryHistoryRepository(),
    amendment_repo=TimeAmendmentRepository(),
    expense_type_repo=ExpenseTypeRepository(),
    additional_cost_repo=AdditionalCostRepository(),
    line_item_repo=ReportLineItemRepository(),
    notification_repo=NotificationRepository(),
    usage_repo=usage_repo,
    audit_repo=audit_repo,
    tutorial_repo=TutorialCompletionRepository(),
    subscription_service=subscription_service,
)


@organizations_bp.route('', methods=['POST'])
def create_organization():
    """Public sign-up: create an organization on a trial with its super admin."""
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        organization, admin = organization_service.create_organization(data)
        token = encode_auth_token(admin.id)
        if isinstance(token, Exception):
            token = None
        return api_response(data={
            'organization': model_to_dict(organization),
            'user': user_to_dict(admin),
            'token': token
        }, message="Organization created successfully", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to create organization")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create organization", error=str(e))


@organizations_bp.route('/current', methods=['GET'])
@token_required
def get_current_organization():
    return api_response(data=model_to_dict(g.organization))


@organizations_bp.route('/current', methods=['PUT'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def update_current_organization():
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        organization = organization_service.update_settings(g.organization, data)
        return api_response(data=model_to_dict(organization), message="Organization updated successfully")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to update organization {g.organization_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update organization", error=str(e))


@organizations_bp.route('/current', methods=['DELETE'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def delete_current_organization():
    """
    Delete the caller's organization and all of its data.
    A failed step rolls back and is named in the response.
    """
    try:
        steps = organization_service.delete_organization(g.organization, g.current_user)
        return api_response(data={'steps': steps}, message="Organization deleted successfully")
    except DeletionCascadeError as e:
        return api_response(
            data={'failed_step': e.step, 'completed_steps': e.completed_steps},
            status_code=500,
            message=f"Failed to delete organization at step: {e.step}",
            error=str(e.cause)
        )
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to delete organization {g.organization_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete organization", error=str(e))
