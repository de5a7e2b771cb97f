import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import (
    OrganizationRepository, SubscriptionUsageRepository, UserRepository, WorkerRepository, AuditEventRepository,
)
from ..services.subscription_service import SubscriptionService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, ROLE_SUPER_ADMIN, MANAGEMENT_ROLES
from .utils import api_response, model_to_dict, models_to_list, service_error_response

logger = logging.getLogger(__name__)

subscription_bp = Blueprint('subscription', __name__, url_prefix='/api/subscription')
usage_repo = SubscriptionUsageRepository()
subscription_service = SubscriptionService(
    OrganizationRepository(), usage_repo, UserRepository(), WorkerRepository(), AuditEventRepository()
)


@subscription_bp.route('', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_subscription():
    """Current plan, limits, usage and plan history."""
    summary = subscription_service.get_summary(g.organization)
    summary['history'] = models_to_list(usage_repo.get_history(g.organization_id))
    return api_response(data=summary)


@subscription_bp.route('/upgrade', methods=['POST'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def upgrade_subscription():
    data = request.get_json(silent=True) or {}
    plan_type = data.get('plan_type')
    if not plan_type:
        return api_response(status_code=400, message="plan_type is required", error="Bad Request")

    try:
        usage = subscription_service.upgrade(g.organization, plan_type, g.current_user)
        return api_response(data={
            'usage': model_to_dict(usage),
            'subscription': subscription_service.get_summary(g.organization)
        }, message=f"Upgraded to {plan_type}")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to upgrade organization {g.organization_id} to {plan_type}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to upgrade subscription", error=str(e))
