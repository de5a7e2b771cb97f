import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import ClockEntryRepository, NotificationRepository
from ..services.overtime_service import OvertimeService
from ..services.notification_service import NotificationService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, MANAGEMENT_ROLES
from .utils import api_response, model_to_dict, service_error_response

logger = logging.getLogger(__name__)

overtime_bp = Blueprint('overtime', __name__, url_prefix='/api/overtime')
clock_repo = ClockEntryRepository()
overtime_service = OvertimeService(clock_repo, NotificationService(NotificationRepository()))


@overtime_bp.route('', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_overtime_requests():
    return api_response(data=overtime_service.list_requests(g.organization_id))


@overtime_bp.route('/<uuid:entry_id>/<decision>', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def decide_overtime(entry_id, decision):
    if decision not in ('approve', 'reject'):
        return api_response(status_code=404, message="Not found", error="Not Found")

    entry = clock_repo.get_for_organization(entry_id, g.organization_id)
    if not entry or not entry.is_overtime:
        return api_response(status_code=404, message="Overtime request not found", error="Not Found")

    data = request.get_json(silent=True) or {}
    try:
        entry = overtime_service.decide(entry, decision, g.current_user, data.get('reason'))
        return api_response(data=model_to_dict(entry), message=f"Overtime {entry.ot_status}")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        clock_repo.rollback()
        logger.exception(f"Failed to {decision} overtime entry {entry_id}")
        traceback.print_exc()
        return api_response(status_code=500, message=f"Failed to {decision} overtime", error=str(e))
