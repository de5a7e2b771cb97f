import logging
import traceback
from flask import Blueprint, g
from ..repositories import WorkerRepository, JobRepository, ClockEntryRepository, TimeAmendmentRepository
from ..services.dashboard_service import DashboardService
from ..auth_utils import token_required, role_required, MANAGEMENT_ROLES
from .utils import api_response

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')
dashboard_service = DashboardService(
    WorkerRepository(), JobRepository(), ClockEntryRepository(), TimeAmendmentRepository()
)


@dashboard_bp.route('/summary', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_summary():
    """Live overview of the organization for managers."""
    try:
        return api_response(data=dashboard_service.get_summary(g.organization_id))
    except Exception as e:
        logger.exception(f"Failed to build dashboard summary for organization {g.organization_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to load dashboard", error=str(e))
