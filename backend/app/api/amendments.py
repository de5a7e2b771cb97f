import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import (
    TimeAmendmentRepository, ClockEntryRepository, ClockEntryHistoryRepository, JobRepository,
    WorkerRepository, NotificationRepository,
)
from ..services.amendment_service import AmendmentService
from ..services.clock_service import ClockService
from ..services.notification_service import NotificationService
from ..services.approvals import STATUSES
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, worker_required, MANAGEMENT_ROLES, ROLE_WORKER
from .utils import api_response, model_to_dict, service_error_response

logger = logging.getLogger(__name__)

amendments_bp = Blueprint('amendments', __name__, url_prefix='/api/amendments')
repo = TimeAmendmentRepository()
clock_repo = ClockEntryRepository()
worker_repo = WorkerRepository()
notification_service = NotificationService(NotificationRepository())
clock_service = ClockService(clock_repo, ClockEntryHistoryRepository(), JobRepository(), notification_service)
amendment_service = AmendmentService(repo, clock_repo, clock_service, notification_service)


def amendment_to_dict(amendment):
    data = model_to_dict(amendment)
    data['worker_name'] = amendment.worker.name if amendment.worker else None
    entry = amendment.clock_entry
    if entry:
        data['original_clock_in'] = entry.clock_in.isoformat() if entry.clock_in else None
        data['original_clock_out'] = entry.clock_out.isoformat() if entry.clock_out else None
        data['job_name'] = entry.job.name if entry.job else None
    return data


@amendments_bp.route('', methods=['GET'])
@token_required
def get_amendments():
    """Managers see the organization's requests; workers see their own."""
    status = request.args.get('status')
    if status and status not in STATUSES:
        return api_response(status_code=400, message="Invalid status value", error="Bad Request")

    if g.current_user.role == ROLE_WORKER:
        worker = worker_repo.get_by_user_id(g.current_user.id)
        if not worker:
            return api_response(status_code=403, message="Worker profile not found", error="Forbidden")
        amendments = repo.get_for_worker(worker.id)
        if status:
            amendments = [a for a in amendments if a.status == status]
    else:
        amendments = repo.get_all_for_organization(g.organization_id, status=status)

    return api_response(data=[amendment_to_dict(a) for a in amendments])


@amendments_bp.route('', methods=['POST'])
@token_required
@worker_required
def submit_amendment():
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        amendment = amendment_service.submit(g.worker, data)
        return api_response(data=amendment_to_dict(amendment), message="Amendment submitted", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to submit amendment for worker {g.worker.id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to submit amendment", error=str(e))


@amendments_bp.route('/<uuid:amendment_id>/<decision>', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def decide_amendment(amendment_id, decision):
    """Approve or reject a pending amendment."""
    if decision not in ('approve', 'reject'):
        return api_response(status_code=404, message="Not found", error="Not Found")

    amendment = repo.get_for_organization(amendment_id, g.organization_id)
    if not amendment:
        return api_response(status_code=404, message="Amendment not found", error="Not Found")

    data = request.get_json(silent=True) or {}
    try:
        amendment = amendment_service.decide(amendment, decision, g.current_user, data.get('manager_notes'))
        return api_response(data=amendment_to_dict(amendment), message=f"Amendment {amendment.status}")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to {decision} amendment {amendment_id}")
        traceback.print_exc()
        return api_response(status_code=500, message=f"Failed to {decision} amendment", error=str(e))
