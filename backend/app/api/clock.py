import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import (
    ClockEntryRepository, ClockEntryHistoryRepository, JobRepository, WorkerRepository, NotificationRepository,
)
from ..services.clock_service import ClockService
from ..services.notification_service import NotificationService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, worker_required, MANAGEMENT_ROLES, ROLE_WORKER
from ..utils import parse_week_start, week_bounds, to_uuid
from .utils import api_response, model_to_dict, models_to_list, service_error_response

logger = logging.getLogger(__name__)

clock_bp = Blueprint('clock', __name__, url_prefix='/api/clock')
repo = ClockEntryRepository()
history_repo = ClockEntryHistoryRepository()
worker_repo = WorkerRepository()
clock_service = ClockService(repo, history_repo, JobRepository(), NotificationService(NotificationRepository()))


def entry_to_dict(entry):
    data = model_to_dict(entry)
    data['worker_name'] = entry.worker.name if entry.worker else None
    data['job_name'] = entry.job.name if entry.job else None
    data['job_code'] = entry.job.code if entry.job else None
    return data


@clock_bp.route('/in', methods=['POST'])
@token_required
@worker_required
def clock_in():
    """Clock in at a job; the position must be inside the job's geofence."""
    data = request.get_json(silent=True) or {}
    if not data.get('job_id'):
        return api_response(status_code=400, message="job_id is required", error="Bad Request")

    try:
        entry = clock_service.clock_in(
            g.worker,
            data.get('job_id'),
            data.get('latitude'),
            data.get('longitude'),
            overtime=bool(data.get('overtime')),
            photo=data.get('photo'),
            accept_documents=bool(data.get('accept_documents')),
        )
        return api_response(data=entry_to_dict(entry), message="Clocked in successfully", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to clock in worker {g.worker.id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to clock in", error=str(e))


@clock_bp.route('/out', methods=['POST'])
@token_required
@worker_required
def clock_out():
    data = request.get_json(silent=True) or {}
    try:
        entry = clock_service.clock_out(g.worker, data.get('latitude'), data.get('longitude'), photo=data.get('photo'))
        return api_response(data=entry_to_dict(entry), message="Clocked out successfully")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to clock out worker {g.worker.id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to clock out", error=str(e))


@clock_bp.route('/current', methods=['GET'])
@token_required
@worker_required
def get_current_entry():
    entry = repo.get_open_for_worker(g.worker.id)
    return api_response(data=entry_to_dict(entry) if entry else None)


@clock_bp.route('/entries', methods=['GET'])
@token_required
def get_entries():
    """
    Clock entries for a week. Workers see their own; managers pass
    worker_id for one worker or omit it for the whole organization.
    """
    try:
        week_start = parse_week_start(request.args.get('week_start'))
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")
    start, end = week_bounds(week_start)

    user = g.current_user
    if user.role == ROLE_WORKER:
        worker = worker_repo.get_by_user_id(user.id)
        if not worker:
            return api_response(status_code=403, message="Worker profile not found", error="Forbidden")
        entries = repo.get_for_worker_in_range(worker.id, start, end)
    else:
        try:
            worker_id = to_uuid(request.args.get('worker_id'))
        except ValueError:
            return api_response(status_code=400, message="Invalid worker_id format", error="Bad Request")
        if worker_id:
            worker = worker_repo.get_for_organization(worker_id, g.organization_id)
            if not worker:
                return api_response(status_code=404, message="Worker not found", error="Not Found")
            entries = repo.get_for_worker_in_range(worker.id, start, end)
        else:
            entries = repo.get_for_organization_in_range(g.organization_id, start, end)

    return api_response(data=[entry_to_dict(e) for e in entries])


@clock_bp.route('/entries', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def create_manual_entry():
    """Manager-entered entry for a worker."""
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        worker_id = to_uuid(data.get('worker_id'))
    except ValueError:
        return api_response(status_code=400, message="Invalid worker_id format", error="Bad Request")
    worker = worker_repo.get_for_organization(worker_id, g.organization_id) if worker_id else None
    if not worker:
        return api_response(status_code=404, message="Worker not found", error="Not Found")

    try:
        entry = clock_service.create_manual_entry(worker, data, g.current_user)
        return api_response(data=entry_to_dict(entry), message="Manual entry created", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        repo.rollback()
        logger.exception(f"Failed to create manual entry for worker {worker_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create manual entry", error=str(e))


@clock_bp.route('/entries/<uuid:entry_id>/history', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_entry_history(entry_id):
    entry = repo.get_for_organization(entry_id, g.organization_id)
    if not entry:
        return api_response(status_code=404, message="Clock entry not found", error="Not Found")
    return api_response(data=models_to_list(history_repo.get_for_entry(entry.id)))
