import logging
import traceback
from flask import Blueprint, request, g
from ..repositories import JobRepository, ClockEntryRepository, PostcodeRepository
from ..services.job_service import DOCUMENT_FIELDS, JobService, job_documents
from ..services.geocoding_service import GeocodingService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, MANAGEMENT_ROLES
from .utils import api_response, model_to_dict, service_error_response

logger = logging.getLogger(__name__)

jobs_bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')
repo = JobRepository()
clock_repo = ClockEntryRepository()
job_service = JobService(repo, clock_repo, GeocodingService(PostcodeRepository()))


def job_to_dict(job):
    """Job fields plus the documents to accept before clocking in. Workers never see hidden documents."""
    data = model_to_dict(job)
    data['documents'] = job_documents(job)
    if g.current_user.role == 'WORKER' and not job.show_rams_and_site_info:
        for field in DOCUMENT_FIELDS:
            data[field] = None
    return data


@jobs_bp.route('', methods=['GET'])
@token_required
def get_jobs():
    """Jobs of the organization with current and total worker counts. Workers only see active jobs."""
    only_active = request.args.get('active', 'false').lower() == 'true' or g.current_user.role == 'WORKER'
    results = []
    for job, counts in job_service.list_jobs(g.organization_id, active_only=only_active):
        job_data = job_to_dict(job)
        job_data.update(counts)
        results.append(job_data)
    return api_response(data=results)


@jobs_bp.route('', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def create_job():
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        job = job_service.create_job(g.organization_id, data)
        return api_response(data=job_to_dict(job), message="Job created successfully", status_code=201)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to create job")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create job", error=str(e))


@jobs_bp.route('/<uuid:job_id>', methods=['GET'])
@token_required
def get_job(job_id):
    job = repo.get_for_organization(job_id, g.organization_id)
    if not job:
        return api_response(status_code=404, message="Job not found", error="Not Found")
    return api_response(data=job_to_dict(job))


@jobs_bp.route('/<uuid:job_id>', methods=['PUT'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def update_job(job_id):
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    job = repo.get_for_organization(job_id, g.organization_id)
    if not job:
        return api_response(status_code=404, message="Job not found", error="Not Found")

    try:
        job = job_service.update_job(job, data)
        return api_response(data=job_to_dict(job), message="Job updated successfully")
    except ServiceError as e:
        repo.rollback()
        return service_error_response(e)
    except Exception as e:
        repo.rollback()
        logger.exception(f"Failed to update job {job_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update job", error=str(e))


@jobs_bp.route('/<uuid:job_id>', methods=['DELETE'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def delete_job(job_id):
    """Delete a job without clock history; jobs with history are deactivated instead."""
    job = repo.get_for_organization(job_id, g.organization_id)
    if not job:
        return api_response(status_code=404, message="Job not found", error="Not Found")

    try:
        if clock_repo.get_job_worker_counts(g.organization_id).get(job.id):
            job.is_active = False
            repo.commit()
            return api_response(data=model_to_dict(job), message="Job has clock history and was deactivated")
        repo.delete(job_id)
        return api_response(message="Job deleted successfully")
    except Exception as e:
        logger.exception(f"Failed to delete job {job_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete job", error=str(e))
