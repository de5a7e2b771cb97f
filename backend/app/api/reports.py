import time
import logging
import traceback
from flask import Blueprint, request, g, send_file
from ..repositories import (
    ReportLineItemRepository, ClockEntryRepository, ClockEntryHistoryRepository, AdditionalCostRepository,
    JobRepository, WorkerRepository,
)
from ..services.clock_service import ClockService
from ..services.reports.line_item_service import LineItemService, line_item_to_dict, calculate_totals
from ..services.reports.export_service import ReportExportService
from ..observability import time_tracking_metrics
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, MANAGEMENT_ROLES
from ..utils import parse_week_start, week_bounds, to_uuid
from .utils import api_response, service_error_response

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')
line_item_repo = ReportLineItemRepository()
clock_repo = ClockEntryRepository()
worker_repo = WorkerRepository()
clock_service = ClockService(clock_repo, ClockEntryHistoryRepository(), JobRepository())
line_item_service = LineItemService(line_item_repo, clock_repo, AdditionalCostRepository(), clock_service)
export_service = ReportExportService()

EXPORT_MIMETYPES = {
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def _week_start_arg(source):
    return parse_week_start(source.get('week_start'))


@reports_bp.route('/line-items', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_line_items():
    """Line items of a week, generated from clock entries and costs on first request."""
    try:
        week_start = _week_start_arg(request.args)
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")

    try:
        items = line_item_service.get_or_generate(g.organization_id, week_start)
        return api_response(
            data=[line_item_to_dict(i) for i in items],
            meta={'week_start': week_start.isoformat(), 'totals': calculate_totals(items)}
        )
    except Exception as e:
        logger.exception(f"Failed to load line items for week {week_start}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to load line items", error=str(e))


@reports_bp.route('/line-items/regenerate', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def regenerate_line_items():
    """Discard the week's items, including manual edits, and rebuild them."""
    data = request.get_json(silent=True) or {}
    try:
        week_start = _week_start_arg(data or request.args)
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")

    try:
        items = line_item_service.regenerate(g.organization_id, week_start)
        return api_response(
            data=[line_item_to_dict(i) for i in items],
            message=f"Regenerated {len(items)} line items",
            meta={'week_start': week_start.isoformat(), 'totals': calculate_totals(items)}
        )
    except Exception as e:
        logger.exception(f"Failed to regenerate line items for week {week_start}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to regenerate line items", error=str(e))


@reports_bp.route('/line-items/<uuid:item_id>', methods=['PATCH'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def update_line_item(item_id):
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    try:
        item = line_item_service.get_item(item_id, g.organization_id)
        item = line_item_service.update_item(item, data, g.current_user)
        return api_response(data=line_item_to_dict(item), message="Line item updated")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to update line item {item_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update line item", error=str(e))


@reports_bp.route('/line-items/<uuid:item_id>', methods=['DELETE'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def delete_line_item(item_id):
    try:
        item = line_item_service.get_item(item_id, g.organization_id)
        line_item_service.delete_item(item)
        return api_response(message="Line item deleted")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to delete line item {item_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete line item", error=str(e))


@reports_bp.route('/totals', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def get_totals():
    try:
        week_start = _week_start_arg(request.args)
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")

    items = line_item_service.get_or_generate(g.organization_id, week_start)
    return api_response(data=calculate_totals(items))


@reports_bp.route('/export', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def export_week():
    """Invoice export of a week's line items, one invoice per worker."""
    output_type = (request.args.get('format') or 'csv').lower()
    if output_type not in EXPORT_MIMETYPES:
        return api_response(status_code=400, message="format must be csv or xlsx", error="Bad Request")
    try:
        week_start = _week_start_arg(request.args)
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")

    try:
        started = time.perf_counter()
        items = line_item_service.get_or_generate(g.organization_id, week_start)
        if output_type == 'xlsx':
            output, download_name = export_service.export_invoices_xlsx(items, week_start)
        else:
            output, download_name = export_service.export_invoices_csv(items, week_start)
        time_tracking_metrics.observe_export_latency(time.perf_counter() - started, output_type)
        return send_file(output, mimetype=EXPORT_MIMETYPES[output_type], as_attachment=True, download_name=download_name)
    except Exception as e:
        logger.exception(f"Failed to export week {week_start}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to export report", error=str(e))


@reports_bp.route('/timesheet', methods=['GET'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def export_timesheet():
    try:
        week_start = _week_start_arg(request.args)
        worker_id = to_uuid(request.args.get('worker_id'))
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")
    if not worker_id:
        return api_response(status_code=400, message="worker_id is required", error="Bad Request")

    worker = worker_repo.get_for_organization(worker_id, g.organization_id)
    if not worker:
        return api_response(status_code=404, message="Worker not found", error="Not Found")

    try:
        started = time.perf_counter()
        start, end = week_bounds(week_start)
        entries = clock_repo.get_for_worker_in_range(worker.id, start, end)
        output, download_name = export_service.export_timesheet_csv(worker, entries, week_start)
        time_tracking_metrics.observe_export_latency(time.perf_counter() - started, 'timesheet')
        return send_file(output, mimetype='text/csv', as_attachment=True, download_name=download_name)
    except Exception as e:
        logger.exception(f"Failed to export timesheet for worker {worker_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to export timesheet", error=str(e))
