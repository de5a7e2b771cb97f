import logging
import traceback
from flask import Blueprint, request
from ..repositories import PostcodeRepository
from ..services.geocoding_service import GeocodingService
from ..errors import ServiceError
from ..auth_utils import token_required, role_required, MANAGEMENT_ROLES, ROLE_SUPER_ADMIN
from .utils import api_response, service_error_response

logger = logging.getLogger(__name__)

geocode_bp = Blueprint('geocode', __name__, url_prefix='/api/geocode')
geocoding_service = GeocodingService(PostcodeRepository())

MAX_IMPORT_ROWS = 50000


@geocode_bp.route('/postcode', methods=['POST'])
@token_required
@role_required(*MANAGEMENT_ROLES)
def geocode_postcode():
    """Resolve a UK postcode to coordinates."""
    data = request.get_json(silent=True) or {}
    try:
        result = geocoding_service.geocode(data.get('postcode'))
        return api_response(data=result)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Postcode lookup failed")
        traceback.print_exc()
        return api_response(status_code=500, message="Postcode lookup failed", error=str(e))


@geocode_bp.route('/import', methods=['POST'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def import_postcodes():
    """Bulk-load the local postcode cache from an uploaded CSV."""
    upload = request.files.get('file')
    if not upload:
        return api_response(status_code=400, message="No file provided", error="Bad Request")

    try:
        content = upload.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        return api_response(status_code=400, message="File must be UTF-8 encoded CSV", error="Bad Request")

    try:
        result = geocoding_service.import_csv(content, limit=MAX_IMPORT_ROWS)
        return api_response(data=result, message=f"Imported {result['imported']} postcodes")
    except Exception as e:
        logger.exception("Postcode import failed")
        traceback.print_exc()
        return api_response(status_code=500, message="Postcode import failed", error=str(e))
