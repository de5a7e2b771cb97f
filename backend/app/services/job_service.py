import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from ..errors import ConflictError, GeocodingError, ValidationError
from .geo import has_coordinates, validate_coordinates, validate_geofence_radius
from .geocoding_service import compose_address, format_postcode, is_valid_postcode, parse_address

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ('address_line_1', 'address_line_2', 'city', 'county', 'postcode')
DOCUMENT_FIELDS = {
    'terms_and_conditions_url': 'Terms and Conditions',
    'waiver_url': 'Waiver/Consent Form',
}


def job_documents(job) -> Dict[str, str]:
    """
    Documents a worker must accept before clocking in at the job, keyed by
    field name. Empty when the job has none or hides them from workers.
    """
    if not job.show_rams_and_site_info:
        return {}
    return {field: getattr(job, field) for field in DOCUMENT_FIELDS if getattr(job, field)}


def _document_url(field: str, value) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a URL')
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationError(f'{field} must be an http(s) URL')
    return url


class JobService:
    def __init__(self, job_repo, clock_repo, geocoding_service):
        self.job_repo = job_repo
        self.clock_repo = clock_repo
        self.geocoding_service = geocoding_service

    def list_jobs(self, organization_id, active_only: bool = False):
        """
        Jobs of an organization with per-job worker counts.

        Returns:
            List of (job, counts) tuples, counts holding active_workers and total_workers
        """
        jobs = self.job_repo.get_all_for_organization(organization_id, active_only=active_only)
        counts = self.clock_repo.get_job_worker_counts(organization_id)
        empty = {'active_workers': 0, 'total_workers': 0}
        return [(job, counts.get(job.id, empty)) for job in jobs]

    def _address_fields(self, data: Dict[str, Any], job=None) -> Dict[str, Optional[str]]:
        """Structured address from the payload, splitting a legacy single line when that is all there is."""
        fields = {key: getattr(job, key) if job else None for key in ADDRESS_FIELDS}
        if any(key in data for key in ADDRESS_FIELDS):
            for key in ADDRESS_FIELDS:
                if key in data:
                    value = data[key]
                    fields[key] = value.strip() if isinstance(value, str) and value.strip() else None
        elif data.get('address'):
            fields.update(parse_address(data['address']))

        if fields['postcode']:
            if not is_valid_postcode(fields['postcode']):
                raise ValidationError(f"Invalid postcode format: \"{fields['postcode']}\"")
            fields['postcode'] = format_postcode(fields['postcode'])
        return fields

    def _resolve_coordinates(self, latitude, longitude, postcode):
        """
        Use the given coordinates, or geocode the postcode when they are
        missing or (0, 0). Never returns (0, 0).
        """
        if latitude not in (None, '') and longitude not in (None, ''):
            try:
                lat, lng = validate_coordinates(latitude, longitude)
            except ValueError as e:
                raise ValidationError(str(e))
            if has_coordinates(lat, lng):
                return lat, lng
        if not postcode:
            return None, None
        try:
            result = self.geocoding_service.geocode(postcode)
        except GeocodingError as e:
            if e.status_code in (400, 404):
                raise ValidationError(f"Could not locate postcode {postcode}: {e.message}")
            raise
        return result['latitude'], result['longitude']

    def create_job(self, organization_id, data: Dict[str, Any]):
        code = (data.get('code') or '').strip()
        name = (data.get('name') or '').strip()
        if not code:
            raise ValidationError('Job code is required')
        if not name:
            raise ValidationError('Job name is required')
        if self.job_repo.get_by_code(code, organization_id):
            raise ConflictError(f'A job with code {code} already exists')
        try:
            radius = validate_geofence_radius(data.get('geofence_radius'))
        except ValueError as e:
            raise ValidationError(str(e))

        documents = {field: _document_url(field, data.get(field)) for field in DOCUMENT_FIELDS}

        address = self._address_fields(data)
        latitude, longitude = self._resolve_coordinates(data.get('latitude'), data.get('longitude'), address['postcode'])

        job = self.job_repo.create(
            organization_id=organization_id,
            code=code,
            name=name,
            address=compose_address(**address) or None,
            latitude=latitude,
            longitude=longitude,
            geofence_radius=radius,
            is_active=data.get('is_active', True),
            show_rams_and_site_info=bool(data.get('show_rams_and_site_info', True)),
            **documents,
            **address
        )
        logger.info(f"Job {job.id} ({code}) created in organization {organization_id}")
        return job

    def update_job(self, job, data: Dict[str, Any]):
        if 'code' in data:
            code = (data.get('code') or '').strip()
            if not code:
                raise ValidationError('Job code cannot be empty')
            existing = self.job_repo.get_by_code(code, job.organization_id)
            if existing and existing.id != job.id:
                raise ConflictError(f'A job with code {code} already exists')
            job.code = code
        if 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                raise ValidationError('Job name cannot be empty')
            job.name = name
        if 'geofence_radius' in data:
            try:
                job.geofence_radius = validate_geofence_radius(data['geofence_radius'])
            except ValueError as e:
                raise ValidationError(str(e))
        if 'is_active' in data:
            job.is_active = bool(data['is_active'])
        for field in DOCUMENT_FIELDS:
            if field in data:
                setattr(job, field, _document_url(field, data[field]))
        if 'show_rams_and_site_info' in data:
            job.show_rams_and_site_info = bool(data['show_rams_and_site_info'])

        address = self._address_fields(data, job)
        postcode_changed = address['postcode'] != job.postcode
        for key, value in address.items():
            setattr(job, key, value)
        job.address = compose_address(**address) or None

        if 'latitude' in data or 'longitude' in data:
            job.latitude, job.longitude = self._resolve_coordinates(
                data.get('latitude'), data.get('longitude'), job.postcode
            )
        elif postcode_changed or not has_coordinates(job.latitude, job.longitude):
            job.latitude, job.longitude = self._resolve_coordinates(None, None, job.postcode)

        self.job_repo.commit()
        return job
