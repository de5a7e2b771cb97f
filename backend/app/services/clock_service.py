import os
import logging
from datetime import timedelta
from typing import Optional, List

from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..observability import time_tracking_metrics
from ..utils import utc_now, as_utc, hours_between, append_note, parse_iso_datetime, to_uuid
from .approvals import PENDING
from .geo import check_geofence, validate_coordinates
from .job_service import DOCUMENT_FIELDS, job_documents

logger = logging.getLogger(__name__)

AUTO_CLOCK_OUT_HOURS = int(os.environ.get('AUTO_CLOCK_OUT_HOURS', '12'))
AUTO_CLOCK_OUT_NOTE = 'Auto clocked-out after {hours} hours'
MAX_OVERTIME_HOURS = 3.0


def entry_hours(entry) -> float:
    hours = hours_between(entry.clock_in, entry.clock_out)
    if entry.is_overtime:
        hours = min(hours, MAX_OVERTIME_HOURS)
    return hours


class ClockService:
    def __init__(self, clock_repo, history_repo, job_repo, notification_service=None):
        self.clock_repo = clock_repo
        self.history_repo = history_repo
        self.job_repo = job_repo
        self.notification_service = notification_service

    def record_history(self, entry, change_type: str, old_clock_in, old_clock_out, old_total_hours,
                       changed_by=None, amendment_id=None, notes: Optional[str] = None, metadata: Optional[dict] = None):
        """Stage a history row describing a change already applied to the entry."""
        return self.history_repo.add(
            clock_entry_id=entry.id,
            changed_by=changed_by,
            changed_at=utc_now(),
            change_type=change_type,
            old_clock_in=old_clock_in,
            new_clock_in=entry.clock_in,
            old_clock_out=old_clock_out,
            new_clock_out=entry.clock_out,
            old_total_hours=old_total_hours,
            new_total_hours=entry.total_hours,
            amendment_id=amendment_id,
            notes=notes,
            change_metadata=metadata,
        )

    def clock_in(self, worker, job_id, latitude, longitude, overtime: bool = False, photo: Optional[str] = None,
                 accept_documents: bool = False):
        """
        Open a clock entry for a worker at a job. A job with documents
        shown to workers needs them accepted; the entry records when.

        Raises:
            PermissionDeniedError: Worker inactive, or position outside the geofence
            NotFoundError: Job missing or in another organization
            ValidationError: Job inactive, bad coordinates or job documents not accepted
            ConflictError: Worker already clocked in
        """
        if not worker.is_active:
            raise PermissionDeniedError('Worker account is inactive')
        try:
            lat, lng = validate_coordinates(latitude, longitude)
        except ValueError as e:
            raise ValidationError(str(e))

        try:
            job_id = to_uuid(job_id)
        except ValueError:
            raise ValidationError('Invalid job_id')
        if not job_id:
            raise ValidationError('job_id is required')
        job = self.job_repo.get_for_organization(job_id, worker.organization_id)
        if not job:
            raise NotFoundError('Job not found')
        if not job.is_active:
            raise ValidationError('Job is not active')
        if self.clock_repo.get_open_for_worker(worker.id):
            raise ConflictError('Already clocked in')
        documents = job_documents(job)
        if documents and not accept_documents:
            names = ' and '.join(DOCUMENT_FIELDS[field] for field in documents)
            raise ValidationError(
                f'Accept the {names} for {job.name} before clocking in',
                details={'documents': documents},
            )

        inside, distance = check_geofence(job, lat, lng)
        if not inside:
            time_tracking_metrics.increment_clock_event('geofence_rejected')
            if distance is None:
                raise PermissionDeniedError('Job location is not set; ask a manager to add its postcode')
            raise PermissionDeniedError(
                f'You are {distance:.0f}m from {job.name}; you must be within {job.geofence_radius}m to clock in',
                details={'distance_m': distance, 'radius_m': job.geofence_radius},
            )

        now = utc_now()
        entry = self.clock_repo.create(
            organization_id=worker.organization_id,
            worker_id=worker.id,
            job_id=job.id,
            clock_in=now,
            clock_in_lat=lat,
            clock_in_lng=lng,
            clock_in_photo=photo,
            documents_accepted_at=now if documents else None,
            is_overtime=bool(overtime),
            ot_status=PENDING if overtime else None,
            ot_requested_at=now if overtime else None,
        )
        time_tracking_metrics.increment_clock_event('overtime_in' if overtime else 'in')
        logger.info(f"Worker {worker.id} clocked in at job {job.id} ({distance}m from centre)")
        return entry

    def clock_out(self, worker, latitude=None, longitude=None, photo: Optional[str] = None):
        entry = self.clock_repo.get_open_for_worker(worker.id)
        if not entry:
            raise ConflictError('Not clocked in')
        if latitude is not None and longitude is not None:
            try:
                entry.clock_out_lat, entry.clock_out_lng = validate_coordinates(latitude, longitude)
            except ValueError as e:
                raise ValidationError(str(e))
        entry.clock_out = utc_now()
        entry.clock_out_photo = photo
        entry.total_hours = entry_hours(entry)
        self.clock_repo.commit()
        time_tracking_metrics.increment_clock_event('out')
        logger.info(f"Worker {worker.id} clocked out of entry {entry.id} ({entry.total_hours}h)")
        return entry

    def create_manual_entry(self, worker, data: dict, actor):
        """Manager-entered closed entry for a worker who could not clock in."""
        try:
            clock_in = parse_iso_datetime(data.get('clock_in'))
            clock_out = parse_iso_datetime(data.get('clock_out'))
        except ValueError:
            raise ValidationError('clock_in and clock_out must be ISO 8601 datetimes')
        if not clock_in or not clock_out:
            raise ValidationError('clock_in and clock_out are required')
        if clock_out <= clock_in:
            raise ValidationError('clock_out must be after clock_in')
        if clock_out > utc_now() + timedelta(minutes=5):
            raise ValidationError('Manual entries cannot be in the future')

        try:
            job_id = to_uuid(data.get('job_id'))
        except ValueError:
            raise ValidationError('Invalid job_id')
        job = self.job_repo.get_for_organization(job_id, worker.organization_id) if job_id else None
        if not job:
            raise NotFoundError('Job not found')

        is_overtime = bool(data.get('is_overtime'))
        entry = self.clock_repo.add(
            organization_id=worker.organization_id,
            worker_id=worker.id,
            job_id=job.id,
            clock_in=clock_in,
            clock_out=clock_out,
            manual_entry=True,
            notes=data.get('notes'),
            is_overtime=is_overtime,
            ot_status=PENDING if is_overtime else None,
            ot_requested_at=utc_now() if is_overtime else None,
            approved_by=actor.id,
            approved_at=utc_now(),
        )
        entry.total_hours = entry_hours(entry)
        self.clock_repo.flush()
        self.record_history(entry, 'manual_entry', None, None, None, changed_by=actor.id,
                            notes='Manual entry created by manager')
        self.clock_repo.commit()
        time_tracking_metrics.increment_clock_event('manual')
        return entry

    def auto_clock_out(self, now=None, max_hours: int = AUTO_CLOCK_OUT_HOURS) -> List:
        """
        Close every entry open for longer than max_hours at clock_in + max_hours.

        Returns:
            The entries that were closed
        """
        now = as_utc(now) if now else utc_now()
        stale = self.clock_repo.get_stale_open_entries(now - timedelta(hours=max_hours))
        note = AUTO_CLOCK_OUT_NOTE.format(hours=max_hours)
        closed = []
        for entry in stale:
            entry.clock_out = as_utc(entry.clock_in) + timedelta(hours=max_hours)
            entry.auto_clocked_out = True
            entry.total_hours = entry_hours(entry)
            entry.notes = append_note(entry.notes, note)
            self.record_history(entry, 'auto_clock_out', entry.clock_in, None, None, notes=note,
                                metadata={'max_hours': max_hours})
            if self.notification_service and entry.worker:
                self.notification_service.notify(
                    entry.worker,
                    'auto_clock_out',
                    'Automatically Clocked Out',
                    f'You were clocked out automatically after {max_hours} hours. '
                    'Submit a time amendment if the times are wrong.',
                    dedupe_key=f'auto_clock_out_{entry.id}',
                    commit=False,
                )
            closed.append(entry)
        if closed:
            self.clock_repo.commit()
            time_tracking_metrics.increment_clock_event('auto_out', len(closed))
            logger.info(f"Auto clocked-out {len(closed)} entr{'y' if len(closed) == 1 else 'ies'}")
        return closed
