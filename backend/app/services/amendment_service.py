import logging

from ..errors import ConflictError, NotFoundError, ValidationError
from ..utils import utc_now, to_uk_time, parse_iso_datetime, append_note, as_utc, to_uuid
from .approvals import APPROVED, PENDING, decide
from .clock_service import entry_hours

logger = logging.getLogger(__name__)

UK_DISPLAY_FORMAT = '%d/%m/%Y %H:%M'


def _display(value):
    local = to_uk_time(value)
    return local.strftime(UK_DISPLAY_FORMAT) if local else 'unchanged'


class AmendmentService:
    def __init__(self, amendment_repo, clock_repo, clock_service, notification_service):
        self.amendment_repo = amendment_repo
        self.clock_repo = clock_repo
        self.clock_service = clock_service
        self.notification_service = notification_service

    def submit(self, worker, data: dict):
        """
        File an amendment request for one of the worker's own entries.

        Raises:
            ValidationError: Missing reason or times, or times out of order
            NotFoundError: Entry missing or owned by another worker
            ConflictError: A pending request already exists for the entry
        """
        try:
            entry_id = to_uuid(data.get('clock_entry_id'))
        except ValueError:
            raise ValidationError('Invalid clock_entry_id')
        if not entry_id:
            raise ValidationError('clock_entry_id is required')
        reason = (data.get('reason') or '').strip()
        if not reason:
            raise ValidationError('A reason is required')
        try:
            requested_in = parse_iso_datetime(data.get('requested_clock_in'))
            requested_out = parse_iso_datetime(data.get('requested_clock_out'))
        except ValueError:
            raise ValidationError('Requested times must be ISO 8601 datetimes')
        if requested_in is None and requested_out is None:
            raise ValidationError('Request at least one of requested_clock_in or requested_clock_out')

        entry = self.clock_repo.get_by_id(entry_id)
        if not entry or entry.worker_id != worker.id:
            raise NotFoundError('Clock entry not found')

        effective_in = requested_in or as_utc(entry.clock_in)
        effective_out = requested_out or as_utc(entry.clock_out)
        if effective_out is not None and effective_out <= effective_in:
            raise ValidationError('Clock-out must be after clock-in')
        if requested_out is not None and requested_out > utc_now():
            raise ValidationError('Requested clock-out cannot be in the future')

        if self.amendment_repo.get_pending_for_entry(entry.id):
            raise ConflictError('A pending amendment already exists for this entry')

        amendment = self.amendment_repo.create(
            organization_id=worker.organization_id,
            clock_entry_id=entry.id,
            worker_id=worker.id,
            requested_clock_in=requested_in,
            requested_clock_out=requested_out,
            reason=reason,
            status=PENDING,
        )
        logger.info(f"Worker {worker.id} requested amendment {amendment.id} for entry {entry.id}")
        return amendment

    def decide(self, amendment, decision: str, actor, manager_notes: str = None):
        """
        Approve or reject a pending amendment.

        Approval applies the requested times to the clock entry (a missing
        side keeps the recorded time), recomputes hours, and writes a
        history row. Either outcome notifies the worker.

        Raises:
            ConflictError: The amendment was already decided
            ValidationError: Against the entry as it is now, the approved
                times would put clock-out at or before clock-in
        """
        status = decide(amendment.status, decision, 'Amendment')
        now = utc_now()
        entry = amendment.clock_entry

        if status == APPROVED:
            # The entry may have changed since submission
            effective_in = as_utc(amendment.requested_clock_in or entry.clock_in)
            effective_out = as_utc(amendment.requested_clock_out or entry.clock_out)
            if effective_out is not None and effective_out <= effective_in:
                raise ValidationError('Approving this amendment would put clock-out at or before clock-in')

        amendment.status = status
        amendment.manager_id = actor.id
        amendment.manager_notes = manager_notes
        amendment.processed_at = now

        if status == APPROVED:
            old_in, old_out, old_hours = entry.clock_in, entry.clock_out, entry.total_hours
            entry.clock_in = amendment.requested_clock_in or entry.clock_in
            entry.clock_out = amendment.requested_clock_out or entry.clock_out
            if entry.clock_out is not None:
                entry.total_hours = entry_hours(entry)
            entry.notes = append_note(entry.notes, f"Updated via approved time amendment on {now.strftime('%Y-%m-%d %H:%M')}")
            self.clock_service.record_history(
                entry, 'amendment_approval', old_in, old_out, old_hours,
                changed_by=actor.id,
                amendment_id=amendment.id,
                notes=manager_notes,
                metadata={
                    'approved_by': str(actor.id),
                    'approved_at': now.isoformat(),
                    'reason': amendment.reason,
                },
            )

        body = f"Your time amendment request was {status} by {actor.full_name or 'your manager'}."
        if status == APPROVED:
            body += f" Updated times: {_display(entry.clock_in)} - {_display(entry.clock_out)}."
        if manager_notes:
            body += f" Notes: {manager_notes}"
        self.notification_service.notify(
            amendment.worker,
            f'amendment_{status}',
            f'Time Amendment {status.capitalize()}',
            body,
            dedupe_key=f'amendment_{amendment.id}_{status}',
            commit=False,
        )
        try:
            self.amendment_repo.commit()
        except Exception:
            self.amendment_repo.rollback()
            raise
        logger.info(f"Amendment {amendment.id} {status} by {actor.id}")
        return amendment
