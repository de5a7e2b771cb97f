import logging
from datetime import timedelta

from ..utils import utc_now, as_utc, round_up_tenth
from .approvals import PENDING, decide
from .clock_service import MAX_OVERTIME_HOURS

logger = logging.getLogger(__name__)

OVERTIME_WINDOW_DAYS = 14


def overtime_hours(entry):
    """Displayed overtime: rounded up to 0.1h and capped; None while still open."""
    if entry.clock_out is None:
        return None
    hours = (as_utc(entry.clock_out) - as_utc(entry.clock_in)).total_seconds() / 3600
    return min(round_up_tenth(hours), MAX_OVERTIME_HOURS)


class OvertimeService:
    def __init__(self, clock_repo, notification_service):
        self.clock_repo = clock_repo
        self.notification_service = notification_service

    def list_requests(self, organization_id, now=None):
        """
        Overtime entries from the last 14 days, pending first, then oldest request first.

        Returns:
            List of dicts describing each request
        """
        now = as_utc(now) if now else utc_now()
        entries = self.clock_repo.get_overtime_since(organization_id, now - timedelta(days=OVERTIME_WINDOW_DAYS))

        def sort_key(entry):
            requested = as_utc(entry.ot_requested_at or entry.clock_in)
            return (0 if entry.ot_status == PENDING else 1, requested)

        return [
            {
                'id': str(entry.id),
                'worker_id': str(entry.worker_id),
                'worker_name': entry.worker.name if entry.worker else None,
                'job_id': str(entry.job_id),
                'job_name': entry.job.name if entry.job else None,
                'clock_in': as_utc(entry.clock_in).isoformat(),
                'clock_out': as_utc(entry.clock_out).isoformat() if entry.clock_out else None,
                'hours': overtime_hours(entry),
                'ot_status': entry.ot_status,
                'ot_requested_at': as_utc(entry.ot_requested_at).isoformat() if entry.ot_requested_at else None,
                'ot_approved_reason': entry.ot_approved_reason,
                'ot_approved_at': as_utc(entry.ot_approved_at).isoformat() if entry.ot_approved_at else None,
            }
            for entry in sorted(entries, key=sort_key)
        ]

    def decide(self, entry, decision: str, actor, reason: str = None):
        status = decide(entry.ot_status, decision, 'Overtime request')
        now = utc_now()
        entry.ot_status = status
        entry.ot_approved_by = actor.id
        entry.ot_approved_reason = reason
        entry.ot_approved_at = now

        body = f"Your overtime request was {status} by {actor.full_name or 'your manager'}."
        if reason:
            body += f" Reason: {reason}"
        self.notification_service.notify(
            entry.worker,
            f'overtime_{status}',
            f'Overtime {status.capitalize()}',
            body,
            dedupe_key=f'overtime_{entry.id}_{status}',
            commit=False,
        )
        self.clock_repo.commit()
        logger.info(f"Overtime entry {entry.id} {status} by {actor.id}")
        return entry


