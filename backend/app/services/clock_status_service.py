"""
Scheduled clock status checks run by the background worker.

Every pass closes stale open entries. On weekdays, the 09:00 pass
(Europe/London) reminds active workers who have not clocked in, and the
19:00 pass reminds workers who are still clocked in.
"""
import logging

from ..utils import utc_now, as_utc, to_uk_time
from .dashboard_service import start_of_uk_day

logger = logging.getLogger(__name__)

CLOCK_IN_REMINDER_HOUR = 9
CLOCK_OUT_REMINDER_HOUR = 19


class ClockStatusService:
    def __init__(self, organization_repo, worker_repo, clock_repo, clock_service, notification_service):
        self.organization_repo = organization_repo
        self.worker_repo = worker_repo
        self.clock_repo = clock_repo
        self.clock_service = clock_service
        self.notification_service = notification_service

    def send_clock_in_reminders(self, organization, now) -> int:
        day = to_uk_time(now).date().isoformat()
        clocked_in_today = set(self.clock_repo.get_worker_ids_clocked_in_since(organization.id, start_of_uk_day(now)))
        sent = 0
        for worker in self.worker_repo.get_all_for_organization(organization.id, active_only=True):
            if worker.id in clocked_in_today:
                continue
            created = self.notification_service.notify(
                worker,
                'clock_in_reminder',
                'Clock In Reminder',
                "Don't forget to clock in when you arrive on site.",
                dedupe_key=f'clock_in_reminder_{worker.id}_{day}',
            )
            sent += 1 if created else 0
        return sent

    def send_clock_out_reminders(self, organization, now) -> int:
        day = to_uk_time(now).date().isoformat()
        sent = 0
        for entry in self.clock_repo.get_open_entries(organization.id):
            if not entry.worker:
                continue
            created = self.notification_service.notify(
                entry.worker,
                'clock_out_reminder',
                'Clock Out Reminder',
                f"You are still clocked in at {entry.job.name if entry.job else 'your job'}. "
                "Remember to clock out when you finish.",
                dedupe_key=f'clock_out_reminder_{entry.worker_id}_{day}',
            )
            sent += 1 if created else 0
        return sent

    def run(self, now=None):
        """
        One scheduled pass.

        Returns:
            Dict with counts of auto clock-outs and reminders sent
        """
        now = as_utc(now) if now else utc_now()
        local = to_uk_time(now)
        result = {'auto_clocked_out': 0, 'clock_in_reminders': 0, 'clock_out_reminders': 0}

        result['auto_clocked_out'] = len(self.clock_service.auto_clock_out(now))

        if local.weekday() >= 5:
            logger.debug(f"Weekend ({local:%A}); skipping reminders")
            return result

        if local.hour in (CLOCK_IN_REMINDER_HOUR, CLOCK_OUT_REMINDER_HOUR):
            for organization in self.organization_repo.get_active_organizations():
                if local.hour == CLOCK_IN_REMINDER_HOUR:
                    result['clock_in_reminders'] += self.send_clock_in_reminders(organization, now)
                else:
                    result['clock_out_reminders'] += self.send_clock_out_reminders(organization, now)

        logger.info(f"Clock status check at {local:%Y-%m-%d %H:%M} {local.tzname()}: {result}")
        return result
