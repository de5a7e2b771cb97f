from datetime import datetime, time as dt_time

from ..utils import UK_TZ, utc_now, as_utc, to_uk_time


def start_of_uk_day(now=None):
    local = to_uk_time(now or utc_now())
    return as_utc(datetime.combine(local.date(), dt_time.min, tzinfo=UK_TZ))


class DashboardService:
    def __init__(self, worker_repo, job_repo, clock_repo, amendment_repo):
        self.worker_repo = worker_repo
        self.job_repo = job_repo
        self.clock_repo = clock_repo
        self.amendment_repo = amendment_repo

    def get_summary(self, organization_id, now=None):
        now = as_utc(now) if now else utc_now()
        day_start = start_of_uk_day(now)

        open_entries = self.clock_repo.get_open_entries(organization_id)
        clocked_in = [
            {
                'entry_id': str(e.id),
                'worker_id': str(e.worker_id),
                'worker_name': e.worker.name if e.worker else None,
                'job_id': str(e.job_id),
                'job_name': e.job.name if e.job else None,
                'clock_in': as_utc(e.clock_in).isoformat(),
                'is_overtime': bool(e.is_overtime),
            }
            for e in open_entries
        ]

        # Hours worked today: closed entries count their total, open ones run to now
        today_hours = 0.0
        for entry in self.clock_repo.get_for_organization_in_range(organization_id, day_start, now):
            if entry.clock_out is not None:
                today_hours += float(entry.total_hours or 0)
            else:
                today_hours += (now - as_utc(entry.clock_in)).total_seconds() / 3600

        activity = []
        for entry in self.clock_repo.get_recent_activity(organization_id, limit=10):
            worker_name = entry.worker.name if entry.worker else 'Unknown worker'
            job_name = entry.job.name if entry.job else 'Unknown job'
            if entry.clock_out is not None:
                message = f"{worker_name} clocked out of {job_name}"
                at = as_utc(entry.clock_out)
            else:
                message = f"{worker_name} clocked in at {job_name}"
                at = as_utc(entry.clock_in)
            activity.append({'entry_id': str(entry.id), 'message': message, 'at': at.isoformat()})

        return {
            'active_workers': self.worker_repo.count_active(organization_id),
            'active_jobs': self.job_repo.count_active(organization_id),
            'clocked_in': clocked_in,
            'clocked_in_count': len(clocked_in),
            'total_hours_today': round(today_hours, 2),
            'pending_amendments': self.amendment_repo.count_pending(organization_id),
            'pending_overtime': self.clock_repo.count_pending_overtime(organization_id),
            'recent_activity': activity,
        }
