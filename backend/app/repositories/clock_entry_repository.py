from datetime import datetime
from typing import Optional, List, Dict
from uuid import UUID
from sqlalchemy import func, distinct
from .base import BaseRepository
from ..models.clock import ClockEntry, ClockEntryHistory
from ..models.workers import Worker
from ..utils import as_utc


class ClockEntryRepository(BaseRepository[ClockEntry]):
    """Repository for ClockEntry model operations."""

    def __init__(self):
        super().__init__(ClockEntry)

    def get_open_for_worker(self, worker_id: UUID) -> Optional[ClockEntry]:
        """
        Get the worker's open (not yet clocked-out) entry.

        Args:
            worker_id: The worker's UUID

        Returns:
            The open ClockEntry or None
        """
        return self.session.query(ClockEntry).filter(
            ClockEntry.worker_id == worker_id,
            ClockEntry.clock_out.is_(None)
        ).order_by(ClockEntry.clock_in.desc()).first()

    def get_open_entries(self, organization_id: Optional[UUID] = None) -> List[ClockEntry]:
        """
        Get all open entries, optionally for a single organization.

        Args:
            organization_id: Optional organization UUID

        Returns:
            List of open ClockEntry instances, oldest clock-in first
        """
        query = self.session.query(ClockEntry).filter(ClockEntry.clock_out.is_(None))
        if organization_id:
            query = query.filter(ClockEntry.organization_id == organization_id)
        return query.order_by(ClockEntry.clock_in).all()

    def get_stale_open_entries(self, cutoff: datetime) -> List[ClockEntry]:
        """Open entries whose clock-in is older than the cutoff."""
        return self.session.query(ClockEntry).filter(
            ClockEntry.clock_out.is_(None),
            ClockEntry.clock_in < as_utc(cutoff)
        ).order_by(ClockEntry.clock_in).all()

    def get_for_worker_in_range(self, worker_id: UUID, start: datetime, end: datetime) -> List[ClockEntry]:
        return self.session.query(ClockEntry).filter(
            ClockEntry.worker_id == worker_id,
            ClockEntry.clock_in >= as_utc(start),
            ClockEntry.clock_in < as_utc(end)
        ).order_by(ClockEntry.clock_in).all()

    def get_for_organization_in_range(
        self,
        organization_id: UUID,
        start: datetime,
        end: datetime,
        closed_only: bool = False
    ) -> List[ClockEntry]:
        """
        Get entries of an organization whose clock-in falls in [start, end).

        Args:
            organization_id: The organization UUID
            start: Inclusive lower bound
            end: Exclusive upper bound
            closed_only: Only entries with clock_out and total_hours set

        Returns:
            List of ClockEntry instances ordered by clock-in
        """
        query = self.session.query(ClockEntry).join(
            Worker, Worker.id == ClockEntry.worker_id
        ).filter(
            Worker.organization_id == organization_id,
            ClockEntry.clock_in >= as_utc(start),
            ClockEntry.clock_in < as_utc(end)
        )
        if closed_only:
            query = query.filter(
                ClockEntry.clock_out.isnot(None),
                ClockEntry.total_hours.isnot(None)
            )
        return query.order_by(ClockEntry.clock_in).all()

    def get_overtime_since(self, organization_id: UUID, since: datetime) -> List[ClockEntry]:
        return self.session.query(ClockEntry).filter(
            ClockEntry.organization_id == organization_id,
            ClockEntry.is_overtime.is_(True),
            ClockEntry.clock_in >= as_utc(since)
        ).all()

    def count_pending_overtime(self, organization_id: UUID) -> int:
        return self.session.query(ClockEntry).filter(
            ClockEntry.organization_id == organization_id,
            ClockEntry.is_overtime.is_(True),
            ClockEntry.ot_status == 'pending'
        ).count()

    def get_recent_activity(self, organization_id: UUID, limit: int = 10) -> List[ClockEntry]:
        return self.session.query(ClockEntry).filter(
            ClockEntry.organization_id == organization_id
        ).order_by(ClockEntry.updated_at.desc()).limit(limit).all()

    def worker_has_entries(self, worker_id: UUID) -> bool:
        return self.session.query(
            self.session.query(ClockEntry).filter_by(worker_id=worker_id).exists()
        ).scalar()

    def get_worker_ids_clocked_in_since(self, organization_id: UUID, since: datetime) -> List[UUID]:
        rows = self.session.query(distinct(ClockEntry.worker_id)).filter(
            ClockEntry.organization_id == organization_id,
            ClockEntry.clock_in >= as_utc(since)
        ).all()
        return [row[0] for row in rows]

    def get_job_worker_counts(self, organization_id: UUID) -> Dict[UUID, Dict[str, int]]:
        """
        Per-job counts of distinct workers currently clocked in and of all
        workers who ever clocked in there.

        Args:
            organization_id: The organization UUID

        Returns:
            Dict of job_id -> {'active_workers': int, 'total_workers': int}
        """
        totals = self.session.query(
            ClockEntry.job_id,
            func.count(distinct(ClockEntry.worker_id))
        ).filter(
            ClockEntry.organization_id == organization_id
        ).group_by(ClockEntry.job_id).all()

        active = self.session.query(
            ClockEntry.job_id,
            func.count(distinct(ClockEntry.worker_id))
        ).filter(
            ClockEntry.organization_id == organization_id,
            ClockEntry.clock_out.is_(None)
        ).group_by(ClockEntry.job_id).all()

        counts = {job_id: {'active_workers': 0, 'total_workers': total} for job_id, total in totals}
        for job_id, active_count in active:
            counts.setdefault(job_id, {'active_workers': 0, 'total_workers': 0})
            counts[job_id]['active_workers'] = active_count
        return counts


class ClockEntryHistoryRepository(BaseRepository[ClockEntryHistory]):
    """Repository for the clock entry audit trail."""

    def __init__(self):
        super().__init__(ClockEntryHistory)

    def get_for_entry(self, clock_entry_id: UUID) -> List[ClockEntryHistory]:
        """
        Get the change history of a clock entry.

        Args:
            clock_entry_id: The clock entry UUID

        Returns:
            List of ClockEntryHistory instances, newest first
        """
        return self.session.query(ClockEntryHistory).filter_by(
            clock_entry_id=clock_entry_id
        ).order_by(ClockEntryHistory.changed_at.desc()).all()

    def delete_for_organization(self, organization_id: UUID) -> int:
        entry_ids = self.session.query(ClockEntry.id).filter(
            ClockEntry.organization_id == organization_id
        )
        return self.session.query(ClockEntryHistory).filter(
            ClockEntryHistory.clock_entry_id.in_(entry_ids.scalar_subquery())
        ).delete(synchronize_session=False)
