from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.notifications import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Repository for worker notifications."""

    def __init__(self):
        super().__init__(Notification)

    def get_for_worker(self, worker_id: UUID, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = self.session.query(Notification).filter_by(worker_id=worker_id)
        if unread_only:
            query = query.filter_by(read=False)
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def get_by_dedupe_key(self, dedupe_key: str) -> Optional[Notification]:
        return self.session.query(Notification).filter_by(dedupe_key=dedupe_key).first()

    def mark_all_read(self, worker_id: UUID) -> int:
        count = self.session.query(Notification).filter_by(
            worker_id=worker_id,
            read=False
        ).update({'read': True}, synchronize_session=False)
        self.commit()
        return count

    def delete_for_worker(self, worker_id: UUID) -> int:
        """Delete every notification of a worker. Does not commit."""
        return self.session.query(Notification).filter_by(
            worker_id=worker_id
        ).delete(synchronize_session=False)
