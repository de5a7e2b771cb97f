import logging
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class NotificationService:
    """In-app worker notifications with dedupe keys."""

    def __init__(self, notification_repo):
        self.notification_repo = notification_repo

    def notify(self, worker, type: str, title: str, body: str, dedupe_key: str = None, commit: bool = True):
        """
        Create a notification unless one with the same dedupe key exists.

        Returns:
            The new Notification, or None when deduplicated
        """
        if dedupe_key and self.notification_repo.get_by_dedupe_key(dedupe_key):
            logger.debug(f"Notification {dedupe_key} already sent, skipping")
            return None

        fields = dict(
            organization_id=worker.organization_id,
            worker_id=worker.id,
            type=type,
            title=title,
            body=body,
            dedupe_key=dedupe_key,
        )
        if not commit:
            return self.notification_repo.add(**fields)
        try:
            return self.notification_repo.create(**fields)
        except IntegrityError:
            # Lost a race with another writer on the same dedupe key
            logger.info(f"Notification {dedupe_key} created concurrently, skipping")
            return None

    def mark_read(self, notification, worker_id):
        if notification.worker_id != worker_id:
            return None
        notification.read = True
        self.notification_repo.commit()
        return notification
