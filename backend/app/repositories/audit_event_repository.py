from typing import Optional, Dict, Any
from uuid import UUID
from .base import BaseRepository
from ..models.audit import AuditEvent


class AuditEventRepository(BaseRepository[AuditEvent]):
    """Repository for AuditEvent model operations."""

    def __init__(self):
        super().__init__(AuditEvent)

    def log_event(
        self,
        event_type: str,
        entity_type: str,
        entity_id: UUID,
        organization_id: Optional[UUID] = None,
        actor_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        commit: bool = True
    ) -> AuditEvent:
        """
        Record an audit event.

        Args:
            event_type: Type of event (PASSWORD_RESET, SUBSCRIPTION_UPGRADE, etc.)
            entity_type: Type of entity affected (USER, ORGANIZATION, etc.)
            entity_id: UUID of the affected entity
            organization_id: Owning organization, if any
            actor_id: UUID of the user performing the action
            metadata: Additional event metadata
            commit: Commit immediately, or stage in the caller's transaction

        Returns:
            The created AuditEvent instance
        """
        fields = dict(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            organization_id=organization_id,
            actor_user_id=actor_id,
            event_metadata=metadata,
        )
        if commit:
            return self.create(**fields)
        return self.add(**fields)
