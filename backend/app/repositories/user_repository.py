from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.users import User, TutorialCompletion
from ..utils import normalize_email


class UserRepository(BaseRepository[User]):
    """Repository for User model operations."""

    def __init__(self):
        super().__init__(User)

    def get_by_email(self, email: str, organization_id: Optional[UUID] = None) -> Optional[User]:
        """
        Get a user by email address.
        Email is globally unique (it is the login identity), but can
        optionally verify organization ownership.

        Args:
            email: The user's email address (case-insensitive)
            organization_id: Optional organization_id to verify ownership

        Returns:
            User instance or None if not found
        """
        query = self.session.query(User).filter_by(email=normalize_email(email))
        if organization_id:
            query = query.filter_by(organization_id=organization_id)
        return query.first()

    def get_by_role(self, role: str, organization_id: UUID) -> List[User]:
        """
        Get all users with a specific role in an organization.

        Args:
            role: The role to filter by (SUPER_ADMIN, MANAGER, WORKER)
            organization_id: The organization UUID

        Returns:
            List of User instances with the specified role, ordered by name
        """
        return self.session.query(User).filter_by(
            role=role,
            organization_id=organization_id
        ).order_by(User.full_name).all()

    def count_by_role(self, role: str, organization_id: UUID, active_only: bool = False) -> int:
        query = self.session.query(User).filter_by(role=role, organization_id=organization_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.count()

    def get_all_for_organization(self, organization_id: UUID) -> List[User]:
        return self.session.query(User).filter_by(organization_id=organization_id).all()

    def deactivate(self, user_id: UUID, organization_id: UUID) -> bool:
        """
        Deactivate a user account.

        Args:
            user_id: The UUID of the user to deactivate
            organization_id: The organization UUID to verify ownership

        Returns:
            True if deactivated successfully, False if user not found
        """
        user = self.get_for_organization(user_id, organization_id)
        if not user:
            return False

        user.is_active = False
        self.commit()
        return True

    def activate(self, user_id: UUID, organization_id: UUID) -> bool:
        user = self.get_for_organization(user_id, organization_id)
        if not user:
            return False

        user.is_active = True
        self.commit()
        return True


class TutorialCompletionRepository(BaseRepository[TutorialCompletion]):
    """Repository for onboarding tour completions."""

    def __init__(self):
        super().__init__(TutorialCompletion)

    def get_for_user(self, user_id: UUID) -> List[TutorialCompletion]:
        return self.session.query(TutorialCompletion).filter_by(
            user_id=user_id
        ).order_by(TutorialCompletion.completed_at).all()

    def get_completion(self, user_id: UUID, tutorial_id: str) -> Optional[TutorialCompletion]:
        return self.session.query(TutorialCompletion).filter_by(
            user_id=user_id,
            tutorial_id=tutorial_id
        ).first()

    def delete_for_users(self, user_ids: List[UUID]) -> int:
        """Bulk-delete completions for the given users. Does not commit."""
        if not user_ids:
            return 0
        return self.session.query(TutorialCompletion).filter(
            TutorialCompletion.user_id.in_(user_ids)
        ).delete(synchronize_session=False)
