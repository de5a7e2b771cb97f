import logging

from werkzeug.security import generate_password_hash, check_password_hash

from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..utils import normalize_email, is_valid_email, utc_now, to_uuid
from .passwords import check_password, password_error_message, generate_temporary_password

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return generate_password_hash(password, method='pbkdf2:sha256')


class AccountService:
    """Login identities: password changes, resets, and manager accounts."""

    def __init__(self, user_repo, audit_repo, email_service, subscription_service=None, tutorial_repo=None):
        self.user_repo = user_repo
        self.audit_repo = audit_repo
        self.email_service = email_service
        self.subscription_service = subscription_service
        self.tutorial_repo = tutorial_repo

    def authenticate(self, email: str, password: str):
        """Return the user for valid credentials, otherwise None."""
        user = self.user_repo.get_by_email(email)
        if not user or not user.password_hash:
            return None
        if not check_password_hash(user.password_hash, password or ''):
            return None
        return user

    def record_login(self, user):
        user.last_login_at = utc_now()
        self.user_repo.commit()

    def change_password(self, user, current_password: str, new_password: str):
        """
        Change the caller's own password and clear the forced-change flag.

        Raises:
            ValidationError: Wrong current password, or new password fails the policy
        """
        if not current_password or not new_password:
            raise ValidationError('current_password and new_password are required')
        if not check_password_hash(user.password_hash or '', current_password):
            raise ValidationError('Current password is incorrect')
        if current_password == new_password:
            raise ValidationError('New password must be different from the current password')
        result = check_password(new_password)
        if not result['valid']:
            raise ValidationError(password_error_message(result))

        user.password_hash = hash_password(new_password)
        user.must_change_password = False
        self.audit_repo.log_event(
            'PASSWORD_CHANGE', 'USER', user.id,
            organization_id=user.organization_id, actor_id=user.id, commit=False,
        )
        self.user_repo.commit()
        logger.info(f"User {user.id} changed their password")
        return user

    def reset_manager_password(self, actor, manager_id, password: str = None,
                               require_password_change: bool = True, send_email: bool = True):
        """
        Reset a manager's password (super admin only).

        Args:
            actor: The super admin performing the reset
            manager_id: Target user UUID (must be a MANAGER in the actor's organization)
            password: Explicit new password; a temporary one is generated if omitted
            require_password_change: Force a change at next login
            send_email: Email the new password to the manager

        Returns:
            Tuple of (manager, temporary_password, email_sent)
        """
        if actor.role != 'SUPER_ADMIN':
            raise PermissionDeniedError('Forbidden: Superadmin access required')
        try:
            manager_id = to_uuid(manager_id)
        except ValueError:
            raise ValidationError('Invalid manager_id')
        manager = self.user_repo.get_for_organization(manager_id, actor.organization_id) if manager_id else None
        if not manager:
            raise NotFoundError('Manager not found')
        if manager.role == 'SUPER_ADMIN':
            raise PermissionDeniedError('Cannot reset password for superadmin accounts')
        if manager.role != 'MANAGER':
            raise ValidationError('Only manager passwords can be reset here')

        if password:
            result = check_password(password)
            if not result['valid']:
                raise ValidationError(password_error_message(result))
        temporary_password = password or generate_temporary_password()

        manager.password_hash = hash_password(temporary_password)
        if require_password_change:
            manager.must_change_password = True
        self.audit_repo.log_event(
            'PASSWORD_RESET', 'USER', manager.id,
            organization_id=actor.organization_id, actor_id=actor.id,
            metadata={'require_password_change': require_password_change, 'email_sent': send_email},
            commit=False,
        )
        self.user_repo.commit()
        logger.info(f"Super admin {actor.id} reset password for manager {manager.id}")

        email_sent = False
        if send_email:
            email_sent = self.email_service.send_password_reset(manager.email, manager.full_name, temporary_password)
        return manager, temporary_password, email_sent

    def create_manager(self, organization, data: dict):
        """
        Create a MANAGER login in the organization, within plan capacity,
        and email an invitation with a temporary password.

        Returns:
            Tuple of (manager, temporary_password, email_sent)
        """
        full_name = (data.get('full_name') or data.get('name') or '').strip()
        email = normalize_email(data.get('email'))
        if not full_name:
            raise ValidationError('Name is required')
        if not is_valid_email(email):
            raise ValidationError('A valid email is required')
        if self.user_repo.get_by_email(email):
            raise ConflictError('A user with this email already exists')
        self.subscription_service.ensure_can_add_manager(organization)

        temporary_password = generate_temporary_password()
        manager = self.user_repo.create(
            organization_id=organization.id,
            full_name=full_name,
            email=email,
            phone_number=data.get('phone_number'),
            role='MANAGER',
            password_hash=hash_password(temporary_password),
            must_change_password=True,
            is_active=True,
        )
        email_sent = self.email_service.send_invitation(
            email, full_name, organization.name, 'manager', temporary_password
        )
        logger.info(f"Manager {manager.id} created in organization {organization.id}")
        return manager, temporary_password, email_sent

    def update_manager(self, manager, data: dict):
        if 'full_name' in data:
            if not (data['full_name'] or '').strip():
                raise ValidationError('Name cannot be empty')
            manager.full_name = data['full_name'].strip()
        if 'phone_number' in data:
            manager.phone_number = data['phone_number']
        if 'email' in data:
            email = normalize_email(data['email'])
            if not is_valid_email(email):
                raise ValidationError('A valid email is required')
            existing = self.user_repo.get_by_email(email)
            if existing and existing.id != manager.id:
                raise ConflictError('A user with this email already exists')
            manager.email = email
        self.user_repo.commit()
        return manager

    def complete_tutorial(self, user, tutorial_id: str):
        tutorial_id = (tutorial_id or '').strip()
        if not tutorial_id:
            raise ValidationError('tutorial_id is required')
        existing = self.tutorial_repo.get_completion(user.id, tutorial_id)
        if existing:
            return existing
        return self.tutorial_repo.create(user_id=user.id, tutorial_id=tutorial_id)
