import logging
from datetime import timedelta

from werkzeug.security import generate_password_hash

from ..errors import ConflictError, DeletionCascadeError, PermissionDeniedError, ValidationError
from ..utils import utc_now, normalize_email, is_valid_email
from .passwords import check_password, password_error_message
from .subscription_service import PLANS, TRIAL_DAYS

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = ('name', 'company_number', 'vat_number', 'address', 'phone', 'email', 'logo_url')


class OrganizationService:
    def __init__(self, *, organization_repo, user_repo, worker_repo, job_repo, clock_repo, history_repo,
                 amendment_repo, expense_type_repo, additional_cost_repo, line_item_repo, notification_repo,
                 usage_repo, audit_repo, tutorial_repo, subscription_service):
        self.organization_repo = organization_repo
        self.user_repo = user_repo
        self.worker_repo = worker_repo
        self.job_repo = job_repo
        self.clock_repo = clock_repo
        self.history_repo = history_repo
        self.amendment_repo = amendment_repo
        self.expense_type_repo = expense_type_repo
        self.additional_cost_repo = additional_cost_repo
        self.line_item_repo = line_item_repo
        self.notification_repo = notification_repo
        self.usage_repo = usage_repo
        self.audit_repo = audit_repo
        self.tutorial_repo = tutorial_repo
        self.subscription_service = subscription_service

    def create_organization(self, data: dict):
        """
        Sign up a new organization with its owning super admin.

        The organization starts on a 14-day trial with the trial plan's
        limits, and an initial subscription usage row is opened.

        Returns:
            Tuple of (organization, super_admin_user)
        """
        name = (data.get('organization_name') or data.get('name') or '').strip()
        admin_name = (data.get('admin_name') or '').strip()
        admin_email = normalize_email(data.get('admin_email'))
        password = data.get('admin_password') or ''

        if not name:
            raise ValidationError('Organization name is required')
        if not admin_name:
            raise ValidationError('Admin name is required')
        if not is_valid_email(admin_email):
            raise ValidationError('A valid admin email is required')
        result = check_password(password)
        if not result['valid']:
            raise ValidationError(password_error_message(result))
        if self.user_repo.get_by_email(admin_email):
            raise ConflictError('A user with this email already exists')

        trial = PLANS['trial']
        try:
            organization = self.organization_repo.add(
                name=name,
                company_number=data.get('company_number'),
                vat_number=data.get('vat_number'),
                address=data.get('address'),
                phone=data.get('phone'),
                email=normalize_email(data.get('email')) or admin_email,
                subscription_status='trial',
                trial_ends_at=utc_now() + timedelta(days=TRIAL_DAYS),
                max_managers=trial['max_managers'],
                max_workers=trial['max_workers'],
                is_active=True,
            )
            self.organization_repo.flush()
            admin = self.user_repo.add(
                organization_id=organization.id,
                full_name=admin_name,
                email=admin_email,
                role='SUPER_ADMIN',
                password_hash=generate_password_hash(password, method='pbkdf2:sha256'),
                is_owner=True,
                is_active=True,
            )
            self.subscription_service.start_trial(organization)
            self.organization_repo.commit()
        except Exception:
            self.organization_repo.rollback()
            raise

        logger.info(f"Organization {organization.id} '{name}' created with owner {admin_email}")
        return organization, admin

    def update_settings(self, organization, data: dict):
        updates = {k: data[k] for k in SETTINGS_FIELDS if k in data}
        if 'name' in updates and not (updates['name'] or '').strip():
            raise ValidationError('Organization name cannot be empty')
        if updates.get('email'):
            if not is_valid_email(updates['email']):
                raise ValidationError('Invalid email address')
            updates['email'] = normalize_email(updates['email'])
        for key, value in updates.items():
            setattr(organization, key, value)
        self.organization_repo.commit()
        return organization

    def deletion_steps(self, organization_id):
        """Ordered (name, action) pairs; children before parents."""
        users = self.user_repo.get_all_for_organization(organization_id)
        user_ids = [u.id for u in users]
        owners = [u for u in users if u.is_owner]
        others = [u for u in users if not u.is_owner]

        def delete_users(selected):
            def action():
                for user in selected:
                    self.user_repo.session.delete(user)
                self.user_repo.session.flush()
                return len(selected)
            return action

        def delete_organization():
            organization = self.organization_repo.get_by_id(organization_id)
            if organization is None:
                return 0
            self.organization_repo.session.delete(organization)
            self.organization_repo.session.flush()
            return 1

        return [
            ('clock_entry_history', lambda: self.history_repo.delete_for_organization(organization_id)),
            ('report_line_items', lambda: self.line_item_repo.delete_for_organization(organization_id)),
            ('additional_costs', lambda: self.additional_cost_repo.delete_for_organization(organization_id)),
            ('time_amendments', lambda: self.amendment_repo.delete_for_organization(organization_id)),
            ('clock_entries', lambda: self.clock_repo.delete_for_organization(organization_id)),
            ('notifications', lambda: self.notification_repo.delete_for_organization(organization_id)),
            ('workers', lambda: self.worker_repo.delete_for_organization(organization_id)),
            ('jobs', lambda: self.job_repo.delete_for_organization(organization_id)),
            ('expense_types', lambda: self.expense_type_repo.delete_for_organization(organization_id)),
            ('subscription_usage', lambda: self.usage_repo.delete_for_organization(organization_id)),
            ('audit_events', lambda: self.audit_repo.delete_for_organization(organization_id)),
            ('tutorial_completions', lambda: self.tutorial_repo.delete_for_users(user_ids)),
            ('users', delete_users(others)),
            ('owners', delete_users(owners)),
            ('organization', delete_organization),
        ]

    def delete_organization(self, organization, actor):
        """
        Delete an organization and everything it owns.

        Runs the deletion steps in order inside one transaction. A failing
        step rolls everything back.

        Returns:
            List of {'step', 'deleted'} dicts for the completed steps

        Raises:
            PermissionDeniedError: Actor is not a super admin of the organization
            DeletionCascadeError: A step failed
        """
        if actor.role != 'SUPER_ADMIN' or actor.organization_id != organization.id:
            raise PermissionDeniedError('Only super admins can delete their organization')

        organization_id = organization.id
        logger.info(f"Deleting organization {organization_id} requested by {actor.id}")
        completed = []
        for step, action in self.deletion_steps(organization_id):
            try:
                deleted = action()
            except Exception as e:
                logger.exception(f"Organization {organization_id} deletion failed at step {step}")
                self.organization_repo.rollback()
                raise DeletionCascadeError(step, [c['step'] for c in completed], e)
            logger.info(f"Organization {organization_id}: deleted {deleted} row(s) from {step}")
            completed.append({'step': step, 'deleted': deleted})

        self.organization_repo.commit()
        logger.info(f"Organization {organization_id} deleted ({len(completed)} steps)")
        return completed
