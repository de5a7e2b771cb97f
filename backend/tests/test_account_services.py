import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

from werkzeug.security import check_password_hash

from backend.app.errors import (
    CapacityExceededError, ConflictError, DeletionCascadeError, NotFoundError, PermissionDeniedError,
    ValidationError,
)
from backend.app.services.account_service import AccountService, hash_password
from backend.app.services.organization_service import OrganizationService
from backend.app.services.subscription_service import SubscriptionService, capacity, UNLIMITED
from backend.app.services.worker_service import WorkerService


def _organization(**overrides):
    fields = dict(id=uuid.uuid4(), name='Acme Build', subscription_status='trial', max_managers=3,
                  max_workers=10, trial_ends_at=None)
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestCapacity(unittest.TestCase):
    def test_limited(self):
        self.assertEqual(capacity(10, 4), {'limit': 10, 'current': 4, 'remaining': 6, 'can_create': True})
        self.assertFalse(capacity(10, 10)['can_create'])
        self.assertEqual(capacity(2, 5)['remaining'], 0)

    def test_unlimited(self):
        for limit in (None, UNLIMITED):
            result = capacity(limit, 250)
            self.assertIsNone(result['limit'])
            self.assertTrue(result['can_create'])


class TestSubscriptionService(unittest.TestCase):
    def setUp(self):
        self.usage_repo = MagicMock()
        self.usage_repo.close_active.return_value = 1
        self.user_repo = MagicMock()
        self.user_repo.count_by_role.return_value = 2
        self.worker_repo = MagicMock()
        self.worker_repo.count_active.return_value = 7
        self.audit_repo = MagicMock()
        self.service = SubscriptionService(MagicMock(), self.usage_repo, self.user_repo, self.worker_repo,
                                           self.audit_repo)
        self.organization = _organization()
        self.admin = SimpleNamespace(id=uuid.uuid4(), role='SUPER_ADMIN', organization_id=self.organization.id)

    def test_upgrade_to_pro(self):
        self.service.upgrade(self.organization, 'pro', self.admin)

        self.assertEqual(self.organization.subscription_status, 'pro')
        self.assertEqual(self.organization.max_managers, 5)
        self.assertEqual(self.organization.max_workers, 100)
        self.usage_repo.close_active.assert_called_once()
        usage = self.usage_repo.add.call_args.kwargs
        self.assertEqual(usage['plan_type'], 'pro')
        self.assertEqual(usage['current_managers'], 2)
        self.assertEqual(usage['current_workers'], 7)
        self.assertEqual(self.audit_repo.log_event.call_args.args[0], 'SUBSCRIPTION_UPGRADE')
        self.usage_repo.commit.assert_called_once()

    def test_enterprise_limits_are_unlimited(self):
        self.service.upgrade(self.organization, 'enterprise', self.admin)
        self.assertIsNone(self.organization.max_managers)
        self.assertIsNone(self.organization.max_workers)

    def test_only_upgrades_are_allowed(self):
        self.organization.subscription_status = 'pro'
        for plan in ('starter', 'pro', 'trial'):
            with self.assertRaises(ValidationError):
                self.service.upgrade(self.organization, plan, self.admin)
        with self.assertRaises(ValidationError):
            self.service.upgrade(self.organization, 'platinum', self.admin)
        self.usage_repo.commit.assert_not_called()

    def test_only_super_admin_of_organization_can_upgrade(self):
        manager = SimpleNamespace(id=uuid.uuid4(), role='MANAGER', organization_id=self.organization.id)
        outsider = SimpleNamespace(id=uuid.uuid4(), role='SUPER_ADMIN', organization_id=uuid.uuid4())
        for actor in (manager, outsider):
            with self.assertRaises(PermissionDeniedError):
                self.service.upgrade(self.organization, 'pro', actor)

    def test_failed_upgrade_rolls_back(self):
        self.usage_repo.commit.side_effect = RuntimeError('db down')
        with self.assertRaises(RuntimeError):
            self.service.upgrade(self.organization, 'starter', self.admin)
        self.usage_repo.rollback.assert_called_once()

    def test_worker_capacity_enforced(self):
        self.worker_repo.count_active.return_value = 10
        with self.assertRaises(CapacityExceededError) as ctx:
            self.service.ensure_can_add_worker(self.organization)
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.details['limit'], 10)

    def test_summary_lists_available_upgrades(self):
        summary = self.service.get_summary(_organization(subscription_status='starter', max_managers=2))
        self.assertEqual(summary['available_upgrades'], ['pro', 'enterprise'])
        self.assertEqual(summary['managers']['limit'], 2)
        self.assertEqual(summary['workers']['current'], 7)


class TestAccountService(unittest.TestCase):
    def setUp(self):
        self.user_repo = MagicMock()
        self.audit_repo = MagicMock()
        self.email_service = MagicMock()
        self.email_service.send_password_reset.return_value = True
        self.service = AccountService(self.user_repo, self.audit_repo, self.email_service)
        self.org_id = uuid.uuid4()
        self.admin = SimpleNamespace(id=uuid.uuid4(), role='SUPER_ADMIN', organization_id=self.org_id)
        self.manager = SimpleNamespace(id=uuid.uuid4(), role='MANAGER', organization_id=self.org_id,
                                       email='mia@example.com', full_name='Mia', password_hash='old',
                                       must_change_password=False)
        self.user_repo.get_for_organization.return_value = self.manager

    def test_reset_generates_temporary_password(self):
        manager, password, email_sent = self.service.reset_manager_password(self.admin, str(self.manager.id))

        self.user_repo.get_for_organization.assert_called_once_with(self.manager.id, self.org_id)
        self.assertEqual(len(password), 16)
        self.assertTrue(check_password_hash(manager.password_hash, password))
        self.assertTrue(manager.must_change_password)
        self.assertTrue(email_sent)
        self.assertEqual(self.audit_repo.log_event.call_args.args[0], 'PASSWORD_RESET')

    def test_reset_with_explicit_password_and_no_email(self):
        _, password, email_sent = self.service.reset_manager_password(
            self.admin, self.manager.id, password='Chosen-Pass-1', require_password_change=False, send_email=False
        )
        self.assertEqual(password, 'Chosen-Pass-1')
        self.assertFalse(self.manager.must_change_password)
        self.assertFalse(email_sent)
        self.email_service.send_password_reset.assert_not_called()

    def test_reset_rejects_weak_password(self):
        with self.assertRaises(ValidationError):
            self.service.reset_manager_password(self.admin, self.manager.id, password='short')

    def test_reset_guards(self):
        with self.assertRaises(PermissionDeniedError):
            self.service.reset_manager_password(self.manager, self.manager.id)
        with self.assertRaises(ValidationError):
            self.service.reset_manager_password(self.admin, 'not-a-uuid')

        self.user_repo.get_for_organization.return_value = None
        with self.assertRaises(NotFoundError):
            self.service.reset_manager_password(self.admin, uuid.uuid4())

        self.user_repo.get_for_organization.return_value = SimpleNamespace(id=uuid.uuid4(), role='SUPER_ADMIN')
        with self.assertRaises(PermissionDeniedError):
            self.service.reset_manager_password(self.admin, uuid.uuid4())

    def test_change_password(self):
        user = SimpleNamespace(id=uuid.uuid4(), organization_id=self.org_id,
                               password_hash=hash_password('Old-Pass-123'), must_change_password=True)

        with self.assertRaises(ValidationError):
            self.service.change_password(user, 'wrong', 'New-Pass-456')
        with self.assertRaises(ValidationError):
            self.service.change_password(user, 'Old-Pass-123', 'weak')

        self.service.change_password(user, 'Old-Pass-123', 'New-Pass-456')
        self.assertTrue(check_password_hash(user.password_hash, 'New-Pass-456'))
        self.assertFalse(user.must_change_password)

    def test_create_manager_checks_capacity(self):
        subscription = MagicMock()
        subscription.ensure_can_add_manager.side_effect = CapacityExceededError('Manager limit reached (3)')
        service = AccountService(self.user_repo, self.audit_repo, self.email_service, subscription)
        self.user_repo.get_by_email.return_value = None

        with self.assertRaises(CapacityExceededError):
            service.create_manager(_organization(), {'full_name': 'New Manager', 'email': 'new@example.com'})
        self.user_repo.create.assert_not_called()


class TestWorkerService(unittest.TestCase):
    def setUp(self):
        self.worker_repo = MagicMock()
        self.user_repo = MagicMock()
        self.user_repo.get_by_email.return_value = None
        self.clock_repo = MagicMock()
        self.subscription = MagicMock()
        self.email_service = MagicMock()
        self.email_service.send_invitation.return_value = False
        self.notification_repo = MagicMock()
        self.cost_repo = MagicMock()
        self.cost_repo.worker_has_costs.return_value = False
        self.line_item_repo = MagicMock()
        self.line_item_repo.worker_has_items.return_value = False
        self.service = WorkerService(self.worker_repo, self.user_repo, self.clock_repo, self.subscription,
                                     self.email_service, self.notification_repo, self.cost_repo,
                                     self.line_item_repo)

    def test_create_worker_with_login(self):
        organization = _organization()

        worker, password, email_sent = self.service.create_worker(organization, {
            'name': 'Will Worker', 'email': ' Will@Example.com ', 'hourly_rate': '18.5',
        })

        user_kwargs = self.user_repo.add.call_args.kwargs
        self.assertEqual(user_kwargs['role'], 'WORKER')
        self.assertEqual(user_kwargs['email'], 'will@example.com')
        self.assertTrue(user_kwargs['must_change_password'])
        worker_kwargs = self.worker_repo.add.call_args.kwargs
        self.assertEqual(worker_kwargs['hourly_rate'], 18.5)
        self.assertFalse(email_sent)
        self.subscription.ensure_can_add_worker.assert_called_once_with(organization)

    def test_create_worker_validation(self):
        with self.assertRaises(ValidationError):
            self.service.create_worker(_organization(), {'name': 'W', 'email': 'nope'})
        with self.assertRaises(ValidationError):
            self.service.create_worker(_organization(), {'name': 'W', 'email': 'w@example.com', 'hourly_rate': -1})
        self.user_repo.get_by_email.return_value = SimpleNamespace(id=uuid.uuid4())
        with self.assertRaises(ConflictError):
            self.service.create_worker(_organization(), {'name': 'W', 'email': 'w@example.com'})

    def test_delete_worker_with_history_conflicts(self):
        self.clock_repo.worker_has_entries.return_value = True
        with self.assertRaises(ConflictError):
            self.service.delete_worker(SimpleNamespace(id=uuid.uuid4(), user_id=None))

    def test_delete_worker_with_costs_or_line_items_conflicts(self):
        self.clock_repo.worker_has_entries.return_value = False
        self.cost_repo.worker_has_costs.return_value = True
        with self.assertRaises(ConflictError):
            self.service.delete_worker(SimpleNamespace(id=uuid.uuid4(), user_id=None))

        self.cost_repo.worker_has_costs.return_value = False
        self.line_item_repo.worker_has_items.return_value = True
        with self.assertRaises(ConflictError):
            self.service.delete_worker(SimpleNamespace(id=uuid.uuid4(), user_id=None))
        self.worker_repo.session.delete.assert_not_called()

    def test_delete_worker_removes_notifications_in_same_transaction(self):
        self.clock_repo.worker_has_entries.return_value = False
        worker = SimpleNamespace(id=uuid.uuid4(), user_id=None)

        self.service.delete_worker(worker)

        self.notification_repo.delete_for_worker.assert_called_once_with(worker.id)
        self.notification_repo.commit.assert_not_called()
        self.worker_repo.session.delete.assert_called_once_with(worker)
        self.worker_repo.commit.assert_called_once()

    def test_reactivation_counts_against_capacity(self):
        organization = _organization()
        worker = SimpleNamespace(id=uuid.uuid4(), user_id=None, is_active=False)
        self.subscription.ensure_can_add_worker.side_effect = CapacityExceededError('Worker limit reached (10)')

        with self.assertRaises(CapacityExceededError):
            self.service.set_active(organization, worker, True)
        self.assertFalse(worker.is_active)

        self.service.set_active(organization, SimpleNamespace(id=uuid.uuid4(), user_id=None, is_active=True), False)


class TestOrganizationDeletion(unittest.TestCase):
    def setUp(self):
        self.repos = {name: MagicMock() for name in (
            'organization_repo', 'user_repo', 'worker_repo', 'job_repo', 'clock_repo', 'history_repo',
            'amendment_repo', 'expense_type_repo', 'additional_cost_repo', 'line_item_repo', 'notification_repo',
            'usage_repo', 'audit_repo', 'tutorial_repo',
        )}
        self.repos['user_repo'].get_all_for_organization.return_value = []
        self.service = OrganizationService(subscription_service=MagicMock(), **self.repos)
        self.organization = _organization()
        self.admin = SimpleNamespace(id=uuid.uuid4(), role='SUPER_ADMIN', organization_id=self.organization.id)

    def test_steps_run_children_first(self):
        completed = self.service.delete_organization(self.organization, self.admin)

        steps = [c['step'] for c in completed]
        self.assertEqual(steps[0], 'clock_entry_history')
        self.assertLess(steps.index('clock_entries'), steps.index('workers'))
        self.assertLess(steps.index('users'), steps.index('owners'))
        self.assertEqual(steps[-1], 'organization')
        self.repos['organization_repo'].commit.assert_called_once()

    def test_failing_step_rolls_back_and_reports(self):
        self.repos['clock_repo'].delete_for_organization.side_effect = RuntimeError('fk violation')

        with self.assertRaises(DeletionCascadeError) as ctx:
            self.service.delete_organization(self.organization, self.admin)

        self.assertEqual(ctx.exception.step, 'clock_entries')
        self.assertEqual(ctx.exception.completed_steps,
                         ['clock_entry_history', 'report_line_items', 'additional_costs', 'time_amendments'])
        self.repos['organization_repo'].rollback.assert_called_once()
        self.repos['organization_repo'].commit.assert_not_called()

    def test_only_super_admin_can_delete(self):
        manager = SimpleNamespace(id=uuid.uuid4(), role='MANAGER', organization_id=self.organization.id)
        with self.assertRaises(PermissionDeniedError):
            self.service.delete_organization(self.organization, manager)


if __name__ == '__main__':
    unittest.main()
