import unittest
import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

from backend.app.errors import ConflictError, GeocodingError, NotFoundError, ValidationError
from backend.app.services.clock_status_service import ClockStatusService
from backend.app.services.dashboard_service import DashboardService, start_of_uk_day
from backend.app.services.expense_service import ExpenseService
from backend.app.services.job_service import JobService, job_documents
from backend.app.services.notification_service import NotificationService


class TestClockStatusService(unittest.TestCase):
    def setUp(self):
        self.organization = SimpleNamespace(id=uuid.uuid4())
        self.organization_repo = MagicMock()
        self.organization_repo.get_active_organizations.return_value = [self.organization]
        self.worker_repo = MagicMock()
        self.clock_repo = MagicMock()
        self.clock_service = MagicMock()
        self.clock_service.auto_clock_out.return_value = []
        self.notifications = MagicMock()
        self.service = ClockStatusService(self.organization_repo, self.worker_repo, self.clock_repo,
                                          self.clock_service, self.notifications)
        self.present = SimpleNamespace(id=uuid.uuid4(), organization_id=self.organization.id)
        self.absent = SimpleNamespace(id=uuid.uuid4(), organization_id=self.organization.id)

    def test_morning_pass_reminds_workers_not_clocked_in(self):
        now = datetime(2025, 1, 6, 9, 15, tzinfo=timezone.utc)
        self.worker_repo.get_all_for_organization.return_value = [self.present, self.absent]
        self.clock_repo.get_worker_ids_clocked_in_since.return_value = [self.present.id]

        result = self.service.run(now)

        self.assertEqual(result, {'auto_clocked_out': 0, 'clock_in_reminders': 1, 'clock_out_reminders': 0})
        self.clock_repo.get_worker_ids_clocked_in_since.assert_called_once_with(
            self.organization.id, datetime(2025, 1, 6, tzinfo=timezone.utc)
        )
        args, kwargs = self.notifications.notify.call_args
        self.assertIs(args[0], self.absent)
        self.assertEqual(args[2], 'Clock In Reminder')
        self.assertEqual(kwargs['dedupe_key'], f'clock_in_reminder_{self.absent.id}_2025-01-06')

    def test_evening_pass_reminds_open_entries(self):
        now = datetime(2025, 6, 4, 18, 5, tzinfo=timezone.utc)  # 19:05 BST
        entry = SimpleNamespace(worker=self.present, worker_id=self.present.id, job=SimpleNamespace(name='Leeds'))
        self.clock_repo.get_open_entries.return_value = [entry]
        self.notifications.notify.return_value = None  # already sent today

        result = self.service.run(now)

        self.assertEqual(result['clock_out_reminders'], 0)
        self.assertEqual(self.notifications.notify.call_args.kwargs['dedupe_key'],
                         f'clock_out_reminder_{self.present.id}_2025-06-04')

    def test_weekend_skips_reminders_but_still_auto_clocks_out(self):
        self.clock_service.auto_clock_out.return_value = [object(), object()]

        result = self.service.run(datetime(2025, 1, 11, 9, 0, tzinfo=timezone.utc))

        self.assertEqual(result['auto_clocked_out'], 2)
        self.notifications.notify.assert_not_called()

    def test_other_hours_only_auto_clock_out(self):
        self.service.run(datetime(2025, 1, 6, 14, 0, tzinfo=timezone.utc))
        self.clock_service.auto_clock_out.assert_called_once()
        self.organization_repo.get_active_organizations.assert_not_called()


class TestDashboardService(unittest.TestCase):
    def test_start_of_uk_day(self):
        self.assertEqual(start_of_uk_day(datetime(2025, 6, 4, 23, 30, tzinfo=timezone.utc)),
                         datetime(2025, 6, 4, 23, 0, tzinfo=timezone.utc))
        self.assertEqual(start_of_uk_day(datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)),
                         datetime(2025, 1, 6, 0, 0, tzinfo=timezone.utc))

    def test_summary(self):
        now = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)
        worker = SimpleNamespace(name='Will')
        job = SimpleNamespace(name='Westminster')
        open_entry = SimpleNamespace(id=uuid.uuid4(), worker_id=uuid.uuid4(), job_id=uuid.uuid4(), worker=worker,
                                     job=job, clock_in=now - timedelta(hours=2), clock_out=None, total_hours=None,
                                     is_overtime=False)
        closed_entry = SimpleNamespace(id=uuid.uuid4(), worker_id=uuid.uuid4(), job_id=uuid.uuid4(), worker=worker,
                                       job=job, clock_in=now - timedelta(hours=6), clock_out=now - timedelta(hours=3),
                                       total_hours=3.0, is_overtime=False)
        worker_repo, job_repo, clock_repo, amendment_repo = MagicMock(), MagicMock(), MagicMock(), MagicMock()
        worker_repo.count_active.return_value = 4
        job_repo.count_active.return_value = 2
        clock_repo.get_open_entries.return_value = [open_entry]
        clock_repo.get_for_organization_in_range.return_value = [closed_entry, open_entry]
        clock_repo.get_recent_activity.return_value = [closed_entry, open_entry]
        clock_repo.count_pending_overtime.return_value = 1
        amendment_repo.count_pending.return_value = 3

        summary = DashboardService(worker_repo, job_repo, clock_repo, amendment_repo).get_summary('org', now)

        self.assertEqual(summary['active_workers'], 4)
        self.assertEqual(summary['active_jobs'], 2)
        self.assertEqual(summary['clocked_in_count'], 1)
        self.assertEqual(summary['total_hours_today'], 5.0)
        self.assertEqual(summary['pending_amendments'], 3)
        self.assertEqual(summary['pending_overtime'], 1)
        self.assertEqual(summary['recent_activity'][0]['message'], 'Will clocked out of Westminster')
        self.assertEqual(summary['recent_activity'][1]['message'], 'Will clocked in at Westminster')


class TestJobService(unittest.TestCase):
    def setUp(self):
        self.job_repo = MagicMock()
        self.job_repo.get_by_code.return_value = None
        self.geocoder = MagicMock()
        self.geocoder.geocode.return_value = {'latitude': 53.7997, 'longitude': -1.5492}
        self.service = JobService(self.job_repo, MagicMock(), self.geocoder)
        self.org_id = uuid.uuid4()

    def test_create_geocodes_legacy_address(self):
        self.service.create_job(self.org_id, {
            'code': 'JOB-002', 'name': 'Leeds Office', 'address': '1 High St, Leeds, ls14ap',
        })

        self.geocoder.geocode.assert_called_once_with('LS1 4AP')
        kwargs = self.job_repo.create.call_args.kwargs
        self.assertEqual(kwargs['address_line_1'], '1 High St')
        self.assertEqual(kwargs['city'], 'Leeds')
        self.assertEqual(kwargs['postcode'], 'LS1 4AP')
        self.assertEqual(kwargs['address'], '1 High St, Leeds, LS1 4AP')
        self.assertEqual((kwargs['latitude'], kwargs['longitude']), (53.7997, -1.5492))
        self.assertEqual(kwargs['geofence_radius'], 100)

    def test_explicit_coordinates_skip_geocoding_but_zero_zero_does_not(self):
        self.service.create_job(self.org_id, {'code': 'A', 'name': 'A', 'postcode': 'LS1 4AP',
                                              'latitude': 53.8, 'longitude': -1.55})
        self.geocoder.geocode.assert_not_called()

        self.service.create_job(self.org_id, {'code': 'B', 'name': 'B', 'postcode': 'LS1 4AP',
                                              'latitude': 0, 'longitude': 0})
        self.geocoder.geocode.assert_called_once_with('LS1 4AP')
        self.assertEqual(self.job_repo.create.call_args.kwargs['latitude'], 53.7997)

    def test_job_documents_are_validated_urls(self):
        self.service.create_job(self.org_id, {'code': 'A', 'name': 'A', 'latitude': 53.8, 'longitude': -1.55,
                                              'waiver_url': ' https://docs.example.com/waiver.pdf ',
                                              'terms_and_conditions_url': ''})
        kwargs = self.job_repo.create.call_args.kwargs
        self.assertEqual(kwargs['waiver_url'], 'https://docs.example.com/waiver.pdf')
        self.assertIsNone(kwargs['terms_and_conditions_url'])
        self.assertTrue(kwargs['show_rams_and_site_info'])

        with self.assertRaises(ValidationError):
            self.service.create_job(self.org_id, {'code': 'B', 'name': 'B', 'latitude': 53.8, 'longitude': -1.55,
                                                  'terms_and_conditions_url': 'javascript:alert(1)'})

    def test_update_clears_document_and_hides_the_rest(self):
        job = SimpleNamespace(id=uuid.uuid4(), organization_id=self.org_id, code='JOB-001', name='Westminster',
                              address_line_1=None, address_line_2=None, city=None, county=None,
                              postcode='SW1A 0AA', address=None, latitude=51.4995, longitude=-0.1248,
                              geofence_radius=150, is_active=True, show_rams_and_site_info=True,
                              terms_and_conditions_url='https://docs.example.com/terms.pdf',
                              waiver_url='https://docs.example.com/waiver.pdf')

        self.service.update_job(job, {'waiver_url': None, 'show_rams_and_site_info': False})

        self.assertIsNone(job.waiver_url)
        self.assertEqual(job.terms_and_conditions_url, 'https://docs.example.com/terms.pdf')
        self.assertEqual(job_documents(job), {})

    def test_create_validation(self):
        self.job_repo.get_by_code.return_value = SimpleNamespace(id=uuid.uuid4())
        with self.assertRaises(ConflictError):
            self.service.create_job(self.org_id, {'code': 'JOB-001', 'name': 'Dup'})

        self.job_repo.get_by_code.return_value = None
        with self.assertRaises(ValidationError):
            self.service.create_job(self.org_id, {'code': 'X', 'name': 'X', 'geofence_radius': 600})
        with self.assertRaises(ValidationError):
            self.service.create_job(self.org_id, {'code': 'X', 'name': 'X', 'postcode': '12345'})

    def test_unknown_postcode_is_a_validation_error(self):
        self.geocoder.geocode.side_effect = GeocodingError('not found', status_code=404)
        with self.assertRaises(ValidationError):
            self.service.create_job(self.org_id, {'code': 'X', 'name': 'X', 'postcode': 'ZZ9 9ZZ'})

    def test_upstream_outage_propagates(self):
        self.geocoder.geocode.side_effect = GeocodingError('down', status_code=502)
        with self.assertRaises(GeocodingError):
            self.service.create_job(self.org_id, {'code': 'X', 'name': 'X', 'postcode': 'ZZ9 9ZZ'})

    def test_update_postcode_regeocodes(self):
        job = SimpleNamespace(id=uuid.uuid4(), organization_id=self.org_id, code='JOB-001', name='Westminster',
                              address_line_1='Parliament Sq', address_line_2=None, city='London', county=None,
                              postcode='SW1A 0AA', address=None, latitude=51.4995, longitude=-0.1248,
                              geofence_radius=150, is_active=True)

        self.service.update_job(job, {'postcode': 'ls1 4ap'})

        self.assertEqual(job.postcode, 'LS1 4AP')
        self.assertEqual((job.latitude, job.longitude), (53.7997, -1.5492))
        self.assertEqual(job.address, 'Parliament Sq, London, LS1 4AP')
        self.job_repo.commit.assert_called_once()

    def test_update_name_keeps_coordinates(self):
        job = SimpleNamespace(id=uuid.uuid4(), organization_id=self.org_id, code='JOB-001', name='Westminster',
                              address_line_1=None, address_line_2=None, city=None, county=None,
                              postcode='SW1A 0AA', address=None, latitude=51.4995, longitude=-0.1248,
                              geofence_radius=150, is_active=True)

        self.service.update_job(job, {'name': 'Houses of Parliament'})

        self.assertEqual(job.name, 'Houses of Parliament')
        self.geocoder.geocode.assert_not_called()


class TestExpenseService(unittest.TestCase):
    def setUp(self):
        self.type_repo = MagicMock()
        self.cost_repo = MagicMock()
        self.clock_repo = MagicMock()
        self.service = ExpenseService(self.type_repo, self.cost_repo, self.clock_repo)
        self.worker = SimpleNamespace(id=uuid.uuid4(), organization_id=uuid.uuid4())
        self.expense_type = SimpleNamespace(id=uuid.uuid4(), name='Mileage', amount=15.0, is_active=True)
        self.type_repo.get_for_organization.return_value = self.expense_type

    def test_amount_defaults_to_type_amount(self):
        self.service.record_cost(self.worker, {'expense_type_id': str(self.expense_type.id), 'date': '2025-01-07'})

        kwargs = self.cost_repo.create.call_args.kwargs
        self.assertEqual(kwargs['amount'], 15.0)
        self.assertEqual(kwargs['date'], date(2025, 1, 7))
        self.assertEqual(kwargs['worker_id'], self.worker.id)

    def test_linked_entry_must_be_the_workers_own(self):
        self.clock_repo.get_by_id.return_value = SimpleNamespace(worker_id=uuid.uuid4())
        with self.assertRaises(NotFoundError):
            self.service.record_cost(self.worker, {
                'expense_type_id': str(self.expense_type.id), 'clock_entry_id': str(uuid.uuid4()),
                'date': '2025-01-07',
            })

    def test_record_cost_validation(self):
        with self.assertRaises(ValidationError):
            self.service.record_cost(self.worker, {'date': '2025-01-07'})
        with self.assertRaises(ValidationError):
            self.service.record_cost(self.worker, {'expense_type_id': str(self.expense_type.id)})
        self.expense_type.is_active = False
        with self.assertRaises(ValidationError):
            self.service.record_cost(self.worker, {'expense_type_id': str(self.expense_type.id), 'date': '2025-01-07'})

    def test_expense_type_calculation(self):
        self.type_repo.get_by_name.return_value = None
        with self.assertRaises(ValidationError):
            self.service.create_expense_type(uuid.uuid4(), {'name': 'Tools', 'calculation_type': 'per_mile'})

        self.service.create_expense_type(uuid.uuid4(), {'name': 'Tools', 'amount': '1.25',
                                                        'calculation_type': 'hourly_multiplied'})
        kwargs = self.type_repo.create.call_args.kwargs
        self.assertEqual(kwargs['amount'], 1.25)
        self.assertEqual(kwargs['calculation_type'], 'hourly_multiplied')


class TestNotificationService(unittest.TestCase):
    def test_dedupe_key_suppresses_repeat(self):
        repo = MagicMock()
        repo.get_by_dedupe_key.return_value = SimpleNamespace(id=uuid.uuid4())
        worker = SimpleNamespace(id=uuid.uuid4(), organization_id=uuid.uuid4())

        self.assertIsNone(NotificationService(repo).notify(worker, 'x', 'T', 'B', dedupe_key='k'))
        repo.create.assert_not_called()

    def test_staged_notification_is_not_committed(self):
        repo = MagicMock()
        repo.get_by_dedupe_key.return_value = None
        worker = SimpleNamespace(id=uuid.uuid4(), organization_id=uuid.uuid4())

        NotificationService(repo).notify(worker, 'x', 'T', 'B', dedupe_key='k', commit=False)

        repo.add.assert_called_once()
        repo.create.assert_not_called()

    def test_mark_read_only_for_owner(self):
        repo = MagicMock()
        owner = uuid.uuid4()
        notification = SimpleNamespace(worker_id=owner, read=False)
        service = NotificationService(repo)

        self.assertIsNone(service.mark_read(notification, uuid.uuid4()))
        self.assertFalse(notification.read)
        service.mark_read(notification, owner)
        self.assertTrue(notification.read)


if __name__ == '__main__':
    unittest.main()
