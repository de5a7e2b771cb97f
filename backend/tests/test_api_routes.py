import io
import os
import unittest
import uuid
from datetime import datetime, timezone

from werkzeug.security import generate_password_hash

from backend.app import create_app, db
from backend.app.auth_utils import encode_auth_token
from backend.app.models import (
    AdditionalCost, ClockEntry, ClockEntryHistory, Job, Notification, Organization, ReportLineItem, TimeAmendment,
    User, Worker,
)

PASSWORD = 'Site-Time-2025'
PASSWORD_HASH = generate_password_hash(PASSWORD, method='pbkdf2:sha256')
WEEK = '2025-01-06'


class ApiTestCase(unittest.TestCase):
    """In-memory app with one organization: a super admin, a manager, a worker and a job."""

    def setUp(self):
        os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
        os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

        self.app = create_app({'TESTING': True})
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.org = self._organization('Acme Build')
        self.admin = self._user(self.org, 'admin@acme.test', 'SUPER_ADMIN', is_owner=True)
        self.manager = self._user(self.org, 'manager@acme.test', 'MANAGER')
        self.worker_user = self._user(self.org, 'will@acme.test', 'WORKER')
        self.worker = Worker(organization_id=self.org.id, user_id=self.worker_user.id, name='Will Worker',
                             email='will@acme.test', hourly_rate=20, is_active=True)
        self.job = Job(organization_id=self.org.id, code='JOB-001', name='Westminster', postcode='SW1A 0AA',
                       latitude=51.4995, longitude=-0.1248, geofence_radius=150, is_active=True)
        db.session.add_all([self.worker, self.job])
        db.session.commit()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _organization(self, name):
        organization = Organization(name=name, subscription_status='trial', max_managers=3, max_workers=10,
                                    is_active=True)
        db.session.add(organization)
        db.session.flush()
        return organization

    def _user(self, organization, email, role, is_owner=False):
        user = User(organization_id=organization.id, full_name=email.split('@')[0].title(), email=email, role=role,
                    password_hash=PASSWORD_HASH, is_owner=is_owner, is_active=True)
        db.session.add(user)
        db.session.flush()
        return user

    def _closed_entry(self, start_hour=8, hours=8, day=6):
        entry = ClockEntry(
            organization_id=self.org.id, worker_id=self.worker.id, job_id=self.job.id,
            clock_in=datetime(2025, 1, day, start_hour, 0, tzinfo=timezone.utc),
            clock_out=datetime(2025, 1, day, start_hour + hours, 0, tzinfo=timezone.utc),
            total_hours=float(hours),
        )
        db.session.add(entry)
        db.session.commit()
        return entry

    @staticmethod
    def auth(user):
        return {'Authorization': f'Bearer {encode_auth_token(user.id)}'}


class AuthRoutesTests(ApiTestCase):
    def test_login_returns_token_and_organization(self):
        response = self.client.post('/api/auth/login', json={'email': 'admin@acme.test', 'password': PASSWORD})

        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertTrue(data['token'])
        self.assertEqual(data['user']['organization']['name'], 'Acme Build')
        self.assertNotIn('password_hash', data['user'])
        self.assertFalse(data['must_change_password'])

    def test_login_rejects_bad_credentials(self):
        response = self.client.post('/api/auth/login', json={'email': 'admin@acme.test', 'password': 'nope'})
        self.assertEqual(response.status_code, 401)

        response = self.client.post('/api/auth/login', json={'email': 'admin@acme.test'})
        self.assertEqual(response.status_code, 400)

    def test_login_blocked_for_deactivated_organization(self):
        self.org.is_active = False
        db.session.commit()

        response = self.client.post('/api/auth/login', json={'email': 'admin@acme.test', 'password': PASSWORD})
        self.assertEqual(response.status_code, 403)

    def test_me_requires_valid_token(self):
        self.assertEqual(self.client.get('/api/auth/me').status_code, 401)
        response = self.client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})
        self.assertEqual(response.status_code, 401)

    def test_worker_me_includes_profile(self):
        response = self.client.get('/api/auth/me', headers=self.auth(self.worker_user))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['worker']['name'], 'Will Worker')

    def test_super_admin_resets_manager_password(self):
        response = self.client.post('/api/auth/reset-password', headers=self.auth(self.admin),
                                    json={'manager_id': str(self.manager.id), 'send_email': False})

        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertFalse(data['email_sent'])
        self.assertTrue(data['manager']['must_change_password'])

        login = self.client.post('/api/auth/login',
                                 json={'email': 'manager@acme.test', 'password': data['temporary_password']})
        self.assertEqual(login.status_code, 200)
        self.assertTrue(login.get_json()['data']['must_change_password'])

    def test_manager_cannot_reset_passwords(self):
        response = self.client.post('/api/auth/reset-password', headers=self.auth(self.manager),
                                    json={'manager_id': str(self.manager.id)})
        self.assertEqual(response.status_code, 403)


class TenantGuardTests(ApiTestCase):
    def test_workers_cannot_use_management_routes(self):
        for path in ('/api/workers', '/api/overtime', f'/api/reports/line-items?week_start={WEEK}'):
            response = self.client.get(path, headers=self.auth(self.worker_user))
            self.assertEqual(response.status_code, 403, path)

    def test_managers_cannot_clock_in(self):
        response = self.client.post('/api/clock/in', headers=self.auth(self.manager),
                                    json={'job_id': str(self.job.id), 'latitude': 51.4995, 'longitude': -0.1248})
        self.assertEqual(response.status_code, 403)

    def test_other_organization_records_are_not_found(self):
        other = self._organization('Other Co')
        other_job = Job(organization_id=other.id, code='JOB-001', name='Elsewhere', latitude=53.8,
                        longitude=-1.55, geofence_radius=100, is_active=True)
        db.session.add(other_job)
        db.session.commit()

        response = self.client.get(f'/api/jobs/{other_job.id}', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 404)
        response = self.client.get(f'/api/workers/{uuid.uuid4()}', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 404)

        # Worker cannot clock in at another tenant's job either
        response = self.client.post('/api/clock/in', headers=self.auth(self.worker_user),
                                    json={'job_id': str(other_job.id), 'latitude': 53.8, 'longitude': -1.55})
        self.assertEqual(response.status_code, 404)

    def test_health(self):
        self.assertEqual(self.client.get('/api/health').get_json(), {'ok': True})


class ClockRoutesTests(ApiTestCase):
    def test_clock_in_and_out(self):
        headers = self.auth(self.worker_user)
        payload = {'job_id': str(self.job.id), 'latitude': 51.4996, 'longitude': -0.1248}

        response = self.client.post('/api/clock/in', headers=headers, json=payload)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()['data']['job_code'], 'JOB-001')

        self.assertEqual(self.client.post('/api/clock/in', headers=headers, json=payload).status_code, 409)

        current = self.client.get('/api/clock/current', headers=headers).get_json()['data']
        self.assertIsNotNone(current)
        self.assertIsNone(current['clock_out'])

        response = self.client.post('/api/clock/out', headers=headers, json={'latitude': 51.4996, 'longitude': -0.1248})
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.get_json()['data']['total_hours'])

        self.assertEqual(self.client.post('/api/clock/out', headers=headers, json={}).status_code, 409)
        self.assertIsNone(self.client.get('/api/clock/current', headers=headers).get_json()['data'])

    def test_clock_in_outside_geofence(self):
        response = self.client.post('/api/clock/in', headers=self.auth(self.worker_user),
                                    json={'job_id': str(self.job.id), 'latitude': 51.51, 'longitude': -0.1248})

        self.assertEqual(response.status_code, 403)
        body = response.get_json()
        self.assertGreater(body['data']['distance_m'], 150)
        self.assertEqual(body['data']['radius_m'], 150)
        self.assertEqual(ClockEntry.query.count(), 0)

    def test_job_documents_are_accepted_at_clock_in(self):
        response = self.client.put(f'/api/jobs/{self.job.id}', headers=self.auth(self.manager),
                                   json={'waiver_url': 'https://docs.example.com/waiver.pdf'})
        self.assertEqual(response.status_code, 200)

        headers = self.auth(self.worker_user)
        job = self.client.get(f'/api/jobs/{self.job.id}', headers=headers).get_json()['data']
        self.assertEqual(job['documents'], {'waiver_url': 'https://docs.example.com/waiver.pdf'})

        payload = {'job_id': str(self.job.id), 'latitude': 51.4996, 'longitude': -0.1248}
        response = self.client.post('/api/clock/in', headers=headers, json=payload)
        self.assertEqual(response.status_code, 400)
        self.assertIn('waiver_url', response.get_json()['data']['documents'])
        self.assertEqual(ClockEntry.query.count(), 0)

        response = self.client.post('/api/clock/in', headers=headers, json=dict(payload, accept_documents=True))
        self.assertEqual(response.status_code, 201)
        self.assertIsNotNone(response.get_json()['data']['documents_accepted_at'])

    def test_hidden_job_documents_are_not_shown_to_workers(self):
        self.client.put(f'/api/jobs/{self.job.id}', headers=self.auth(self.manager),
                        json={'waiver_url': 'https://docs.example.com/waiver.pdf', 'show_rams_and_site_info': False})

        job = self.client.get(f'/api/jobs/{self.job.id}', headers=self.auth(self.worker_user)).get_json()['data']
        self.assertIsNone(job['waiver_url'])
        self.assertEqual(job['documents'], {})

        response = self.client.post('/api/clock/in', headers=self.auth(self.worker_user),
                                    json={'job_id': str(self.job.id), 'latitude': 51.4996, 'longitude': -0.1248})
        self.assertEqual(response.status_code, 201)

    def test_clock_in_requires_job(self):
        response = self.client.post('/api/clock/in', headers=self.auth(self.worker_user),
                                    json={'latitude': 51.4995, 'longitude': -0.1248})
        self.assertEqual(response.status_code, 400)

    def test_entries_week_must_start_on_monday(self):
        response = self.client.get('/api/clock/entries?week_start=2025-01-07', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 400)

    def test_worker_sees_own_entries_for_week(self):
        self._closed_entry(day=6)
        self._closed_entry(day=14)

        response = self.client.get(f'/api/clock/entries?week_start={WEEK}', headers=self.auth(self.worker_user))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()['data']), 1)

    def test_manual_entry_is_recorded_with_history(self):
        response = self.client.post('/api/clock/entries', headers=self.auth(self.manager), json={
            'worker_id': str(self.worker.id),
            'job_id': str(self.job.id),
            'clock_in': '2025-01-06T08:00:00Z',
            'clock_out': '2025-01-06T16:00:00Z',
            'notes': 'Forgot phone',
        })

        self.assertEqual(response.status_code, 201)
        data = response.get_json()['data']
        self.assertEqual(data['total_hours'], 8.0)
        self.assertTrue(data['manual_entry'])

        history = self.client.get(f"/api/clock/entries/{data['id']}/history", headers=self.auth(self.manager))
        self.assertEqual([h['change_type'] for h in history.get_json()['data']], ['manual_entry'])


class AmendmentRoutesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.entry = self._closed_entry()

    def _submit(self):
        return self.client.post('/api/amendments', headers=self.auth(self.worker_user), json={
            'clock_entry_id': str(self.entry.id),
            'requested_clock_in': '2025-01-06T07:30:00Z',
            'reason': 'Arrived early to unload materials',
        })

    def test_submit_and_approve(self):
        response = self._submit()
        self.assertEqual(response.status_code, 201)
        amendment_id = response.get_json()['data']['id']
        self.assertEqual(self._submit().status_code, 409)

        response = self.client.post(f'/api/amendments/{amendment_id}/approve', headers=self.auth(self.manager),
                                    json={'manager_notes': 'Confirmed with foreman'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['status'], 'approved')

        entry = db.session.get(ClockEntry, self.entry.id)
        self.assertEqual(entry.total_hours, 8.5)
        history = ClockEntryHistory.query.filter_by(clock_entry_id=self.entry.id).all()
        self.assertEqual([h.change_type for h in history], ['amendment_approval'])

        response = self.client.post(f'/api/amendments/{amendment_id}/reject', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 409)

    def test_approval_fails_when_entry_was_closed_before_requested_start(self):
        open_entry = ClockEntry(organization_id=self.org.id, worker_id=self.worker.id, job_id=self.job.id,
                                clock_in=datetime(2025, 1, 7, 8, 0, tzinfo=timezone.utc))
        db.session.add(open_entry)
        db.session.commit()
        response = self.client.post('/api/amendments', headers=self.auth(self.worker_user), json={
            'clock_entry_id': str(open_entry.id),
            'requested_clock_in': '2025-01-07T17:00:00Z',
            'reason': 'Started late after the delivery',
        })
        self.assertEqual(response.status_code, 201)
        amendment_id = response.get_json()['data']['id']

        open_entry.clock_out = datetime(2025, 1, 7, 16, 0, tzinfo=timezone.utc)
        open_entry.total_hours = 8.0
        db.session.commit()

        response = self.client.post(f'/api/amendments/{amendment_id}/approve', headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 400)
        db.session.expire_all()
        entry = db.session.get(ClockEntry, open_entry.id)
        self.assertEqual(entry.total_hours, 8.0)
        self.assertEqual(entry.clock_in.hour, 8)
        self.assertEqual(db.session.get(TimeAmendment, uuid.UUID(amendment_id)).status, 'pending')

    def test_worker_is_notified_of_decision(self):
        amendment_id = self._submit().get_json()['data']['id']
        self.client.post(f'/api/amendments/{amendment_id}/reject', headers=self.auth(self.manager),
                         json={'manager_notes': 'No record of early arrival'})

        response = self.client.get('/api/notifications', headers=self.auth(self.worker_user))
        body = response.get_json()
        self.assertEqual(body['meta']['unread_count'], 1)
        self.assertEqual(body['data'][0]['type'], 'amendment_rejected')

        notification_id = body['data'][0]['id']
        response = self.client.post(f'/api/notifications/{notification_id}/read', headers=self.auth(self.worker_user))
        self.assertTrue(response.get_json()['data']['read'])

    def test_decision_routes(self):
        amendment_id = self._submit().get_json()['data']['id']

        response = self.client.post(f'/api/amendments/{amendment_id}/maybe', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 404)
        response = self.client.post(f'/api/amendments/{amendment_id}/approve', headers=self.auth(self.worker_user))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(db.session.get(TimeAmendment, uuid.UUID(amendment_id)).status, 'pending')

    def test_list_filters_by_status(self):
        self._submit()

        response = self.client.get('/api/amendments?status=pending', headers=self.auth(self.manager))
        self.assertEqual(len(response.get_json()['data']), 1)
        response = self.client.get('/api/amendments?status=approved', headers=self.auth(self.manager))
        self.assertEqual(response.get_json()['data'], [])
        response = self.client.get('/api/amendments?status=bogus', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 400)


class ReportRoutesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.entry = self._closed_entry()

    def test_line_items_generated_on_first_fetch(self):
        response = self.client.get(f'/api/reports/line-items?week_start={WEEK}', headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(len(body['data']), 1)
        item = body['data'][0]
        self.assertEqual(item['quantity'], 8.0)
        self.assertEqual(item['unit_amount'], 20.0)
        self.assertEqual(item['description_generated'], 'Construction Work - 06/01/2025 - Week 2 2025')
        self.assertEqual(body['meta']['totals']['grand_total'], 160.0)
        self.assertEqual(ReportLineItem.query.count(), 1)

        self.client.get(f'/api/reports/line-items?week_start={WEEK}', headers=self.auth(self.manager))
        self.assertEqual(ReportLineItem.query.count(), 1)

    def test_edit_writes_back_and_deleting_every_item_rebuilds_week(self):
        item = self.client.get(f'/api/reports/line-items?week_start={WEEK}',
                               headers=self.auth(self.manager)).get_json()['data'][0]

        response = self.client.patch(f"/api/reports/line-items/{item['id']}", headers=self.auth(self.manager),
                                     json={'quantity': 7.5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(db.session.get(ClockEntry, self.entry.id).total_hours, 7.5)

        response = self.client.delete(f"/api/reports/line-items/{item['id']}", headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 200)
        items = self.client.get(f'/api/reports/line-items?week_start={WEEK}',
                                headers=self.auth(self.manager)).get_json()['data']
        self.assertEqual(len(items), 1)
        self.assertNotEqual(items[0]['id'], item['id'])
        self.assertEqual(items[0]['quantity'], 7.5)
        self.assertEqual(ReportLineItem.query.count(), 1)

    def test_monday_after_midnight_in_summer_time_belongs_to_that_week(self):
        db.session.add(ClockEntry(
            organization_id=self.org.id, worker_id=self.worker.id, job_id=self.job.id,
            clock_in=datetime(2025, 10, 12, 23, 30, tzinfo=timezone.utc),
            clock_out=datetime(2025, 10, 13, 7, 30, tzinfo=timezone.utc),
            total_hours=8.0,
        ))
        db.session.commit()

        previous = self.client.get('/api/reports/line-items?week_start=2025-10-06', headers=self.auth(self.manager))
        self.assertEqual(previous.get_json()['data'], [])

        response = self.client.get('/api/reports/line-items?week_start=2025-10-13', headers=self.auth(self.manager))
        items = response.get_json()['data']
        self.assertEqual([(i['work_date'], i['description_generated']) for i in items],
                         [('2025-10-13', 'Construction Work - 13/10/2025 - Week 42 2025')])

        entries = self.client.get('/api/clock/entries?week_start=2025-10-13', headers=self.auth(self.worker_user))
        self.assertEqual(len(entries.get_json()['data']), 1)

    def test_regenerate_discards_edits(self):
        item = self.client.get(f'/api/reports/line-items?week_start={WEEK}',
                               headers=self.auth(self.manager)).get_json()['data'][0]
        self.client.patch(f"/api/reports/line-items/{item['id']}", headers=self.auth(self.manager),
                          json={'unit_amount': 99})

        response = self.client.post('/api/reports/line-items/regenerate', headers=self.auth(self.manager),
                                    json={'week_start': WEEK})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([i['unit_amount'] for i in response.get_json()['data']], [20.0])

    def test_csv_export(self):
        response = self.client.get(f'/api/reports/export?week_start={WEEK}&format=csv', headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.mimetype.startswith('text/csv'))
        self.assertIn('weekly-report-2025-01-12.csv', response.headers['Content-Disposition'])
        self.assertIn('Will Worker', response.data.decode('utf-8-sig'))

    def test_xlsx_export(self):
        response = self.client.get(f'/api/reports/export?week_start={WEEK}&format=xlsx',
                                   headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b'PK'))

    def test_export_argument_validation(self):
        response = self.client.get(f'/api/reports/export?week_start={WEEK}&format=pdf', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 400)
        response = self.client.get('/api/reports/export?week_start=2025-01-08', headers=self.auth(self.manager))
        self.assertEqual(response.status_code, 400)

    def test_timesheet_export(self):
        response = self.client.get(f'/api/reports/timesheet?week_start={WEEK}&worker_id={self.worker.id}',
                                   headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 200)
        lines = response.data.decode('utf-8-sig').splitlines()
        self.assertTrue(lines[1].startswith('06/01/2025,JOB-001,Westminster,08:00,16:00,8.00'))


class OrganizationRoutesTests(ApiTestCase):
    SIGNUP = {
        'organization_name': 'New Build Ltd',
        'admin_name': 'Nina Owner',
        'admin_email': 'nina@newbuild.test',
        'admin_password': 'Str0ng-Pass!',
    }

    def test_signup_starts_trial(self):
        response = self.client.post('/api/organizations', json=self.SIGNUP)

        self.assertEqual(response.status_code, 201)
        data = response.get_json()['data']
        self.assertEqual(data['organization']['subscription_status'], 'trial')
        self.assertEqual(data['user']['role'], 'SUPER_ADMIN')

        summary = self.client.get('/api/subscription', headers={'Authorization': f"Bearer {data['token']}"})
        summary = summary.get_json()['data']
        self.assertEqual(summary['plan_type'], 'trial')
        self.assertEqual(summary['workers']['limit'], 10)
        self.assertEqual(len(summary['history']), 1)

    def test_signup_validation(self):
        self.assertEqual(self.client.post('/api/organizations', json=dict(self.SIGNUP, admin_password='weak')).status_code, 400)
        duplicate = dict(self.SIGNUP, admin_email='admin@acme.test')
        self.assertEqual(self.client.post('/api/organizations', json=duplicate).status_code, 409)

    def test_upgrade_raises_limits(self):
        response = self.client.post('/api/subscription/upgrade', headers=self.auth(self.admin),
                                    json={'plan_type': 'pro'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['subscription']['workers']['limit'], 100)
        self.assertEqual(db.session.get(Organization, self.org.id).subscription_status, 'pro')

        response = self.client.post('/api/subscription/upgrade', headers=self.auth(self.admin),
                                    json={'plan_type': 'starter'})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/subscription/upgrade', headers=self.auth(self.manager),
                                    json={'plan_type': 'enterprise'})
        self.assertEqual(response.status_code, 403)

    def test_worker_capacity_enforced(self):
        self.org.max_workers = 1
        db.session.commit()

        response = self.client.post('/api/workers', headers=self.auth(self.manager),
                                    json={'name': 'New Hire', 'email': 'new@acme.test'})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()['data']['limit'], 1)

    def test_delete_organization_removes_everything(self):
        self._closed_entry()
        db.session.add(Notification(organization_id=self.org.id, worker_id=self.worker.id, type='info', title='T',
                                    body='B'))
        db.session.commit()
        other = self._organization('Other Co')
        db.session.commit()

        self.assertEqual(self.client.delete('/api/organizations/current', headers=self.auth(self.manager)).status_code, 403)

        response = self.client.delete('/api/organizations/current', headers=self.auth(self.admin))

        self.assertEqual(response.status_code, 200)
        steps = [s['step'] for s in response.get_json()['data']['steps']]
        self.assertEqual(steps[-1], 'organization')
        self.assertEqual([o.id for o in Organization.query.all()], [other.id])
        self.assertEqual(User.query.count(), 0)
        self.assertEqual(Worker.query.count(), 0)
        self.assertEqual(ClockEntry.query.count(), 0)


class WorkerRoutesTests(ApiTestCase):
    def test_delete_worker_with_reminder_removes_notifications(self):
        db.session.add(Notification(organization_id=self.org.id, worker_id=self.worker.id, type='clock_in_reminder',
                                    title='Clock-in Reminder', body='Remember to clock in.'))
        db.session.commit()
        user_id = self.worker_user.id

        response = self.client.delete(f'/api/workers/{self.worker.id}', headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Worker.query.count(), 0)
        self.assertEqual(Notification.query.count(), 0)
        self.assertIsNone(db.session.get(User, user_id))

    def test_worker_with_additional_cost_cannot_be_deleted(self):
        db.session.add(AdditionalCost(organization_id=self.org.id, worker_id=self.worker.id, amount=12,
                                      date=datetime(2025, 1, 7).date()))
        db.session.commit()

        response = self.client.delete(f'/api/workers/{self.worker.id}', headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 409)
        self.assertEqual(Worker.query.count(), 1)


class ExpenseRoutesTests(ApiTestCase):
    def test_worker_records_expense_at_type_amount(self):
        response = self.client.post('/api/expense-types', headers=self.auth(self.manager),
                                    json={'name': 'Mileage', 'amount': 15})
        self.assertEqual(response.status_code, 201)
        type_id = response.get_json()['data']['id']

        response = self.client.post('/api/expenses', headers=self.auth(self.worker_user),
                                    json={'expense_type_id': type_id, 'date': '2025-01-07'})
        self.assertEqual(response.status_code, 201)

        items = self.client.get(f'/api/reports/line-items?week_start={WEEK}',
                                headers=self.auth(self.manager)).get_json()['data']
        self.assertEqual([(i['entry_type'], i['expense_type'], i['unit_amount']) for i in items],
                         [('expense', 'Mileage', 15.0)])

    def test_in_use_expense_type_is_deactivated_not_deleted(self):
        type_id = self.client.post('/api/expense-types', headers=self.auth(self.manager),
                                   json={'name': 'Parking', 'amount': 8}).get_json()['data']['id']
        self.client.post('/api/expenses', headers=self.auth(self.worker_user),
                         json={'expense_type_id': type_id, 'date': '2025-01-07'})

        response = self.client.delete(f'/api/expense-types/{type_id}', headers=self.auth(self.manager))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.get_json()['data']['is_active'])


class GeocodeImportTests(ApiTestCase):
    def test_import_then_lookup_from_cache(self):
        content = b'postcode,latitude,longitude\nSW1A 1AA,51.501009,-0.141588\n'
        response = self.client.post(
            '/api/geocode/import', headers=self.auth(self.admin),
            data={'file': (io.BytesIO(content), 'postcodes.csv')}, content_type='multipart/form-data'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data'], {'imported': 1, 'errors': 0})

        response = self.client.post('/api/geocode/postcode', headers=self.auth(self.manager),
                                    json={'postcode': 'sw1a1aa'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['tier'], 'local_postcode')

    def test_invalid_postcode_is_400(self):
        response = self.client.post('/api/geocode/postcode', headers=self.auth(self.manager),
                                    json={'postcode': 'hello'})
        self.assertEqual(response.status_code, 400)


if __name__ == '__main__':
    unittest.main()
