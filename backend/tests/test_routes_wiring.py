import os
import unittest

from backend.app import create_app


class RouteWiringTests(unittest.TestCase):
    def test_api_routes_registered(self):
        os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
        app = create_app()
        rules = {rule.rule for rule in app.url_map.iter_rules()}

        expected = {
            '/api/health',
            '/metrics',
            '/api/auth/login',
            '/api/auth/me',
            '/api/auth/change-password',
            '/api/auth/reset-password',
            '/api/auth/tutorials',
            '/api/auth/tutorials/<tutorial_id>/complete',
            '/api/organizations',
            '/api/organizations/current',
            '/api/subscription',
            '/api/subscription/upgrade',
            '/api/managers',
            '/api/managers/<uuid:manager_id>',
            '/api/managers/<uuid:manager_id>/activate',
            '/api/managers/<uuid:manager_id>/deactivate',
            '/api/workers',
            '/api/workers/<uuid:worker_id>',
            '/api/workers/<uuid:worker_id>/activate',
            '/api/workers/<uuid:worker_id>/deactivate',
            '/api/jobs',
            '/api/jobs/<uuid:job_id>',
            '/api/geocode/postcode',
            '/api/geocode/import',
            '/api/clock/in',
            '/api/clock/out',
            '/api/clock/current',
            '/api/clock/entries',
            '/api/clock/entries/<uuid:entry_id>/history',
            '/api/amendments',
            '/api/amendments/<uuid:amendment_id>/<decision>',
            '/api/overtime',
            '/api/overtime/<uuid:entry_id>/<decision>',
            '/api/expense-types',
            '/api/expense-types/<uuid:type_id>',
            '/api/expenses',
            '/api/reports/line-items',
            '/api/reports/line-items/regenerate',
            '/api/reports/line-items/<uuid:item_id>',
            '/api/reports/totals',
            '/api/reports/export',
            '/api/reports/timesheet',
            '/api/notifications',
            '/api/notifications/<uuid:notification_id>/read',
            '/api/notifications/read-all',
            '/api/dashboard/summary',
        }

        for route in expected:
            self.assertIn(route, rules)


if __name__ == '__main__':
    unittest.main()
