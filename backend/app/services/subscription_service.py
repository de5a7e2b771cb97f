import logging
from typing import Optional, Dict, Any

from ..errors import CapacityExceededError, PermissionDeniedError, ValidationError
from ..utils import utc_now

logger = logging.getLogger(__name__)

UNLIMITED = 999999

# Tier order matters: upgrades may only move right.
PLAN_ORDER = ['trial', 'starter', 'pro', 'enterprise']

PLANS = {
    'trial': {'name': 'Trial', 'max_managers': 3, 'max_workers': 10, 'monthly_price': 0},
    'starter': {'name': 'Starter', 'max_managers': 2, 'max_workers': 10, 'monthly_price': 65},
    'pro': {'name': 'Pro', 'max_managers': 5, 'max_workers': 100, 'monthly_price': 275},
    'enterprise': {'name': 'Enterprise', 'max_managers': UNLIMITED, 'max_workers': UNLIMITED, 'monthly_price': None},
}

TRIAL_DAYS = 14


def capacity(limit: Optional[int], current: int) -> Dict[str, Any]:
    """
    Capacity against a plan limit; None (or the enterprise sentinel) is unlimited.
    """
    if limit is None or limit >= UNLIMITED:
        return {'limit': None, 'current': current, 'remaining': None, 'can_create': True}
    return {
        'limit': limit,
        'current': current,
        'remaining': max(limit - current, 0),
        'can_create': current < limit,
    }


class SubscriptionService:
    def __init__(self, organization_repo, usage_repo, user_repo, worker_repo, audit_repo):
        self.organization_repo = organization_repo
        self.usage_repo = usage_repo
        self.user_repo = user_repo
        self.worker_repo = worker_repo
        self.audit_repo = audit_repo

    def count_managers(self, organization_id) -> int:
        return self.user_repo.count_by_role('MANAGER', organization_id)

    def count_workers(self, organization_id) -> int:
        return self.worker_repo.count_active(organization_id)

    def manager_capacity(self, organization):
        return capacity(organization.max_managers, self.count_managers(organization.id))

    def worker_capacity(self, organization):
        return capacity(organization.max_workers, self.count_workers(organization.id))

    def ensure_can_add_manager(self, organization):
        cap = self.manager_capacity(organization)
        if not cap['can_create']:
            raise CapacityExceededError(
                f"Manager limit reached ({cap['limit']}) for the {organization.subscription_status} plan",
                details=cap,
            )

    def ensure_can_add_worker(self, organization):
        cap = self.worker_capacity(organization)
        if not cap['can_create']:
            raise CapacityExceededError(
                f"Worker limit reached ({cap['limit']}) for the {organization.subscription_status} plan",
                details=cap,
            )

    def get_summary(self, organization) -> Dict[str, Any]:
        plan_type = organization.subscription_status or 'trial'
        plan = PLANS.get(plan_type, PLANS['trial'])
        current_index = PLAN_ORDER.index(plan_type) if plan_type in PLAN_ORDER else 0
        return {
            'plan_type': plan_type,
            'plan_name': plan['name'],
            'monthly_price': plan['monthly_price'],
            'trial_ends_at': organization.trial_ends_at.isoformat() if organization.trial_ends_at else None,
            'managers': self.manager_capacity(organization),
            'workers': self.worker_capacity(organization),
            'available_upgrades': PLAN_ORDER[current_index + 1:],
            'plans': PLANS,
        }

    def start_trial(self, organization):
        """Open the first usage row for a freshly created organization."""
        return self.usage_repo.add(
            organization_id=organization.id,
            plan_type='trial',
            max_managers=organization.max_managers,
            max_workers=organization.max_workers,
            current_managers=0,
            current_workers=0,
            monthly_price=0,
            started_at=utc_now(),
            is_active=True,
        )

    def upgrade(self, organization, plan_type: str, actor):
        """
        Move an organization to a higher plan.

        Closes the active usage row, opens a new one carrying current
        counts, and updates the organization's limits and status in one
        transaction.

        Raises:
            PermissionDeniedError: Actor is not a super admin of the organization
            ValidationError: Unknown plan or not an upgrade
        """
        if actor.role != 'SUPER_ADMIN' or actor.organization_id != organization.id:
            raise PermissionDeniedError('Only a super admin of this organization can change the plan')
        if plan_type not in PLANS:
            raise ValidationError(f"Unknown plan '{plan_type}'")

        current = organization.subscription_status or 'trial'
        current_index = PLAN_ORDER.index(current) if current in PLAN_ORDER else 0
        if PLAN_ORDER.index(plan_type) <= current_index:
            raise ValidationError(f"Cannot change plan from {current} to {plan_type}: only upgrades are allowed")

        plan = PLANS[plan_type]
        now = utc_now()
        max_managers = None if plan['max_managers'] >= UNLIMITED else plan['max_managers']
        max_workers = None if plan['max_workers'] >= UNLIMITED else plan['max_workers']

        try:
            closed = self.usage_repo.close_active(organization.id, now)
            usage = self.usage_repo.add(
                organization_id=organization.id,
                plan_type=plan_type,
                max_managers=max_managers,
                max_workers=max_workers,
                current_managers=self.count_managers(organization.id),
                current_workers=self.count_workers(organization.id),
                monthly_price=plan['monthly_price'],
                started_at=now,
                is_active=True,
            )
            organization.subscription_status = plan_type
            organization.max_managers = max_managers
            organization.max_workers = max_workers
            organization.trial_ends_at = None
            self.audit_repo.log_event(
                'SUBSCRIPTION_UPGRADE',
                'ORGANIZATION',
                organization.id,
                organization_id=organization.id,
                actor_id=actor.id,
                metadata={'from': current, 'to': plan_type, 'closed_usage_rows': closed},
                commit=False,
            )
            self.usage_repo.commit()
        except Exception:
            self.usage_repo.rollback()
            raise

        logger.info(f"Organization {organization.id} upgraded from {current} to {plan_type}")
        return usage
