import os
from datetime import date
from dotenv import load_dotenv
from app import create_app
from app.repositories import (
    OrganizationRepository, SubscriptionUsageRepository, UserRepository, WorkerRepository,
    JobRepository, ExpenseTypeRepository, AuditEventRepository, TutorialCompletionRepository,
    ClockEntryRepository, ClockEntryHistoryRepository, TimeAmendmentRepository, AdditionalCostRepository,
    ReportLineItemRepository, NotificationRepository,
)
from app.services.account_service import hash_password
from app.services.organization_service import OrganizationService
from app.services.subscription_service import SubscriptionService

load_dotenv()

DEMO_ORGANIZATION = 'SiteTime Demo Builders'


def seed_organization():
    """Seed the demo organization and its super admin if they don't exist."""
    organization_repo = OrganizationRepository()
    existing = organization_repo.get_by_name(DEMO_ORGANIZATION)
    if existing:
        print(f"Demo organization '{DEMO_ORGANIZATION}' already exists.")
        return existing

    user_repo = UserRepository()
    worker_repo = WorkerRepository()
    usage_repo = SubscriptionUsageRepository()
    audit_repo = AuditEventRepository()
    subscription_service = SubscriptionService(organization_repo, usage_repo, user_repo, worker_repo, audit_repo)
    service = OrganizationService(
        organization_repo=organization_repo,
        user_repo=user_repo,
        worker_repo=worker_repo,
        job_repo=JobRepository(),
        clock_repo=ClockEntryRepository(),
        history_repo=ClockEntryHistoryRepository(),
        amendment_repo=TimeAmendmentRepository(),
        expense_type_repo=ExpenseTypeRepository(),
        additional_cost_repo=AdditionalCostRepository(),
        line_item_repo=ReportLineItemRepository(),
        notification_repo=NotificationRepository(),
        usage_repo=usage_repo,
        audit_repo=audit_repo,
        tutorial_repo=TutorialCompletionRepository(),
        subscription_service=subscription_service,
    )

    email = os.environ.get('ADMIN_EMAIL', 'admin@example.com')
    print(f"Creating demo organization '{DEMO_ORGANIZATION}' with super admin {email}...")
    try:
        organization, _ = service.create_organization({
            'organization_name': DEMO_ORGANIZATION,
            'admin_name': 'System Admin',
            'admin_email': email,
            'admin_password': os.environ.get('ADMIN_PASSWORD', 'Password123!'),
        })
        print("Demo organization created successfully.")
        return organization
    except Exception as e:
        print(f"Failed to create demo organization: {e}")
        return None


def seed_manager(organization):
    user_repo = UserRepository()
    email = 'manager@example.com'
    if user_repo.get_by_email(email):
        print(f"Manager {email} already exists.")
        return
    try:
        user_repo.create(
            organization_id=organization.id,
            full_name='Site Manager',
            email=email,
            role='MANAGER',
            password_hash=hash_password(os.environ.get('ADMIN_PASSWORD', 'Password123!')),
            is_active=True,
        )
        print(f"Created manager {email}.")
    except Exception as e:
        print(f"Failed to create manager: {e}")


def seed_job(organization):
    """Seed a demo job if it doesn't exist."""
    job_repo = JobRepository()
    existing = job_repo.get_by_code('JOB-001', organization.id)
    if existing:
        print("Demo job 'JOB-001' already exists.")
        return existing
    try:
        job = job_repo.create(
            organization_id=organization.id,
            code='JOB-001',
            name='Westminster Refurbishment',
            address='Parliament Square, London, SW1A 0AA',
            address_line_1='Parliament Square',
            city='London',
            postcode='SW1A 0AA',
            latitude=51.4995,
            longitude=-0.1248,
            geofence_radius=150,
            is_active=True,
        )
        print("Demo job created successfully.")
        return job
    except Exception as e:
        print(f"Failed to create demo job: {e}")
        return None


DEMO_WORKERS = [
    {'name': 'Tom Baker', 'email': 'tom.baker@example.com', 'hourly_rate': 18.50, 'address': '12 High Street, Croydon, CR0 1AA'},
    {'name': 'Sarah Jones', 'email': 'sarah.jones@example.com', 'hourly_rate': 21.00, 'address': '4 Mill Lane, Bromley, BR1 1AA'},
    {'name': 'Kwame Mensah', 'email': 'kwame.mensah@example.com', 'hourly_rate': 19.75, 'address': None},
]

DEMO_EXPENSE_TYPES = [
    {'name': 'Travel', 'amount': 15.00, 'calculation_type': 'flat_rate'},
    {'name': 'Tool Allowance', 'amount': 1.50, 'calculation_type': 'hourly_multiplied'},
]


def seed_workers(organization):
    """Seed demo workers with their logins if they don't exist."""
    user_repo = UserRepository()
    worker_repo = WorkerRepository()
    password = os.environ.get('ADMIN_PASSWORD', 'Password123!')

    for w in DEMO_WORKERS:
        if user_repo.get_by_email(w['email']):
            print(f"  Worker '{w['name']}' already exists.")
            continue
        try:
            user = user_repo.create(
                organization_id=organization.id,
                full_name=w['name'],
                email=w['email'],
                role='WORKER',
                password_hash=hash_password(password),
                is_active=True,
            )
            worker_repo.create(
                organization_id=organization.id,
                user_id=user.id,
                name=w['name'],
                email=w['email'],
                address=w['address'],
                hourly_rate=w['hourly_rate'],
                date_started=date.today(),
                is_active=True,
            )
            print(f"  Created worker '{w['name']}'.")
        except Exception as e:
            print(f"  Failed to create worker '{w['name']}': {e}")


def seed_expense_types(organization):
    expense_type_repo = ExpenseTypeRepository()
    for t in DEMO_EXPENSE_TYPES:
        if expense_type_repo.get_by_name(t['name'], organization.id):
            continue
        try:
            expense_type_repo.create(organization_id=organization.id, is_active=True, **t)
            print(f"  Created expense type '{t['name']}'.")
        except Exception as e:
            print(f"  Failed to create expense type '{t['name']}': {e}")


def seed_all():
    app = create_app()
    with app.app_context():
        organization = seed_organization()
        if not organization:
            print("Cannot seed without an organization.")
            return

        seed_manager(organization)

        if not seed_job(organization):
            print("Cannot seed workers without a job.")
            return

        print("Creating demo workers...")
        seed_workers(organization)
        print("Creating demo expense types...")
        seed_expense_types(organization)

        print("\nSeed complete!")


if __name__ == "__main__":
    seed_all()
