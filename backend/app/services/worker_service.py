import logging
from datetime import date

from ..errors import ConflictError, ValidationError
from ..utils import normalize_email, is_valid_email, parse_iso_date
from .account_service import hash_password
from .passwords import generate_temporary_password

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('name', 'phone', 'address', 'emergency_contact', 'emergency_phone')


class WorkerService:
    def __init__(self, worker_repo, user_repo, clock_repo, subscription_service, email_service,
                 notification_repo, additional_cost_repo, line_item_repo):
        self.worker_repo = worker_repo
        self.user_repo = user_repo
        self.clock_repo = clock_repo
        self.notification_repo = notification_repo
        self.additional_cost_repo = additional_cost_repo
        self.line_item_repo = line_item_repo
        self.subscription_service = subscription_service
        self.email_service = email_service

    @staticmethod
    def _hourly_rate(value):
        try:
            rate = round(float(value), 2)
        except (TypeError, ValueError):
            raise ValidationError('hourly_rate must be a number')
        if rate < 0:
            raise ValidationError('hourly_rate cannot be negative')
        return rate

    @staticmethod
    def _date_started(value):
        if value in (None, ''):
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError('date_started must be YYYY-MM-DD')

    def create_worker(self, organization, data: dict):
        """
        Create a worker and its WORKER login, within plan capacity.

        Returns:
            Tuple of (worker, temporary_password, email_sent)
        """
        name = (data.get('name') or '').strip()
        email = normalize_email(data.get('email'))
        if not name:
            raise ValidationError('Name is required')
        if not is_valid_email(email):
            raise ValidationError('A valid email is required')
        if self.user_repo.get_by_email(email):
            raise ConflictError('A user with this email already exists')
        self.subscription_service.ensure_can_add_worker(organization)

        temporary_password = generate_temporary_password()
        try:
            user = self.user_repo.add(
                organization_id=organization.id,
                full_name=name,
                email=email,
                phone_number=data.get('phone'),
                role='WORKER',
                password_hash=hash_password(temporary_password),
                must_change_password=True,
                is_active=True,
            )
            self.user_repo.flush()
            worker = self.worker_repo.add(
                organization_id=organization.id,
                user_id=user.id,
                name=name,
                email=email,
                phone=data.get('phone'),
                address=data.get('address'),
                hourly_rate=self._hourly_rate(data.get('hourly_rate', 0)),
                date_started=self._date_started(data.get('date_started')) or date.today(),
                emergency_contact=data.get('emergency_contact'),
                emergency_phone=data.get('emergency_phone'),
                is_active=True,
            )
            self.worker_repo.commit()
        except Exception:
            self.worker_repo.rollback()
            raise

        email_sent = self.email_service.send_invitation(email, name, organization.name, 'worker', temporary_password)
        logger.info(f"Worker {worker.id} created in organization {organization.id}")
        return worker, temporary_password, email_sent

    def update_worker(self, worker, data: dict):
        for key in PROFILE_FIELDS:
            if key in data:
                setattr(worker, key, data[key])
        if 'name' in data and not (worker.name or '').strip():
            raise ValidationError('Name cannot be empty')
        if 'hourly_rate' in data:
            worker.hourly_rate = self._hourly_rate(data['hourly_rate'])
        if 'date_started' in data:
            worker.date_started = self._date_started(data['date_started'])
        user = self.user_repo.get_by_id(worker.user_id) if worker.user_id else None
        if 'email' in data:
            email = normalize_email(data['email'])
            if not is_valid_email(email):
                raise ValidationError('A valid email is required')
            existing = self.user_repo.get_by_email(email)
            if existing and (user is None or existing.id != user.id):
                raise ConflictError('A user with this email already exists')
            worker.email = email
            if user:
                user.email = email
        if user and 'name' in data:
            user.full_name = worker.name
        self.worker_repo.commit()
        return worker

    def set_active(self, organization, worker, active: bool):
        """Toggle a worker and its login together; reactivation counts against capacity."""
        if active and not worker.is_active:
            self.subscription_service.ensure_can_add_worker(organization)
        worker.is_active = active
        if worker.user_id:
            user = self.user_repo.get_by_id(worker.user_id)
            if user:
                user.is_active = active
        self.worker_repo.commit()
        return worker

    def delete_worker(self, worker):
        """
        Delete a worker that has no recorded work, along with its login and
        notifications. Workers with clock entries, additional costs or report
        line items must be deactivated instead.

        Raises:
            ConflictError: The worker has recorded work
        """
        if self.clock_repo.worker_has_entries(worker.id):
            raise ConflictError('Worker has clock entries; deactivate instead of deleting')
        if self.additional_cost_repo.worker_has_costs(worker.id):
            raise ConflictError('Worker has additional costs; deactivate instead of deleting')
        if self.line_item_repo.worker_has_items(worker.id):
            raise ConflictError('Worker has report line items; deactivate instead of deleting')
        user = self.user_repo.get_by_id(worker.user_id) if worker.user_id else None
        try:
            self.notification_repo.delete_for_worker(worker.id)
            self.worker_repo.session.delete(worker)
            self.worker_repo.flush()
            if user:
                self.user_repo.session.delete(user)
            self.worker_repo.commit()
        except Exception:
            self.worker_repo.rollback()
            raise
        logger.info(f"Worker {worker.id} deleted")
