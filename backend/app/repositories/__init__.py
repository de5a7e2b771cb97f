"""
Repository layer for data access.

This module provides a clean abstraction over database operations,
following the repository pattern. All database access should go through
these repositories rather than directly using SQLAlchemy models.

Usage:
    from app.repositories import UserRepository, JobRepository

    user_repo = UserRepository()
    user = user_repo.get_by_email("manager@example.com")

    job_repo = JobRepository()
    jobs = job_repo.get_all_for_organization(organization_id, active_only=True)
"""

from .base import BaseRepository
from .organization_repository import OrganizationRepository, SubscriptionUsageRepository
from .user_repository import UserRepository, TutorialCompletionRepository
from .worker_repository import WorkerRepository
from .job_repository import JobRepository
from .clock_entry_repository import ClockEntryRepository, ClockEntryHistoryRepository
from .amendment_repository import TimeAmendmentRepository
from .expense_repository import ExpenseTypeRepository, AdditionalCostRepository
from .report_line_item_repository import ReportLineItemRepository
from .notification_repository import NotificationRepository
from .postcode_repository import PostcodeRepository
from .audit_event_repository import AuditEventRepository

__all__ = [
    'BaseRepository',
    'OrganizationRepository',
    'SubscriptionUsageRepository',
    'UserRepository',
    'TutorialCompletionRepository',
    'WorkerRepository',
    'JobRepository',
    'ClockEntryRepository',
    'ClockEntryHistoryRepository',
    'TimeAmendmentRepository',
    'ExpenseTypeRepository',
    'AdditionalCostRepository',
    'ReportLineItemRepository',
    'NotificationRepository',
    'PostcodeRepository',
    'AuditEventRepository',
]
