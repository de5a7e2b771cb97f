from .organization import Organization, SubscriptionUsage
from .users import User, TutorialCompletion
from .workers import Worker
from .jobs import Job
from .clock import ClockEntry, ClockEntryHistory
from .amendments import TimeAmendment
from .expenses import ExpenseType, AdditionalCost
from .reports import ReportLineItem
from .notifications import Notification
from .postcodes import PostcodeLocation
from .audit import AuditEvent

__all__ = [
    'Organization',
    'SubscriptionUsage',
    'User',
    'TutorialCompletion',
    'Worker',
    'Job',
    'ClockEntry',
    'ClockEntryHistory',
    'TimeAmendment',
    'ExpenseType',
    'AdditionalCost',
    'ReportLineItem',
    'Notification',
    'PostcodeLocation',
    'AuditEvent',
]
