import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class Organization(db.Model):
    __tablename__ = 'organizations'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = db.Column(db.Text, nullable=False)
    company_number = db.Column(db.Text, nullable=True)
    vat_number = db.Column(db.Text, nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.Text, nullable=True)
    email = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.Text, nullable=True)
    subscription_status = db.Column(db.Text, nullable=False, default='trial')  # trial, starter, pro, enterprise
    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)
    max_managers = db.Column(db.Integer, nullable=True, default=3)  # NULL means unlimited
    max_workers = db.Column(db.Integer, nullable=True, default=10)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class SubscriptionUsage(db.Model):
    __tablename__ = 'subscription_usage'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    plan_type = db.Column(db.Text, nullable=False)
    max_managers = db.Column(db.Integer, nullable=True)
    max_workers = db.Column(db.Integer, nullable=True)
    current_managers = db.Column(db.Integer, nullable=False, default=0)
    current_workers = db.Column(db.Integer, nullable=False, default=0)
    monthly_price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_subscription_usage_org_active', 'organization_id', 'is_active'),
    )
