import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class ExpenseType(db.Model):
    __tablename__ = 'expense_types'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    calculation_type = db.Column(db.Text, nullable=False, default='flat_rate')  # flat_rate, hourly_multiplied
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_expense_types_organization_id', 'organization_id'),
        db.UniqueConstraint('organization_id', 'name', name='uq_expense_types_organization_name'),
    )


class AdditionalCost(db.Model):
    __tablename__ = 'additional_costs'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('workers.id'), nullable=False)
    clock_entry_id = db.Column(UUID(as_uuid=True), db.ForeignKey('clock_entries.id'), nullable=True)
    expense_type_id = db.Column(UUID(as_uuid=True), db.ForeignKey('expense_types.id'), nullable=True)
    amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    worker = db.relationship('Worker', lazy='joined')
    expense_type = db.relationship('ExpenseType', lazy='joined')
    clock_entry = db.relationship('ClockEntry', lazy='joined')

    __table_args__ = (
        Index('ix_additional_costs_org_date', 'organization_id', 'date'),
        Index('ix_additional_costs_worker_id', 'worker_id'),
    )
