import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class ReportLineItem(db.Model):
    __tablename__ = 'report_line_items'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    week_start = db.Column(db.Date, nullable=False)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('workers.id'), nullable=False)
    work_date = db.Column(db.Date, nullable=False)
    entry_type = db.Column(db.Text, nullable=False)  # work, overtime, expense
    expense_type = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    unit_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    project_id = db.Column(UUID(as_uuid=True), db.ForeignKey('jobs.id'), nullable=True)
    project_name = db.Column(db.Text, nullable=True)
    account_code = db.Column(db.Text, nullable=False)
    tax_type = db.Column(db.Text, nullable=False, default='No VAT')
    description_generated = db.Column(db.Text, nullable=False)
    source_clock_entry_id = db.Column(UUID(as_uuid=True), db.ForeignKey('clock_entries.id'), nullable=True)
    source_additional_cost_id = db.Column(UUID(as_uuid=True), db.ForeignKey('additional_costs.id'), nullable=True)
    is_deleted = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    worker = db.relationship('Worker', lazy='joined')

    __table_args__ = (
        Index('ix_report_line_items_org_week', 'organization_id', 'week_start'),
        Index('ix_report_line_items_worker_week', 'worker_id', 'week_start'),
    )
