import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class TimeAmendment(db.Model):
    __tablename__ = 'time_amendments'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    clock_entry_id = db.Column(UUID(as_uuid=True), db.ForeignKey('clock_entries.id'), nullable=False)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('workers.id'), nullable=False)
    requested_clock_in = db.Column(db.DateTime(timezone=True), nullable=True)
    requested_clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.Text, nullable=False, default='pending')  # pending, approved, rejected
    manager_id = db.Column(UUID(as_uuid=True), db.ForeignKey('users.id'), nullable=True)
    manager_notes = db.Column(db.Text, nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    clock_entry = db.relationship('ClockEntry', lazy='joined')
    worker = db.relationship('Worker', lazy='joined')

    __table_args__ = (
        Index('ix_time_amendments_org_status', 'organization_id', 'status'),
        Index('ix_time_amendments_clock_entry_id', 'clock_entry_id'),
    )
