import uuid
from sqlalchemy import Index, text
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db, JSONType
from ..utils import utc_now


class ClockEntry(db.Model):
    __tablename__ = 'clock_entries'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('workers.id'), nullable=False)
    job_id = db.Column(UUID(as_uuid=True), db.ForeignKey('jobs.id'), nullable=False)
    clock_in = db.Column(db.DateTime(timezone=True), nullable=False)
    clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    clock_in_lat = db.Column(db.Float, nullable=True)
    clock_in_lng = db.Column(db.Float, nullable=True)
    clock_out_lat = db.Column(db.Float, nullable=True)
    clock_out_lng = db.Column(db.Float, nullable=True)
    clock_in_photo = db.Column(db.Text, nullable=True)
    clock_out_photo = db.Column(db.Text, nullable=True)
    documents_accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    total_hours = db.Column(db.Numeric(6, 2, asdecimal=False), nullable=True)
    manual_entry = db.Column(db.Boolean, default=False)
    auto_clocked_out = db.Column(db.Boolean, default=False)
    notes = db.Column(db.Text, nullable=True)
    needs_approval = db.Column(db.Boolean, default=False)
    approved_by = db.Column(UUID(as_uuid=True), db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_overtime = db.Column(db.Boolean, default=False)
    ot_status = db.Column(db.Text, nullable=True)  # pending, approved, rejected
    ot_requested_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ot_approved_by = db.Column(UUID(as_uuid=True), db.ForeignKey('users.id'), nullable=True)
    ot_approved_reason = db.Column(db.Text, nullable=True)
    ot_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    worker = db.relationship('Worker', lazy='joined')
    job = db.relationship('Job', lazy='joined')

    __table_args__ = (
        Index('ix_clock_entries_org_clock_in', 'organization_id', 'clock_in'),
        Index('ix_clock_entries_worker_clock_in', 'worker_id', 'clock_in'),
        Index('ix_clock_entries_job_id', 'job_id'),
        # At most one open entry per worker
        Index(
            'uq_clock_entries_worker_open', 'worker_id', unique=True,
            postgresql_where=text('clock_out IS NULL'), sqlite_where=text('clock_out IS NULL')
        ),
    )


class ClockEntryHistory(db.Model):
    __tablename__ = 'clock_entry_history'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    clock_entry_id = db.Column(UUID(as_uuid=True), db.ForeignKey('clock_entries.id'), nullable=False)
    changed_by = db.Column(UUID(as_uuid=True), db.ForeignKey('users.id'), nullable=True)
    changed_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    change_type = db.Column(db.Text, nullable=False)  # amendment_approval, report_edit, auto_clock_out, manual_edit
    old_clock_in = db.Column(db.DateTime(timezone=True), nullable=True)
    new_clock_in = db.Column(db.DateTime(timezone=True), nullable=True)
    old_clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    new_clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    old_total_hours = db.Column(db.Numeric(6, 2, asdecimal=False), nullable=True)
    new_total_hours = db.Column(db.Numeric(6, 2, asdecimal=False), nullable=True)
    amendment_id = db.Column(UUID(as_uuid=True), db.ForeignKey('time_amendments.id'), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    change_metadata = db.Column('metadata', JSONType, nullable=True)

    __table_args__ = (
        Index('ix_clock_entry_history_entry_time', 'clock_entry_id', 'changed_at'),
    )
