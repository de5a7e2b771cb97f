import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class Worker(db.Model):
    __tablename__ = 'workers'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey('users.id'), nullable=True, unique=True)
    name = db.Column(db.Text, nullable=False)
    email = db.Column(db.Text, nullable=False)
    phone = db.Column(db.Text, nullable=True)
    address = db.Column(db.Text, nullable=True)
    hourly_rate = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    date_started = db.Column(db.Date, nullable=True)
    emergency_contact = db.Column(db.Text, nullable=True)
    emergency_phone = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_workers_organization_id', 'organization_id'),
        Index('ix_workers_org_active', 'organization_id', 'is_active'),
    )
