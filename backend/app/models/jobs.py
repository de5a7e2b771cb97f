import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class Job(db.Model):
    __tablename__ = 'jobs'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    code = db.Column(db.Text, nullable=False)
    name = db.Column(db.Text, nullable=False)
    address = db.Column(db.Text, nullable=True)  # legacy single-line address
    address_line_1 = db.Column(db.Text, nullable=True)
    address_line_2 = db.Column(db.Text, nullable=True)
    city = db.Column(db.Text, nullable=True)
    county = db.Column(db.Text, nullable=True)
    postcode = db.Column(db.Text, nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    geofence_radius = db.Column(db.Integer, nullable=False, default=100)  # metres
    terms_and_conditions_url = db.Column(db.Text, nullable=True)
    waiver_url = db.Column(db.Text, nullable=True)
    show_rams_and_site_info = db.Column(db.Boolean, nullable=False, default=True)  # documents shown to workers
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_jobs_organization_id', 'organization_id'),
        db.UniqueConstraint('organization_id', 'code', name='uq_jobs_organization_code'),
    )
