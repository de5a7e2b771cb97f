import uuid
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class PostcodeLocation(db.Model):
    """Cached coordinates for a full postcode or an outward code."""
    __tablename__ = 'postcode_locations'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    postcode = db.Column(db.Text, nullable=False, unique=True)  # formatted, e.g. "SW1A 1AA" or "SW1A"
    is_outcode = db.Column(db.Boolean, default=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    town = db.Column(db.Text, nullable=True)
    county = db.Column(db.Text, nullable=True)
    source = db.Column(db.Text, nullable=True)  # postcodes.io, import
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)
