import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=False)
    full_name = db.Column(db.Text, nullable=False)
    email = db.Column(db.Text, unique=True, nullable=False)
    phone_number = db.Column(db.Text, nullable=True)
    role = db.Column(db.Text, nullable=False)  # SUPER_ADMIN, MANAGER, WORKER
    password_hash = db.Column(db.Text, nullable=True)
    must_change_password = db.Column(db.Boolean, default=False)
    is_owner = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_users_organization_id', 'organization_id'),
        Index('ix_users_org_role', 'organization_id', 'role'),
    )


class TutorialCompletion(db.Model):
    __tablename__ = 'tutorial_completions'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey('users.id'), nullable=False)
    tutorial_id = db.Column(db.Text, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'tutorial_id', name='uq_tutorial_completions_user_tutorial'),
    )
