"""initial_schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0a1b2c3d4e5f'
down_revision = None
branch_labels = None
depends_on = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table('organizations',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('company_number', sa.Text(), nullable=True),
        sa.Column('vat_number', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('subscription_status', sa.Text(), nullable=False, server_default='trial'),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('max_managers', sa.Integer(), nullable=True),
        sa.Column('max_workers', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('users',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('must_change_password', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('is_owner', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])
    op.create_index('ix_users_org_role', 'users', ['organization_id', 'role'])

    op.create_table('tutorial_completions',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('tutorial_id', sa.Text(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'tutorial_id', name='uq_tutorial_completions_user_tutorial')
    )

    op.create_table('subscription_usage',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('plan_type', sa.Text(), nullable=False),
        sa.Column('max_managers', sa.Integer(), nullable=True),
        sa.Column('max_workers', sa.Integer(), nullable=True),
        sa.Column('current_managers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_workers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('monthly_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscription_usage_org_active', 'subscription_usage', ['organization_id', 'is_active'])

    op.create_table('audit_events',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=True),
        sa.Column('actor_user_id', _uuid(), nullable=True),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=False),
        sa.Column('entity_id', _uuid(), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_events_org_time', 'audit_events', ['organization_id', 'created_at'])

    op.create_table('workers',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('hourly_rate', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('date_started', sa.Date(), nullable=True),
        sa.Column('emergency_contact', sa.Text(), nullable=True),
        sa.Column('emergency_phone', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('ix_workers_organization_id', 'workers', ['organization_id'])
    op.create_index('ix_workers_org_active', 'workers', ['organization_id', 'is_active'])

    op.create_table('jobs',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('address_line_1', sa.Text(), nullable=True),
        sa.Column('address_line_2', sa.Text(), nullable=True),
        sa.Column('city', sa.Text(), nullable=True),
        sa.Column('county', sa.Text(), nullable=True),
        sa.Column('postcode', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('geofence_radius', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('terms_and_conditions_url', sa.Text(), nullable=True),
        sa.Column('waiver_url', sa.Text(), nullable=True),
        sa.Column('show_rams_and_site_info', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'code', name='uq_jobs_organization_code')
    )
    op.create_index('ix_jobs_organization_id', 'jobs', ['organization_id'])

    op.create_table('clock_entries',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('worker_id', _uuid(), nullable=False),
        sa.Column('job_id', _uuid(), nullable=False),
        sa.Column('clock_in', sa.DateTime(timezone=True), nullable=False),
        sa.Column('clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clock_in_lat', sa.Float(), nullable=True),
        sa.Column('clock_in_lng', sa.Float(), nullable=True),
        sa.Column('clock_out_lat', sa.Float(), nullable=True),
        sa.Column('clock_out_lng', sa.Float(), nullable=True),
        sa.Column('clock_in_photo', sa.Text(), nullable=True),
        sa.Column('clock_out_photo', sa.Text(), nullable=True),
        sa.Column('documents_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_hours', sa.Numeric(6, 2), nullable=True),
        sa.Column('manual_entry', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('auto_clocked_out', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('needs_approval', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('approved_by', _uuid(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_overtime', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('ot_status', sa.Text(), nullable=True),
        sa.Column('ot_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ot_approved_by', _uuid(), nullable=True),
        sa.Column('ot_approved_reason', sa.Text(), nullable=True),
        sa.Column('ot_approved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id']),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.ForeignKeyConstraint(['ot_approved_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clock_entries_org_clock_in', 'clock_entries', ['organization_id', 'clock_in'])
    op.create_index('ix_clock_entries_worker_clock_in', 'clock_entries', ['worker_id', 'clock_in'])
    op.create_index('ix_clock_entries_job_id', 'clock_entries', ['job_id'])
    # At most one open entry per worker
    op.create_index(
        'uq_clock_entries_worker_open', 'clock_entries', ['worker_id'],
        unique=True, postgresql_where=sa.text('clock_out IS NULL')
    )

    op.create_table('time_amendments',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('clock_entry_id', _uuid(), nullable=False),
        sa.Column('worker_id', _uuid(), nullable=False),
        sa.Column('requested_clock_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('requested_clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('manager_id', _uuid(), nullable=True),
        sa.Column('manager_notes', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['clock_entry_id'], ['clock_entries.id']),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id']),
        sa.ForeignKeyConstraint(['manager_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_time_amendments_org_status', 'time_amendments', ['organization_id', 'status'])
    op.create_index('ix_time_amendments_clock_entry_id', 'time_amendments', ['clock_entry_id'])

    op.create_table('clock_entry_history',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('clock_entry_id', _uuid(), nullable=False),
        sa.Column('changed_by', _uuid(), nullable=True),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('change_type', sa.Text(), nullable=False),
        sa.Column('old_clock_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('new_clock_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('old_clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('new_clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('old_total_hours', sa.Numeric(6, 2), nullable=True),
        sa.Column('new_total_hours', sa.Numeric(6, 2), nullable=True),
        sa.Column('amendment_id', _uuid(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(['clock_entry_id'], ['clock_entries.id']),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id']),
        sa.ForeignKeyConstraint(['amendment_id'], ['time_amendments.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clock_entry_history_entry_time', 'clock_entry_history', ['clock_entry_id', 'changed_at'])

    op.create_table('expense_types',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('calculation_type', sa.Text(), nullable=False, server_default='flat_rate'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'name', name='uq_expense_types_organization_name')
    )
    op.create_index('ix_expense_types_organization_id', 'expense_types', ['organization_id'])

    op.create_table('additional_costs',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('worker_id', _uuid(), nullable=False),
        sa.Column('clock_entry_id', _uuid(), nullable=True),
        sa.Column('expense_type_id', _uuid(), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id']),
        sa.ForeignKeyConstraint(['clock_entry_id'], ['clock_entries.id']),
        sa.ForeignKeyConstraint(['expense_type_id'], ['expense_types.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_additional_costs_org_date', 'additional_costs', ['organization_id', 'date'])
    op.create_index('ix_additional_costs_worker_id', 'additional_costs', ['worker_id'])

    op.create_table('report_line_items',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('worker_id', _uuid(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('entry_type', sa.Text(), nullable=False),
        sa.Column('expense_type', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('unit_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('project_id', _uuid(), nullable=True),
        sa.Column('project_name', sa.Text(), nullable=True),
        sa.Column('account_code', sa.Text(), nullable=False),
        sa.Column('tax_type', sa.Text(), nullable=False, server_default='No VAT'),
        sa.Column('description_generated', sa.Text(), nullable=False),
        sa.Column('source_clock_entry_id', _uuid(), nullable=True),
        sa.Column('source_additional_cost_id', _uuid(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=True, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id']),
        sa.ForeignKeyConstraint(['project_id'], ['jobs.id']),
        sa.ForeignKeyConstraint(['source_clock_entry_id'], ['clock_entries.id']),
        sa.ForeignKeyConstraint(['source_additional_cost_id'], ['additional_costs.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_report_line_items_org_week', 'report_line_items', ['organization_id', 'week_start'])
    op.create_index('ix_report_line_items_worker_week', 'report_line_items', ['worker_id', 'week_start'])

    op.create_table('notifications',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('organization_id', _uuid(), nullable=False),
        sa.Column('worker_id', _uuid(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('dedupe_key', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('dedupe_key')
    )
    op.create_index('ix_notifications_worker_created', 'notifications', ['worker_id', 'created_at'])

    op.create_table('postcode_locations',
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('postcode', sa.Text(), nullable=False),
        sa.Column('is_outcode', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('town', sa.Text(), nullable=True),
        sa.Column('county', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('postcode')
    )


def downgrade():
    op.drop_table('postcode_locations')
    op.drop_index('ix_notifications_worker_created', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_report_line_items_worker_week', table_name='report_line_items')
    op.drop_index('ix_report_line_items_org_week', table_name='report_line_items')
    op.drop_table('report_line_items')
    op.drop_index('ix_additional_costs_worker_id', table_name='additional_costs')
    op.drop_index('ix_additional_costs_org_date', table_name='additional_costs')
    op.drop_table('additional_costs')
    op.drop_index('ix_expense_types_organization_id', table_name='expense_types')
    op.drop_table('expense_types')
    op.drop_index('ix_clock_entry_history_entry_time', table_name='clock_entry_history')
    op.drop_table('clock_entry_history')
    op.drop_index('ix_time_amendments_clock_entry_id', table_name='time_amendments')
    op.drop_index('ix_time_amendments_org_status', table_name='time_amendments')
    op.drop_table('time_amendments')
    op.drop_index('uq_clock_entries_worker_open', table_name='clock_entries')
    op.drop_index('ix_clock_entries_job_id', table_name='clock_entries')
    op.drop_index('ix_clock_entries_worker_clock_in', table_name='clock_entries')
    op.drop_index('ix_clock_entries_org_clock_in', table_name='clock_entries')
    op.drop_table('clock_entries')
    op.drop_index('ix_jobs_organization_id', table_name='jobs')
    op.drop_table('jobs')
    op.drop_index('ix_workers_org_active', table_name='workers')
    op.drop_index('ix_workers_organization_id', table_name='workers')
    op.drop_table('workers')
    op.drop_index('ix_audit_events_org_time', table_name='audit_events')
    op.drop_index('ix_audit_events_entity', table_name='audit_events')
    op.drop_table('audit_events')
    op.drop_index('ix_subscription_usage_org_active', table_name='subscription_usage')
    op.drop_table('subscription_usage')
    op.drop_table('tutorial_completions')
    op.drop_index('ix_users_org_role', table_name='users')
    op.drop_index('ix_users_organization_id', table_name='users')
    op.drop_table('users')
    op.drop_table('organizations')
