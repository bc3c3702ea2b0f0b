"""initial disaster coordination schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    # Geography
    op.create_table(
        'municipalities',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=False, unique=True),
        sa.Column('region', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'barangays',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('municipality_id', sa.Integer(), sa.ForeignKey('municipalities.id'), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('boundary_geojson', sa.JSON(), nullable=True),
        sa.Column('boundary_approved_at', sa.DateTime(), nullable=True),
        # FK to users added once users exists
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('brochure_photo_urls', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('municipality_id', 'name', name='uq_barangay_municipality_name'),
        sa.CheckConstraint(
            'boundary_approved_at IS NULL OR boundary_geojson IS NOT NULL',
            name='ck_barangay_approved_has_geometry',
        ),
    )
    op.create_index('idx_barangay_municipality', 'barangays', ['municipality_id'])
    op.create_index('idx_barangay_approved', 'barangays', ['boundary_approved_at'])

    # Identity
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=30), nullable=False, server_default='resident'),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id'), nullable=True),
        sa.Column('municipality_id', sa.Integer(), sa.ForeignKey('municipalities.id'), nullable=True),
        sa.Column('employment_proof_url', sa.String(length=500), nullable=True),
        sa.Column('employment_proof_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('employment_proof_verified_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_user_email', 'users', ['email'])
    op.create_index('idx_user_role', 'users', ['role'])
    op.create_index('idx_user_barangay', 'users', ['barangay_id'])
    op.create_index('idx_user_municipality', 'users', ['municipality_id'])
    op.create_foreign_key('fk_barangays_creator', 'barangays', 'users', ['creator_id'], ['id'])

    # Affiliation
    op.create_table(
        'barangay_memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_creator', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('left_at', sa.DateTime(), nullable=True),
        sa.Column('leave_reason', sa.Text(), nullable=True),
    )
    op.create_index('idx_membership_user', 'barangay_memberships', ['user_id'])
    op.create_index('idx_membership_barangay', 'barangay_memberships', ['barangay_id'])
    op.create_index(
        'uq_membership_open_user',
        'barangay_memberships',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text('left_at IS NULL'),
        sqlite_where=sa.text('left_at IS NULL'),
    )

    op.create_table(
        'barangay_boundary_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('requested_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('municipality_id', sa.Integer(), sa.ForeignKey('municipalities.id'), nullable=False),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id'), nullable=True),
        sa.Column('barangay_name', sa.String(length=150), nullable=False),
        sa.Column('boundary_geojson', sa.JSON(), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=False),
        sa.Column('contact_phone', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_boundary_request_status', 'barangay_boundary_requests', ['status'])
    op.create_index('idx_boundary_request_municipality', 'barangay_boundary_requests', ['municipality_id'])
    op.create_index('idx_boundary_request_requester', 'barangay_boundary_requests', ['requested_by'])

    op.create_table(
        'barangay_change_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requested_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('request_type', sa.String(length=30), nullable=False, server_default='delete_barangay'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_change_request_barangay', 'barangay_change_requests', ['barangay_id'])
    op.create_index('idx_change_request_status', 'barangay_change_requests', ['status'])

    # Reports
    op.create_table(
        'report_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False, unique=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reporter_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('report_type_id', sa.Integer(), sa.ForeignKey('report_types.id'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('title', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('gps_lat', sa.Float(), nullable=True),
        sa.Column('gps_lng', sa.Float(), nullable=True),
        sa.Column('photo_urls', sa.JSON(), nullable=False),
        sa.Column('video_urls', sa.JSON(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('acknowledged_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_report_barangay', 'reports', ['barangay_id'])
    op.create_index('idx_report_status', 'reports', ['status'])
    op.create_index('idx_report_reporter', 'reports', ['reporter_id'])
    op.create_index('idx_report_created', 'reports', ['created_at'])

    op.create_table(
        'report_notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('report_id', sa.Integer(), sa.ForeignKey('reports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_report_note_report', 'report_notes', ['report_id'])

    # Status board and assistance
    op.create_table(
        'barangay_status_updates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('updated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='normal'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('photo_urls', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_status_update_barangay_created', 'barangay_status_updates', ['barangay_id', 'created_at'])

    op.create_table(
        'barangay_assistance_offers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('helping_barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=True),
        sa.Column('helping_municipality_id', sa.Integer(), sa.ForeignKey('municipalities.id', ondelete='CASCADE'), nullable=True),
        sa.Column('recipient_barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status_update_id', sa.Integer(), sa.ForeignKey('barangay_status_updates.id', ondelete='SET NULL'), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('expected_arrival_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('assistance_image_url', sa.String(length=500), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            '(helping_barangay_id IS NULL) <> (helping_municipality_id IS NULL)',
            name='ck_assistance_single_helper',
        ),
        sa.CheckConstraint(
            'helping_barangay_id IS NULL OR helping_barangay_id <> recipient_barangay_id',
            name='ck_assistance_not_self',
        ),
    )
    op.create_index('idx_assistance_recipient', 'barangay_assistance_offers', ['recipient_barangay_id'])
    op.create_index('idx_assistance_helping_barangay', 'barangay_assistance_offers', ['helping_barangay_id'])
    op.create_index('idx_assistance_helping_municipality', 'barangay_assistance_offers', ['helping_municipality_id'])

    # Markers
    op.create_table(
        'marker_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False, unique=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'official_markers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('marker_type_id', sa.Integer(), sa.ForeignKey('marker_types.id'), nullable=False),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('updated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_marker_barangay', 'official_markers', ['barangay_id'])
    op.create_index('idx_marker_active', 'official_markers', ['is_active'])

    # Resources
    op.create_table(
        'resource_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False, unique=True),
        sa.Column('unit', sa.String(length=30), nullable=True),
    )
    op.create_table(
        'resources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_type_id', sa.Integer(), sa.ForeignKey('resource_types.id'), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('unit_override', sa.String(length=30), nullable=True),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 0', name='ck_resource_quantity'),
    )
    op.create_index('idx_resource_barangay', 'resources', ['barangay_id'])
    op.create_table(
        'resource_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requested_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resource_type_id', sa.Integer(), sa.ForeignKey('resource_types.id'), nullable=False),
        sa.Column('quantity_requested', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity_fulfilled', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('fulfilled_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('quantity_requested > 0', name='ck_resource_request_quantity'),
    )
    op.create_index('idx_resource_request_barangay', 'resource_requests', ['barangay_id'])
    op.create_index('idx_resource_request_status', 'resource_requests', ['status'])
    op.create_table(
        'resource_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_request_id', sa.Integer(), sa.ForeignKey('resource_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resource_id', sa.Integer(), sa.ForeignKey('resources.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('allocated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_allocation_quantity'),
    )
    op.create_index('idx_allocation_request', 'resource_allocations', ['resource_request_id'])

    # Announcements, invites, notifications, audit
    op.create_table(
        'announcements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('barangay_id', sa.Integer(), sa.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=True),
        sa.Column('scope', sa.String(length=20), nullable=False, server_default='barangay'),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(scope = 'all' AND barangay_id IS NULL) OR (scope = 'barangay' AND barangay_id IS NOT NULL)",
            name='ck_announcement_scope_barangay',
        ),
    )
    op.create_index('idx_announcement_barangay', 'announcements', ['barangay_id'])
    op.create_index('idx_announcement_scope', 'announcements', ['scope'])
    op.create_index('idx_announcement_created', 'announcements', ['created_at'])

    op.create_table(
        'admin_invites',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=64), nullable=False, unique=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('used_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_admin_invite_code', 'admin_invites', ['code'])
    op.create_index('idx_admin_invite_creator', 'admin_invites', ['created_by'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('link', sa.String(length=500), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('dedupe_key', sa.String(length=255), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notification_user_read', 'notifications', ['user_id', 'read_at'])
    op.create_index('ix_notification_event', 'notifications', ['event_type'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_role', sa.String(length=30), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=True),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_audit_actor', 'audit_logs', ['actor_id'])
    op.create_index('idx_audit_action', 'audit_logs', ['action'])
    op.create_index('idx_audit_created', 'audit_logs', ['created_at'])
    op.create_index('idx_audit_resource', 'audit_logs', ['resource_type', 'resource_id'])


def downgrade():
    for table in (
        'audit_logs',
        'notifications',
        'admin_invites',
        'announcements',
        'resource_allocations',
        'resource_requests',
        'resources',
        'resource_types',
        'official_markers',
        'marker_types',
        'barangay_assistance_offers',
        'barangay_status_updates',
        'report_notes',
        'reports',
        'report_types',
        'barangay_change_requests',
        'barangay_boundary_requests',
        'barangay_memberships',
    ):
        op.drop_table(table)
    op.drop_constraint('fk_barangays_creator', 'barangays', type_='foreignkey')
    op.drop_table('users')
    op.drop_table('barangays')
    op.drop_table('municipalities')
