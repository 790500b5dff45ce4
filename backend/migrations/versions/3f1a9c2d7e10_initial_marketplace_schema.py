"""Initial marketplace schema

Revision ID: 3f1a9c2d7e10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('ADMIN', 'BRAND', 'INFLUENCER', name='userrole')
campaign_type = sa.Enum('DIRECT', 'SELF_SERVICE', name='campaigntype')
campaign_status = sa.Enum('PENDING', 'ACTIVE', 'REJECTED', 'COMPLETED', 'CANCELLED', name='campaignstatus')
invitation_status = sa.Enum('PENDING', 'ACTIVE', 'REJECTED', 'COMPLETED', name='invitationstatus')
snapshot_phase = sa.Enum('BASELINE', 'PERIODIC', 'FINAL', name='snapshotphase')
mou_status = sa.Enum(
    'DRAFT', 'PENDING_BRAND', 'PENDING_INFLUENCER', 'PENDING_ADMIN',
    'APPROVED', 'REJECTED', 'ACTIVE', 'EXPIRED', 'AMENDED',
    name='moustatus',
)
approval_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='approvalstatus')
notification_type = sa.Enum(
    'ROLE_UPDATE', 'INVITATION', 'CAMPAIGN_APPROVAL', 'CAMPAIGN_REJECTION', 'SYSTEM',
    name='notificationtype',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('role', user_role, nullable=True),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('email_verified', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_user_id'), 'audit_logs', ['user_id'], unique=False)

    op.create_table(
        'brands',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_brands_user_id'), 'brands', ['user_id'], unique=False)

    op.create_table(
        'influencers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'influencer_categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('influencer_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['influencer_id'], ['influencers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('influencer_id', 'category_id', name='uq_influencer_category')
    )
    op.create_index(op.f('ix_influencer_categories_influencer_id'), 'influencer_categories', ['influencer_id'], unique=False)

    op.create_table(
        'platforms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(32), nullable=False, server_default='post'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['platform_id'], ['platforms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('platform_id', 'name', name='uq_service_platform_name')
    )
    op.create_index(op.f('ix_services_platform_id'), 'services', ['platform_id'], unique=False)

    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('goal', sa.Text(), nullable=True),
        sa.Column('type', campaign_type, nullable=False),
        sa.Column('status', campaign_status, nullable=False, server_default='PENDING'),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('direct_data', sa.JSON(), nullable=True),
        sa.Column('self_service_data', sa.JSON(), nullable=True),
        sa.Column('mou_required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_start_without_mou', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_campaigns_brand_id'), 'campaigns', ['brand_id'], unique=False)

    op.create_table(
        'campaign_invitations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('influencer_id', sa.Integer(), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('status', invitation_status, nullable=False, server_default='PENDING'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('response_message', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('mou_creation_requested', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('mou_requested_at', sa.DateTime(), nullable=True),
        sa.Column('mou_requested_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['influencer_id'], ['influencers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['mou_requested_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('campaign_id', 'influencer_id', name='uq_invitation_campaign_influencer')
    )
    op.create_index(op.f('ix_campaign_invitations_campaign_id'), 'campaign_invitations', ['campaign_id'], unique=False)
    op.create_index(op.f('ix_campaign_invitations_influencer_id'), 'campaign_invitations', ['influencer_id'], unique=False)

    op.create_table(
        'influencer_platforms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('influencer_id', sa.Integer(), nullable=False),
        sa.Column('platform_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('open_id', sa.String(), nullable=True),
        sa.Column('ig_user_id', sa.String(), nullable=True),
        sa.Column('followers', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('following', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('posts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('likes', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('comments', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('shares', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('saves', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('engagement_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('token_expires_at', sa.DateTime(), nullable=True),
        sa.Column('last_synced', sa.DateTime(), nullable=True),
        sa.Column('platform_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['influencer_id'], ['influencers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['platform_id'], ['platforms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('influencer_id', 'platform_id', name='uq_influencer_platform')
    )
    op.create_index(op.f('ix_influencer_platforms_influencer_id'), 'influencer_platforms', ['influencer_id'], unique=False)

    op.create_table(
        'influencer_platform_metrics',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('influencer_platform_id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('phase', snapshot_phase, nullable=False, server_default='PERIODIC'),
        sa.Column('followers', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('posts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('likes', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('comments', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('shares', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('saves', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('engagement_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('recorded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['influencer_platform_id'], ['influencer_platforms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_metric_platform_recorded', 'influencer_platform_metrics', ['influencer_platform_id', 'recorded_at'], unique=False)
    op.create_index(op.f('ix_influencer_platform_metrics_campaign_id'), 'influencer_platform_metrics', ['campaign_id'], unique=False)

    op.create_table(
        'rate_cards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('influencer_platform_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='IDR'),
        sa.Column('is_auto_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['influencer_platform_id'], ['influencer_platforms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('influencer_platform_id', 'service_id', name='uq_rate_card_service')
    )
    op.create_index(op.f('ix_rate_cards_influencer_platform_id'), 'rate_cards', ['influencer_platform_id'], unique=False)

    op.create_table(
        'oauth_states',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('state', sa.String(64), nullable=False),
        sa.Column('code_verifier', sa.String(128), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(32), nullable=False),
        sa.Column('redirect_uri', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_oauth_states_state'), 'oauth_states', ['state'], unique=True)

    op.create_table(
        'mous',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mou_number', sa.String(32), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('parent_mou_id', sa.Integer(), nullable=True),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('influencer_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('brand_name', sa.String(), nullable=False),
        sa.Column('brand_email', sa.String(), nullable=True),
        sa.Column('brand_representative', sa.String(), nullable=True),
        sa.Column('influencer_name', sa.String(), nullable=False),
        sa.Column('influencer_email', sa.String(), nullable=True),
        sa.Column('campaign_objective', sa.Text(), nullable=True),
        sa.Column('campaign_scope', sa.Text(), nullable=True),
        sa.Column('deliverable_details', sa.JSON(), nullable=True),
        sa.Column('effective_date', sa.DateTime(), nullable=False),
        sa.Column('expiry_date', sa.DateTime(), nullable=False),
        sa.Column('total_budget', sa.Numeric(16, 2), nullable=False, server_default='0'),
        sa.Column('payment_terms', sa.Text(), nullable=True),
        sa.Column('payment_schedule', sa.Text(), nullable=True),
        sa.Column('terms_and_conditions', sa.Text(), nullable=True),
        sa.Column('cancellation_clause', sa.Text(), nullable=True),
        sa.Column('confidentiality_clause', sa.Text(), nullable=True),
        sa.Column('intellectual_property_clause', sa.Text(), nullable=True),
        sa.Column('status', mou_status, nullable=False, server_default='DRAFT'),
        sa.Column('brand_approval_status', approval_status, nullable=False, server_default='PENDING'),
        sa.Column('brand_approved_at', sa.DateTime(), nullable=True),
        sa.Column('brand_approved_by', sa.Integer(), nullable=True),
        sa.Column('brand_rejection_reason', sa.Text(), nullable=True),
        sa.Column('influencer_approval_status', approval_status, nullable=False, server_default='PENDING'),
        sa.Column('influencer_approved_at', sa.DateTime(), nullable=True),
        sa.Column('influencer_approved_by', sa.Integer(), nullable=True),
        sa.Column('influencer_rejection_reason', sa.Text(), nullable=True),
        sa.Column('admin_approval_status', approval_status, nullable=False, server_default='PENDING'),
        sa.Column('admin_approved_at', sa.DateTime(), nullable=True),
        sa.Column('admin_approved_by', sa.Integer(), nullable=True),
        sa.Column('admin_rejection_reason', sa.Text(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_by', sa.Integer(), nullable=True),
        sa.Column('revision_notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['parent_mou_id'], ['mous.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['influencer_id'], ['influencers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['brand_approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['influencer_approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['admin_approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rejected_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('mou_number', 'version', name='uq_mou_number_version')
    )
    op.create_index(op.f('ix_mous_mou_number'), 'mous', ['mou_number'], unique=False)
    op.create_index(op.f('ix_mous_campaign_id'), 'mous', ['campaign_id'], unique=False)
    op.create_index(op.f('ix_mous_brand_id'), 'mous', ['brand_id'], unique=False)
    op.create_index(op.f('ix_mous_influencer_id'), 'mous', ['influencer_id'], unique=False)

    op.create_table(
        'mou_approvals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mou_id', sa.Integer(), nullable=False),
        sa.Column('approver_id', sa.Integer(), nullable=True),
        sa.Column('approver_role', sa.String(16), nullable=False),
        sa.Column('status', approval_status, nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['mou_id'], ['mous.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approver_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_mou_approvals_mou_id'), 'mou_approvals', ['mou_id'], unique=False)

    op.create_table(
        'mou_amendments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mou_id', sa.Integer(), nullable=False),
        sa.Column('amendment_number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('changed_fields', sa.JSON(), nullable=True),
        sa.Column('effective_date', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['mou_id'], ['mous.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('mou_id', 'amendment_number', name='uq_mou_amendment_number')
    )
    op.create_index(op.f('ix_mou_amendments_mou_id'), 'mou_amendments', ['mou_id'], unique=False)

    op.create_table(
        'mou_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('terms_and_conditions', sa.Text(), nullable=True),
        sa.Column('cancellation_clause', sa.Text(), nullable=True),
        sa.Column('confidentiality_clause', sa.Text(), nullable=True),
        sa.Column('intellectual_property_clause', sa.Text(), nullable=True),
        sa.Column('payment_terms_template', sa.Text(), nullable=True),
        sa.Column('minimum_budget', sa.Numeric(16, 2), nullable=True),
        sa.Column('applicable_platforms', sa.JSON(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', notification_type, nullable=False, server_default='SYSTEM'),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_notifications_user_id'), table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('mou_templates')
    op.drop_index(op.f('ix_mou_amendments_mou_id'), table_name='mou_amendments')
    op.drop_table('mou_amendments')
    op.drop_index(op.f('ix_mou_approvals_mou_id'), table_name='mou_approvals')
    op.drop_table('mou_approvals')
    op.drop_index(op.f('ix_mous_influencer_id'), table_name='mous')
    op.drop_index(op.f('ix_mous_brand_id'), table_name='mous')
    op.drop_index(op.f('ix_mous_campaign_id'), table_name='mous')
    op.drop_index(op.f('ix_mous_mou_number'), table_name='mous')
    op.drop_table('mous')
    op.drop_index(op.f('ix_oauth_states_state'), table_name='oauth_states')
    op.drop_table('oauth_states')
    op.drop_index(op.f('ix_rate_cards_influencer_platform_id'), table_name='rate_cards')
    op.drop_table('rate_cards')
    op.drop_index(op.f('ix_influencer_platform_metrics_campaign_id'), table_name='influencer_platform_metrics')
    op.drop_index('ix_metric_platform_recorded', table_name='influencer_platform_metrics')
    op.drop_table('influencer_platform_metrics')
    op.drop_index(op.f('ix_influencer_platforms_influencer_id'), table_name='influencer_platforms')
    op.drop_table('influencer_platforms')
    op.drop_index(op.f('ix_campaign_invitations_influencer_id'), table_name='campaign_invitations')
    op.drop_index(op.f('ix_campaign_invitations_campaign_id'), table_name='campaign_invitations')
    op.drop_table('campaign_invitations')
    op.drop_index(op.f('ix_campaigns_brand_id'), table_name='campaigns')
    op.drop_table('campaigns')
    op.drop_index(op.f('ix_services_platform_id'), table_name='services')
    op.drop_table('services')
    op.drop_table('platforms')
    op.drop_index(op.f('ix_influencer_categories_influencer_id'), table_name='influencer_categories')
    op.drop_table('influencer_categories')
    op.drop_table('categories')
    op.drop_table('influencers')
    op.drop_index(op.f('ix_audit_logs_user_id'), table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index(op.f('ix_brands_user_id'), table_name='brands')
    op.drop_table('brands')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    for enum_type in (
        notification_type,
        approval_status,
        mou_status,
        snapshot_phase,
        invitation_status,
        campaign_status,
        campaign_type,
        user_role,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
