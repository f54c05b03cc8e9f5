"""users, vehicles and role-addressed notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = sa.Enum('ADMIN', 'DRIVER', 'STUDENT', name='userrole')
RECEIVER_ROLE = sa.Enum('ADMIN', 'DRIVER', 'STUDENT', 'ALL', name='receiverrole')
NOTIFICATION_TYPE = sa.Enum('INFO', 'WARNING', 'ALERT', 'SUCCESS', 'REMINDER', name='notificationtype')
NOTIFICATION_PRIORITY = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'URGENT', name='notificationpriority')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('role', USER_ROLE, nullable=False),
        sa.Column('assigned_vehicle_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'])
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_assigned_vehicle_id'), 'users', ['assigned_vehicle_id'])

    op.create_table(
        'vehicles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(20), nullable=False),
        sa.Column('route_name', sa.String(100), nullable=True),
        sa.Column('driver_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['driver_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('number'),
        sa.UniqueConstraint('driver_id'),
    )
    op.create_index(op.f('ix_vehicles_id'), 'vehicles', ['id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', NOTIFICATION_TYPE, nullable=False),
        sa.Column('priority', NOTIFICATION_PRIORITY, nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('sender_role', USER_ROLE, nullable=False),
        sa.Column('receiver_role', RECEIVER_ROLE, nullable=False),
        sa.Column('receiver_id', sa.Integer(), nullable=True),
        sa.Column('related_entity_type', sa.String(50), nullable=True),
        sa.Column('related_entity_id', sa.Integer(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'])
    op.create_index(op.f('ix_notifications_sender_id'), 'notifications', ['sender_id'])
    op.create_index('idx_notification_receiver_created', 'notifications', ['receiver_id', 'created_at'])
    op.create_index('idx_notification_role_created', 'notifications', ['receiver_role', 'created_at'])
    op.create_index('idx_notification_is_read', 'notifications', ['is_read'])


def downgrade():
    op.drop_index('idx_notification_is_read', table_name='notifications')
    op.drop_index('idx_notification_role_created', table_name='notifications')
    op.drop_index('idx_notification_receiver_created', table_name='notifications')
    op.drop_index(op.f('ix_notifications_sender_id'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_id'), table_name='notifications')
    op.drop_table('notifications')
    op.drop_index(op.f('ix_vehicles_id'), table_name='vehicles')
    op.drop_table('vehicles')
    op.drop_index(op.f('ix_users_assigned_vehicle_id'), table_name='users')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
