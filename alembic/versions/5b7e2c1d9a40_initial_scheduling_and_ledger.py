"""initial_scheduling_and_ledger

Revision ID: 5b7e2c1d9a40
Revises:
Create Date: 2025-01-06 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = '5b7e2c1d9a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


repetition_type_enum = sa.Enum(
    'once', 'daily', 'weekly', name='repetition_type_enum'
)
subscription_status_enum = sa.Enum(
    'active', 'pending', 'expired', 'cancelled', name='subscription_status_enum'
)
registration_status_enum = sa.Enum(
    'registered', 'attended', 'cancelled', 'absent', name='registration_status_enum'
)
ledger_direction_enum = sa.Enum('debit', 'credit', name='ledger_direction_enum')
ledger_reason_enum = sa.Enum(
    'booking', 'attendance', 'absence', 'cancellation_refund',
    name='ledger_reason_enum',
)


def upgrade() -> None:
    """Upgrade schema - Add scheduling, booking and session ledger tables."""

    # Schedule templates
    op.create_table(
        'schedule_templates',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('class_id', UUID(as_uuid=True), nullable=False),
        sa.Column('trainer_id', UUID(as_uuid=True), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('repetition_type', repetition_type_enum, nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('schedule_date', sa.Date(), nullable=True),
        sa.Column('max_participants', sa.Integer(), server_default='10', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)',
            name='ck_schedule_template_day_of_week',
        ),
        sa.CheckConstraint(
            'max_participants > 0', name='ck_schedule_template_max_participants'
        ),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_schedule_templates_class_id', 'schedule_templates', ['class_id'])
    op.create_index('ix_schedule_templates_trainer_id', 'schedule_templates', ['trainer_id'])

    # Occurrences
    op.create_table(
        'occurrences',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('template_id', UUID(as_uuid=True), nullable=False),
        sa.Column('class_id', UUID(as_uuid=True), nullable=False),
        sa.Column('trainer_id', UUID(as_uuid=True), nullable=False),
        sa.Column('occurrence_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('participant_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'participant_count >= 0', name='ck_occurrence_participants_non_negative'
        ),
        sa.CheckConstraint(
            'participant_count <= capacity', name='ck_occurrence_within_capacity'
        ),
        sa.ForeignKeyConstraint(
            ['template_id'], ['schedule_templates.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_occurrences_template_id', 'occurrences', ['template_id'])
    op.create_index('ix_occurrences_occurrence_date', 'occurrences', ['occurrence_date'])

    # Subscriptions
    op.create_table(
        'subscriptions',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('plan_id', UUID(as_uuid=True), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sessions_remaining', sa.Integer(), server_default='0', nullable=False),
        sa.Column('status', subscription_status_enum, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'sessions_remaining >= 0', name='ck_subscription_sessions_non_negative'
        ),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subscriptions_member_id', 'subscriptions', ['member_id'])

    # Registrations
    op.create_table(
        'registrations',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('occurrence_id', UUID(as_uuid=True), nullable=False),
        sa.Column('subscription_id', UUID(as_uuid=True), nullable=True),
        sa.Column('qr_code', sa.String(), nullable=False),
        sa.Column('status', registration_status_enum, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('registered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.ForeignKeyConstraint(['occurrence_id'], ['occurrences.id']),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('qr_code'),
    )
    op.create_index('ix_registrations_member_id', 'registrations', ['member_id'])
    op.create_index('ix_registrations_occurrence_id', 'registrations', ['occurrence_id'])
    op.create_index(
        'uq_registration_member_occurrence_registered',
        'registrations',
        ['member_id', 'occurrence_id'],
        unique=True,
        postgresql_where=sa.text("status = 'registered'"),
    )

    # Check-ins
    op.create_table(
        'checkins',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('registration_id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('checkin_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('session_consumed', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['registration_id'], ['registrations.id']),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('registration_id'),
    )
    op.create_index('ix_checkins_member_id', 'checkins', ['member_id'])

    # Session ledger
    op.create_table(
        'session_ledger_entries',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('subscription_id', UUID(as_uuid=True), nullable=False),
        sa.Column('registration_id', UUID(as_uuid=True), nullable=True),
        sa.Column('direction', ledger_direction_enum, nullable=False),
        sa.Column('reason', ledger_reason_enum, nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance_before', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_ledger_amount_positive'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id']),
        sa.ForeignKeyConstraint(['registration_id'], ['registrations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_session_ledger_entries_subscription_id',
        'session_ledger_entries',
        ['subscription_id'],
    )
    op.create_index(
        'ix_session_ledger_entries_registration_id',
        'session_ledger_entries',
        ['registration_id'],
    )


def downgrade() -> None:
    """Downgrade schema - Drop scheduling, booking and session ledger tables."""
    op.drop_table('session_ledger_entries')
    op.drop_table('checkins')
    op.drop_table('registrations')
    op.drop_table('subscriptions')
    op.drop_table('occurrences')
    op.drop_table('schedule_templates')

    bind = op.get_bind()
    for enum_type in (
        ledger_reason_enum,
        ledger_direction_enum,
        registration_status_enum,
        subscription_status_enum,
        repetition_type_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
