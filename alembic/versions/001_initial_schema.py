"""Initial EquipTrack schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17

Users, customers, items and item history; rentals, calibrations and
maintenance with their status logs and completion artifacts; activity
log; reminders, inventory checks and notifications.

Partial unique indexes keep at most one open request per kind per item,
one active reminder per source record and one unread notification per
reminder.
"""

from alembic import op
import sqlalchemy as sa

revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

OPEN_REQUEST = sa.text("status IN ('PENDING', 'APPROVED')")
ACTIVE_REMINDER = sa.text("status IN ('PENDING', 'SENT')")


def _request_columns():
    return [
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('item_serial', sa.String(100), sa.ForeignKey('items.serial_number'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
    ]


def _status_log_table(name, fk_column, parent):
    op.create_table(
        name,
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(fk_column, sa.String(36), sa.ForeignKey(f'{parent}.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index(f'ix_{name}_{fk_column}', name, [fk_column])


def upgrade():
    """Create all tables"""
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(10), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('contact_name', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )

    op.create_table(
        'items',
        sa.Column('serial_number', sa.String(100), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('part_number', sa.String(100), nullable=False),
        sa.Column('sensor', sa.String(255), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='AVAILABLE'),
        sa.Column('last_verified_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )

    op.create_table(
        'item_history',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('item_serial', sa.String(100), sa.ForeignKey('items.serial_number', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('details', sa.Text, nullable=True),
        sa.Column('related_id', sa.String(36), nullable=True),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('idx_item_history_open', 'item_history', ['item_serial', 'action', 'related_id'])

    # Rentals
    op.create_table(
        'rentals',
        *_request_columns(),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=True),
        sa.Column('return_date', sa.DateTime, nullable=True),
        sa.Column('po_number', sa.String(100), nullable=True),
        sa.Column('do_number', sa.String(100), nullable=True),
        sa.Column('renter_name', sa.String(255), nullable=True),
        sa.Column('renter_phone', sa.String(50), nullable=True),
        sa.Column('renter_address', sa.Text, nullable=True),
        sa.Column('initial_condition', sa.Text, nullable=True),
        sa.Column('return_condition', sa.Text, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_rentals_item_serial', 'rentals', ['item_serial'])
    op.create_index(
        'uq_rentals_open_item', 'rentals', ['item_serial'],
        unique=True, postgresql_where=OPEN_REQUEST, sqlite_where=OPEN_REQUEST,
    )
    _status_log_table('rental_status_logs', 'rental_id', 'rentals')

    # Calibrations
    op.create_table(
        'calibrations',
        *_request_columns(),
        sa.Column('calibration_date', sa.DateTime, nullable=True),
        sa.Column('valid_until', sa.DateTime, nullable=True),
        sa.Column('fax', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_calibrations_item_serial', 'calibrations', ['item_serial'])
    op.create_index(
        'uq_calibrations_open_item', 'calibrations', ['item_serial'],
        unique=True, postgresql_where=OPEN_REQUEST, sqlite_where=OPEN_REQUEST,
    )
    _status_log_table('calibration_status_logs', 'calibration_id', 'calibrations')

    op.create_table(
        'calibration_certificates',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('calibration_id', sa.String(36), sa.ForeignKey('calibrations.id', ondelete='CASCADE'),
                  unique=True, nullable=False),
        sa.Column('certificate_number', sa.String(100), nullable=True),
        sa.Column('manufacturer', sa.String(255), nullable=True),
        sa.Column('instrument_name', sa.String(255), nullable=True),
        sa.Column('model_number', sa.String(100), nullable=True),
        sa.Column('configuration', sa.String(255), nullable=True),
        sa.Column('approved_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_table(
        'gas_calibration_entries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('certificate_id', sa.String(36),
                  sa.ForeignKey('calibration_certificates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('gas_type', sa.String(100), nullable=False),
        sa.Column('gas_concentration', sa.String(100), nullable=False),
        sa.Column('gas_balance', sa.String(100), nullable=True),
        sa.Column('gas_batch_number', sa.String(100), nullable=True),
    )
    op.create_table(
        'test_result_entries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('certificate_id', sa.String(36),
                  sa.ForeignKey('calibration_certificates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('test_sensor', sa.String(100), nullable=False),
        sa.Column('test_span', sa.String(100), nullable=True),
        sa.Column('test_result', sa.String(20), nullable=False),
    )

    # Maintenance
    op.create_table(
        'maintenance',
        *_request_columns(),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_maintenance_item_serial', 'maintenance', ['item_serial'])
    op.create_index(
        'uq_maintenance_open_item', 'maintenance', ['item_serial'],
        unique=True, postgresql_where=OPEN_REQUEST, sqlite_where=OPEN_REQUEST,
    )
    _status_log_table('maintenance_status_logs', 'maintenance_id', 'maintenance')

    for table in ('service_reports', 'technical_reports'):
        columns = [
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('maintenance_id', sa.String(36), sa.ForeignKey('maintenance.id', ondelete='CASCADE'),
                      unique=True, nullable=False),
        ]
        if table == 'service_reports':
            columns += [
                sa.Column('report_number', sa.String(100), nullable=True),
                sa.Column('reason_for_return', sa.Text, nullable=True),
                sa.Column('findings', sa.Text, nullable=True),
                sa.Column('action_taken', sa.Text, nullable=True),
                sa.Column('parts_used', sa.Text, nullable=True),
                sa.Column('technician_name', sa.String(255), nullable=True),
            ]
        else:
            columns += [
                sa.Column('csr_number', sa.String(100), nullable=True),
                sa.Column('problem_description', sa.Text, nullable=True),
                sa.Column('root_cause', sa.Text, nullable=True),
                sa.Column('corrective_action', sa.Text, nullable=True),
                sa.Column('recommendations', sa.Text, nullable=True),
                sa.Column('prepared_by', sa.String(255), nullable=True),
            ]
        columns.append(sa.Column('created_at', sa.DateTime, nullable=False))
        op.create_table(table, *columns)

    # Activity log
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('action', sa.Text, nullable=False),
        sa.Column('details', sa.Text, nullable=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('target_type', sa.String(20), nullable=True),
        sa.Column('target_id', sa.String(100), nullable=True),
        sa.Column('item_serial', sa.String(100), nullable=True),
        sa.Column('affected_user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_activity_logs_type', 'activity_logs', ['type'])
    op.create_index('ix_activity_logs_user_id', 'activity_logs', ['user_id'])
    op.create_index('ix_activity_logs_item_serial', 'activity_logs', ['item_serial'])
    op.create_index('ix_activity_logs_created_at', 'activity_logs', ['created_at'])
    op.create_index('idx_activity_logs_target', 'activity_logs', ['target_type', 'target_id'])
    op.create_index('idx_activity_logs_user_type', 'activity_logs', ['user_id', 'type'])

    # Reminders and notifications
    op.create_table(
        'inventory_checks',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('frequency_days', sa.Integer, nullable=False, server_default='30'),
        sa.Column('next_date', sa.DateTime, nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )

    op.create_table(
        'reminders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('due_date', sa.DateTime, nullable=False),
        sa.Column('reminder_date', sa.DateTime, nullable=False),
        sa.Column('source_id', sa.String(36), nullable=False),
        sa.Column('item_serial', sa.String(100), sa.ForeignKey('items.serial_number', ondelete='CASCADE'), nullable=True),
        sa.Column('rental_id', sa.String(36), sa.ForeignKey('rentals.id', ondelete='CASCADE'), nullable=True),
        sa.Column('calibration_id', sa.String(36), sa.ForeignKey('calibrations.id', ondelete='CASCADE'), nullable=True),
        sa.Column('maintenance_id', sa.String(36), sa.ForeignKey('maintenance.id', ondelete='CASCADE'), nullable=True),
        sa.Column('schedule_id', sa.String(36), sa.ForeignKey('inventory_checks.id', ondelete='CASCADE'), nullable=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email_sent', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('email_sent_at', sa.DateTime, nullable=True),
        sa.Column('acknowledged_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_check_constraint('chk_reminders_fire_before_due', 'reminders', 'reminder_date <= due_date')
    op.create_index('ix_reminders_user_id', 'reminders', ['user_id'])
    op.create_index('idx_reminders_due', 'reminders', ['status', 'reminder_date'])
    op.create_index(
        'uq_reminders_active_source', 'reminders', ['type', 'source_id'],
        unique=True, postgresql_where=ACTIVE_REMINDER, sqlite_where=ACTIVE_REMINDER,
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reminder_id', sa.String(36), sa.ForeignKey('reminders.id', ondelete='CASCADE'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime, nullable=True),
        sa.Column('should_play_sound', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'is_read'])
    op.create_index(
        'uq_notifications_unread_reminder', 'notifications', ['reminder_id'],
        unique=True,
        postgresql_where=sa.text("is_read = false"),
        sqlite_where=sa.text("is_read = 0"),
    )


def downgrade():
    """Drop all tables"""
    for table in (
        'notifications',
        'reminders',
        'inventory_checks',
        'activity_logs',
        'technical_reports',
        'service_reports',
        'maintenance_status_logs',
        'maintenance',
        'test_result_entries',
        'gas_calibration_entries',
        'calibration_certificates',
        'calibration_status_logs',
        'calibrations',
        'rental_status_logs',
        'rentals',
        'item_history',
        'items',
        'customers',
        'users',
    ):
        op.drop_table(table)
