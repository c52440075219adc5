"""Initial StayDesk schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-18

Users, properties, rooms, bookings, guest check-ins and iCal sync history.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # === USERS ===
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('firebase_uid', sa.String(128), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', sa.Enum('ADMIN', 'MANAGER', 'STAFF', name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === PROPERTIES ===
    op.create_table(
        'properties',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(50), default='Italy'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === ROOMS ===
    op.create_table(
        'rooms',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('property_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('max_guests', sa.Integer(), default=2),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('airbnb_ical_url', sa.Text(), nullable=True),
        sa.Column('booking_com_ical_url', sa.Text(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === BOOKINGS ===
    op.create_table(
        'bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('booking_code', sa.String(20), unique=True, nullable=False, index=True),
        sa.Column('property_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('guest_name', sa.String(255), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=False),
        sa.Column('guest_phone', sa.String(50), nullable=True),
        sa.Column('guests', sa.Integer(), default=1),
        sa.Column('check_in', sa.DateTime(), nullable=False, index=True),
        sa.Column('check_out', sa.DateTime(), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), default=0),
        sa.Column('status', sa.Enum('PENDING', 'CONFIRMED', 'CHECKED_IN', 'CHECKED_OUT', 'CANCELLED', name='bookingstatus'), nullable=False, index=True),
        sa.Column('channel', sa.Enum('DIRECT', 'AIRBNB', 'BOOKING_COM', 'OTHER', name='bookingchannel'), nullable=False),
        sa.Column('imported_from_ical', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('external_calendar_id', sa.String(255), nullable=True, index=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        # One imported booking per feed event
        sa.UniqueConstraint('room_id', 'channel', 'external_calendar_id', name='uq_booking_room_channel_external_uid'),
    )

    # === GUEST CHECK-INS ===
    op.create_table(
        'guest_check_ins',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('birth_city', sa.String(100), nullable=False),
        sa.Column('birth_province', sa.String(10), nullable=False),
        sa.Column('residence_street', sa.String(255), nullable=False),
        sa.Column('residence_postal_code', sa.String(20), nullable=False),
        sa.Column('residence_city', sa.String(100), nullable=False),
        sa.Column('residence_province', sa.String(10), nullable=False),
        sa.Column('fiscal_code', sa.String(32), nullable=False),
        sa.Column('document_type', sa.Enum('CARTA_IDENTITA', 'PASSAPORTO', 'PATENTE', name='documenttype'), nullable=False),
        sa.Column('document_number', sa.String(50), nullable=False),
        sa.Column('document_issue_date', sa.Date(), nullable=False),
        sa.Column('document_expiry_date', sa.Date(), nullable=False),
        sa.Column('is_exempt', sa.Boolean(), default=False),
        sa.Column('exemption_reason', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='checkinstatus'), nullable=False, index=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
    )

    # === ICAL SYNC HISTORY (append-only) ===
    op.create_table(
        'ical_syncs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('source', sa.Enum('AIRBNB', 'BOOKING_COM', name='icalsource'), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('events_imported', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table('ical_syncs')
    op.drop_table('guest_check_ins')
    op.drop_table('bookings')
    op.drop_table('rooms')
    op.drop_table('properties')
    op.drop_table('users')

    op.execute('DROP TYPE IF EXISTS icalsource')
    op.execute('DROP TYPE IF EXISTS checkinstatus')
    op.execute('DROP TYPE IF EXISTS documenttype')
    op.execute('DROP TYPE IF EXISTS bookingchannel')
    op.execute('DROP TYPE IF EXISTS bookingstatus')
    op.execute('DROP TYPE IF EXISTS userrole')
