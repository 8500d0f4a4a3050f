"""booking pages, availability, exceptions, bookings

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "booking_pages",
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("slot_duration", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("min_notice_hours", sa.Integer(), server_default=sa.text("24"), nullable=False),
        sa.Column("max_days_ahead", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("timezone", sa.Text(), server_default=sa.text("'Europe/Paris'"), nullable=False),
        sa.Column("is_active", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("qualification_fields", sa.Text(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("brand_color", sa.Text(), server_default=sa.text("'#C6FF00'"), nullable=True),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "booking_availability",
        sa.Column("booking_page_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_active", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["booking_page_id"], ["booking_pages.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_booking_availability_page_day",
        "booking_availability",
        ["booking_page_id", "day_of_week"],
    )

    op.create_table(
        "booking_exceptions",
        sa.Column("booking_page_id", sa.Integer(), nullable=False),
        sa.Column("exception_date", sa.Date(), nullable=False),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["booking_page_id"], ["booking_pages.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("booking_page_id", "exception_date"),
    )

    op.create_table(
        "bookings",
        sa.Column("booking_page_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.Text(), server_default=sa.text("'confirmed'"), nullable=False),
        sa.Column("prospect_name", sa.Text(), nullable=False),
        sa.Column("prospect_email", sa.Text(), nullable=False),
        sa.Column("qualification_answers", sa.Text(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prospect_phone", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["booking_page_id"], ["booking_pages.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bookings_page_date", "bookings", ["booking_page_id", "date"])
    # One live booking per slot; cancelled rows free it again
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["booking_page_id", "date", "start_time"],
        unique=True,
        sqlite_where=sa.text("status != 'cancelled'"),
        postgresql_where=sa.text("status != 'cancelled'"),
    )


def downgrade():
    op.drop_index("uq_bookings_active_slot", table_name="bookings")
    op.drop_index("ix_bookings_page_date", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("booking_exceptions")
    op.drop_index("ix_booking_availability_page_day", table_name="booking_availability")
    op.drop_table("booking_availability")
    op.drop_table("booking_pages")
