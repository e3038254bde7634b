"""Initial schema: prizes, bookings, reservations and spin records.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "prizes",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_prizes"),
    )
    op.create_table(
        "bookings",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("booking_id", sa.String(length=255), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_bookings"),
        sa.UniqueConstraint("booking_id", name="uq_bookings_booking_id"),
    )
    op.create_table(
        "booking_reservations",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("booking_id", sa.String(length=255), nullable=False),
        sa.Column("reserved_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_booking_reservations"),
        sa.UniqueConstraint(
            "booking_id", name="uq_booking_reservations_booking_id"
        ),
    )
    op.create_table(
        "spin_records",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("booking_id", sa.String(length=255), nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("prize_label", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_spin_records"),
        sa.UniqueConstraint("booking_id", name="uq_spin_records_booking_id"),
    )
    op.create_index(
        "ix_spin_records_prize_id", "spin_records", ["prize_id"], unique=False
    )
    op.create_index(
        "ix_spin_records_created_at", "spin_records", ["created_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_spin_records_created_at", table_name="spin_records")
    op.drop_index("ix_spin_records_prize_id", table_name="spin_records")
    op.drop_table("spin_records")
    op.drop_table("booking_reservations")
    op.drop_table("bookings")
    op.drop_table("prizes")
