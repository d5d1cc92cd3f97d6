"""Initial schema: flights, fare classes, seat pools, passengers, tickets, parameters.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "flights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("flight_code", sa.String(20), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("flight_code", name="uq_flights_flight_code"),
    )
    op.create_index("ix_flights_id", "flights", ["id"])
    # The expiry sweep joins held tickets against departures inside the hold window
    op.create_index("ix_flights_departure_time", "flights", ["departure_time"])

    op.create_table(
        "fare_classes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_fare_classes_name"),
    )
    op.create_index("ix_fare_classes_id", "fare_classes", ["id"])

    # One row per (flight, fare class). remaining_seats is the contended
    # counter; the CHECKs hold 0 <= remaining <= total no matter what code runs.
    op.create_table(
        "seat_pools",
        sa.Column("flight_id", sa.Integer(), sa.ForeignKey("flights.id"), primary_key=True),
        sa.Column("fare_class_id", sa.Integer(), sa.ForeignKey("fare_classes.id"), primary_key=True),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("remaining_seats", sa.Integer(), nullable=False),
        sa.Column("fare_per_seat", sa.Numeric(10, 2), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("remaining_seats >= 0", name="check_remaining_seats_non_negative"),
        sa.CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        sa.CheckConstraint("remaining_seats <= total_seats", name="check_remaining_lte_total"),
        sa.CheckConstraint("fare_per_seat >= 0", name="check_fare_non_negative"),
    )

    op.create_table(
        "passengers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("citizen_id", sa.String(20), nullable=False),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("phone_number", sa.String(30), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_passengers_id", "passengers", ["id"])
    op.create_index("ix_passengers_citizen_id", "passengers", ["citizen_id"], unique=True)

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("flight_id", sa.Integer(), sa.ForeignKey("flights.id"), nullable=False),
        sa.Column("fare_class_id", sa.Integer(), sa.ForeignKey("fare_classes.id"), nullable=False),
        sa.Column("passenger_id", sa.Integer(), sa.ForeignKey("passengers.id"), nullable=False),
        sa.Column("booking_customer_id", sa.Integer(), nullable=True),
        sa.Column("seat_number", sa.String(7), nullable=False),
        sa.Column("fare", sa.Numeric(10, 2), nullable=False),
        sa.Column("confirmation_code", sa.String(32), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'held'")),
        sa.Column("payment_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gateway_order_id", sa.String(100), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('held', 'paid', 'canceled')", name="check_ticket_status"),
        sa.CheckConstraint("fare >= 0", name="check_ticket_fare_non_negative"),
    )
    op.create_index("ix_tickets_id", "tickets", ["id"])
    op.create_index("ix_tickets_flight_id", "tickets", ["flight_id"])
    op.create_index("ix_tickets_passenger_id", "tickets", ["passenger_id"])
    op.create_index("ix_tickets_booking_customer_id", "tickets", ["booking_customer_id"])
    op.create_index("ix_tickets_confirmation_code", "tickets", ["confirmation_code"])
    op.create_index("ix_tickets_status_flight", "tickets", ["status", "flight_id"])
    # A seat is taken by at most one live ticket. Canceled rows stay for
    # history and must not block re-selling the seat.
    op.create_index(
        "uq_tickets_flight_seat_active",
        "tickets",
        ["flight_id", "seat_number"],
        unique=True,
        postgresql_where=sa.text("status <> 'canceled'"),
    )

    op.create_table(
        "parameters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("max_booking_hold_duration", sa.Integer(), nullable=False),
        sa.Column("min_flight_duration", sa.Integer(), nullable=False),
        sa.Column("min_booking_in_advance_duration", sa.Integer(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("max_booking_hold_duration > 0", name="check_hold_duration_positive"),
        sa.CheckConstraint("min_flight_duration > 0", name="check_flight_duration_positive"),
        sa.CheckConstraint(
            "min_booking_in_advance_duration >= 0", name="check_booking_advance_non_negative"
        ),
    )


def downgrade() -> None:
    op.drop_table("parameters")
    op.drop_table("tickets")
    op.drop_table("passengers")
    op.drop_table("seat_pools")
    op.drop_table("fare_classes")
    op.drop_table("flights")
