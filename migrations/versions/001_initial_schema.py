"""Initial schema: users, providers, catalog, availabilities, bookings, notifications, reviews.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("CLIENT", "PROVIDER", "ADMIN", name="userrole")
booking_status = sa.Enum("PENDING", "APPROVED", "CANCELLED", "COMPLETED", name="bookingstatus")
notification_type = sa.Enum("NEW_BOOKING", "BOOKING_CANCELLED", name="notificationtype")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="CLIENT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "providers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("bio", sa.String(), nullable=True),
        sa.Column("document", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_providers_user_id"), "providers", ["user_id"], unique=True)
    op.create_index(op.f("ix_providers_city"), "providers", ["city"], unique=False)
    op.create_index(op.f("ix_providers_state"), "providers", ["state"], unique=False)

    op.create_table(
        "service_types",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_service_types_name"), "service_types", ["name"], unique=True)

    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("service_type_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("is_multiday", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_type_id"], ["service_types.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_services_provider_id"), "services", ["provider_id"], unique=False)
    op.create_index(op.f("ix_services_service_type_id"), "services", ["service_type_id"], unique=False)

    op.create_table(
        "service_variations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("discount_percentage", sa.Integer(), nullable=True),
        sa.Column("discount_days", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.CheckConstraint("price > 0", name="ck_service_variations_price_positive"),
        sa.CheckConstraint("duration_minutes > 0", name="ck_service_variations_duration_positive"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_service_variations_service_id"), "service_variations", ["service_id"], unique=False)

    op.create_table(
        "provider_availabilities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("start_datetime", sa.DateTime(), nullable=False),
        sa.Column("end_datetime", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("start_datetime < end_datetime", name="ck_provider_availabilities_range"),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_provider_availabilities_provider_id"), "provider_availabilities", ["provider_id"], unique=False)
    op.create_index(op.f("ix_provider_availabilities_start_datetime"), "provider_availabilities", ["start_datetime"], unique=False)
    op.create_index(op.f("ix_provider_availabilities_end_datetime"), "provider_availabilities", ["end_datetime"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("service_variation_id", sa.Integer(), nullable=False),
        sa.Column("start_datetime", sa.DateTime(), nullable=False),
        sa.Column("end_datetime", sa.DateTime(), nullable=False),
        sa.Column("price_at_booking", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", booking_status, nullable=False, server_default="PENDING"),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("start_datetime < end_datetime", name="ck_bookings_range"),
        sa.ForeignKeyConstraint(["client_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"]),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.ForeignKeyConstraint(["service_variation_id"], ["service_variations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_bookings_client_id"), "bookings", ["client_id"], unique=False)
    op.create_index(op.f("ix_bookings_provider_id"), "bookings", ["provider_id"], unique=False)
    op.create_index(op.f("ix_bookings_service_id"), "bookings", ["service_id"], unique=False)
    op.create_index(op.f("ix_bookings_start_datetime"), "bookings", ["start_datetime"], unique=False)
    op.create_index(op.f("ix_bookings_end_datetime"), "bookings", ["end_datetime"], unique=False)
    op.create_index(op.f("ix_bookings_status"), "bookings", ["status"], unique=False)

    if op.get_bind().dialect.name == "postgresql":
        # No two active bookings of one provider may overlap, even under concurrent inserts
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings ADD CONSTRAINT ex_bookings_provider_no_overlap
            EXCLUDE USING gist (
                provider_id WITH =,
                tsrange(start_datetime, end_datetime, '[)') WITH &&
            ) WHERE (status IN ('PENDING', 'APPROVED'))
            """
        )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_provider_id"), "notifications", ["provider_id"], unique=False)

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("booking_id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["client_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("booking_id"),
    )
    op.create_index(op.f("ix_reviews_service_id"), "reviews", ["service_id"], unique=False)
    op.create_index(op.f("ix_reviews_client_id"), "reviews", ["client_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_reviews_client_id"), table_name="reviews")
    op.drop_index(op.f("ix_reviews_service_id"), table_name="reviews")
    op.drop_table("reviews")
    op.drop_index(op.f("ix_notifications_provider_id"), table_name="notifications")
    op.drop_table("notifications")
    for ix in ("status", "end_datetime", "start_datetime", "service_id", "provider_id", "client_id"):
        op.drop_index(op.f(f"ix_bookings_{ix}"), table_name="bookings")
    op.drop_table("bookings")
    for ix in ("end_datetime", "start_datetime", "provider_id"):
        op.drop_index(op.f(f"ix_provider_availabilities_{ix}"), table_name="provider_availabilities")
    op.drop_table("provider_availabilities")
    op.drop_index(op.f("ix_service_variations_service_id"), table_name="service_variations")
    op.drop_table("service_variations")
    op.drop_index(op.f("ix_services_service_type_id"), table_name="services")
    op.drop_index(op.f("ix_services_provider_id"), table_name="services")
    op.drop_table("services")
    op.drop_index(op.f("ix_service_types_name"), table_name="service_types")
    op.drop_table("service_types")
    op.drop_index(op.f("ix_providers_state"), table_name="providers")
    op.drop_index(op.f("ix_providers_city"), table_name="providers")
    op.drop_index(op.f("ix_providers_user_id"), table_name="providers")
    op.drop_table("providers")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
    if op.get_bind().dialect.name == "postgresql":
        for enum in (notification_type, booking_status, user_role):
            enum.drop(op.get_bind(), checkfirst=True)
