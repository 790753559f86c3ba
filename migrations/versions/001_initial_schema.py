"""Initial schema: accounts, bookings, disputes and the disciplinary ledger.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column(
            "role",
            sa.Enum("customer", "driver", "admin", name="userrole"),
            default="customer",
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "banned", name="accountstatus"),
            default="active",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_users_role", "users", ["role"])

    # ── drivers ───────────────────────────────────────────────────────
    # current_suspension_id gets its FK once the ledger table exists.
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("is_verified", sa.Boolean, default=False, nullable=False),
        sa.Column("last_warning_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_suspension_id", sa.Integer, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── cars ──────────────────────────────────────────────────────────
    op.create_table(
        "cars",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=False
        ),
        sa.Column("plate_number", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean, default=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_cars_driver", "cars", ["driver_id"])

    # ── car_bookings ──────────────────────────────────────────────────
    op.create_table(
        "car_bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("car_id", sa.Integer, sa.ForeignKey("cars.id"), nullable=False),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "CONFIRMED",
                "IN_PROGRESS",
                "COMPLETED",
                "CANCELLED",
                name="bookingstatus",
            ),
            default="PENDING",
            nullable=False,
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_car_bookings_car", "car_bookings", ["car_id"])
    op.create_index("idx_car_bookings_status", "car_bookings", ["status"])

    # ── hotel_bookings ────────────────────────────────────────────────
    op.create_table(
        "hotel_bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("status", sa.String(20), default="PENDING", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── disputes ──────────────────────────────────────────────────────
    op.create_table(
        "disputes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "booking_hotel_id",
            sa.Integer,
            sa.ForeignKey("hotel_bookings.id"),
            unique=True,
            nullable=True,
        ),
        sa.Column(
            "booking_car_id",
            sa.Integer,
            sa.ForeignKey("car_bookings.id"),
            unique=True,
            nullable=True,
        ),
        sa.Column(
            "raised_by",
            sa.Enum("customer", "provider", name="disputeparty"),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "resolved", "rejected", name="disputestatus"),
            default="pending",
            nullable=False,
        ),
        sa.Column("resolution", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "(booking_hotel_id IS NULL) <> (booking_car_id IS NULL)",
            name="ck_disputes_one_booking",
        ),
    )
    op.create_index("idx_disputes_car_booking", "disputes", ["booking_car_id"])
    op.create_index("idx_disputes_created", "disputes", ["created_at"])

    # ── driver_disciplinary_actions ───────────────────────────────────
    op.create_table(
        "driver_disciplinary_actions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=False
        ),
        sa.Column(
            "action_type",
            sa.Enum("warning", "suspension", "ban", name="actiontype"),
            nullable=False,
        ),
        sa.Column("dispute_count", sa.Integer, default=0, nullable=False),
        sa.Column("suspension_days", sa.Integer, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scheduled_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_paused", sa.Boolean, default=False, nullable=False),
        sa.Column("pause_reason", sa.String(64), nullable=True),
        sa.Column(
            "paused_booking_id",
            sa.Integer,
            sa.ForeignKey("car_bookings.id"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_actions_driver_period",
        "driver_disciplinary_actions",
        ["driver_id", "period_start"],
    )
    op.create_index(
        "idx_actions_paused_booking",
        "driver_disciplinary_actions",
        ["paused_booking_id"],
    )
    op.create_index(
        "idx_actions_unapplied",
        "driver_disciplinary_actions",
        ["actual_start", "is_paused"],
    )

    op.create_foreign_key(
        "fk_drivers_current_suspension",
        "drivers",
        "driver_disciplinary_actions",
        ["current_suspension_id"],
        ["id"],
    )

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("data", sa.JSON, nullable=True),
        sa.Column("is_read", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_constraint(
        "fk_drivers_current_suspension", "drivers", type_="foreignkey"
    )
    op.drop_table("driver_disciplinary_actions")
    op.drop_table("disputes")
    op.drop_table("hotel_bookings")
    op.drop_table("car_bookings")
    op.drop_table("cars")
    op.drop_table("drivers")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS actiontype")
    op.execute("DROP TYPE IF EXISTS disputestatus")
    op.execute("DROP TYPE IF EXISTS disputeparty")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS accountstatus")
    op.execute("DROP TYPE IF EXISTS userrole")
