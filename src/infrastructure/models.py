"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``                        -- accounts; ``status`` is the suspension switch
* ``drivers``                      -- driver profile, 1:1 with a user
* ``cars``                         -- vehicles owned by a driver
* ``car_bookings``                 -- rides; ``IN_PROGRESS`` blocks suspension
* ``hotel_bookings``               -- only referenced by disputes
* ``disputes``                     -- complaints against exactly one booking
* ``driver_disciplinary_actions``  -- append-only ledger of warnings,
  suspensions and bans
* ``notifications``                -- persisted fire-and-forget messages

Indexes
-------
* **B-Tree** on ``driver_id`` / ``period_start`` / ``paused_booking_id``
  for the engine's per-driver look-ups, and on booking ``status`` for
  the active-ride check.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from .types import UTCDateTime
from src.domain.enums import (
    AccountStatus,
    ActionType,
    BookingStatus,
    DisputeParty,
    DisputeStatus,
    UserRole,
)


def _enum(enum_cls, name: str) -> Enum:
    """Persist enum *values* (``active``), not member names (``ACTIVE``)."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(_enum(UserRole, "userrole"), default=UserRole.CUSTOMER, nullable=False)
    status = Column(
        _enum(AccountStatus, "accountstatus"),
        default=AccountStatus.ACTIVE,
        nullable=False,
    )
    created_at = Column(UTCDateTime, server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    last_warning_at = Column(UTCDateTime, nullable=True)
    # Lookup pointer only; the action owns its own lifecycle.
    current_suspension_id = Column(
        Integer,
        ForeignKey(
            "driver_disciplinary_actions.id",
            use_alter=True,
            name="fk_drivers_current_suspension",
        ),
        nullable=True,
    )
    created_at = Column(UTCDateTime, server_default=func.now())


class CarModel(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    plate_number = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (Index("idx_cars_driver", "driver_id"),)


class CarBookingModel(Base):
    __tablename__ = "car_bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    started_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(
        UTCDateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_car_bookings_car", "car_id"),
        Index("idx_car_bookings_status", "status"),
    )


class HotelBookingModel(Base):
    __tablename__ = "hotel_bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())


class DisputeModel(Base):
    __tablename__ = "disputes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_hotel_id = Column(
        Integer, ForeignKey("hotel_bookings.id"), unique=True, nullable=True
    )
    booking_car_id = Column(
        Integer, ForeignKey("car_bookings.id"), unique=True, nullable=True
    )
    raised_by = Column(_enum(DisputeParty, "disputeparty"), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        _enum(DisputeStatus, "disputestatus"),
        default=DisputeStatus.PENDING,
        nullable=False,
    )
    resolution = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    resolved_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("idx_disputes_car_booking", "booking_car_id"),
        Index("idx_disputes_created", "created_at"),
        CheckConstraint(
            "(booking_hotel_id IS NULL) <> (booking_car_id IS NULL)",
            name="ck_disputes_one_booking",
        ),
    )


class DisciplinaryActionModel(Base):
    __tablename__ = "driver_disciplinary_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    action_type = Column(_enum(ActionType, "actiontype"), nullable=False)
    dispute_count = Column(Integer, default=0, nullable=False)
    suspension_days = Column(Integer, nullable=True)  # 3, 7 or NULL
    reason = Column(Text, nullable=True)  # manual actions only

    period_start = Column(UTCDateTime, nullable=False)
    period_end = Column(UTCDateTime, nullable=False)
    scheduled_start = Column(UTCDateTime, nullable=True)
    scheduled_end = Column(UTCDateTime, nullable=True)
    actual_start = Column(UTCDateTime, nullable=True)
    actual_end = Column(UTCDateTime, nullable=True)

    is_paused = Column(Boolean, default=False, nullable=False)
    pause_reason = Column(String(64), nullable=True)
    paused_booking_id = Column(
        Integer, ForeignKey("car_bookings.id"), nullable=True
    )

    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_actions_driver_period", "driver_id", "period_start"),
        Index("idx_actions_paused_booking", "paused_booking_id"),
        Index("idx_actions_unapplied", "actual_start", "is_paused"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String(40), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (Index("idx_notifications_user", "user_id"),)
