"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 6 customers and 4 drivers (one car each)
  - 12 car bookings (mix of CONFIRMED, IN_PROGRESS, COMPLETED)
  - 3 hotel bookings
  - 4 disputes against driver #1, one short of a suspension
"""

import asyncio

from sqlalchemy import text

from src.domain.enums import BookingStatus, DisputeParty, UserRole
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import (
    CarBookingModel,
    CarModel,
    DisputeModel,
    DriverModel,
    HotelBookingModel,
    UserModel,
)


ADMINS = [
    {"full_name": "Operations Desk", "email": "ops@example.com"},
]

CUSTOMERS = [
    {"full_name": "Aarav Sharma", "email": "aarav@example.com"},
    {"full_name": "Priya Patel", "email": "priya@example.com"},
    {"full_name": "Rohan Mehta", "email": "rohan@example.com"},
    {"full_name": "Sneha Gupta", "email": "sneha@example.com"},
    {"full_name": "Ananya Reddy", "email": "ananya@example.com"},
    {"full_name": "Meera Nair", "email": "meera@example.com"},
]

DRIVERS = [
    {"full_name": "Vikram Singh", "email": "vikram@example.com", "plate": "MH-01-AB-1234"},
    {"full_name": "Karan Joshi", "email": "karan@example.com", "plate": "MH-02-CD-5678"},
    {"full_name": "Arjun Kumar", "email": "arjun@example.com", "plate": "MH-03-EF-9012"},
    {"full_name": "Diya Iyer", "email": "diya@example.com", "plate": "MH-04-GH-3456"},
]

# (driver index, customer index, status)
CAR_BOOKINGS = [
    (0, 0, BookingStatus.COMPLETED),
    (0, 1, BookingStatus.COMPLETED),
    (0, 2, BookingStatus.COMPLETED),
    (0, 3, BookingStatus.COMPLETED),
    (0, 4, BookingStatus.CONFIRMED),
    (1, 5, BookingStatus.IN_PROGRESS),
    (1, 0, BookingStatus.COMPLETED),
    (2, 1, BookingStatus.CONFIRMED),
    (2, 2, BookingStatus.COMPLETED),
    (3, 3, BookingStatus.COMPLETED),
    (3, 4, BookingStatus.CONFIRMED),
    (3, 5, BookingStatus.COMPLETED),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        for a in ADMINS:
            session.add(UserModel(role=UserRole.ADMIN, **a))
        customers = []
        for c in CUSTOMERS:
            m = UserModel(role=UserRole.CUSTOMER, **c)
            session.add(m)
            customers.append(m)
        driver_users = []
        for d in DRIVERS:
            m = UserModel(
                full_name=d["full_name"], email=d["email"], role=UserRole.DRIVER
            )
            session.add(m)
            driver_users.append(m)
        await session.flush()
        print(f"  Created {len(ADMINS) + len(customers) + len(driver_users)} users")

        # ── Drivers and cars ──────────────────────────────────────────
        cars = []
        for user, d in zip(driver_users, DRIVERS):
            driver = DriverModel(user_id=user.id, is_verified=True)
            session.add(driver)
            await session.flush()
            car = CarModel(driver_id=driver.id, plate_number=d["plate"])
            session.add(car)
            cars.append(car)
        await session.flush()
        print(f"  Created {len(cars)} drivers with cars")

        # ── Bookings ──────────────────────────────────────────────────
        bookings = []
        for driver_idx, customer_idx, status in CAR_BOOKINGS:
            m = CarBookingModel(
                car_id=cars[driver_idx].id,
                user_id=customers[customer_idx].id,
                status=status,
            )
            session.add(m)
            bookings.append(m)
        for c in customers[:3]:
            session.add(HotelBookingModel(user_id=c.id, status="CONFIRMED"))
        await session.flush()
        print(f"  Created {len(bookings)} car bookings and 3 hotel bookings")

        # ── Disputes ──────────────────────────────────────────────────
        for booking in bookings[:4]:
            session.add(
                DisputeModel(
                    booking_car_id=booking.id,
                    raised_by=DisputeParty.CUSTOMER,
                    description="Driver arrived late and took a longer route.",
                )
            )
        await session.flush()
        print("  Created 4 disputes against driver #1")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
