from datetime import datetime, timedelta, timezone

from spinwheel.config import Settings
from spinwheel.db.engine import get_sessionmaker, make_engine
from spinwheel.models import (
    Base,
    BookingReservation,
    Prize,
    RegisteredBooking,
    SpinRecord,
)

DEV_PRIZES = [
    ("10% off next booking", 40.0),
    ("Free coffee", 30.0),
    ("Free dessert", 20.0),
    ("Free night", 1.0),
    ("Try again", 9.0),
]

DEV_BOOKINGS = ["BK-1001", "BK-1002", "BK-1003", "BK-1004", "BK-1005"]


def main() -> None:
    """Reset the development database and fill it with sample data."""
    settings = Settings.from_env()
    engine = make_engine(settings.database_url, timeout=settings.db_timeout)

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        prizes = []
        for offset, (label, weight) in enumerate(DEV_PRIZES):
            # Distinct timestamps keep the wheel order stable.
            prize = Prize(label=label, weight=weight)
            prize.created_at = now + timedelta(seconds=offset)
            prizes.append(prize)
        session.add_all(prizes)
        session.add_all(
            RegisteredBooking(booking_id=booking_id, note="seed")
            for booking_id in DEV_BOOKINGS
        )
        session.flush()

        # One spin already taken so the admin log is not empty.
        session.add(
            BookingReservation(booking_id=DEV_BOOKINGS[0], reserved_at=now)
        )
        session.add(
            SpinRecord(
                booking_id=DEV_BOOKINGS[0],
                prize_id=prizes[1].id,
                prize_label=prizes[1].label,
                created_at=now,
            )
        )

    engine.dispose()
    print(f"Seeded {len(DEV_PRIZES)} prizes and {len(DEV_BOOKINGS)} bookings.")


if __name__ == "__main__":
    main()
