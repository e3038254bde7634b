from __future__ import annotations

import os
import tempfile
import threading
import unittest
from datetime import datetime, timezone
from unittest import mock

from sqlalchemy import create_engine, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from spinwheel.models import Base, BookingReservation, SpinRecord
from spinwheel.prize_draw import (
    AlreadyConsumed,
    EmptyBookingId,
    InMemoryBookingLedger,
    PersistenceFailure,
    SqlBookingLedger,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class InMemoryBookingLedgerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ledger = InMemoryBookingLedger()

    def test_consume_then_reuse_fails(self) -> None:
        record = self.ledger.consume(" ABC123 ", "p1", "Free coffee", NOW)
        self.assertEqual(record.booking_id, "ABC123")
        self.assertEqual(record.prize_id, "p1")
        self.assertEqual(record.prize_label, "Free coffee")
        self.assertEqual(record.timestamp, NOW)
        self.assertTrue(self.ledger.is_consumed("ABC123"))
        self.assertTrue(self.ledger.is_consumed("  ABC123"))

        with self.assertRaises(AlreadyConsumed) as ctx:
            self.ledger.consume("ABC123", "p2", "Free dessert", NOW)
        self.assertEqual(ctx.exception.booking_id, "ABC123")

    def test_blank_booking_id_is_rejected(self) -> None:
        with self.assertRaises(EmptyBookingId):
            self.ledger.reserve("   ")
        with self.assertRaises(EmptyBookingId):
            self.ledger.is_consumed("")

    def test_record_requires_reservation(self) -> None:
        with self.assertRaises(ValueError):
            self.ledger.record("never-reserved", "p1", "Prize", NOW)

    def test_record_is_idempotent_per_booking(self) -> None:
        self.ledger.reserve("BK-1")
        first = self.ledger.record("BK-1", "p1", "Prize 1", NOW)
        again = self.ledger.record("BK-1", "p2", "Prize 2", NOW)
        self.assertEqual(first, again)
        self.assertEqual(self.ledger.records(), [first])

    def test_records_are_newest_first(self) -> None:
        older = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.ledger.consume("old", "p1", "Prize", older)
        self.ledger.consume("new", "p1", "Prize", NOW)
        self.assertEqual([r.booking_id for r in self.ledger.records()], ["new", "old"])

    def test_concurrent_reservations_of_one_id_have_one_winner(self) -> None:
        workers = 8
        barrier = threading.Barrier(workers)
        outcomes: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            try:
                self.ledger.reserve("SAME-ID")
                outcome = "ok"
            except AlreadyConsumed:
                outcome = "consumed"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(outcomes.count("ok"), 1)
        self.assertEqual(outcomes.count("consumed"), workers - 1)

    def test_held_lock_times_out_as_persistence_failure(self) -> None:
        ledger = InMemoryBookingLedger(lock_timeout=0.05)
        lock = ledger._lock_for("BUSY")
        lock.acquire()
        try:
            with self.assertRaises(PersistenceFailure):
                ledger.reserve("BUSY")
            # A different booking id is not blocked by the held lock.
            self.assertEqual(ledger.reserve("FREE"), "FREE")
        finally:
            lock.release()
        self.assertFalse(ledger.is_consumed("BUSY"))

    def test_locks_are_released_once_ids_are_reserved(self) -> None:
        for idx in range(50):
            self.ledger.consume(f"BK-{idx}", "p1", "Prize", NOW)
        with self.assertRaises(AlreadyConsumed):
            self.ledger.reserve("BK-0")
        self.assertEqual(self.ledger._locks, {})

    def test_concurrent_records_and_snapshots(self) -> None:
        workers = 8
        per_worker = 25
        for w in range(workers):
            for i in range(per_worker):
                self.ledger.reserve(f"W{w}-{i}")
        barrier = threading.Barrier(workers + 1)
        errors: list[BaseException] = []

        def writer(w: int) -> None:
            barrier.wait()
            for i in range(per_worker):
                self.ledger.record(f"W{w}-{i}", "p1", "Prize", NOW)

        def reader() -> None:
            barrier.wait()
            try:
                for _ in range(per_worker):
                    self.ledger.records()
            except RuntimeError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(workers)]
        threads.append(threading.Thread(target=reader))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(errors, [])
        self.assertEqual(len(self.ledger.records()), workers * per_worker)


class SqlBookingLedgerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "ledger.db")
        self.engine = create_engine(
            f"sqlite+pysqlite:///{db_path}",
            future=True,
            connect_args={"timeout": 10, "check_same_thread": False},
        )
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.ledger = SqlBookingLedger(self.Session)

    def tearDown(self) -> None:
        self.engine.dispose()
        self.tmpdir.cleanup()

    def test_consume_persists_reservation_and_record(self) -> None:
        record = self.ledger.consume("  ABC123  ", 7, "Free coffee", NOW)
        self.assertEqual(record.booking_id, "ABC123")
        self.assertEqual(record.prize_id, 7)
        self.assertIsNotNone(record.record_id)

        with self.Session() as session:
            row = session.scalar(select(SpinRecord))
            self.assertIsNotNone(row)
            self.assertEqual(row.booking_id, "ABC123")
            self.assertEqual(row.prize_label, "Free coffee")
            self.assertEqual(row.id, record.record_id)
            self.assertTrue(BookingReservation.exists(session, "ABC123"))

    def test_reuse_is_rejected_across_ledgers(self) -> None:
        self.ledger.consume(" ABC123 ", 7, "Free coffee", NOW)
        other = SqlBookingLedger(self.Session)
        self.assertTrue(other.is_consumed("ABC123"))
        with self.assertRaises(AlreadyConsumed):
            other.consume("ABC123", 8, "Free dessert", NOW)

    def test_imported_spin_record_counts_as_consumed(self) -> None:
        with self.Session.begin() as session:
            session.add(SpinRecord(booking_id="LEGACY", prize_id=1, prize_label="Old"))
        self.assertTrue(self.ledger.is_consumed("LEGACY"))
        with self.assertRaises(AlreadyConsumed):
            self.ledger.reserve("LEGACY")

    def test_unknown_booking_is_not_consumed(self) -> None:
        self.assertFalse(self.ledger.is_consumed("NEW-ONE"))

    def test_record_is_idempotent_per_booking(self) -> None:
        self.ledger.reserve("BK-9")
        first = self.ledger.record("BK-9", 1, "Prize 1", NOW)
        again = self.ledger.record("BK-9", 2, "Prize 2", NOW)
        self.assertEqual(again.record_id, first.record_id)
        self.assertEqual(again.prize_id, 1)
        with self.Session() as session:
            self.assertEqual(len(session.scalars(select(SpinRecord)).all()), 1)

    def test_record_requires_reservation(self) -> None:
        with self.assertRaises(ValueError):
            self.ledger.record("never-reserved", 1, "Prize", NOW)

    def test_database_errors_become_persistence_failures(self) -> None:
        self.ledger.reserve("BK-ERR")
        error = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with mock.patch.object(SpinRecord, "get_by_booking_id", side_effect=error):
            with self.assertRaises(PersistenceFailure) as ctx:
                self.ledger.record("BK-ERR", 1, "Prize", NOW)
        self.assertEqual(ctx.exception.booking_id, "BK-ERR")
        self.assertIs(ctx.exception.__cause__, error)
        # The reservation survives the failed write.
        self.assertTrue(self.ledger.is_consumed("BK-ERR"))

    def test_concurrent_reservations_of_one_id_have_one_winner(self) -> None:
        barrier = threading.Barrier(2)
        outcomes: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            ledger = SqlBookingLedger(self.Session)
            barrier.wait()
            try:
                ledger.reserve("RACE-1")
                outcome = "ok"
            except AlreadyConsumed:
                outcome = "consumed"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        self.assertEqual(sorted(outcomes), ["consumed", "ok"])


if __name__ == "__main__":
    unittest.main()
