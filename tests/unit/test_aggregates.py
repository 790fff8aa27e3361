#!/usr/bin/env python3
"""
Aggregate Unit Tests

Tests for the ParkingLedger and HistoryLog aggregate roots.
"""

import unittest
from datetime import datetime, timedelta

from smartpark.domain.aggregates import ParkingLedger, HistoryLog
from smartpark.domain.models import (
    Money, VehicleState, InvalidVehicleIdError, DuplicateEntryError,
    LedgerInconsistencyError
)


class TestParkingLedger(unittest.TestCase):
    """Unit tests for ParkingLedger"""

    def setUp(self):
        self.ledger = ParkingLedger(slot_count=3, max_vehicles=10)
        self.now = datetime(2024, 1, 1, 8, 0, 0)

    def test_vehicle_id_range(self):
        for bad in (-1, 10, 100, "5", 2.0, True):
            with self.assertRaises(InvalidVehicleIdError, msg=f"Accepted {bad!r}"):
                self.ledger.validate_vehicle_id(bad)
        self.ledger.validate_vehicle_id(0)
        self.ledger.validate_vehicle_id(9)

    def test_assign_slot_updates_both_maps(self):
        self.ledger.assign_slot(4, 2, self.now)

        status = self.ledger.status_of(4)
        self.assertEqual(status.state, VehicleState.PARKED)
        self.assertEqual(status.slot, 2)
        self.assertEqual(status.entry_time, self.now)
        self.assertEqual(self.ledger.occupant_of(2), 4)
        self.assertEqual(self.ledger.free_slots(), [1, 3])
        self.ledger.validate_invariants()

    def test_assign_occupied_slot_is_inconsistent(self):
        self.ledger.assign_slot(4, 2, self.now)
        with self.assertRaises(LedgerInconsistencyError):
            self.ledger.assign_slot(5, 2, self.now)

    def test_try_begin_entry_rejects_duplicates(self):
        self.ledger.assign_slot(1, 1, self.now)
        self.ledger.mark_waiting(2)

        with self.assertRaises(DuplicateEntryError) as ctx:
            self.ledger.try_begin_entry(1)
        self.assertEqual(ctx.exception.state, VehicleState.PARKED)

        with self.assertRaises(DuplicateEntryError) as ctx:
            self.ledger.try_begin_entry(2)
        self.assertEqual(ctx.exception.state, VehicleState.WAITING)

        self.ledger.try_begin_entry(3)

    def test_waiting_vehicle_promoted_to_parked(self):
        self.ledger.mark_waiting(6)
        self.ledger.assign_slot(6, 1, self.now)
        self.assertTrue(self.ledger.status_of(6).is_parked)
        self.assertEqual(self.ledger.waiting_count, 0)

    def test_clear_vehicle_returns_previous_status(self):
        self.ledger.assign_slot(3, 1, self.now)
        previous = self.ledger.clear_vehicle(3)
        self.assertTrue(previous.is_parked)
        self.assertTrue(self.ledger.status_of(3).is_absent)
        self.assertIsNone(self.ledger.occupant_of(1))

    def test_register_pass_is_idempotent(self):
        self.assertFalse(self.ledger.register_pass(7))
        self.assertTrue(self.ledger.register_pass(7))
        self.assertTrue(self.ledger.has_pass(7))
        self.assertEqual(self.ledger.pass_holders(), [7])

    def test_revenue_accumulates(self):
        self.ledger.record_revenue(Money(50))
        total = self.ledger.record_revenue(Money(100))
        self.assertEqual(total, Money(150))
        self.assertEqual(self.ledger.total_revenue, Money(150))

    def test_reset_occupancy_keeps_passes_and_revenue(self):
        self.ledger.register_pass(1)
        self.ledger.record_revenue(Money(50))
        self.ledger.assign_slot(1, 1, self.now)
        self.ledger.assign_slot(2, 2, self.now)
        self.ledger.mark_waiting(5)

        parked, waiting = self.ledger.reset_occupancy()

        self.assertEqual(parked, [1, 2])
        self.assertEqual(waiting, [5])
        self.assertEqual(self.ledger.free_slots(), [1, 2, 3])
        self.assertTrue(self.ledger.has_pass(1))
        self.assertEqual(self.ledger.total_revenue, Money(50))

    def test_parked_vehicles_in_slot_order(self):
        self.ledger.assign_slot(9, 3, self.now)
        self.ledger.assign_slot(2, 1, self.now)
        self.assertEqual([s.vehicle_id for s in self.ledger.parked_vehicles()], [2, 9])

    def test_version_increments_on_change(self):
        version = self.ledger.version
        self.ledger.assign_slot(1, 1, self.now)
        self.assertGreater(self.ledger.version, version)


class TestHistoryLog(unittest.TestCase):
    """Unit tests for HistoryLog"""

    def setUp(self):
        self.log = HistoryLog()
        self.t0 = datetime(2024, 1, 1, 8, 0, 0)

    def test_records_newest_first(self):
        self.log.open(1, 1, self.t0)
        self.log.open(2, 2, self.t0 + timedelta(minutes=1))
        records = self.log.all_records()
        self.assertEqual([r.vehicle_id for r in records], [2, 1])
        self.assertEqual(len(self.log), 2)

    def test_close_matches_most_recent_open_record(self):
        first = self.log.open(1, 1, self.t0)
        first.close(self.t0 + timedelta(hours=1))
        second = self.log.open(1, 1, self.t0 + timedelta(hours=2))

        closed = self.log.close(1, 1, self.t0 + timedelta(hours=3))

        self.assertIs(closed, second)
        self.assertEqual(first.exit_time, self.t0 + timedelta(hours=1))
        self.assertEqual(self.log.open_records(), ())

    def test_close_without_open_record_reports_desync(self):
        self.log.open(1, 1, self.t0)
        with self.assertLogs("HistoryLog", level="WARNING"):
            self.assertIsNone(self.log.close(1, 2, self.t0))
        self.assertTrue(self.log.all_records()[0].is_open)

    def test_records_for_vehicle(self):
        self.log.open(1, 1, self.t0)
        self.log.open(2, 2, self.t0)
        self.log.open(1, 3, self.t0)
        self.assertEqual([r.slot for r in self.log.records_for(1)], [3, 1])


if __name__ == '__main__':
    unittest.main()
