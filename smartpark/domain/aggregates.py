# File: smartpark/domain/aggregates.py
"""
Aggregate Roots for the SmartPark Allocation Engine

Aggregates:
1. ParkingLedger - authoritative vehicle and slot state plus revenue
2. HistoryLog - append-only audit trail of every occupancy

Key Concepts:
- Aggregate roots enforce their own invariants
- State is only changed through aggregate methods
- Every change bumps the aggregate version
"""

from typing import List, Optional, Dict, Set, Tuple
from datetime import datetime
import logging

from .models import (
    VehicleState, VehicleStatus, HistoryRecord, Money,
    InvalidVehicleIdError, DuplicateEntryError, LedgerInconsistencyError
)


# ============================================================================
# BASE AGGREGATE ROOT
# ============================================================================

class AggregateRoot:
    """
    Base class for all aggregate roots
    Provides versioning and a per-class logger
    """

    def __init__(self):
        self._version: int = 1
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def version(self) -> int:
        """Get current aggregate version"""
        return self._version

    def _increment_version(self) -> None:
        """Increment version after state change"""
        self._version += 1

    def validate_invariants(self) -> None:
        """Validate aggregate invariants - to be overridden by subclasses"""
        pass


# ============================================================================
# PARKING LEDGER AGGREGATE
# ============================================================================

class ParkingLedger(AggregateRoot):
    """
    Aggregate Root: single source of truth for who is where

    Tracks for every vehicle id in [0, max_vehicles) whether it is absent,
    parked (with slot and entry time) or waiting, and for every slot in
    [1, slot_count] which vehicle occupies it. Monthly-pass flags and the
    revenue accumulator live here too.
    """

    def __init__(self, slot_count: int, max_vehicles: int, currency: str = "INR"):
        super().__init__()
        if slot_count < 1:
            raise ValueError("Slot count must be at least 1")
        if max_vehicles < 1:
            raise ValueError("Max vehicles must be at least 1")

        self.slot_count = slot_count
        self.max_vehicles = max_vehicles
        self.currency = currency

        # Internal state
        self._parked: Dict[int, Tuple[int, datetime]] = {}  # vehicle -> (slot, entry_time)
        self._waiting: Set[int] = set()
        self._slot_to_vehicle: Dict[int, int] = {}          # slot -> vehicle
        self._pass_holders: Set[int] = set()
        self._revenue: Money = Money.zero(currency)

        self._logger.info(
            f"Created ParkingLedger: {slot_count} slots, vehicle ids 0..{max_vehicles - 1}"
        )

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def validate_vehicle_id(self, vehicle_id: int) -> None:
        """Reject ids outside the configured range"""
        if isinstance(vehicle_id, bool) or not isinstance(vehicle_id, int):
            raise InvalidVehicleIdError(f"Vehicle id must be an integer, got {vehicle_id!r}")
        if not 0 <= vehicle_id < self.max_vehicles:
            raise InvalidVehicleIdError(
                f"Vehicle id {vehicle_id} is outside 0..{self.max_vehicles - 1}",
                vehicle_id=vehicle_id
            )

    def validate_slot(self, slot: int) -> None:
        if not 1 <= slot <= self.slot_count:
            raise ValueError(f"Slot {slot} is outside 1..{self.slot_count}")

    def try_begin_entry(self, vehicle_id: int) -> None:
        """
        Check that a vehicle may enter

        Raises: InvalidVehicleIdError, DuplicateEntryError
        """
        self.validate_vehicle_id(vehicle_id)
        if vehicle_id in self._parked:
            slot, _ = self._parked[vehicle_id]
            raise DuplicateEntryError(
                f"Vehicle {vehicle_id} is already parked at slot {slot}",
                vehicle_id=vehicle_id,
                state=VehicleState.PARKED
            )
        if vehicle_id in self._waiting:
            raise DuplicateEntryError(
                f"Vehicle {vehicle_id} is already in the waiting queue",
                vehicle_id=vehicle_id,
                state=VehicleState.WAITING
            )

    def validate_invariants(self) -> None:
        """Check the slot map and vehicle statuses agree"""
        if len(self._slot_to_vehicle) != len(self._parked):
            raise LedgerInconsistencyError(
                f"{len(self._slot_to_vehicle)} occupied slots but {len(self._parked)} parked vehicles"
            )

        for vehicle_id, (slot, _) in self._parked.items():
            if self._slot_to_vehicle.get(slot) != vehicle_id:
                raise LedgerInconsistencyError(
                    f"Vehicle {vehicle_id} parked at slot {slot} but slot holds "
                    f"{self._slot_to_vehicle.get(slot)}"
                )
            if vehicle_id in self._waiting:
                raise LedgerInconsistencyError(
                    f"Vehicle {vehicle_id} is both parked and waiting"
                )

        self._logger.debug("All ledger invariants satisfied")

    # ========================================================================
    # PUBLIC BUSINESS METHODS
    # ========================================================================

    def assign_slot(self, vehicle_id: int, slot: int, now: datetime) -> None:
        """Record Parked(slot, now) for a vehicle"""
        self.validate_vehicle_id(vehicle_id)
        self.validate_slot(slot)

        occupant = self._slot_to_vehicle.get(slot)
        if occupant is not None:
            raise LedgerInconsistencyError(
                f"Slot {slot} is already occupied by vehicle {occupant}"
            )
        if vehicle_id in self._parked:
            raise LedgerInconsistencyError(f"Vehicle {vehicle_id} is already parked")

        self._waiting.discard(vehicle_id)
        self._parked[vehicle_id] = (slot, now)
        self._slot_to_vehicle[slot] = vehicle_id
        self._increment_version()

        self._logger.info(f"Vehicle {vehicle_id} assigned slot {slot}")

    def mark_waiting(self, vehicle_id: int) -> None:
        """Record Waiting status"""
        self.validate_vehicle_id(vehicle_id)
        if vehicle_id in self._parked:
            raise LedgerInconsistencyError(f"Vehicle {vehicle_id} is parked and cannot wait")
        self._waiting.add(vehicle_id)
        self._increment_version()

        self._logger.info(f"Vehicle {vehicle_id} marked waiting")

    def clear_vehicle(self, vehicle_id: int) -> VehicleStatus:
        """
        Reset a vehicle to Absent

        Returns: the status the vehicle had before clearing
        """
        previous = self.status_of(vehicle_id)

        if vehicle_id in self._parked:
            slot, _ = self._parked.pop(vehicle_id)
            self._slot_to_vehicle.pop(slot, None)
        self._waiting.discard(vehicle_id)
        self._increment_version()

        self._logger.debug(f"Vehicle {vehicle_id} cleared (was {previous.state.value})")
        return previous

    def register_pass(self, vehicle_id: int) -> bool:
        """
        Flag a vehicle as a monthly pass holder

        Returns: True if the flag was already set
        """
        self.validate_vehicle_id(vehicle_id)
        already = vehicle_id in self._pass_holders
        if not already:
            self._pass_holders.add(vehicle_id)
            self._increment_version()
            self._logger.info(f"Vehicle {vehicle_id} registered as monthly pass holder")
        return already

    def has_pass(self, vehicle_id: int) -> bool:
        return vehicle_id in self._pass_holders

    def record_revenue(self, amount: Money) -> Money:
        """Add a collected fee and return the new total"""
        self._revenue = self._revenue + amount
        self._increment_version()
        return self._revenue

    def reset_occupancy(self) -> Tuple[List[int], List[int]]:
        """
        Set every vehicle to Absent and every slot to empty

        Pass flags and revenue are kept.
        Returns: (vehicles that were parked, vehicles that were waiting)
        """
        parked = sorted(self._parked)
        waiting = sorted(self._waiting)

        self._parked.clear()
        self._waiting.clear()
        self._slot_to_vehicle.clear()
        self._increment_version()

        self._logger.warning(
            f"Occupancy reset: {len(parked)} parked and {len(waiting)} waiting vehicles cleared"
        )
        return parked, waiting

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def status_of(self, vehicle_id: int) -> VehicleStatus:
        self.validate_vehicle_id(vehicle_id)
        has_pass = vehicle_id in self._pass_holders

        if vehicle_id in self._parked:
            slot, entry_time = self._parked[vehicle_id]
            return VehicleStatus(
                vehicle_id=vehicle_id,
                state=VehicleState.PARKED,
                slot=slot,
                entry_time=entry_time,
                has_monthly_pass=has_pass
            )
        if vehicle_id in self._waiting:
            return VehicleStatus(vehicle_id, VehicleState.WAITING, has_monthly_pass=has_pass)
        return VehicleStatus(vehicle_id, VehicleState.ABSENT, has_monthly_pass=has_pass)

    def occupant_of(self, slot: int) -> Optional[int]:
        self.validate_slot(slot)
        return self._slot_to_vehicle.get(slot)

    def occupied_slots(self) -> List[int]:
        return sorted(self._slot_to_vehicle)

    def free_slots(self) -> List[int]:
        return [s for s in range(1, self.slot_count + 1) if s not in self._slot_to_vehicle]

    def slot_map(self) -> Dict[int, Optional[int]]:
        """Every slot with its occupant (None when empty)"""
        return {s: self._slot_to_vehicle.get(s) for s in range(1, self.slot_count + 1)}

    def parked_vehicles(self) -> List[VehicleStatus]:
        """Parked vehicles in ascending slot order"""
        return [self.status_of(self._slot_to_vehicle[s]) for s in self.occupied_slots()]

    def pass_holders(self) -> List[int]:
        return sorted(self._pass_holders)

    @property
    def total_revenue(self) -> Money:
        return self._revenue

    @property
    def parked_count(self) -> int:
        return len(self._parked)

    @property
    def waiting_count(self) -> int:
        return len(self._waiting)

    def __str__(self) -> str:
        return (
            f"ParkingLedger: {self.parked_count}/{self.slot_count} occupied, "
            f"{self.waiting_count} waiting, revenue {self._revenue.format()}"
        )


# ============================================================================
# HISTORY LOG AGGREGATE
# ============================================================================

class HistoryLog(AggregateRoot):
    """
    Aggregate Root: append-only record of every occupancy

    Records are stored in insertion order and traversed newest-first.
    Nothing is ever removed; emergency resets leave the log untouched.
    """

    def __init__(self):
        super().__init__()
        self._records: List[HistoryRecord] = []

    def open(self, vehicle_id: int, slot: int, entry_time: datetime) -> HistoryRecord:
        """Append a new open record"""
        record = HistoryRecord(vehicle_id=vehicle_id, slot=slot, entry_time=entry_time)
        self._records.append(record)
        self._increment_version()

        self._logger.debug(f"Opened history record: vehicle {vehicle_id}, slot {slot}")
        return record

    def close(self, vehicle_id: int, slot: int, exit_time: datetime) -> Optional[HistoryRecord]:
        """
        Close the most recent open record for (vehicle, slot)

        Returns: the closed record, or None when no open record matches.
        A missing record means the log and ledger have drifted apart; it is
        reported but never aborts the caller.
        """
        for record in reversed(self._records):
            if record.vehicle_id == vehicle_id and record.slot == slot and record.is_open:
                record.close(exit_time)
                self._increment_version()
                return record

        self._logger.warning(
            f"History desync: no open record for vehicle {vehicle_id} at slot {slot}"
        )
        return None

    def all_records(self) -> Tuple[HistoryRecord, ...]:
        """All records, most recent first"""
        return tuple(reversed(self._records))

    def open_records(self) -> Tuple[HistoryRecord, ...]:
        return tuple(r for r in reversed(self._records) if r.is_open)

    def records_for(self, vehicle_id: int) -> Tuple[HistoryRecord, ...]:
        return tuple(r for r in reversed(self._records) if r.vehicle_id == vehicle_id)

    def __len__(self) -> int:
        return len(self._records)
