# File: smartpark/domain/models.py
"""
Domain Models for the SmartPark Allocation Engine

This module contains:
1. Value Objects: Money and ParkingDuration (immutable, validated)
2. Enums: vehicle states and error kinds
3. Entities: VehicleStatus snapshots and HistoryRecord audit entries
4. Domain Exceptions: the error taxonomy raised by the domain layer

Vehicles and slots are plain integers. A vehicle is never modelled beyond
its id, its monthly-pass flag and its current status.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum


SECONDS_PER_HOUR = 3600


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleState(str, Enum):
    """
    Tracked state of a vehicle
    Exactly one state holds for every vehicle id at any instant
    """
    ABSENT = "absent"      # Not in the facility
    PARKED = "parked"      # Occupies a slot
    WAITING = "waiting"    # In the wait queue

    def __str__(self) -> str:
        return self.value.title()


class ErrorKind(str, Enum):
    """Kinds of recoverable errors reported by the engine"""
    INVALID_VEHICLE_ID = "invalid_vehicle_id"
    DUPLICATE_ENTRY = "duplicate_entry"
    FACILITY_FULL = "facility_full"
    NOT_PARKED = "not_parked"
    NOT_IN_QUEUE = "not_in_queue"
    HISTORY_DESYNC = "history_desync"
    INTERNAL_ERROR = "internal_error"


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)  # Value objects are immutable
class Money:
    """
    Value Object: Monetary amount with currency
    Revenue only ever grows, so negative amounts are rejected
    """
    amount: Decimal
    currency: str = "INR"

    def __post_init__(self):
        """Validate money amount"""
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    @classmethod
    def zero(cls, currency: str = "INR") -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money amounts (same currency only)"""
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, multiplier: int) -> 'Money':
        """Multiply money by a non-negative quantity"""
        if multiplier < 0:
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * Decimal(multiplier), self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal('0')

    def format(self) -> str:
        """Format money for display"""
        return f"{self.currency} {self.amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "amount": str(self.amount),
            "currency": self.currency
        }

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class ParkingDuration:
    """
    Value Object: Whole-second length of a stay

    Negative spans (clock skew between entry and exit) are clamped to zero.
    Fractions of a second are dropped before billing.
    """
    total_seconds: int

    def __post_init__(self):
        if self.total_seconds < 0:
            raise ValueError("Duration cannot be negative")

    @classmethod
    def between(cls, start: datetime, end: datetime) -> 'ParkingDuration':
        """Build a duration from entry and exit timestamps"""
        seconds = int((end - start).total_seconds())
        return cls(max(seconds, 0))

    @property
    def hours(self) -> int:
        return self.total_seconds // SECONDS_PER_HOUR

    @property
    def minutes(self) -> int:
        return (self.total_seconds % SECONDS_PER_HOUR) // 60

    @property
    def seconds(self) -> int:
        return self.total_seconds % 60

    @property
    def billable_hours(self) -> int:
        """Hours charged: every started hour counts as a full one"""
        return (self.total_seconds + SECONDS_PER_HOUR - 1) // SECONDS_PER_HOUR

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.total_seconds)

    def __str__(self) -> str:
        return f"{self.hours} hr {self.minutes} min {self.seconds} sec"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

@dataclass(frozen=True)
class VehicleStatus:
    """
    Snapshot of a vehicle's ledger entry

    slot and entry_time are only meaningful while the vehicle is parked.
    """
    vehicle_id: int
    state: VehicleState = VehicleState.ABSENT
    slot: Optional[int] = None
    entry_time: Optional[datetime] = None
    has_monthly_pass: bool = False

    @property
    def is_parked(self) -> bool:
        return self.state == VehicleState.PARKED

    @property
    def is_waiting(self) -> bool:
        return self.state == VehicleState.WAITING

    @property
    def is_absent(self) -> bool:
        return self.state == VehicleState.ABSENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "vehicle_id": self.vehicle_id,
            "state": self.state.value,
            "slot": self.slot,
            "entry_time": self.entry_time.isoformat() if self.entry_time else None,
            "has_monthly_pass": self.has_monthly_pass
        }


@dataclass
class HistoryRecord:
    """
    Entity: audit entry spanning one occupancy of one slot

    Opened when a vehicle is given a slot (direct entry or promotion from the
    wait queue). The exit time is written exactly once.
    """
    vehicle_id: int
    slot: int
    entry_time: datetime
    exit_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    def close(self, exit_time: datetime) -> None:
        """Record the departure time"""
        if not self.is_open:
            raise ValueError(
                f"History record for vehicle {self.vehicle_id} at slot {self.slot} is already closed"
            )
        self.exit_time = exit_time

    @property
    def duration(self) -> Optional[ParkingDuration]:
        if self.exit_time is None:
            return None
        return ParkingDuration.between(self.entry_time, self.exit_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vehicle_id": self.vehicle_id,
            "slot": self.slot,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat() if self.exit_time else None
        }

    def __str__(self) -> str:
        exit_text = self.exit_time.isoformat() if self.exit_time else "STILL PARKED"
        return f"Vehicle {self.vehicle_id} -> Slot {self.slot} | {self.entry_time.isoformat()} -> {exit_text}"


# ============================================================================
# DOMAIN EXCEPTIONS
# ============================================================================

class ParkingError(Exception):
    """Base exception for recoverable parking errors"""
    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, vehicle_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.vehicle_id = vehicle_id


class InvalidVehicleIdError(ParkingError):
    """Vehicle id outside the configured range"""
    kind = ErrorKind.INVALID_VEHICLE_ID


class DuplicateEntryError(ParkingError):
    """Entry requested for a vehicle that is already parked or waiting"""
    kind = ErrorKind.DUPLICATE_ENTRY

    def __init__(self, message: str, vehicle_id: Optional[int] = None,
                 state: VehicleState = VehicleState.PARKED):
        super().__init__(message, vehicle_id)
        self.state = state


class FacilityFullError(ParkingError):
    """Both the slot pool and the wait queue are exhausted"""
    kind = ErrorKind.FACILITY_FULL


class NotParkedError(ParkingError):
    """Exit requested for a vehicle that is not in the facility"""
    kind = ErrorKind.NOT_PARKED


class NotInQueueError(ParkingError):
    """Removal requested for a vehicle that is not in the wait queue"""
    kind = ErrorKind.NOT_IN_QUEUE


class SlotReleaseError(ParkingError):
    """A slot was released twice or is outside the slot range"""
    kind = ErrorKind.INTERNAL_ERROR


class LedgerInconsistencyError(ParkingError):
    """The slot map and vehicle statuses disagree"""
    kind = ErrorKind.INTERNAL_ERROR
