# File: smartpark/application/dtos.py
"""
Data Transfer Objects (DTOs) for the SmartPark Allocation Engine

This module defines DTOs for data transfer between layers:
1. Configuration DTO - facility sizing and pricing, fixed at construction
2. Input DTOs - vehicle requests accepted by commands
3. Output DTOs - structured results of every service operation
4. Query DTOs - read-only views of slots, vehicles and history

DTO Principles:
- Validation at creation (pydantic)
- No business logic, only data
- Results carry either a success payload or an error kind, never both
- Serialization/deserialization support
"""

from typing import Dict, List, Optional, Any, Type, TypeVar
from datetime import datetime
from decimal import Decimal
from enum import Enum
import json

from pydantic import BaseModel, Field, ConfigDict, field_validator

from ..domain.models import (
    ErrorKind, VehicleState, VehicleStatus, HistoryRecord, Money
)

# Type variable for DTO generics
T = TypeVar('T', bound='BaseDTO')


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        data = self.model_dump(**kwargs)
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create DTO from dictionary"""
        return cls(**data)

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """Create DTO from JSON string"""
        data = json.loads(json_str)
        return cls(**data)


# ============================================================================
# ENUM DTOs
# ============================================================================

class EntryOutcomeDTO(str, Enum):
    """What happened to an arriving vehicle"""
    PARKED = "parked"
    QUEUED = "queued"


class ExitOutcomeDTO(str, Enum):
    """What happened to a departing vehicle"""
    EXITED = "exited"
    REMOVED_FROM_QUEUE = "removed_from_queue"


# ============================================================================
# CONFIGURATION DTO
# ============================================================================

class FacilityConfig(BaseDTO):
    """Facility sizing and pricing, fixed for the lifetime of a service"""

    model_config = ConfigDict(frozen=True)

    slot_count: int = Field(default=10, ge=1, description="Number of parking slots")
    wait_capacity: int = Field(default=10, ge=1, description="Maximum vehicles in the wait queue")
    max_vehicles: int = Field(default=100, ge=1, description="Vehicle ids are 0..max_vehicles-1")
    fee_per_hour: Decimal = Field(default=Decimal('50'), ge=0, description="Flat hourly rate")
    currency: str = Field(default="INR", min_length=3, max_length=3, description="Currency code (ISO 4217)")

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        """Currency codes are upper-case letters"""
        v = v.strip().upper()
        if not v.isalpha():
            raise ValueError("Currency must be alphabetic")
        return v

    @property
    def hourly_rate(self) -> Money:
        return Money(self.fee_per_hour, self.currency)


# ============================================================================
# COMMON VALUE OBJECT DTOs
# ============================================================================

class MoneyDTO(BaseDTO):
    """Money value object DTO"""
    amount: Decimal = Field(ge=0, description="Amount")
    currency: str = Field(default="INR", min_length=3, max_length=3, description="Currency code (ISO 4217)")

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyDTO':
        return cls(amount=money.amount, currency=money.currency)

    def format(self) -> str:
        return f"{self.currency} {self.amount:.2f}"


# ============================================================================
# INPUT DTOs
# ============================================================================

class VehicleRequestDTO(BaseDTO):
    """Request naming a vehicle, with an optional explicit timestamp"""
    vehicle_id: int = Field(description="Vehicle id, range checked by the service")
    timestamp: Optional[datetime] = Field(default=None, description="Event time (defaults to the service clock)")


# ============================================================================
# QUERY DTOs
# ============================================================================

class VehicleStatusDTO(BaseDTO):
    """Current status of a vehicle"""
    vehicle_id: int = Field(description="Vehicle id")
    state: VehicleState = Field(description="Absent, parked or waiting")
    slot: Optional[int] = Field(default=None, description="Slot when parked")
    entry_time: Optional[datetime] = Field(default=None, description="Entry time when parked")
    queue_position: Optional[int] = Field(default=None, ge=1, description="1-based queue position when waiting")
    has_monthly_pass: bool = Field(default=False, description="Monthly pass holder")

    @classmethod
    def from_status(cls, status: VehicleStatus, queue_position: Optional[int] = None) -> 'VehicleStatusDTO':
        return cls(
            vehicle_id=status.vehicle_id,
            state=status.state,
            slot=status.slot,
            entry_time=status.entry_time,
            queue_position=queue_position,
            has_monthly_pass=status.has_monthly_pass
        )


class SlotDTO(BaseDTO):
    """One entry of the slot map"""
    slot: int = Field(ge=1, description="Slot number")
    vehicle_id: Optional[int] = Field(default=None, description="Occupying vehicle, None when empty")
    entry_time: Optional[datetime] = Field(default=None, description="When the occupant entered")

    @property
    def is_empty(self) -> bool:
        return self.vehicle_id is None


class HistoryRecordDTO(BaseDTO):
    """Read-only copy of a history record"""
    vehicle_id: int = Field(description="Vehicle id")
    slot: int = Field(description="Slot number")
    entry_time: datetime = Field(description="Entry time")
    exit_time: Optional[datetime] = Field(default=None, description="Exit time, None while still parked")

    @classmethod
    def from_record(cls, record: HistoryRecord) -> 'HistoryRecordDTO':
        return cls(
            vehicle_id=record.vehicle_id,
            slot=record.slot,
            entry_time=record.entry_time,
            exit_time=record.exit_time
        )

    @property
    def is_open(self) -> bool:
        return self.exit_time is None


class FacilityStatusDTO(BaseDTO):
    """Facility occupancy summary"""
    total_slots: int = Field(description="Total number of slots")
    occupied_slots: int = Field(description="Number of occupied slots")
    available_slots: int = Field(description="Number of free slots")
    waiting_vehicles: int = Field(description="Vehicles in the wait queue")
    wait_capacity: int = Field(description="Wait queue capacity")
    occupancy_rate: float = Field(ge=0, le=1, description="Occupancy rate (0-1)")
    monthly_pass_holders: int = Field(default=0, description="Registered pass holders")
    total_revenue: MoneyDTO = Field(description="Revenue collected so far")
    timestamp: datetime = Field(description="Status timestamp")


# ============================================================================
# OPERATION RESULT DTOs
# ============================================================================

class OperationResultDTO(BaseDTO):
    """Common shape of every operation result"""
    success: bool = Field(description="Operation success")
    error_kind: Optional[ErrorKind] = Field(default=None, description="Error kind when unsuccessful")
    message: Optional[str] = Field(default=None, description="Result message")
    timestamp: Optional[datetime] = Field(default=None, description="Operation timestamp")


class EntryResultDTO(OperationResultDTO):
    """Result of a vehicle entry"""
    vehicle_id: Optional[int] = Field(default=None, description="Vehicle id")
    outcome: Optional[EntryOutcomeDTO] = Field(default=None, description="Parked or queued")
    slot: Optional[int] = Field(default=None, description="Allocated slot")
    entry_time: Optional[datetime] = Field(default=None, description="Entry time")
    queue_position: Optional[int] = Field(default=None, ge=1, description="1-based queue position")


class ExitResultDTO(OperationResultDTO):
    """Result of a vehicle exit"""
    vehicle_id: Optional[int] = Field(default=None, description="Vehicle id")
    outcome: Optional[ExitOutcomeDTO] = Field(default=None, description="Exited or left the queue")
    slot: Optional[int] = Field(default=None, description="Slot that was freed")
    entry_time: Optional[datetime] = Field(default=None, description="Entry time")
    exit_time: Optional[datetime] = Field(default=None, description="Exit time")
    duration_seconds: Optional[int] = Field(default=None, ge=0, description="Stay length in whole seconds")
    billable_hours: Optional[int] = Field(default=None, ge=0, description="Hours charged")
    fee: Optional[MoneyDTO] = Field(default=None, description="Fee charged")
    promoted_vehicle: Optional[int] = Field(default=None, description="Waiting vehicle given the freed slot")
    promoted_slot: Optional[int] = Field(default=None, description="Slot given to the promoted vehicle")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal consistency warnings")


class PassRegistrationDTO(OperationResultDTO):
    """Result of a monthly pass registration"""
    vehicle_id: Optional[int] = Field(default=None, description="Vehicle id")
    already_registered: bool = Field(default=False, description="Flag was already set")


class VehicleSearchDTO(OperationResultDTO):
    """Result of a vehicle search"""
    status: Optional[VehicleStatusDTO] = Field(default=None, description="Vehicle status")


class EmergencyResetDTO(OperationResultDTO):
    """Result of an emergency reset"""
    cleared_parked: List[int] = Field(default_factory=list, description="Vehicles removed from slots")
    cleared_waiting: List[int] = Field(default_factory=list, description="Vehicles removed from the queue")
    total_revenue: Optional[MoneyDTO] = Field(default=None, description="Revenue, preserved across the reset")
    history_size: int = Field(default=0, ge=0, description="History records, preserved across the reset")
