# File: smartpark/application/parking_service.py
"""
Parking Application Service

This module implements the application service layer for the SmartPark
allocation engine. It owns every piece of facility state and sequences the
use cases of the system.

Responsibilities:
1. Vehicle entry: lowest free slot, or a place in the wait queue
2. Vehicle exit: fee computation, slot release, promotion of the next waiter
3. Monthly pass registration and emergency reset
4. Read-only queries (slot map, search, listings, revenue, history)

Key Principles:
- Every operation returns a result DTO, never raises for bad input
- A rejected operation leaves all state untouched
- All operations are serialised by one lock owned by the service
- Time comes from an injected clock (or an explicit timestamp)
"""

from typing import Dict, List, Optional, Any, Tuple, Union
from datetime import datetime
import logging
import threading

from ..domain.models import (
    ErrorKind, ParkingDuration, ParkingError,
    NotParkedError, NotInQueueError, FacilityFullError,
    LedgerInconsistencyError
)
from ..domain.allocation import SlotAllocator, WaitQueue
from ..domain.aggregates import ParkingLedger, HistoryLog
from ..domain.strategies import PricingStrategy, FlatHourlyPricingStrategy
from ..infrastructure.clock import Clock, SystemClock
from ..infrastructure.messaging import (
    EventBus, EventType, DomainEvent, LoggingEventHandler
)
from .dtos import (
    FacilityConfig, MoneyDTO,
    EntryOutcomeDTO, ExitOutcomeDTO,
    EntryResultDTO, ExitResultDTO, PassRegistrationDTO,
    VehicleSearchDTO, EmergencyResetDTO,
    VehicleStatusDTO, SlotDTO, HistoryRecordDTO, FacilityStatusDTO
)


# ============================================================================
# MAIN PARKING SERVICE
# ============================================================================

class ParkingService:
    """
    Main application service for the parking facility

    The service exclusively owns the slot allocator, the wait queue, the
    ledger and the history log. Nothing outside it mutates them.
    """

    def __init__(
        self,
        config: Optional[FacilityConfig] = None,
        clock: Optional[Clock] = None,
        event_bus: Optional[EventBus] = None,
        pricing_strategy: Optional[PricingStrategy] = None
    ):
        """
        Initialize the parking service

        Args:
            config: Facility sizing and pricing. Defaults to FacilityConfig().
            clock: Source of timestamps when callers do not pass one.
            event_bus: Bus receiving domain events after each state change.
            pricing_strategy: Fee calculation. Defaults to the flat hourly rate.
        """
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = config or FacilityConfig()
        self.clock = clock or SystemClock()
        self.event_bus = event_bus or EventBus()
        self.pricing_strategy = pricing_strategy or FlatHourlyPricingStrategy(self.config.hourly_rate)

        # Owned state
        self.allocator = SlotAllocator(self.config.slot_count)
        self.wait_queue = WaitQueue(self.config.wait_capacity)
        self.ledger = ParkingLedger(
            slot_count=self.config.slot_count,
            max_vehicles=self.config.max_vehicles,
            currency=self.config.currency
        )
        self.history_log = HistoryLog()

        self._lock = threading.RLock()

        self.logger.info(
            f"ParkingService initialized: {self.config.slot_count} slots, "
            f"wait capacity {self.config.wait_capacity}, "
            f"rate {self.config.hourly_rate.format()}/hour"
        )

    # ========================================================================
    # STATE-CHANGING OPERATIONS
    # ========================================================================

    def vehicle_entry(self, vehicle_id: int, now: Optional[datetime] = None) -> EntryResultDTO:
        """
        Admit a vehicle

        Use Case: Vehicle Entry
        1. Reject invalid ids and vehicles already parked or waiting
        2. Give the vehicle the lowest-numbered free slot
        3. Otherwise append it to the wait queue
        4. Otherwise report the facility as full

        Returns: Entry result
        """
        with self._lock:
            try:
                self.ledger.try_begin_entry(vehicle_id)
                now = self._resolve_time(now)

                slot = self.allocator.acquire()
                if slot is None:
                    return self._queue_vehicle(vehicle_id, now)

                try:
                    self.ledger.assign_slot(vehicle_id, slot, now)
                except ParkingError:
                    self.allocator.release(slot)
                    raise
                self.history_log.open(vehicle_id, slot, now)

                self.logger.info(f"Vehicle {vehicle_id} parked at slot {slot}")
                self._publish(EventType.VEHICLE_PARKED, now, vehicle_id=vehicle_id, slot=slot)

                return EntryResultDTO(
                    success=True,
                    vehicle_id=vehicle_id,
                    outcome=EntryOutcomeDTO.PARKED,
                    slot=slot,
                    entry_time=now,
                    timestamp=now,
                    message=f"Vehicle {vehicle_id} parked at slot {slot}"
                )

            except ParkingError as e:
                return self._failure(EntryResultDTO, e, "entry")
            except Exception as e:
                return self._internal_failure(EntryResultDTO, e, "entry", vehicle_id=vehicle_id)

    def vehicle_exit(self, vehicle_id: int, now: Optional[datetime] = None) -> ExitResultDTO:
        """
        Release a vehicle

        Use Case: Vehicle Exit
        1. Absent vehicles are rejected
        2. Waiting vehicles simply leave the queue (no fee, no history)
        3. Parked vehicles pay, free their slot, and the slot goes straight
           to the front of the wait queue

        Returns: Exit result
        """
        with self._lock:
            try:
                status = self.ledger.status_of(vehicle_id)

                if status.is_absent:
                    raise NotParkedError(f"Vehicle {vehicle_id} is not parked", vehicle_id=vehicle_id)

                now = self._resolve_time(now)

                if status.is_waiting:
                    return self._leave_queue(vehicle_id, now)

                return self._depart(status.vehicle_id, status.slot, status.entry_time,
                                    status.has_monthly_pass, now)

            except ParkingError as e:
                return self._failure(ExitResultDTO, e, "exit")
            except Exception as e:
                return self._internal_failure(ExitResultDTO, e, "exit", vehicle_id=vehicle_id)

    def register_monthly_pass(self, vehicle_id: int) -> PassRegistrationDTO:
        """Flag a vehicle as a monthly pass holder (idempotent)"""
        with self._lock:
            try:
                already = self.ledger.register_pass(vehicle_id)
                now = self.clock.now()
                if not already:
                    self._publish(EventType.MONTHLY_PASS_REGISTERED, now, vehicle_id=vehicle_id)

                return PassRegistrationDTO(
                    success=True,
                    vehicle_id=vehicle_id,
                    already_registered=already,
                    timestamp=now,
                    message=(
                        f"Vehicle {vehicle_id} already holds a monthly pass" if already
                        else f"Vehicle {vehicle_id} registered as monthly pass holder"
                    )
                )

            except ParkingError as e:
                return self._failure(PassRegistrationDTO, e, "pass registration")
            except Exception as e:
                return self._internal_failure(PassRegistrationDTO, e, "pass registration", vehicle_id=vehicle_id)

    def emergency_reset(self) -> EmergencyResetDTO:
        """
        Clear the facility

        Every vehicle becomes absent, every slot free and the wait queue
        empty. Revenue, history and monthly passes survive.
        """
        with self._lock:
            try:
                now = self.clock.now()
                parked, waiting = self.ledger.reset_occupancy()
                self.allocator.reset()
                self.wait_queue.clear()

                self.logger.warning(
                    f"Emergency reset: cleared {len(parked)} parked and {len(waiting)} waiting vehicles"
                )
                self._publish(
                    EventType.EMERGENCY_RESET, now,
                    cleared_parked=parked, cleared_waiting=waiting
                )

                return EmergencyResetDTO(
                    success=True,
                    cleared_parked=parked,
                    cleared_waiting=waiting,
                    total_revenue=MoneyDTO.from_money(self.ledger.total_revenue),
                    history_size=len(self.history_log),
                    timestamp=now,
                    message="System cleared. History retained."
                )

            except Exception as e:
                return self._internal_failure(EmergencyResetDTO, e, "emergency reset")

    # ========================================================================
    # QUERIES
    # ========================================================================

    def slot_map(self) -> List[SlotDTO]:
        """Every slot with its occupant"""
        with self._lock:
            slots = []
            for slot, vehicle_id in self.ledger.slot_map().items():
                entry_time = None
                if vehicle_id is not None:
                    entry_time = self.ledger.status_of(vehicle_id).entry_time
                slots.append(SlotDTO(slot=slot, vehicle_id=vehicle_id, entry_time=entry_time))
            return slots

    def search_vehicle(self, vehicle_id: int) -> VehicleSearchDTO:
        """Look up where a vehicle is"""
        with self._lock:
            try:
                status = self.ledger.status_of(vehicle_id)
                position = self.wait_queue.position_of(vehicle_id) if status.is_waiting else None
                return VehicleSearchDTO(
                    success=True,
                    status=VehicleStatusDTO.from_status(status, position)
                )
            except ParkingError as e:
                return self._failure(VehicleSearchDTO, e, "search")

    def list_parked(self) -> List[VehicleStatusDTO]:
        """Parked vehicles in ascending slot order"""
        with self._lock:
            return [VehicleStatusDTO.from_status(s) for s in self.ledger.parked_vehicles()]

    def list_waiting(self) -> List[VehicleStatusDTO]:
        """Waiting vehicles in FIFO order"""
        with self._lock:
            return [
                VehicleStatusDTO.from_status(self.ledger.status_of(vehicle_id), position)
                for position, vehicle_id in enumerate(self.wait_queue.snapshot(), start=1)
            ]

    def free_slots(self) -> List[int]:
        with self._lock:
            return self.ledger.free_slots()

    def total_revenue(self) -> MoneyDTO:
        with self._lock:
            return MoneyDTO.from_money(self.ledger.total_revenue)

    def history(self) -> List[HistoryRecordDTO]:
        """Every history record, most recent first"""
        with self._lock:
            return [HistoryRecordDTO.from_record(r) for r in self.history_log.all_records()]

    def get_facility_status(self) -> FacilityStatusDTO:
        """Occupancy summary"""
        with self._lock:
            total = self.config.slot_count
            occupied = self.ledger.parked_count
            return FacilityStatusDTO(
                total_slots=total,
                occupied_slots=occupied,
                available_slots=total - occupied,
                waiting_vehicles=self.wait_queue.size(),
                wait_capacity=self.wait_queue.capacity,
                occupancy_rate=occupied / total,
                monthly_pass_holders=len(self.ledger.pass_holders()),
                total_revenue=MoneyDTO.from_money(self.ledger.total_revenue),
                timestamp=self.clock.now()
            )

    def check_consistency(self) -> None:
        """
        Verify that ledger, allocator and queue agree

        Raises: LedgerInconsistencyError
        """
        with self._lock:
            self.ledger.validate_invariants()

            if self.allocator.free_slots() != self.ledger.free_slots():
                raise LedgerInconsistencyError(
                    f"Allocator free slots {self.allocator.free_slots()} differ from "
                    f"ledger free slots {self.ledger.free_slots()}"
                )

            queued = self.wait_queue.snapshot()
            if len(queued) != self.ledger.waiting_count or any(
                not self.ledger.status_of(v).is_waiting for v in queued
            ):
                raise LedgerInconsistencyError(
                    f"Wait queue {queued} does not match {self.ledger.waiting_count} waiting vehicles"
                )

    # ========================================================================
    # INTERNAL STEPS
    # ========================================================================

    def _queue_vehicle(self, vehicle_id: int, now: datetime) -> EntryResultDTO:
        """Put an arriving vehicle in the wait queue"""
        if not self.wait_queue.enqueue(vehicle_id):
            raise FacilityFullError(
                f"Parking and waiting queue are full, vehicle {vehicle_id} turned away",
                vehicle_id=vehicle_id
            )
        self.ledger.mark_waiting(vehicle_id)
        position = self.wait_queue.size()

        self.logger.info(f"Parking full: vehicle {vehicle_id} added to waiting at position {position}")
        self._publish(EventType.VEHICLE_QUEUED, now, vehicle_id=vehicle_id, position=position)

        return EntryResultDTO(
            success=True,
            vehicle_id=vehicle_id,
            outcome=EntryOutcomeDTO.QUEUED,
            queue_position=position,
            timestamp=now,
            message=f"Parking full: vehicle {vehicle_id} added to waiting at position {position}"
        )

    def _leave_queue(self, vehicle_id: int, now: datetime) -> ExitResultDTO:
        """A waiting vehicle gives up before being served"""
        if not self.wait_queue.remove_by_id(vehicle_id):
            raise NotInQueueError(
                f"Vehicle {vehicle_id} is marked waiting but not found in the waiting queue",
                vehicle_id=vehicle_id
            )
        self.ledger.clear_vehicle(vehicle_id)

        self.logger.info(f"Vehicle {vehicle_id} removed from waiting queue")
        self._publish(EventType.VEHICLE_LEFT_QUEUE, now, vehicle_id=vehicle_id)

        return ExitResultDTO(
            success=True,
            vehicle_id=vehicle_id,
            outcome=ExitOutcomeDTO.REMOVED_FROM_QUEUE,
            exit_time=now,
            timestamp=now,
            message=f"Vehicle {vehicle_id} removed from waiting queue"
        )

    def _depart(
        self,
        vehicle_id: int,
        slot: int,
        entry_time: datetime,
        has_pass: bool,
        now: datetime
    ) -> ExitResultDTO:
        """A parked vehicle pays and leaves"""
        duration = ParkingDuration.between(entry_time, now)
        fee = self.pricing_strategy.calculate_parking_fee(duration, has_monthly_pass=has_pass)
        warnings: List[str] = []

        self.ledger.record_revenue(fee)

        if self.history_log.close(vehicle_id, slot, now) is None:
            warnings.append(
                f"{ErrorKind.HISTORY_DESYNC.value}: no open history record for "
                f"vehicle {vehicle_id} at slot {slot}"
            )

        self.ledger.clear_vehicle(vehicle_id)
        self.allocator.release(slot)

        self.logger.info(
            f"Vehicle {vehicle_id} exited from slot {slot} after {duration}, fee {fee.format()}"
        )
        self._publish(
            EventType.VEHICLE_EXITED, now,
            vehicle_id=vehicle_id, slot=slot,
            duration_seconds=duration.total_seconds, fee=str(fee.amount)
        )

        promoted = self._promote_next(now)

        message = f"Vehicle {vehicle_id} exited from slot {slot}. Fee: {fee.format()}"
        if promoted:
            message += f". Allocated slot {promoted[1]} to waiting vehicle {promoted[0]}"

        return ExitResultDTO(
            success=True,
            vehicle_id=vehicle_id,
            outcome=ExitOutcomeDTO.EXITED,
            slot=slot,
            entry_time=entry_time,
            exit_time=now,
            duration_seconds=duration.total_seconds,
            billable_hours=duration.billable_hours,
            fee=MoneyDTO.from_money(fee),
            promoted_vehicle=promoted[0] if promoted else None,
            promoted_slot=promoted[1] if promoted else None,
            warnings=warnings,
            timestamp=now,
            message=message
        )

    def _promote_next(self, now: datetime) -> Optional[Tuple[int, int]]:
        """
        Hand a freed slot to the longest-waiting vehicle

        Returns: (vehicle_id, slot) or None when nobody was promoted
        """
        next_vehicle = self.wait_queue.dequeue_front()
        if next_vehicle is None:
            return None

        slot = self.allocator.acquire()
        if slot is None:
            # keep its place at the head of the line
            self.wait_queue.enqueue_front(next_vehicle)
            self.logger.warning(
                f"No free slot for waiting vehicle {next_vehicle} after a release; kept at queue front"
            )
            return None

        self.ledger.assign_slot(next_vehicle, slot, now)
        self.history_log.open(next_vehicle, slot, now)

        self.logger.info(f"Allocated slot {slot} to waiting vehicle {next_vehicle}")
        self._publish(EventType.VEHICLE_PROMOTED, now, vehicle_id=next_vehicle, slot=slot)
        return next_vehicle, slot

    def _resolve_time(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock.now()

    def _publish(self, event_type: EventType, occurred_at: datetime, **data: Any) -> None:
        self.event_bus.publish(DomainEvent(
            event_type=event_type,
            data=data,
            occurred_at=occurred_at,
            source=self.__class__.__name__
        ))

    def _failure(self, result_cls, error: ParkingError, operation: str, **fields: Any):
        """Convert a domain error into an unsuccessful result"""
        self.logger.warning(f"Rejected {operation}: {error.message}")
        if 'vehicle_id' in result_cls.model_fields:
            fields.setdefault('vehicle_id', error.vehicle_id)
        return result_cls(
            success=False,
            error_kind=error.kind,
            message=error.message,
            timestamp=self.clock.now(),
            **fields
        )

    def _internal_failure(self, result_cls, error: Exception, operation: str, **fields: Any):
        self.logger.error(f"Error during {operation}: {error}", exc_info=True)
        if not isinstance(fields.get('vehicle_id'), int) or isinstance(fields.get('vehicle_id'), bool):
            fields.pop('vehicle_id', None)
        return result_cls(
            success=False,
            error_kind=ErrorKind.INTERNAL_ERROR,
            message=f"Internal error: {error}",
            timestamp=self.clock.now(),
            **fields
        )


# ============================================================================
# SERVICE FACTORY
# ============================================================================

class ParkingServiceFactory:
    """Factory for creating parking service instances"""

    @staticmethod
    def create_default_service() -> ParkingService:
        """Create service with default configuration and audit logging"""
        return ParkingServiceFactory.create_service_with_config(FacilityConfig())

    @staticmethod
    def create_service_with_config(
        config: Union[FacilityConfig, Dict[str, Any]],
        clock: Optional[Clock] = None,
        audit_logging: bool = True
    ) -> ParkingService:
        """Create service with custom configuration"""
        if isinstance(config, dict):
            config = FacilityConfig(**config)

        event_bus = EventBus()
        if audit_logging:
            event_bus.subscribe_all(LoggingEventHandler())

        return ParkingService(config=config, clock=clock, event_bus=event_bus)
