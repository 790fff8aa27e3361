# File: smartpark/presentation/console.py
"""
Console presenter for the SmartPark Allocation Engine

Menu-driven text interface over ParkingService. State-changing actions go
through the CommandProcessor; read-only views query the service directly.

Menu:
 1 Entry            5 Search Car       9 Add Monthly Pass
 2 Exit             6 Revenue         10 Emergency
 3 History          7 Parked Cars     11 Free Slots
 4 Slot Map         8 Waiting Queue   12 Quit
"""

from typing import Any, Callable, Dict, Optional, TextIO
from datetime import datetime
import logging
import re
import sys

from ..domain.models import ErrorKind, ParkingDuration
from ..application.dtos import MoneyDTO, VehicleRequestDTO
from ..application.commands import (
    CommandProcessor, EntryCommand, ExitCommand,
    RegisterPassCommand, EmergencyResetCommand
)
from ..application.parking_service import ParkingService, ParkingServiceFactory


TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

MENU_TEXT = (
    "1 Entry\n2 Exit\n3 History\n4 Slot Map\n5 Search Car\n6 Revenue\n"
    "7 Parked Cars\n8 Waiting Queue\n9 Add Monthly Pass\n10 Emergency\n"
    "11 Free Slots\n12 Quit"
)

QUIT_CHOICE = 12

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def format_time(moment: Optional[datetime]) -> str:
    if moment is None:
        return "-"
    return moment.strftime(TIME_FORMAT)


def parse_int(text: Optional[str]) -> Optional[int]:
    """Leading integer of a line, e.g. ' 42 cars' -> 42"""
    if text is None:
        return None
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def is_yes(text: Optional[str]) -> bool:
    return bool(text) and text.strip()[:1] in ("y", "Y")


class ConsoleApp:
    """Main console application controller"""

    def __init__(
        self,
        service: Optional[ParkingService] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.service = service or ParkingServiceFactory.create_default_service()
        self.command_processor = CommandProcessor(self.service)
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

        self.actions: Dict[int, Callable[[], None]] = {
            1: self.vehicle_entry,
            2: self.vehicle_exit,
            3: self.show_history,
            4: self.show_slot_map,
            5: self.search_vehicle,
            6: self.show_revenue,
            7: self.show_parked,
            8: self.show_waiting_queue,
            9: self.add_monthly_pass,
            10: self.emergency,
            11: self.show_free_slots,
        }

    # ========================================================================
    # MAIN LOOP
    # ========================================================================

    def run(self) -> int:
        """Run the menu until Quit or end of input"""
        config = self.service.config
        self.logger.info("Console session started")
        self._write(f"Smart Parking System - Slots: {config.slot_count}, Waiting: {config.wait_capacity}")
        self.register_initial_passes()

        while True:
            self._write("\n--- MENU ---")
            self._write(MENU_TEXT)
            line = self._read_line("Choice: ")
            if line is None:
                self._write("\nExiting...")
                return 0

            choice = parse_int(line)
            if choice is None:
                continue
            if choice == QUIT_CHOICE:
                self._write("Exiting...")
                return 0

            action = self.actions.get(choice)
            if action is None:
                self._write("Invalid choice.")
                continue
            action()

    def register_initial_passes(self) -> None:
        """Startup prompt for monthly pass holders"""
        if not is_yes(self._read_line("Add monthly pass users? (y/n): ")):
            return
        count = parse_int(self._read_line("How many? ")) or 0
        for _ in range(max(count, 0)):
            vehicle_id = parse_int(self._read_line("Car #: "))
            if vehicle_id is not None:
                self._register_pass(vehicle_id)

    # ========================================================================
    # STATE-CHANGING ACTIONS
    # ========================================================================

    def vehicle_entry(self) -> None:
        max_id = self.service.config.max_vehicles - 1
        vehicle_id = parse_int(self._read_line(f"Enter car id (0..{max_id}): "))
        if vehicle_id is None:
            self._write("Invalid input.")
            return

        result = self.command_processor.process(
            EntryCommand(VehicleRequestDTO(vehicle_id=vehicle_id),
                         executed_by="console")
        )
        if not result["success"]:
            self._report_failure(result)
            return

        data = result["data"]
        if data["outcome"] == "queued":
            self._write(
                f"Parking full: Car {vehicle_id} added to waiting at position {data['queue_position']}."
            )
        else:
            self._write(
                f"Car {vehicle_id} parked at Slot {data['slot']} (Entry: {format_time(data['entry_time'])})"
            )

    def vehicle_exit(self) -> None:
        vehicle_id = parse_int(self._read_line("Enter car id to exit: "))
        if vehicle_id is None:
            self._write("Invalid input.")
            return

        result = self.command_processor.process(
            ExitCommand(VehicleRequestDTO(vehicle_id=vehicle_id),
                        executed_by="console")
        )
        if not result["success"]:
            self._report_failure(result)
            return

        data = result["data"]
        if data["outcome"] == "removed_from_queue":
            self._write(f"Car {vehicle_id} removed from waiting queue.")
            return

        self._write(f"Car {vehicle_id} exited from Slot {data['slot']}")
        self._write(f"Entry : {format_time(data['entry_time'])}")
        self._write(f"Exit  : {format_time(data['exit_time'])}")
        self._write(f"Duration: {ParkingDuration(data['duration_seconds'])}")
        self._write(f"Fee: {self._format_money(data['fee'])}")
        for warning in data.get("warnings", []):
            self._write(f"Warning: {warning}")

        if data.get("promoted_vehicle") is not None:
            self._write(
                f"Allocated Slot {data['promoted_slot']} to waiting Car {data['promoted_vehicle']} "
                f"(Entry: {format_time(data['exit_time'])})"
            )

    def add_monthly_pass(self) -> None:
        vehicle_id = parse_int(self._read_line("Car id: "))
        if vehicle_id is not None:
            self._register_pass(vehicle_id)

    def emergency(self) -> None:
        if not is_yes(self._read_line("Activate emergency? (y/n): ")):
            return
        result = self.command_processor.process(
            EmergencyResetCommand(confirmed=True, reason="console request", executed_by="console")
        )
        if not result["success"]:
            self._report_failure(result)
            return
        self._write("\n!!! EMERGENCY MODE ACTIVE !!!\nSystem cleared. History retained.")

    def _register_pass(self, vehicle_id: int) -> None:
        result = self.command_processor.process(RegisterPassCommand(vehicle_id, executed_by="console"))
        if not result["success"]:
            self._report_failure(result)
            return
        if result["data"]["already_registered"]:
            self._write(f"Car {vehicle_id} already has a Monthly Pass.")
        else:
            self._write(f"Car {vehicle_id} registered as Monthly Pass.")

    # ========================================================================
    # VIEWS
    # ========================================================================

    def show_history(self) -> None:
        self._write("\nParking History (most recent first)")
        records = self.service.history()
        if not records:
            self._write("None")
            return
        for record in records:
            exit_text = format_time(record.exit_time) if record.exit_time else "STILL PARKED"
            self._write(
                f"Car {record.vehicle_id} -> Slot {record.slot} | {format_time(record.entry_time)} -> {exit_text}"
            )

    def show_slot_map(self) -> None:
        self._write("\nSlot Map")
        for slot in self.service.slot_map():
            if slot.is_empty:
                self._write(f"Slot {slot.slot}: [Empty]")
            else:
                self._write(f"Slot {slot.slot}: [Car {slot.vehicle_id}]")

    def search_vehicle(self) -> None:
        vehicle_id = parse_int(self._read_line("Car id: "))
        if vehicle_id is None:
            return

        result = self.service.search_vehicle(vehicle_id)
        if not result.success:
            self._write("Invalid car id.")
            return

        status = result.status
        if status.state == "parked":
            self._write(
                f"Car {vehicle_id} parked at Slot {status.slot} (entry {format_time(status.entry_time)})"
            )
        elif status.state == "waiting":
            self._write(f"Car {vehicle_id} is in the waiting queue (position {status.queue_position}).")
        else:
            self._write(f"Car {vehicle_id} not found.")

    def show_revenue(self) -> None:
        self._write(f"\nTotal Revenue: {self.service.total_revenue().format()}")

    def show_parked(self) -> None:
        self._write("\nParked Cars")
        parked = self.service.list_parked()
        if not parked:
            self._write("None")
            return
        for status in parked:
            self._write(f"Slot {status.slot}: Car {status.vehicle_id} (entry {format_time(status.entry_time)})")

    def show_waiting_queue(self) -> None:
        waiting = self.service.list_waiting()
        self._write(f"\nWaiting Queue ({len(waiting)}/{self.service.config.wait_capacity})")
        if not waiting:
            self._write("Empty")
            return
        for status in waiting:
            self._write(f"{status.queue_position}. Car {status.vehicle_id}")

    def show_free_slots(self) -> None:
        free = self.service.free_slots()
        self._write("Free Slots: " + (" ".join(str(s) for s in free) if free else "None"))

    # ========================================================================
    # I/O HELPERS
    # ========================================================================

    def _report_failure(self, result: Dict[str, Any]) -> None:
        kind = result.get("error_kind")
        if kind == ErrorKind.FACILITY_FULL:
            self._write("Parking & Waiting FULL!")
        elif kind == ErrorKind.INVALID_VEHICLE_ID:
            self._write("Invalid car id.")
        else:
            self._write(result.get("error") or "Operation failed.")

    def _format_money(self, fee: Any) -> str:
        if isinstance(fee, dict):
            fee = MoneyDTO(**fee)
        return fee.format()

    def _read_line(self, prompt: str) -> Optional[str]:
        """Prompt and read one line; None at end of input"""
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if line == "":
            return None
        return line.rstrip("\n")

    def _write(self, text: str = "") -> None:
        self.stdout.write(text + "\n")
