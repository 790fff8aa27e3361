# File: smartpark/application/commands.py
"""
Command Pattern Implementation for the SmartPark Allocation Engine

This module wraps the state-changing service operations as first-class
command objects so they can be validated, executed in batches and kept in
an audit history.

Command Types:
1. EntryCommand - vehicle arrives
2. ExitCommand - vehicle leaves (slot or wait queue)
3. RegisterPassCommand - monthly pass registration
4. EmergencyResetCommand - clear the facility (requires confirmation)

Every command returns a plain result dictionary:
    {"success", "command_id", "data", "message" | "error", "error_kind"}
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple
from datetime import datetime
import logging
import uuid

from .dtos import VehicleRequestDTO, OperationResultDTO
from .parking_service import ParkingService


# ============================================================================
# COMMAND INTERFACES AND BASE CLASSES
# ============================================================================

class Command(ABC):
    """
    Abstract base class for all commands

    A command represents an intent to change the facility state.
    """

    def __init__(self, command_id: Optional[str] = None, executed_by: Optional[str] = None):
        self.command_id = command_id or str(uuid.uuid4())
        self.executed_at: Optional[datetime] = None
        self.executed_by = executed_by or "system"
        self.logger = logging.getLogger(self.__class__.__name__)

        # Command metadata
        self.metadata = {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "created_at": datetime.now().isoformat()
        }

    @abstractmethod
    def execute(self, service: ParkingService) -> Dict[str, Any]:
        """
        Execute the command using the provided service

        Returns: Execution result dictionary
        """
        pass

    @abstractmethod
    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate command parameters before execution

        Returns: (is_valid, error_messages)
        """
        pass

    def get_description(self) -> str:
        """Get human-readable command description"""
        return self.__class__.__name__.replace("Command", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert command to dictionary for serialization"""
        return {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "metadata": self.metadata,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "executed_by": self.executed_by
        }

    def _run(self, operation) -> Dict[str, Any]:
        """Validate, call the service operation and shape the result"""
        is_valid, errors = self.validate()
        if not is_valid:
            return {
                "success": False,
                "command_id": self.command_id,
                "error": f"Validation failed: {errors}"
            }

        result: OperationResultDTO = operation()
        self.executed_at = datetime.now()

        if result.success:
            return {
                "success": True,
                "command_id": self.command_id,
                "data": result.to_dict(),
                "message": result.message
            }
        return {
            "success": False,
            "command_id": self.command_id,
            "error": result.message,
            "error_kind": result.error_kind,
            "data": result.to_dict()
        }


# ============================================================================
# VEHICLE COMMANDS
# ============================================================================

class EntryCommand(Command):
    """
    Command: Admit a vehicle

    Business Operation: Vehicle Entry (slot allocation or wait queue)
    """

    def __init__(self, request: VehicleRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request

    def execute(self, service: ParkingService) -> Dict[str, Any]:
        self.logger.info(f"Executing EntryCommand for vehicle {self.request.vehicle_id}")
        return self._run(lambda: service.vehicle_entry(self.request.vehicle_id, self.request.timestamp))

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if self.request.vehicle_id is None:
            errors.append("Vehicle id is required")
        return len(errors) == 0, errors

    def get_description(self) -> str:
        return f"Entry of vehicle {self.request.vehicle_id}"


class ExitCommand(Command):
    """
    Command: Release a vehicle

    Business Operation: Vehicle Exit (fee, slot release, promotion)
    """

    def __init__(self, request: VehicleRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request

    def execute(self, service: ParkingService) -> Dict[str, Any]:
        self.logger.info(f"Executing ExitCommand for vehicle {self.request.vehicle_id}")
        return self._run(lambda: service.vehicle_exit(self.request.vehicle_id, self.request.timestamp))

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if self.request.vehicle_id is None:
            errors.append("Vehicle id is required")
        return len(errors) == 0, errors

    def get_description(self) -> str:
        return f"Exit of vehicle {self.request.vehicle_id}"


class RegisterPassCommand(Command):
    """Command: Register a monthly pass holder"""

    def __init__(self, vehicle_id: int, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.vehicle_id = vehicle_id

    def execute(self, service: ParkingService) -> Dict[str, Any]:
        return self._run(lambda: service.register_monthly_pass(self.vehicle_id))

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if isinstance(self.vehicle_id, bool) or not isinstance(self.vehicle_id, int):
            errors.append(f"Vehicle id must be an integer: {self.vehicle_id!r}")
        return len(errors) == 0, errors


# ============================================================================
# ADMIN COMMANDS
# ============================================================================

class EmergencyResetCommand(Command):
    """
    Command: Clear every slot and the wait queue

    Must be explicitly confirmed. Revenue, history and passes survive.
    """

    def __init__(self, confirmed: bool = False, reason: str = "", executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.confirmed = confirmed
        self.reason = reason

    def execute(self, service: ParkingService) -> Dict[str, Any]:
        self.logger.warning(f"Executing EmergencyResetCommand: {self.reason or 'no reason given'}")
        return self._run(service.emergency_reset)

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if not self.confirmed:
            errors.append("Emergency reset must be confirmed")
        return len(errors) == 0, errors

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


# ============================================================================
# COMMAND PROCESSOR
# ============================================================================

class CommandProcessor:
    """
    Processes commands with features like:
    - Batch execution
    - Command logging
    - Bounded history of successful commands
    """

    def __init__(self, service: ParkingService, max_history_size: int = 1000):
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)

        self.command_history: List[Command] = []
        self.max_history_size = max_history_size

    def process(self, command: Command) -> Dict[str, Any]:
        """
        Process a command

        Args:
            command: Command to execute

        Returns: Execution result
        """
        self.logger.info(f"Processing command: {command.get_description()}")

        try:
            result = command.execute(self.service)

            if result.get("success", False):
                self._add_to_history(command)

            return result

        except Exception as e:
            self.logger.error(f"Error processing command: {e}", exc_info=True)
            return {
                "success": False,
                "command_id": command.command_id,
                "error": str(e)
            }

    def process_batch(self, commands: List[Command]) -> List[Dict[str, Any]]:
        """Process multiple commands in order, continuing past failures"""
        return [self.process(command) for command in commands]

    def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get command history"""
        history = self.command_history.copy()
        if limit:
            history = history[-limit:]

        return [cmd.to_dict() for cmd in history]

    def clear_history(self):
        """Clear command history"""
        self.command_history.clear()

    def _add_to_history(self, command: Command):
        """Add command to history, respecting max size"""
        self.command_history.append(command)

        if len(self.command_history) > self.max_history_size:
            self.command_history = self.command_history[-self.max_history_size:]
