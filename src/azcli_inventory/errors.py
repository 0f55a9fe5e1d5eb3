"""Error types for azcli-inventory.

Provides:
- InventoryError: Base class carrying a machine-readable error code
- ErrorCode: Standard error codes
- Runner faults (SpawnError, CommandTimeout), command failures, decode
  and probe errors, argument validation and single-flight rejection
"""

from typing import Any


class ErrorCode:
    """Standard error codes."""

    SPAWN_FAILED = "SPAWN_FAILED"
    TIMEOUT = "TIMEOUT"
    COMMAND_FAILED = "COMMAND_FAILED"
    DECODE_FAILED = "DECODE_FAILED"
    PROBE_INCONCLUSIVE = "PROBE_INCONCLUSIVE"
    UNSAFE_ARGUMENT = "UNSAFE_ARGUMENT"
    OPERATION_IN_PROGRESS = "OPERATION_IN_PROGRESS"


class InventoryError(Exception):
    """Base error for azcli-inventory failures.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional error details
    """

    default_code = "INVENTORY_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "message": self.message,
            "code": self.error_code,
            "details": self.details,
        }


class ExecutionError(InventoryError):
    """The process runner could not complete an invocation."""

    default_code = ErrorCode.SPAWN_FAILED


class SpawnError(ExecutionError):
    """The OS refused to launch the child process (missing executable, no permission)."""

    default_code = ErrorCode.SPAWN_FAILED

    def __init__(self, command: str, os_error: OSError):
        super().__init__(
            f"Failed to start process: {os_error}",
            details={"command": command, "errno": os_error.errno},
        )
        self.command = command
        self.os_error = os_error


class CommandTimeout(ExecutionError):
    """The child process ran longer than its timeout and was killed."""

    default_code = ErrorCode.TIMEOUT

    def __init__(self, command: str, timeout: float):
        super().__init__(
            f"Command timed out after {timeout:g} seconds",
            details={"command": command, "timeout": timeout},
        )
        self.command = command
        self.timeout = timeout


class CommandFailure(InventoryError):
    """The tool ran but exited with a non-zero status."""

    default_code = ErrorCode.COMMAND_FAILED

    def __init__(self, command: str, exit_code: int):
        super().__init__(
            f"Command failed with exit code {exit_code}",
            details={"command": command, "exit_code": exit_code},
        )
        self.command = command
        self.exit_code = exit_code


class DecodeError(InventoryError):
    """Command output was non-blank but not a JSON array of the expected records."""

    default_code = ErrorCode.DECODE_FAILED


class ProbeInconclusive(InventoryError):
    """A permission probe produced no usable answer."""

    default_code = ErrorCode.PROBE_INCONCLUSIVE


class UnsafeArgumentError(InventoryError):
    """A value failed validation before being placed in a shell command line."""

    default_code = ErrorCode.UNSAFE_ARGUMENT


class OperationInProgress(InventoryError):
    """Another orchestrator operation is already running."""

    default_code = ErrorCode.OPERATION_IN_PROGRESS

    def __init__(self, requested: str, running: str | None):
        running_text = running or "another operation"
        super().__init__(
            f"Cannot start {requested}: {running_text} is still in progress",
            details={"requested": requested, "running": running},
        )
        self.requested = requested
        self.running = running


__all__ = [
    "CommandFailure",
    "CommandTimeout",
    "DecodeError",
    "ErrorCode",
    "ExecutionError",
    "InventoryError",
    "OperationInProgress",
    "ProbeInconclusive",
    "SpawnError",
    "UnsafeArgumentError",
]
