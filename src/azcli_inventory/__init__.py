"""azcli-inventory - sign in through a cloud CLI and list what you can reach.

This package drives the provider's command-line tool (``az`` by default)
as a child process and turns its JSON output into typed records:

- Process runner with captured and streaming modes, per-call timeouts
- Decoder for CLI JSON arrays into VirtualMachine, NetworkSecurityGroup
  and InboundSecurityRule records
- Heuristic write-permission probe and best-effort IP discovery
- Orchestrator that sequences login/logout and the fetch cycle with
  per-stage fault isolation and a single-flight guard
- Console front end (rich + prompt_toolkit)
"""

from azcli_inventory.az_commands import AzCommands
from azcli_inventory.config import (
    Settings,
    SettingsContext,
    SettingsValidationError,
    get_settings,
    reload_settings,
    set_settings,
    validate_settings,
)
from azcli_inventory.decoder import decode
from azcli_inventory.errors import (
    CommandFailure,
    CommandTimeout,
    DecodeError,
    ExecutionError,
    InventoryError,
    OperationInProgress,
    ProbeInconclusive,
    SpawnError,
    UnsafeArgumentError,
)
from azcli_inventory.events import (
    EventLog,
    LogLevel,
    LogRecord,
    PresentationSink,
    Severity,
    StatusUpdate,
)
from azcli_inventory.ip_discovery import IpDiscoveryChain, IpStrategy
from azcli_inventory.models import (
    InboundSecurityRule,
    InventorySnapshot,
    NetworkSecurityGroup,
    VirtualMachine,
)
from azcli_inventory.orchestrator import OperationResult, ResourceOrchestrator
from azcli_inventory.permissions import PermissionProber, RequiredAction
from azcli_inventory.process import CapturedOutput, ProcessRunner, detect_shell

__version__ = "0.1.0"

__all__ = [
    # Process
    "CapturedOutput",
    "ProcessRunner",
    "detect_shell",
    # Records
    "InboundSecurityRule",
    "InventorySnapshot",
    "NetworkSecurityGroup",
    "VirtualMachine",
    "decode",
    # Pipeline
    "AzCommands",
    "IpDiscoveryChain",
    "IpStrategy",
    "OperationResult",
    "PermissionProber",
    "RequiredAction",
    "ResourceOrchestrator",
    # Events
    "EventLog",
    "LogLevel",
    "LogRecord",
    "PresentationSink",
    "Severity",
    "StatusUpdate",
    # Errors
    "CommandFailure",
    "CommandTimeout",
    "DecodeError",
    "ExecutionError",
    "InventoryError",
    "OperationInProgress",
    "ProbeInconclusive",
    "SpawnError",
    "UnsafeArgumentError",
    # Settings
    "Settings",
    "SettingsContext",
    "SettingsValidationError",
    "get_settings",
    "reload_settings",
    "set_settings",
    "validate_settings",
]
