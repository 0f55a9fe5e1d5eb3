"""Resource orchestrator.

Runs the account operations (login, device-code login, account show,
logout) and the fetch cycle:

    IP discovery -> VM list -> NSG list -> inbound rules per NSG -> summary

Stages run strictly one after another. Each stage is fault-isolated: a
spawn error, timeout, non-zero exit or decode failure is written to the
diagnostic log with an ``[ERROR]`` marker and the cycle moves on with
fewer resources. Only one operation runs at a time (see
``concurrency_policy``); a successful login or account check runs its
follow-on fetch under the same acquisition.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Literal

from azcli_inventory.az_commands import AzCommands
from azcli_inventory.config import Settings, get_settings
from azcli_inventory.constants import (
    CLI_INSTALL_HINT,
    INITIAL_STATUS,
    IP_ERROR,
    IP_NOT_DETECTED,
)
from azcli_inventory.decoder import decode
from azcli_inventory.errors import (
    CommandFailure,
    ExecutionError,
    InventoryError,
    OperationInProgress,
)
from azcli_inventory.events import (
    EventLog,
    LogLevel,
    PresentationSink,
    Severity,
    StatusUpdate,
)
from azcli_inventory.ip_discovery import IpDiscoveryChain
from azcli_inventory.logging import Loggers, bind_context, unbind_context
from azcli_inventory.models import (
    InboundSecurityRule,
    InventorySnapshot,
    NetworkSecurityGroup,
    VirtualMachine,
)
from azcli_inventory.permissions import PermissionProber, RequiredAction
from azcli_inventory.process import ProcessRunner

logger = Loggers.orchestrator()

ConcurrencyPolicy = Literal["reject", "queue"]


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single streaming account operation.

    Attributes:
        operation: Display name, e.g. "Interactive Login".
        command: The command that was run.
        success: True iff the command exited with 0.
        exit_code: Exit status, or None if the process never ran.
        error: Error message when the process could not be run.
        fetched: True if a follow-on fetch cycle ran.
    """

    operation: str
    command: str
    success: bool
    exit_code: int | None = None
    error: str | None = None
    fetched: bool = False


class ResourceOrchestrator:
    """Top-level sequencer for account operations and the fetch cycle.

    Args:
        runner: Process runner for every external command.
        sink: Receiver for status, log and result updates.
        settings: Settings; the current settings when omitted.
        commands: Command builder; built from ``settings.cli_tool`` when omitted.
        prober: Permission prober; built from settings when omitted.
        ip_chain: IP discovery chain; default strategies when omitted.
        permission_filter: Overrides ``settings.permission_filter``.
        concurrency_policy: Overrides ``settings.concurrency_policy``.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        sink: PresentationSink | None = None,
        *,
        settings: Settings | None = None,
        commands: AzCommands | None = None,
        prober: PermissionProber | None = None,
        ip_chain: IpDiscoveryChain | None = None,
        permission_filter: bool | None = None,
        concurrency_policy: ConcurrencyPolicy | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.runner = runner
        self.sink = sink or PresentationSink()
        self.commands = commands or AzCommands(self.settings.cli_tool)
        self.prober = prober or PermissionProber(
            runner,
            self.commands,
            markers=self.settings.authorization_markers,
            timeout=self.settings.probe_timeout,
        )
        self.ip_chain = ip_chain or IpDiscoveryChain(runner, timeout=self.settings.command_timeout)
        self.permission_filter = (
            self.settings.permission_filter if permission_filter is None else permission_filter
        )
        self.concurrency_policy: ConcurrencyPolicy = (
            concurrency_policy or self.settings.concurrency_policy
        )

        self.log = EventLog()
        self._guard = asyncio.Lock()
        self._running: str | None = None

        self._status = StatusUpdate(INITIAL_STATUS, Severity.READY)
        self._user_ip = IP_NOT_DETECTED
        self._vms: list[VirtualMachine] = []
        self._nsgs: list[NetworkSecurityGroup] = []
        self._rules: list[InboundSecurityRule] = []
        self._snapshot = InventorySnapshot(user_ip_address=IP_NOT_DETECTED)

    # === State ===

    @property
    def status(self) -> str:
        return self._status.message

    @property
    def severity(self) -> Severity:
        return self._status.severity

    @property
    def user_ip_address(self) -> str:
        return self._user_ip

    @property
    def snapshot(self) -> InventorySnapshot:
        """Collections of the last fetch cycle; empty while a cycle is running."""
        return self._snapshot

    @property
    def has_resources(self) -> bool:
        return self._snapshot.has_resources

    @property
    def is_busy(self) -> bool:
        return self._guard.locked()

    @property
    def running_operation(self) -> str | None:
        return self._running

    # === Account operations ===

    async def login_device_code(self) -> OperationResult:
        return await self._account_operation(
            "Device Code Login", self.commands.login_device_code(), fetch_on_success=True
        )

    async def login_interactive(self) -> OperationResult:
        return await self._account_operation(
            "Interactive Login", self.commands.login_interactive(), fetch_on_success=True
        )

    async def check_login_status(self) -> OperationResult:
        return await self._account_operation(
            "Account Status Check", self.commands.account_show(), fetch_on_success=True
        )

    async def logout(self) -> OperationResult:
        return await self._account_operation(
            "Logout", self.commands.logout(), fetch_on_success=False
        )

    async def refresh_resources(self) -> InventorySnapshot:
        """Run one fetch cycle and return its snapshot."""
        async with self._exclusive("Refresh"):
            return await self._fetch_cycle()

    def clear_output(self) -> None:
        """Empty the diagnostic log."""
        self.log.clear()
        self._set_status("Output cleared", Severity.READY)

    # === Single-flight guard ===

    @asynccontextmanager
    async def _exclusive(self, operation: str) -> AsyncIterator[None]:
        if self._guard.locked() and self.concurrency_policy == "reject":
            logger.warning(
                "operation_rejected", requested=operation, running=self._running
            )
            raise OperationInProgress(operation, self._running)

        async with self._guard:
            self._running = operation
            bind_context(operation=operation)
            try:
                yield
            finally:
                self._running = None
                unbind_context("operation")

    # === Streaming account operations ===

    async def _account_operation(
        self, operation: str, command: str, *, fetch_on_success: bool
    ) -> OperationResult:
        async with self._exclusive(operation):
            result = await self._run_streaming_operation(operation, command)
            if result.success and fetch_on_success:
                await self._fetch_cycle()
                return OperationResult(
                    operation=result.operation,
                    command=result.command,
                    success=True,
                    exit_code=result.exit_code,
                    fetched=True,
                )
            return result

    async def _run_streaming_operation(self, operation: str, command: str) -> OperationResult:
        self._set_status(f"{operation} in progress...", Severity.IN_PROGRESS)
        self._append(f"\n=== {operation} Started ===")
        self._append(f"Command: {command}\n")
        logger.info("operation_started", operation=operation)

        def on_stdout(line: str) -> None:
            if line:
                self._append(line, LogLevel.OUTPUT)

        def on_stderr(line: str) -> None:
            if line:
                self._append(f"[ERROR] {line}", LogLevel.ERROR)

        try:
            exit_code = await self.runner.run_streaming(
                command, on_stdout, on_stderr, timeout=self.settings.login_timeout
            )
        except ExecutionError as e:
            self._set_status(f"Error: {e.message}", Severity.ERROR)
            self._append(f"\n[EXCEPTION] {e.message}", LogLevel.ERROR)
            self._append(CLI_INSTALL_HINT, LogLevel.ERROR)
            logger.error("operation_error", operation=operation, error=e.message, code=e.error_code)
            return OperationResult(operation, command, success=False, error=e.message)

        if exit_code == 0:
            self._set_status(f"{operation} completed successfully", Severity.SUCCESS)
            self._append(f"\n=== {operation} Completed Successfully ===")
        else:
            self._set_status(f"{operation} failed with exit code {exit_code}", Severity.ERROR)
            self._append(f"\n=== {operation} Failed (Exit Code: {exit_code}) ===", LogLevel.ERROR)

        logger.info("operation_finished", operation=operation, exit_code=exit_code)
        return OperationResult(operation, command, success=exit_code == 0, exit_code=exit_code)

    # === Fetch cycle ===

    async def _fetch_cycle(self) -> InventorySnapshot:
        self._set_status("Fetching resources...", Severity.IN_PROGRESS)
        self._append("\n=== Fetching Resources ===")
        logger.info("fetch_started", permission_filter=self.permission_filter)

        self._vms, self._nsgs, self._rules = [], [], []
        self._user_ip = IP_NOT_DETECTED
        self._publish_snapshot()

        try:
            await self._stage("IP address", self._fetch_user_ip, on_error=self._mark_ip_error)
            await self._stage("VMs", self._fetch_virtual_machines)
            await self._stage("NSGs", self._fetch_network_security_groups)
            await self._stage("inbound security rules", self._fetch_inbound_rules)

            snapshot = self._publish_snapshot()
            vm_count, nsg_count, rule_count = snapshot.counts()
            if snapshot.has_resources:
                self._set_status(
                    f"Found {vm_count} VMs, {nsg_count} NSGs, and {rule_count} inbound rules",
                    Severity.SUCCESS,
                )
                self._append(
                    f"\nTotal: {vm_count} VMs, {nsg_count} NSGs, {rule_count} inbound rules"
                )
            elif self.permission_filter:
                self._set_status("No resources found with edit permissions", Severity.WARNING)
                self._append("\nNo resources found with the required permissions.", LogLevel.WARNING)
            else:
                self._set_status("No accessible resources found", Severity.WARNING)
                self._append("\nNo resources found.", LogLevel.WARNING)
        except Exception as e:
            self._set_status(f"Error fetching resources: {e}", Severity.ERROR)
            self._append(f"\n[EXCEPTION] {e}", LogLevel.ERROR)
            logger.exception("fetch_failed")
            return self._publish_snapshot()

        logger.info(
            "fetch_finished",
            vms=vm_count,
            nsgs=nsg_count,
            rules=rule_count,
        )
        return snapshot

    async def _stage(
        self,
        label: str,
        step: Callable[[], Awaitable[None]],
        *,
        on_error: Callable[[], None] | None = None,
    ) -> None:
        try:
            await step()
        except Exception as e:
            message = e.message if isinstance(e, InventoryError) else str(e)
            self._append(f"[ERROR] Failed to fetch {label}: {message}", LogLevel.ERROR)
            logger.warning(
                "fetch_stage_failed",
                stage=label,
                error=message,
                code=getattr(e, "error_code", type(e).__name__),
            )
            if on_error is not None:
                on_error()

    def _mark_ip_error(self) -> None:
        self._user_ip = IP_ERROR

    async def _fetch_user_ip(self) -> None:
        self._append("Fetching user's public IPv4 address...")
        address = await self.ip_chain.discover()
        self._user_ip = address
        if address != IP_NOT_DETECTED:
            self._append(f"  ✓ User IP Address: {address}")
        else:
            self._append("  ⚠ Could not detect IP address", LogLevel.WARNING)

    async def _list(self, command: str, record_type):
        captured = await self.runner.run_captured(command, timeout=self.settings.command_timeout)
        if captured.exit_code != 0:
            raise CommandFailure(command, captured.exit_code)
        return decode(captured.output, record_type)

    async def _fetch_virtual_machines(self) -> None:
        self._append("Fetching Virtual Machines...")
        vms = await self._list(self.commands.list_virtual_machines(), VirtualMachine)
        for vm in vms:
            if self.permission_filter and not await self.prober.probe(
                vm.id, RequiredAction.NETWORK_INTERFACE_WRITE
            ):
                self._append(f"  ✗ {vm.name} (RG: {vm.resource_group}) - no edit permission")
                continue
            self._vms.append(vm)
            self._append(f"  ✓ {vm.name} (RG: {vm.resource_group})")
        self._append(f"Found {len(self._vms)} VMs accessible to the user.")

    async def _fetch_network_security_groups(self) -> None:
        self._append("Fetching Network Security Groups...")
        nsgs = await self._list(
            self.commands.list_network_security_groups(), NetworkSecurityGroup
        )
        for nsg in nsgs:
            if self.permission_filter and not await self.prober.probe(
                nsg.id, RequiredAction.NETWORK_SECURITY_GROUP_WRITE
            ):
                self._append(f"  ✗ {nsg.name} (RG: {nsg.resource_group}) - no edit permission")
                continue
            self._nsgs.append(nsg)
            self._append(f"  ✓ {nsg.name} (RG: {nsg.resource_group})")
        self._append(f"Found {len(self._nsgs)} NSGs accessible to the user.")

    async def _fetch_inbound_rules(self) -> None:
        self._append("Fetching Inbound Security Rules...")
        for nsg in self._nsgs:
            try:
                command = self.commands.list_inbound_rules(nsg.name, nsg.resource_group)
                rules = await self._list(command, InboundSecurityRule)
            except InventoryError as e:
                self._append(
                    f"[ERROR] Failed to fetch inbound security rules for {nsg.name}: {e.message}",
                    LogLevel.ERROR,
                )
                logger.warning(
                    "rule_fetch_failed", nsg=nsg.name, resource_group=nsg.resource_group,
                    error=e.message, code=e.error_code,
                )
                continue

            for rule in rules:
                if not rule.is_inbound:
                    self._append(
                        f"  ⚠ Skipping {rule.name} (NSG: {nsg.name}): direction is "
                        f"{rule.direction or 'missing'}",
                        LogLevel.WARNING,
                    )
                    continue
                rule.nsg_name = nsg.name
                rule.resource_group = nsg.resource_group
                self._rules.append(rule)
                self._append(
                    f"  ✓ {rule.name} (NSG: {nsg.name}, Port: {rule.destination_port_range}, "
                    f"Access: {rule.access})"
                )
        self._append(f"Found {len(self._rules)} inbound security rules.")

    # === Publishing ===

    def _publish_snapshot(self) -> InventorySnapshot:
        self._snapshot = InventorySnapshot(
            virtual_machines=tuple(self._vms),
            network_security_groups=tuple(self._nsgs),
            inbound_security_rules=tuple(self._rules),
            user_ip_address=self._user_ip,
            generated_at=datetime.now(timezone.utc).isoformat(),
            permission_filtered=self.permission_filter,
        )
        self.sink.on_results(self._snapshot)
        return self._snapshot

    def _set_status(self, message: str, severity: Severity) -> None:
        self._status = StatusUpdate(message, severity)
        self.sink.on_status(self._status)

    def _append(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        record = self.log.append(message, level)
        self.sink.on_log(record)


__all__ = ["ConcurrencyPolicy", "OperationResult", "ResourceOrchestrator"]
