"""Heuristic write-permission probe.

This is NOT an authorization check. The probe runs a read-only lookup
(``<tool> resource show --ids <id> --query id -o tsv``) and treats the
resource as accessible when the lookup printed something and that output
contains none of the configured authorization-failure markers. No role
assignments are evaluated, so "can read" stands in for "can probably
write". The requested action is recorded for diagnostics only.

Every failure (spawn error, timeout, non-zero exit, blank output, unsafe
id) answers "not accessible".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from azcli_inventory.az_commands import AzCommands
from azcli_inventory.errors import InventoryError, ProbeInconclusive
from azcli_inventory.logging import Loggers
from azcli_inventory.process import ProcessRunner

logger = Loggers.orchestrator()

DEFAULT_AUTHORIZATION_MARKERS = ("AuthorizationFailed", "does not have authorization")


class RequiredAction(str, Enum):
    """Write actions the fetch pipeline wants to be able to perform."""

    NETWORK_INTERFACE_WRITE = "Microsoft.Network/networkInterfaces/write"
    NETWORK_SECURITY_GROUP_WRITE = "Microsoft.Network/networkSecurityGroups/write"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe.

    Attributes:
        resource_id: The probed resource.
        action: The action the caller asked about.
        accessible: Heuristic verdict.
        reason: Short machine-readable explanation.
    """

    resource_id: str
    action: RequiredAction
    accessible: bool
    reason: str


class PermissionProber:
    """Classifies resources as likely-writable using a read probe.

    Args:
        runner: Process runner used to run the lookup.
        commands: Command builder for the provider CLI.
        markers: Substrings that mark an authorization failure.
        timeout: Timeout for each probe, in seconds.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        commands: AzCommands,
        *,
        markers: Sequence[str] = DEFAULT_AUTHORIZATION_MARKERS,
        timeout: float | None = None,
    ) -> None:
        self.runner = runner
        self.commands = commands
        self.markers = tuple(marker for marker in markers if marker)
        self.timeout = timeout

    async def probe(self, resource_id: str, action: RequiredAction) -> bool:
        """Return True if ``resource_id`` looks accessible for ``action``."""
        result = await self.check(resource_id, action)
        return result.accessible

    async def check(self, resource_id: str, action: RequiredAction) -> ProbeResult:
        """Run the probe and explain the verdict."""
        try:
            command = self.commands.show_resource_id(resource_id)
            captured = await self.runner.run_captured(command, timeout=self.timeout)
            reason = self._classify(captured.output, captured.exit_code)
        except ProbeInconclusive as e:
            logger.debug("probe_inconclusive", resource_id=resource_id, reason=e.message)
            return ProbeResult(resource_id, action, False, e.details.get("reason", "inconclusive"))
        except InventoryError as e:
            logger.warning(
                "probe_failed",
                resource_id=resource_id,
                action=action.value,
                error=e.message,
                code=e.error_code,
            )
            return ProbeResult(resource_id, action, False, e.error_code.lower())

        accessible = reason == "ok"
        logger.debug(
            "probe_classified",
            resource_id=resource_id,
            action=action.value,
            accessible=accessible,
            reason=reason,
        )
        return ProbeResult(resource_id, action, accessible, reason)

    def _classify(self, output: str, exit_code: int) -> str:
        if exit_code != 0:
            raise ProbeInconclusive(
                f"probe exited with code {exit_code}",
                details={"reason": "exit_code"},
            )
        if not output.strip():
            raise ProbeInconclusive("probe produced no output", details={"reason": "blank"})
        if any(marker in output for marker in self.markers):
            return "authorization_failed"
        return "ok"


__all__ = [
    "DEFAULT_AUTHORIZATION_MARKERS",
    "PermissionProber",
    "ProbeResult",
    "RequiredAction",
]
