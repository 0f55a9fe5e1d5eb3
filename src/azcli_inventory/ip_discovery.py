"""Best-effort discovery of the caller's network address.

Strategies run in order; the first one that yields a non-blank address
wins and the rest are skipped. Strategies that don't apply to the host
platform are skipped without running anything. A strategy whose command
fails is logged and the chain moves on, so ``discover()`` never raises
for runner faults.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable

from azcli_inventory.constants import IP_NOT_DETECTED
from azcli_inventory.errors import InventoryError
from azcli_inventory.logging import Loggers
from azcli_inventory.process import ProcessRunner

logger = Loggers.orchestrator()

Extractor = Callable[[str], str]


def first_token(output: str) -> str:
    """First whitespace-delimited token of the output."""
    tokens = output.split()
    return tokens[0] if tokens else ""


def whole_output(output: str) -> str:
    return output.strip()


def after_colon(output: str) -> str:
    """Text after the first ':' on the first non-empty line."""
    for line in output.splitlines():
        if not line.strip():
            continue
        _, sep, value = line.partition(":")
        return value.strip() if sep else ""
    return ""


@dataclass(frozen=True)
class IpStrategy:
    """One way of asking the host for its address.

    Attributes:
        name: Identifier used in logs.
        command: Shell command to run.
        extract: Turns the command's stdout into an address ("" for none).
        platforms: ``sys.platform`` prefixes the strategy applies to; empty means all.
        exclude_platforms: ``sys.platform`` prefixes the strategy never applies to.
    """

    name: str
    command: str
    extract: Extractor = whole_output
    platforms: tuple[str, ...] = ()
    exclude_platforms: tuple[str, ...] = ()

    def applies_to(self, platform: str) -> bool:
        if any(platform.startswith(prefix) for prefix in self.exclude_platforms):
            return False
        if not self.platforms:
            return True
        return any(platform.startswith(prefix) for prefix in self.platforms)


def default_strategies() -> list[IpStrategy]:
    """Local interface listing, interface table without loopback, then ipconfig."""
    return [
        IpStrategy(
            name="hostname",
            command="hostname -I 2>/dev/null",
            extract=first_token,
            exclude_platforms=("win",),
        ),
        IpStrategy(
            name="ip_addr",
            command=(
                "ip addr show | grep 'inet ' | grep -v '127.0.0.1' | head -1 "
                "| awk '{print $2}' | cut -d/ -f1"
            ),
            extract=whole_output,
            exclude_platforms=("win",),
        ),
        IpStrategy(
            name="ipconfig",
            command='ipconfig | findstr /i "IPv4"',
            extract=after_colon,
            platforms=("win",),
        ),
    ]


class IpDiscoveryChain:
    """Tries each strategy in order and returns the first address found.

    Args:
        runner: Process runner used for every strategy.
        strategies: Ordered strategies; ``default_strategies()`` when omitted.
        platform: Host platform; ``sys.platform`` when omitted.
        timeout: Timeout for each strategy command, in seconds.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        strategies: list[IpStrategy] | None = None,
        *,
        platform: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.runner = runner
        self.strategies = strategies if strategies is not None else default_strategies()
        self.platform = platform or sys.platform
        self.timeout = timeout

    async def discover(self) -> str:
        """Return the caller's address, or ``IP_NOT_DETECTED``."""
        for strategy in self.strategies:
            if not strategy.applies_to(self.platform):
                continue
            try:
                captured = await self.runner.run_captured(strategy.command, timeout=self.timeout)
            except InventoryError as e:
                logger.debug("ip_strategy_failed", strategy=strategy.name, error=e.message)
                continue

            address = strategy.extract(captured.output).strip()
            if address:
                logger.debug("ip_detected", strategy=strategy.name, address=address)
                return address
            logger.debug("ip_strategy_blank", strategy=strategy.name)

        return IP_NOT_DETECTED


__all__ = [
    "IpDiscoveryChain",
    "IpStrategy",
    "after_colon",
    "default_strategies",
    "first_token",
    "whole_output",
]
