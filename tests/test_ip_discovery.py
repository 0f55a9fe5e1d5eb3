"""Tests for the IP discovery strategy chain."""

import pytest

from azcli_inventory.constants import IP_NOT_DETECTED
from azcli_inventory.errors import CommandTimeout
from azcli_inventory.ip_discovery import (
    IpDiscoveryChain,
    IpStrategy,
    after_colon,
    default_strategies,
    first_token,
)

from tests.conftest import FakeRunner


class TestExtractors:
    def test_first_token(self):
        assert first_token("192.168.1.20 172.17.0.1 \n") == "192.168.1.20"
        assert first_token("   ") == ""

    def test_after_colon(self):
        output = "\r\n   IPv4 Address. . . . . . . . . . . : 10.0.0.5\r\n   IPv4 Address. . : 10.0.0.6\r\n"

        assert after_colon(output) == "10.0.0.5"
        assert after_colon("no colon here") == ""
        assert after_colon("") == ""


class TestStrategies:
    def test_platform_applicability(self):
        names = lambda platform: [s.name for s in default_strategies() if s.applies_to(platform)]

        assert names("linux") == ["hostname", "ip_addr"]
        assert names("darwin") == ["hostname", "ip_addr"]
        assert names("win32") == ["ipconfig"]


class TestChain:
    @pytest.mark.asyncio
    async def test_first_strategy_wins(self, fake_runner: FakeRunner):
        fake_runner.on_captured("hostname -I", output="10.1.2.3 172.17.0.1\n")
        chain = IpDiscoveryChain(fake_runner, platform="linux", timeout=5)

        assert await chain.discover() == "10.1.2.3"
        assert len(fake_runner.calls) == 1
        assert fake_runner.timeouts == [5]

    @pytest.mark.asyncio
    async def test_blank_output_falls_through(self, fake_runner: FakeRunner):
        fake_runner.on_captured("hostname -I", output="")
        fake_runner.on_captured("ip addr show", output="192.168.0.7\n")
        chain = IpDiscoveryChain(fake_runner, platform="linux")

        assert await chain.discover() == "192.168.0.7"
        assert fake_runner.count("ip addr show") == 1

    @pytest.mark.asyncio
    async def test_failure_falls_through(self, fake_runner: FakeRunner):
        fake_runner.on_captured("hostname -I", error=CommandTimeout("hostname -I", 1))
        fake_runner.on_captured("ip addr show", output="192.168.0.7")
        chain = IpDiscoveryChain(fake_runner, platform="linux")

        assert await chain.discover() == "192.168.0.7"

    @pytest.mark.asyncio
    async def test_nothing_found(self, fake_runner: FakeRunner):
        chain = IpDiscoveryChain(fake_runner, platform="linux")

        assert await chain.discover() == IP_NOT_DETECTED
        assert len(fake_runner.calls) == 2

    @pytest.mark.asyncio
    async def test_windows_only_runs_ipconfig(self, fake_runner: FakeRunner):
        fake_runner.on_captured("ipconfig", output="   IPv4 Address. . . : 10.0.0.5\r\n")
        chain = IpDiscoveryChain(fake_runner, platform="win32")

        assert await chain.discover() == "10.0.0.5"
        assert fake_runner.calls == ['ipconfig | findstr /i "IPv4"']

    @pytest.mark.asyncio
    async def test_custom_strategies(self, fake_runner: FakeRunner):
        fake_runner.on_captured("curl", output="203.0.113.9\n")
        chain = IpDiscoveryChain(
            fake_runner,
            [IpStrategy("public", "curl -s https://ifconfig.me")],
            platform="linux",
        )

        assert await chain.discover() == "203.0.113.9"
