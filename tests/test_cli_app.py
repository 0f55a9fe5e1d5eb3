"""Tests for the console application and the built-in slash commands."""

import asyncio
import io
import json

import pytest
from prompt_toolkit.document import Document
from rich.console import Console

from azcli_inventory.cli.app import InventoryApp, SlashCommandCompleter
from azcli_inventory.config import Settings
from azcli_inventory.events import Severity

from tests.conftest import FakeRunner, nsg_id, vm_id


def _resources(*items):
    return json.dumps(
        [{"name": n, "resourceGroup": rg, "location": "westeurope", "id": rid} for n, rg, rid in items]
    )


@pytest.fixture
def runner() -> FakeRunner:
    runner = FakeRunner()
    runner.on_captured("hostname -I", output="10.9.8.7\n")
    runner.on_captured("vm list", output=_resources(("web-vm", "rg-1", vm_id("rg-1", "web-vm"))))
    runner.on_captured(
        "network nsg list",
        output=_resources(
            ("web-nsg", "rg-1", nsg_id("rg-1", "web-nsg")),
            ("db-nsg", "rg-2", nsg_id("rg-2", "db-nsg")),
        ),
    )
    runner.on_captured(
        '--nsg-name "web-nsg"',
        output=json.dumps(
            [{"name": "allow-https", "priority": 100, "destinationPortRange": "443",
              "access": "Allow", "protocol": "Tcp", "direction": "Inbound"}]
        ),
    )
    runner.on_captured(
        '--nsg-name "db-nsg"',
        output=json.dumps(
            [{"name": "deny-sql", "priority": 200, "destinationPortRange": "1433",
              "access": "Deny", "protocol": "Tcp", "direction": "Inbound"}]
        ),
    )
    return runner


def _app(settings: Settings, runner: FakeRunner) -> InventoryApp:
    console = Console(file=io.StringIO(), width=200, color_system=None)
    return InventoryApp(settings=settings, runner=runner, console=console)


def _output(app: InventoryApp) -> str:
    return app.console.file.getvalue()


class TestOneShot:
    @pytest.mark.asyncio
    async def test_refresh_then_list(self, settings, runner):
        app = _app(settings, runner)

        exit_code = await app.run(["/refresh", "/vms", "/nsgs", "/rules", "/ip"])

        output = _output(app)
        assert exit_code == 0
        assert "> /refresh" in output
        assert "Found 1 VMs, 2 NSGs, and 2 inbound rules" in output
        assert "web-vm" in output
        assert "db-nsg" in output
        assert "allow-https" in output
        assert "deny-sql" in output
        assert "User IP Address: 10.9.8.7" in output

    @pytest.mark.asyncio
    async def test_rules_for_one_nsg(self, settings, runner):
        app = _app(settings, runner)
        await app.run(["/refresh"])
        app.console.file.truncate(0)
        app.console.file.seek(0)

        await app.process_input("/rules db-nsg")

        output = _output(app)
        assert "deny-sql" in output
        assert "allow-https" not in output

    @pytest.mark.asyncio
    async def test_lists_before_fetch(self, settings, runner):
        app = _app(settings, runner)

        await app.run(["/vms", "/rules"])

        output = _output(app)
        assert "No virtual machines. Run /refresh first." in output
        assert "No inbound security rules to show." in output
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_unknown_command(self, settings, runner):
        app = _app(settings, runner)

        exit_code = await app.run(["/nope"])

        assert exit_code == 1
        assert "Unknown command: /nope" in _output(app)

    @pytest.mark.asyncio
    async def test_plain_text_hint(self, settings, runner):
        app = _app(settings, runner)

        await app.process_input("list my vms")

        assert "Type /help" in _output(app)

    @pytest.mark.asyncio
    async def test_exit_stops_processing(self, settings, runner):
        app = _app(settings, runner)

        await app.run(["/exit", "/refresh"])

        assert app.should_exit
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_failed_login_sets_exit_code(self, settings, runner):
        runner.on_streaming("az login", stderr=["ERROR: cancelled"], exit_code=1)
        app = _app(settings, runner)

        exit_code = await app.run(["/login"])

        assert exit_code == 1
        assert app.orchestrator.severity is Severity.ERROR
        assert "Interactive Login failed with exit code 1" in _output(app)

    @pytest.mark.asyncio
    async def test_aliases(self, settings, runner):
        app = _app(settings, runner)

        await app.run(["/fetch", "/dl"])

        assert runner.count("vm list") == 2
        assert "az login --use-device-code" in runner.calls


class TestBuiltinCommands:
    @pytest.mark.asyncio
    async def test_help_lists_commands(self, settings, runner):
        app = _app(settings, runner)

        await app.process_input("/help")

        output = _output(app)
        for name in ("/login", "/device-login", "/refresh", "/rules", "/export", "/clear"):
            assert name in output
        assert "/rules [nsg-name]" in output
        assert "Account" in output

    @pytest.mark.asyncio
    async def test_help_for_command(self, settings, runner):
        app = _app(settings, runner)

        await app.process_input("/help rules")

        output = _output(app)
        assert "/rules [nsg-name]" in output
        assert "/rules web-nsg" in output

    @pytest.mark.asyncio
    async def test_export_to_path(self, settings, runner, tmp_path):
        app = _app(settings, runner)
        target = tmp_path / "out" / "inventory.json"

        await app.run(["/refresh", f"/export {target}"])

        data = json.loads(target.read_text())
        assert data["userIpAddress"] == "10.9.8.7"
        assert [vm["name"] for vm in data["virtualMachines"]] == ["web-vm"]
        assert {r["nsgName"] for r in data["inboundSecurityRules"]} == {"web-nsg", "db-nsg"}

    @pytest.mark.asyncio
    async def test_export_default_location(self, settings, runner):
        app = _app(settings, runner)

        await app.run(["/refresh", "/export"])

        files = list(settings.exports_dir.glob("inventory_*.json"))
        assert len(files) == 1

    @pytest.mark.asyncio
    async def test_log_tail(self, settings, runner):
        app = _app(settings, runner)
        await app.run(["/refresh"])
        last = list(app.orchestrator.log)[-1].message
        app.console.file.truncate(0)
        app.console.file.seek(0)

        await app.process_input("/log --tail 1")

        assert _output(app).strip() == last.strip()

    @pytest.mark.asyncio
    async def test_clear(self, settings, runner):
        app = _app(settings, runner)

        await app.run(["/refresh", "/clear"])

        assert len(app.orchestrator.log) == 0
        assert app.orchestrator.status == "Output cleared"
        assert "> /clear" not in _output(app)

    @pytest.mark.asyncio
    async def test_settings(self, settings, runner):
        app = _app(settings, runner)

        await app.process_input("/settings")

        output = _output(app)
        assert "permission_filter" in output
        assert "concurrency_policy" in output

    @pytest.mark.asyncio
    async def test_busy_orchestrator_reports_error(self, settings, runner):
        gate = asyncio.Event()
        runner.on_captured("vm list", output="[]", gate=gate)
        app = _app(settings, runner)

        first = asyncio.create_task(app.process_input("/refresh"))
        await asyncio.sleep(0.01)
        await app.process_input("/logout")
        gate.set()
        await first

        assert "Cannot start Logout: Refresh is still in progress" in _output(app)
        assert app.had_error
        assert runner.count("az logout") == 0


class TestActivityLog:
    @pytest.mark.asyncio
    async def test_saved_when_enabled(self, temp_workspace, runner):
        settings = Settings(workspace_dir=temp_workspace, log_activity=True, _env_file=None)
        app = _app(settings, runner)

        await app.run(["/refresh"])

        (path,) = settings.logs_dir.glob("activity_*.log")
        content = path.read_text()
        assert "=== Fetching Resources ===" in content
        assert "[info]" in content

    @pytest.mark.asyncio
    async def test_not_saved_by_default(self, settings, runner):
        app = _app(settings, runner)

        await app.run(["/refresh"])

        assert not settings.logs_dir.exists()


class TestCompleter:
    def test_completes_slash_commands(self):
        completer = SlashCommandCompleter(["refresh", "rules", "login"])

        completions = list(completer.get_completions(Document("/r"), None))

        assert [c.text for c in completions] == ["/refresh", "/rules"]

    def test_ignores_plain_text(self):
        completer = SlashCommandCompleter(["refresh"])

        assert list(completer.get_completions(Document("re"), None)) == []
