"""Built-in slash commands for the inventory console."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from azcli_inventory.cli.commands import Command, CommandArgs, CommandCategory

if TYPE_CHECKING:
    from azcli_inventory.cli.app import InventoryApp


class HelpCommand(Command):
    """Display help information about available commands."""

    name = "help"
    description = "Show available commands and usage information"
    arguments = "[command]"
    examples = ("/help", "/help rules")

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        if args.words:
            name = args.words[0].lstrip("/")
            command = app.command_registry.get(name)
            if command is None:
                app.print_error(f"Unknown command: /{name}")
                return
            app.console.print(Text(command.get_help()))
            return

        table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
        table.add_column("Command", style="bold cyan", no_wrap=True)
        table.add_column("Aliases", style="dim", no_wrap=True)
        table.add_column("Description")

        for category, commands in app.command_registry.grouped().items():
            table.add_row(f"[bold]{category.value.title()}[/bold]", "", "")
            for cmd in commands:
                table.add_row(f"  {escape(cmd.usage)}", " ".join(f"/{a}" for a in cmd.aliases), cmd.description)

        panel = Panel(table, title="[bold]Available Commands[/bold]", border_style="cyan")
        app.console.print(panel)


class ExitCommand(Command):
    """Exit the application."""

    name = "exit"
    description = "Exit the application"
    aliases = ("quit",)

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        app.print_system("Exiting...")
        app.stop()


class SettingsCommand(Command):
    """Show the effective settings."""

    name = "settings"
    description = "Show the effective settings"

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
        table.add_column("Key", style="bold cyan", no_wrap=True)
        table.add_column("Value")
        for key, value in app.settings.model_dump().items():
            table.add_row(key, escape(str(value)))
        app.console.print(Panel(table, title="[bold]Settings[/bold]", border_style="cyan"))


# === Account ===


class LoginCommand(Command):
    """Interactive browser login, followed by a fetch."""

    name = "login"
    description = "Sign in through the browser, then fetch resources"
    category = CommandCategory.ACCOUNT

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        await app.orchestrator.login_interactive()


class DeviceLoginCommand(Command):
    """Device-code login, followed by a fetch."""

    name = "device-login"
    description = "Sign in with a device code, then fetch resources"
    aliases = ("dl",)
    category = CommandCategory.ACCOUNT

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        await app.orchestrator.login_device_code()


class AccountCommand(Command):
    """Check the current login, followed by a fetch when signed in."""

    name = "account"
    description = "Show the signed-in account, then fetch resources"
    aliases = ("whoami",)
    category = CommandCategory.ACCOUNT

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        await app.orchestrator.check_login_status()


class LogoutCommand(Command):
    """Sign out."""

    name = "logout"
    description = "Sign out of the CLI"
    category = CommandCategory.ACCOUNT

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        await app.orchestrator.logout()


# === Resources ===


class RefreshCommand(Command):
    """Run a fetch cycle."""

    name = "refresh"
    description = "Fetch VMs, NSGs and inbound rules again"
    aliases = ("fetch",)
    category = CommandCategory.RESOURCES

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        await app.orchestrator.refresh_resources()


class VmsCommand(Command):
    """List virtual machines from the last fetch."""

    name = "vms"
    description = "List virtual machines from the last fetch"
    category = CommandCategory.RESOURCES

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        vms = app.orchestrator.snapshot.virtual_machines
        if not vms:
            app.print_system("No virtual machines. Run /refresh first.")
            return
        table = Table(title=f"Virtual Machines ({len(vms)})")
        table.add_column("Name", style="bold")
        table.add_column("Resource Group")
        table.add_column("Location")
        for vm in vms:
            table.add_row(vm.name, vm.resource_group, vm.location)
        app.console.print(table)


class NsgsCommand(Command):
    """List network security groups from the last fetch."""

    name = "nsgs"
    description = "List network security groups from the last fetch"
    category = CommandCategory.RESOURCES

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        snapshot = app.orchestrator.snapshot
        nsgs = snapshot.network_security_groups
        if not nsgs:
            app.print_system("No network security groups. Run /refresh first.")
            return
        table = Table(title=f"Network Security Groups ({len(nsgs)})")
        table.add_column("Name", style="bold")
        table.add_column("Resource Group")
        table.add_column("Location")
        table.add_column("Inbound Rules", justify="right")
        for nsg in nsgs:
            table.add_row(nsg.name, nsg.resource_group, nsg.location, str(len(snapshot.rules_for(nsg))))
        app.console.print(table)


class RulesCommand(Command):
    """List inbound rules, optionally for one NSG."""

    name = "rules"
    description = "List inbound security rules from the last fetch"
    arguments = "[nsg-name]"
    examples = ("/rules", "/rules web-nsg")
    category = CommandCategory.RESOURCES

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        nsg_name = args.text
        rules = app.orchestrator.snapshot.inbound_security_rules
        if nsg_name:
            rules = tuple(rule for rule in rules if rule.nsg_name == nsg_name)
        if not rules:
            app.print_system("No inbound security rules to show.")
            return

        table = Table(title=f"Inbound Security Rules ({len(rules)})")
        table.add_column("NSG", style="bold")
        table.add_column("Priority", justify="right")
        table.add_column("Name")
        table.add_column("Source")
        table.add_column("Destination Port")
        table.add_column("Protocol")
        table.add_column("Access")
        for rule in sorted(rules, key=lambda r: (r.nsg_name, r.resource_group, r.priority)):
            access_style = "green" if rule.access.lower() == "allow" else "red"
            table.add_row(
                rule.nsg_name,
                str(rule.priority),
                rule.name,
                f"{rule.source_address_prefix}:{rule.source_port_range}",
                rule.destination_port_range,
                rule.protocol,
                f"[{access_style}]{rule.access}[/{access_style}]",
            )
        app.console.print(table)


class IpCommand(Command):
    """Show the detected address of this machine."""

    name = "ip"
    description = "Show the IP address detected during the last fetch"
    category = CommandCategory.RESOURCES

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        app.print_system(f"User IP Address: {app.orchestrator.user_ip_address}")


class ExportCommand(Command):
    """Write the last snapshot to a JSON file."""

    name = "export"
    description = "Save the last fetch as JSON"
    arguments = "[path]"
    examples = ("/export", "/export ./inventory.json")
    category = CommandCategory.RESOURCES

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        target = args.text
        if target:
            path = Path(target).expanduser()
        else:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = app.settings.exports_dir / f"inventory_{timestamp}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(app.orchestrator.snapshot.to_dict(), indent=2),
            encoding="utf-8",
        )
        app.print_success(f"Snapshot written to {path}")


# === Output ===


class LogCommand(Command):
    """Replay the diagnostic log."""

    name = "log"
    description = "Show the diagnostic log"
    arguments = "[--tail N]"
    examples = ("/log", "/log --tail 20")
    category = CommandCategory.OUTPUT

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        tail = args.int_option("tail", 0)
        log = app.orchestrator.log
        start = max(len(log) - tail, 0) if tail > 0 else 0
        for record in log.replay(start):
            app.print_record(record)
        if len(log) == 0:
            app.print_system("Log is empty.")


class ClearCommand(Command):
    """Clear the diagnostic log and the screen."""

    name = "clear"
    description = "Clear the diagnostic log and the screen"
    category = CommandCategory.OUTPUT
    silent = True

    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        app.console.clear()
        app.orchestrator.clear_output()


BUILTIN_COMMANDS: tuple[type[Command], ...] = (
    HelpCommand,
    ExitCommand,
    SettingsCommand,
    LoginCommand,
    DeviceLoginCommand,
    AccountCommand,
    LogoutCommand,
    RefreshCommand,
    VmsCommand,
    NsgsCommand,
    RulesCommand,
    IpCommand,
    ExportCommand,
    LogCommand,
    ClearCommand,
)

__all__ = ["BUILTIN_COMMANDS"]
