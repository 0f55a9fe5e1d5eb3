"""Console application for azcli-inventory.

This module provides the console front end that:
1. Renders orchestrator status and diagnostic log lines with rich
2. Reads slash commands from a prompt_toolkit prompt (or from argv)
3. Saves the diagnostic log to the workspace on exit when enabled
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import InMemoryHistory
from rich.console import Console
from rich.text import Text

from azcli_inventory.cli.builtin_commands import BUILTIN_COMMANDS
from azcli_inventory.cli.commands import CommandRegistry, split_args
from azcli_inventory.config import (
    Settings,
    SettingsValidationError,
    get_settings,
    validate_settings,
)
from azcli_inventory.errors import InventoryError
from azcli_inventory.events import LogLevel, LogRecord, PresentationSink, Severity, StatusUpdate
from azcli_inventory.logging import Loggers, clear_context, configure_logging
from azcli_inventory.orchestrator import ResourceOrchestrator
from azcli_inventory.process import ProcessRunner

logger = Loggers.cli()

SEVERITY_STYLES: dict[Severity, str] = {
    Severity.READY: "#3498db",
    Severity.IN_PROGRESS: "#f39c12",
    Severity.SUCCESS: "#27ae60",
    Severity.WARNING: "#f39c12",
    Severity.ERROR: "#e74c3c",
}

LOG_STYLES: dict[LogLevel, str] = {
    LogLevel.INFO: "",
    LogLevel.OUTPUT: "dim",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "red",
}


class SlashCommandCompleter(Completer):
    """Completer that only triggers for slash commands."""

    def __init__(self, commands: list[str]) -> None:
        self.commands = sorted(commands)

    def get_completions(self, document: Document, complete_event):
        """Yield completions only when text starts with /."""
        text = document.text_before_cursor

        if not text.startswith("/"):
            return

        partial = text[1:].lower()

        for cmd in self.commands:
            if cmd.lower().startswith(partial):
                yield Completion(
                    text=f"/{cmd}",
                    start_position=-len(text),
                    display=f"/{cmd}",
                )


class ConsoleSink(PresentationSink):
    """Prints status changes and diagnostic records as they happen."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def on_status(self, update: StatusUpdate) -> None:
        style = SEVERITY_STYLES[update.severity]
        self.console.print(Text(f"● {update.message}", style=f"bold {style}"))

    def on_log(self, record: LogRecord) -> None:
        self.console.print(Text(record.message, style=LOG_STYLES[record.level]))


class InventoryApp:
    """Interactive console around a :class:`ResourceOrchestrator`.

    Args:
        settings: Settings override; the current settings when omitted.
        runner: Process runner override (tests inject fakes here).
        console: Rich console override.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runner: ProcessRunner | None = None,
        console: Console | None = None,
    ) -> None:
        # === Configuration ===
        self._settings = settings or get_settings()
        configure_logging(self._settings)
        logger.info("app_starting", app_name=self._settings.app_name)

        # === Output ===
        self.console = console or Console()
        self.sink = ConsoleSink(self.console)

        # === Orchestrator ===
        self.orchestrator = ResourceOrchestrator(
            runner or ProcessRunner(timeout=self._settings.command_timeout),
            self.sink,
            settings=self._settings,
        )

        # === Command Registry ===
        self.command_registry = CommandRegistry(command_cls() for command_cls in BUILTIN_COMMANDS)

        # === State ===
        self.should_exit = False
        self.had_error = False

    @property
    def settings(self) -> Settings:
        return self._settings

    def stop(self) -> None:
        """Signal the application to stop."""
        self.should_exit = True

    # === Output helpers ===

    def print_system(self, message: str) -> None:
        self.console.print(Text(message, style="italic #6c757d"))

    def print_success(self, message: str) -> None:
        self.console.print(Text(message, style="#28a745"))

    def print_error(self, message: str) -> None:
        self.had_error = True
        self.console.print(Text(message, style="bold #dc3545"))

    def print_record(self, record: LogRecord) -> None:
        self.sink.on_log(record)

    # === Input handling ===

    async def process_input(self, user_input: str) -> None:
        """Process one line of user input."""
        user_input = user_input.strip()

        if not user_input:
            return

        if user_input.startswith("/"):
            await self._handle_command(user_input)
        else:
            self.print_system("Commands start with /. Type /help to see available commands")

    async def _handle_command(self, user_input: str) -> None:
        parts = user_input[1:].split(maxsplit=1)
        command_name = parts[0] if parts else ""
        args = parts[1] if len(parts) > 1 else ""

        command = self.command_registry.get(command_name)
        if command is None:
            self.print_error(f"Unknown command: /{command_name}")
            self.print_system("Type /help to see available commands")
            return

        logger.debug("executing_command", command=command.name, args=args)
        try:
            await command.execute(split_args(args), self)
            logger.debug("command_completed", command=command.name)
        except InventoryError as e:
            logger.warning("command_failed", command=command.name, error=e.message, code=e.error_code)
            self.print_error(e.message)
        except OSError as e:
            logger.warning("command_failed", command=command.name, error=str(e))
            self.print_error(f"Error executing command: {e}")

        if self.orchestrator.severity is Severity.ERROR:
            self.had_error = True

    def _echo(self, line: str) -> None:
        """Show a non-interactive command line unless the command is silent."""
        parts = line.strip().lstrip("/").split(maxsplit=1)
        command = self.command_registry.get(parts[0]) if parts else None
        if command is None or not command.silent:
            self.print_system(f"> {line.strip()}")

    # === Lifecycle ===

    def _check_settings(self) -> None:
        try:
            validate_settings(self._settings)
        except SettingsValidationError as e:
            for line in str(e).splitlines():
                self.console.print(Text(f"⚠ {line}", style="yellow"))

    async def _save_activity_log(self) -> Path | None:
        """Write the diagnostic log to the workspace logs directory."""
        if len(self.orchestrator.log) == 0:
            return None
        self._settings.ensure_workspace_exists()
        logs_dir = self._settings.logs_dir
        logs_dir.mkdir(parents=True, exist_ok=True)
        path = logs_dir / f"activity_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        lines = [
            f"{record.timestamp.isoformat()} [{record.level.value}] {record.message}"
            for record in self.orchestrator.log.replay()
        ]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info("activity_log_saved", path=str(path))
        return path

    async def run(self, commands: list[str] | None = None) -> int:
        """Run the given commands, or the interactive loop when none are given.

        Returns:
            Process exit code: 1 if any command reported an error, else 0.
        """
        self._check_settings()
        self.console.print(Text(f"● {self.orchestrator.status}", style=SEVERITY_STYLES[Severity.READY]))

        if commands:
            for line in commands:
                self._echo(line)
                await self.process_input(line)
                if self.should_exit:
                    break
        else:
            await self._repl()

        if self._settings.log_activity:
            path = await self._save_activity_log()
            if path:
                self.print_system(f"Activity log saved to {path}")

        self.orchestrator.log.close()
        logger.info("app_ending")
        clear_context()
        return 1 if self.had_error else 0

    async def _repl(self) -> None:
        logger.info("repl_starting")
        self.print_system("Type /help for commands, Ctrl+D to exit")
        session: PromptSession[str] = PromptSession(
            message=">>> ",
            history=InMemoryHistory(),
            completer=SlashCommandCompleter(self.command_registry.names()),
            complete_while_typing=True,
        )
        while not self.should_exit:
            try:
                text = await session.prompt_async()
            except KeyboardInterrupt:
                continue
            except EOFError:
                break
            await self.process_input(text)
        self.print_system("Goodbye!")


__all__ = ["ConsoleSink", "InventoryApp", "SlashCommandCompleter"]
