"""Slash commands: argument splitting, the command base class and the registry.

A command is declared with class attributes and receives its arguments
already split:

    class IpCommand(Command):
        name = "ip"
        description = "Show the IP address detected during the last fetch"
        category = CommandCategory.RESOURCES

        async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
            app.print_system(app.orchestrator.user_ip_address)
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Iterable

if TYPE_CHECKING:
    from azcli_inventory.cli.app import InventoryApp

_TOKEN = re.compile(r'"([^"]*)"|\'([^\']*)\'|(\S+)')


class CommandCategory(Enum):
    """Sections of the /help table, in display order."""

    GENERAL = "general"
    ACCOUNT = "account"
    RESOURCES = "resources"
    OUTPUT = "output"


@dataclass
class CommandArgs:
    """Words and ``--name`` options typed after a command name."""

    words: list[str] = field(default_factory=list)
    options: dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """The words joined back with single spaces ('' when none were given)."""
        return " ".join(self.words)

    def int_option(self, name: str, default: int) -> int:
        """``--name N`` as an int; ``default`` when absent or not a number."""
        try:
            return int(self.options[name])
        except (KeyError, ValueError):
            return default


def split_args(text: str) -> CommandArgs:
    """Split the text after a command name.

    Quoted words keep their spaces, so ``/export "C:/my exports/x.json"``
    yields one word. ``--tail 5`` and ``--tail=5`` both set ``tail``; an
    option followed by nothing (or by another option) is set to ``"true"``.
    """
    tokens = deque(
        next(group for group in match.groups() if group is not None)
        for match in _TOKEN.finditer(text)
    )
    args = CommandArgs()
    while tokens:
        token = tokens.popleft()
        if not token.startswith("--") or token == "--":
            args.words.append(token)
            continue
        key, has_value, value = token[2:].partition("=")
        if not has_value:
            value = tokens.popleft() if tokens and not tokens[0].startswith("-") else "true"
        args.options[key] = value
    return args


class Command(ABC):
    """A slash command.

    Subclasses set ``name`` and ``description`` and may set ``aliases``,
    ``arguments`` (the usage text after the name), ``examples``,
    ``category`` and ``silent`` (not echoed when run from argv).
    """

    name: ClassVar[str]
    description: ClassVar[str]
    aliases: ClassVar[tuple[str, ...]] = ()
    arguments: ClassVar[str] = ""
    examples: ClassVar[tuple[str, ...]] = ()
    category: ClassVar[CommandCategory] = CommandCategory.GENERAL
    silent: ClassVar[bool] = False

    @property
    def usage(self) -> str:
        return f"/{self.name} {self.arguments}".rstrip()

    @abstractmethod
    async def execute(self, args: CommandArgs, app: InventoryApp) -> None:
        """Run the command against the console application."""

    def get_help(self) -> str:
        lines = [self.usage, f"  {self.description}"]
        if self.aliases:
            lines.append("  Also: " + " ".join(f"/{alias}" for alias in self.aliases))
        if self.examples:
            lines.append("  e.g.")
            lines.extend(f"    {example}" for example in self.examples)
        return "\n".join(lines)


class CommandRegistry:
    """Looks commands up by name or alias."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._commands: dict[str, Command] = {}
        self._aliases: dict[str, str] = {}
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> None:
        """Add ``command``; a command with the same name is replaced.

        Raises:
            ValueError: The name or an alias is already taken by a different command.
        """
        for key in (command.name, *command.aliases):
            owner = self._aliases.get(key) or (key if key in self._commands else command.name)
            if owner != command.name:
                raise ValueError(f"/{key} is already registered for /{owner}")
        self._commands[command.name] = command
        self._aliases.update((alias, command.name) for alias in command.aliases)

    def get(self, name: str) -> Command | None:
        name = name.lstrip("/").lower()
        return self._commands.get(self._aliases.get(name, name))

    def grouped(self) -> dict[CommandCategory, list[Command]]:
        """Commands per category (empty categories left out), sorted by name."""
        groups: dict[CommandCategory, list[Command]] = {}
        for command in sorted(self._commands.values(), key=lambda c: c.name):
            groups.setdefault(command.category, []).append(command)
        return {category: groups[category] for category in CommandCategory if category in groups}

    def names(self) -> list[str]:
        """Every name and alias, for completion."""
        return sorted([*self._commands, *self._aliases])


__all__ = ["Command", "CommandArgs", "CommandCategory", "CommandRegistry", "split_args"]
