"""Console front end for azcli-inventory."""

from azcli_inventory.cli.app import ConsoleSink, InventoryApp, SlashCommandCompleter
from azcli_inventory.cli.commands import (
    Command,
    CommandArgs,
    CommandCategory,
    CommandRegistry,
    split_args,
)

__all__ = [
    "Command",
    "CommandArgs",
    "CommandCategory",
    "CommandRegistry",
    "ConsoleSink",
    "InventoryApp",
    "SlashCommandCompleter",
    "split_args",
]
