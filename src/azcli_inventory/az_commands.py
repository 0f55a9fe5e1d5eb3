"""Command strings issued to the provider CLI.

The ``--query`` projections are part of the contract with
:mod:`azcli_inventory.models`: field names must match exactly.

Names and ids end up inside a shell command line, so they are checked
against an allow-list before interpolation. Values that fail raise
:class:`UnsafeArgumentError` and nothing is run.
"""

from __future__ import annotations

import re

from azcli_inventory.errors import UnsafeArgumentError

RESOURCE_PROJECTION = "[].{name:name, resourceGroup:resourceGroup, location:location, id:id}"

INBOUND_RULE_PROJECTION = (
    "[?direction=='Inbound'].{name:name, priority:priority, "
    "sourceAddressPrefix:sourceAddressPrefix, sourcePortRange:sourcePortRange, "
    "destinationAddressPrefix:destinationAddressPrefix, "
    "destinationPortRange:destinationPortRange, protocol:protocol, access:access, "
    "direction:direction}"
)

# Azure resource and resource group names: Unicode letters and digits, _ . ( ) -
_NAME_PATTERN = re.compile(r"[\w.()\-]{1,260}")
# ARM resource ids: /subscriptions/<id>/resourceGroups/<rg>/providers/...
_RESOURCE_ID_PATTERN = re.compile(r"/[\w.()\-/]{1,2000}")
_TOOL_PATTERN = re.compile(r"[A-Za-z0-9_.\-/\\:]+")


def validate_name(value: str, what: str = "name") -> str:
    """Return ``value`` if it is a safe resource or resource group name."""
    if not _NAME_PATTERN.fullmatch(value or ""):
        raise UnsafeArgumentError(
            f"Refusing to use {what} {value!r} in a command line",
            details={"field": what, "value": value},
        )
    return value


def validate_resource_id(value: str) -> str:
    """Return ``value`` if it looks like an ARM resource id."""
    if not _RESOURCE_ID_PATTERN.fullmatch(value or "") or "//" in value:
        raise UnsafeArgumentError(
            f"Refusing to use resource id {value!r} in a command line",
            details={"field": "id", "value": value},
        )
    return value


class AzCommands:
    """Builds provider CLI command strings.

    Args:
        tool: Executable name or path of the CLI (``az`` by default).
    """

    def __init__(self, tool: str = "az") -> None:
        if not _TOOL_PATTERN.fullmatch(tool or ""):
            raise UnsafeArgumentError(
                f"Refusing to use CLI tool {tool!r}", details={"field": "tool", "value": tool}
            )
        self.tool = tool

    def login_device_code(self) -> str:
        return f"{self.tool} login --use-device-code"

    def login_interactive(self) -> str:
        return f"{self.tool} login"

    def account_show(self) -> str:
        return f"{self.tool} account show"

    def logout(self) -> str:
        return f"{self.tool} logout"

    def list_virtual_machines(self) -> str:
        return f'{self.tool} vm list --query "{RESOURCE_PROJECTION}" -o json'

    def list_network_security_groups(self) -> str:
        return f'{self.tool} network nsg list --query "{RESOURCE_PROJECTION}" -o json'

    def list_inbound_rules(self, nsg_name: str, resource_group: str) -> str:
        nsg_name = validate_name(nsg_name, "NSG name")
        resource_group = validate_name(resource_group, "resource group")
        return (
            f'{self.tool} network nsg rule list --nsg-name "{nsg_name}" '
            f'--resource-group "{resource_group}" '
            f'--query "{INBOUND_RULE_PROJECTION}" -o json'
        )

    def show_resource_id(self, resource_id: str) -> str:
        resource_id = validate_resource_id(resource_id)
        return f'{self.tool} resource show --ids "{resource_id}" --query id -o tsv'


__all__ = [
    "AzCommands",
    "INBOUND_RULE_PROJECTION",
    "RESOURCE_PROJECTION",
    "validate_name",
    "validate_resource_id",
]
