"""Domain records decoded from provider CLI output.

JSON field names follow the ``--query`` projections issued by
:mod:`azcli_inventory.az_commands` exactly (case-sensitive).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

INBOUND = "Inbound"


def _text(data: dict[str, Any], key: str) -> str:
    """Read an optional string field; missing or null becomes ""."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field '{key}' must be a string, got {type(value).__name__}")
    return value


def _integer(data: dict[str, Any], key: str) -> int:
    """Read an optional integer field; missing or null becomes 0."""
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"field '{key}' must be an integer, got {type(value).__name__}")
    return value


@dataclass
class VirtualMachine:
    """A virtual machine visible to the signed-in identity."""

    name: str = ""
    resource_group: str = ""
    location: str = ""
    id: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.resource_group)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "resourceGroup": self.resource_group,
            "location": self.location,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VirtualMachine":
        return cls(
            name=_text(data, "name"),
            resource_group=_text(data, "resourceGroup"),
            location=_text(data, "location"),
            id=_text(data, "id"),
        )


@dataclass
class NetworkSecurityGroup:
    """A network security group visible to the signed-in identity."""

    name: str = ""
    resource_group: str = ""
    location: str = ""
    id: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.resource_group)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "resourceGroup": self.resource_group,
            "location": self.location,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkSecurityGroup":
        return cls(
            name=_text(data, "name"),
            resource_group=_text(data, "resourceGroup"),
            location=_text(data, "location"),
            id=_text(data, "id"),
        )


@dataclass
class InboundSecurityRule:
    """An inbound firewall rule belonging to one NSG.

    ``nsg_name`` and ``resource_group`` are not part of the CLI payload;
    the orchestrator stamps them from the NSG the rule was listed for.
    Lower ``priority`` values are evaluated first.
    """

    name: str = ""
    priority: int = 0
    source_address_prefix: str = ""
    source_port_range: str = ""
    destination_address_prefix: str = ""
    destination_port_range: str = ""
    protocol: str = ""
    access: str = ""
    direction: str = ""
    nsg_name: str = ""
    resource_group: str = ""

    @property
    def is_inbound(self) -> bool:
        return self.direction.lower() == INBOUND.lower()

    @property
    def nsg_key(self) -> tuple[str, str]:
        """(NSG name, resource group) of the owning NSG."""
        return (self.nsg_name, self.resource_group)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "priority": self.priority,
            "sourceAddressPrefix": self.source_address_prefix,
            "sourcePortRange": self.source_port_range,
            "destinationAddressPrefix": self.destination_address_prefix,
            "destinationPortRange": self.destination_port_range,
            "protocol": self.protocol,
            "access": self.access,
            "direction": self.direction,
            "nsgName": self.nsg_name,
            "resourceGroup": self.resource_group,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InboundSecurityRule":
        return cls(
            name=_text(data, "name"),
            priority=_integer(data, "priority"),
            source_address_prefix=_text(data, "sourceAddressPrefix"),
            source_port_range=_text(data, "sourcePortRange"),
            destination_address_prefix=_text(data, "destinationAddressPrefix"),
            destination_port_range=_text(data, "destinationPortRange"),
            protocol=_text(data, "protocol"),
            access=_text(data, "access"),
            direction=_text(data, "direction"),
        )


@dataclass(frozen=True)
class InventorySnapshot:
    """Result collections of one fetch cycle."""

    virtual_machines: tuple[VirtualMachine, ...] = ()
    network_security_groups: tuple[NetworkSecurityGroup, ...] = ()
    inbound_security_rules: tuple[InboundSecurityRule, ...] = ()
    user_ip_address: str = ""
    generated_at: str = ""
    permission_filtered: bool = False

    @property
    def has_resources(self) -> bool:
        return len(self.virtual_machines) + len(self.network_security_groups) > 0

    def counts(self) -> tuple[int, int, int]:
        """(VMs, NSGs, inbound rules)."""
        return (
            len(self.virtual_machines),
            len(self.network_security_groups),
            len(self.inbound_security_rules),
        )

    def rules_for(self, nsg: NetworkSecurityGroup) -> list[InboundSecurityRule]:
        """Rules owned by ``nsg``, in priority order."""
        rules = [rule for rule in self.inbound_security_rules if rule.nsg_key == nsg.key]
        return sorted(rules, key=lambda rule: rule.priority)

    def find_nsg(self, rule: InboundSecurityRule) -> NetworkSecurityGroup | None:
        """The NSG ``rule`` was listed for, if it is part of this snapshot."""
        for nsg in self.network_security_groups:
            if nsg.key == rule.nsg_key:
                return nsg
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "userIpAddress": self.user_ip_address,
            "permissionFiltered": self.permission_filtered,
            "virtualMachines": [vm.to_dict() for vm in self.virtual_machines],
            "networkSecurityGroups": [nsg.to_dict() for nsg in self.network_security_groups],
            "inboundSecurityRules": [rule.to_dict() for rule in self.inbound_security_rules],
        }


__all__ = [
    "INBOUND",
    "InboundSecurityRule",
    "InventorySnapshot",
    "NetworkSecurityGroup",
    "VirtualMachine",
]
