"""Tests for CLI command construction and argument validation."""

import pytest

from azcli_inventory.az_commands import (
    INBOUND_RULE_PROJECTION,
    RESOURCE_PROJECTION,
    AzCommands,
    validate_name,
    validate_resource_id,
)
from azcli_inventory.errors import UnsafeArgumentError

from tests.conftest import nsg_id


class TestCommandStrings:
    def test_account_commands(self):
        commands = AzCommands()

        assert commands.login_interactive() == "az login"
        assert commands.login_device_code() == "az login --use-device-code"
        assert commands.account_show() == "az account show"
        assert commands.logout() == "az logout"

    def test_list_commands_use_projection(self):
        commands = AzCommands()

        assert commands.list_virtual_machines() == f'az vm list --query "{RESOURCE_PROJECTION}" -o json'
        assert (
            commands.list_network_security_groups()
            == f'az network nsg list --query "{RESOURCE_PROJECTION}" -o json'
        )

    def test_rule_list(self):
        command = AzCommands().list_inbound_rules("web-nsg", "rg-web")

        assert command.startswith('az network nsg rule list --nsg-name "web-nsg" --resource-group "rg-web"')
        assert INBOUND_RULE_PROJECTION in command
        assert command.endswith("-o json")

    def test_inbound_projection_filters_direction(self):
        assert INBOUND_RULE_PROJECTION.startswith("[?direction=='Inbound']")
        for field in ("priority", "destinationPortRange", "access", "direction"):
            assert f"{field}:{field}" in INBOUND_RULE_PROJECTION

    def test_show_resource_id(self):
        rid = nsg_id("rg-1", "nsg-a")

        assert AzCommands().show_resource_id(rid) == f'az resource show --ids "{rid}" --query id -o tsv'

    def test_custom_tool(self):
        assert AzCommands("/opt/az/bin/az").logout() == "/opt/az/bin/az logout"


class TestValidation:
    @pytest.mark.parametrize(
        "name", ["web-nsg", "rg_prod.01", "NSG(1)", "a", "rg-münchen", "grupo-producción", "资源组"]
    )
    def test_valid_names(self, name):
        assert validate_name(name) == name

    @pytest.mark.parametrize(
        "name",
        [
            "",
            'x"; rm -rf ~; "',
            "a b",
            "nsg$(whoami)",
            "a`id`",
            "a|b",
            "a&b",
            "x" * 261,
            "rg-1\n",
            "a\tb",
            "rg\uff02",
        ],
    )
    def test_unsafe_names(self, name):
        with pytest.raises(UnsafeArgumentError):
            validate_name(name)

    def test_rule_list_rejects_unsafe_group(self):
        with pytest.raises(UnsafeArgumentError) as exc_info:
            AzCommands().list_inbound_rules("nsg", 'rg" && curl evil')

        assert exc_info.value.details["field"] == "resource group"

    def test_valid_resource_id(self):
        rid = nsg_id("rg-1", "nsg-a")

        assert validate_resource_id(rid) == rid

    def test_unicode_resource_group_in_rule_list(self):
        command = AzCommands().list_inbound_rules("nsg-ü", "rg-münchen")

        assert '--nsg-name "nsg-ü" --resource-group "rg-münchen"' in command

    def test_unicode_resource_id(self):
        rid = nsg_id("rg-münchen", "nsg-a")

        assert validate_resource_id(rid) == rid

    @pytest.mark.parametrize(
        "rid",
        ["", "subscriptions/x", "/subscriptions//x", '/subscriptions/x" ; ls', "/a b", "/subscriptions/x\n"],
    )
    def test_unsafe_resource_ids(self, rid):
        with pytest.raises(UnsafeArgumentError):
            validate_resource_id(rid)

    def test_unsafe_tool(self):
        with pytest.raises(UnsafeArgumentError):
            AzCommands("az; rm -rf /")
