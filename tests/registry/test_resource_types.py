"""Tests for the resource type catalog."""

import pytest
from deploygraph.registry import ResourceType, ResourceTypeCatalog, load_catalog
from deploygraph.utils.errors import UnknownTypeError


class TestCatalog:
    """Test built-in catalog lookups."""

    def test_builtin_types(self):
        catalog = load_catalog()
        for name in (
            "Microsoft.Network/virtualNetworks",
            "Microsoft.Network/virtualNetworks/subnets",
            "Microsoft.Network/networkSecurityGroups",
            "Microsoft.Network/bastionHosts",
            "Microsoft.Compute/virtualMachines",
        ):
            assert name in catalog

    def test_lookup_is_case_insensitive(self):
        catalog = load_catalog()
        resource_type = catalog.get("microsoft.network/VIRTUALNETWORKS")
        assert resource_type.name == "Microsoft.Network/virtualNetworks"

    def test_require_unknown(self):
        with pytest.raises(UnknownTypeError, match="Contoso"):
            load_catalog().require("Contoso.Widgets/gadgets", "g1")

    def test_extra_types_merged(self):
        catalog = load_catalog({"Contoso.Widgets/gadgets": {"immutable": ["properties.size"]}})
        gadget = catalog.require("Contoso.Widgets/gadgets")

        assert gadget.is_immutable("properties.size")
        assert gadget.scopes == ["resourceGroup"]
        assert "Microsoft.Network/virtualNetworks" in catalog

    def test_extra_types_override_builtin(self):
        catalog = load_catalog({"Microsoft.Network/virtualNetworks": {"immutable": ["properties.addressSpace"]}})
        assert catalog.require("Microsoft.Network/virtualNetworks").is_immutable("properties.addressSpace.addressPrefixes")


class TestResourceType:
    """Test replacement semantics."""

    def test_location_always_immutable(self):
        resource_type = ResourceType(name="Microsoft.Network/networkSecurityGroups")
        assert resource_type.is_immutable("location")
        assert resource_type.is_immutable("zones")
        assert not resource_type.is_immutable("properties.securityRules")

    def test_prefix_match(self):
        resource_type = ResourceType(name="x/y", immutable=["properties.storageProfile.imageReference"])
        assert resource_type.is_immutable("properties.storageProfile.imageReference.sku")
        assert not resource_type.is_immutable("properties.storageProfile.imageReferenceX")

    def test_parent_type(self):
        assert ResourceType(name="Microsoft.Network/virtualNetworks/subnets").parent_type == "Microsoft.Network/virtualNetworks"
        assert ResourceType(name="Microsoft.Network/virtualNetworks").parent_type is None

    def test_empty_catalog(self):
        catalog = ResourceTypeCatalog()
        assert len(catalog) == 0
        assert catalog.get("anything") is None
