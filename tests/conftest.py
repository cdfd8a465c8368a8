"""Shared fixtures: a small hub network template and graph builders."""

import copy
import pytest
from deploygraph.graph import build_graph
from deploygraph.ingest import parse_template
from deploygraph.utils.retry import build_retrying

SUBSCRIPTION_ID = "11111111-2222-3333-4444-555555555555"
SCOPE_ID = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-test"

VNET_TYPE = "Microsoft.Network/virtualNetworks"
SUBNET_TYPE = "Microsoft.Network/virtualNetworks/subnets"
NSG_TYPE = "Microsoft.Network/networkSecurityGroups"
NIC_TYPE = "Microsoft.Network/networkInterfaces"
VM_TYPE = "Microsoft.Compute/virtualMachines"

VNET = "Microsoft.Network/virtualNetworks/vnet-test"
SUBNET = "Microsoft.Network/virtualNetworks/vnet-test/subnets/snet-app"
NSG = "Microsoft.Network/networkSecurityGroups/nsg-app"
NIC = "Microsoft.Network/networkInterfaces/nic-app"
VM = "Microsoft.Compute/virtualMachines/vm-app"

NETWORK_TEMPLATE = {
    "targetScope": "resourceGroup",
    "scope": {"subscriptionId": SUBSCRIPTION_ID, "resourceGroup": "rg-test"},
    "parameters": {
        "location": {"type": "string", "defaultValue": "westeurope"},
        "adminPassword": {"type": "secureString", "defaultValue": "initial-Passw0rd"},
    },
    "variables": {"vnetName": "vnet-test"},
    "resources": [
        {
            "type": VNET_TYPE,
            "name": "[variables('vnetName')]",
            "location": "[parameters('location')]",
            "properties": {"addressSpace": {"addressPrefixes": ["10.0.0.0/16"]}},
        },
        # declared before the NSG it references
        {
            "type": SUBNET_TYPE,
            "name": "[concat(variables('vnetName'), '/snet-app')]",
            "properties": {
                "addressPrefix": "10.0.1.0/24",
                "networkSecurityGroup": {"id": "[resourceId('Microsoft.Network/networkSecurityGroups', 'nsg-app')]"},
            },
        },
        {
            "type": NSG_TYPE,
            "name": "nsg-app",
            "location": "[parameters('location')]",
            "properties": {"securityRules": []},
        },
        {
            "type": NIC_TYPE,
            "name": "nic-app",
            "location": "[parameters('location')]",
            "properties": {
                "ipConfigurations": [
                    {
                        "name": "ipconfig1",
                        "properties": {
                            "subnet": {
                                "id": "[resourceId('Microsoft.Network/virtualNetworks/subnets', variables('vnetName'), 'snet-app')]"
                            }
                        },
                    }
                ]
            },
        },
        {
            "type": VM_TYPE,
            "name": "vm-app",
            "location": "[parameters('location')]",
            "properties": {
                "osProfile": {
                    "computerName": "vm-app",
                    "adminUsername": "azureops",
                    "adminPassword": "[parameters('adminPassword')]",
                },
                "networkProfile": {
                    "networkInterfaces": [{"id": "[resourceId('Microsoft.Network/networkInterfaces', 'nic-app')]"}]
                },
            },
        },
    ],
}


@pytest.fixture
def network_template():
    """Fresh copy of the hub network template document."""
    return copy.deepcopy(NETWORK_TEMPLATE)


@pytest.fixture
def make_graph():
    """Parse a template document and build its dependency graph."""
    def _make_graph(data, parameters=None):
        template = parse_template(data, parameters)
        return template, build_graph(template.nodes)
    return _make_graph


@pytest.fixture
def fast_retrying():
    """Three attempts without backoff waits."""
    return build_retrying(max_attempts=3, backoff_multiplier=0, backoff_max=0)
