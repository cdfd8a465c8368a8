"""Tests for human-readable plan and apply output."""

import pytest
from deploygraph.contracts import ApplyReport, PlanReport
from deploygraph.executor import ApplyResult, OperationResult, OperationStatus
from deploygraph.planner import Action, Operation, Plan, PropertyChange
from deploygraph.presentation import format_apply, format_order, format_plan

NSG = "Microsoft.Network/networkSecurityGroups/nsg-a"
SUBNET = "Microsoft.Network/virtualNetworks/vnet-a/subnets/snet-a"
VM = "Microsoft.Compute/virtualMachines/vm-a"
PIP = "Microsoft.Network/publicIPAddresses/pip-a"


@pytest.fixture
def sample_plan():
    return Plan(
        scope_id="/subscriptions/abc/resourceGroups/rg",
        target_scope="resourceGroup",
        operations=[
            Operation(
                address=NSG, resource_type="Microsoft.Network/networkSecurityGroups", name="nsg-a",
                action=Action.CREATE,
                changes=[PropertyChange(path="location", after="westeurope")],
            ),
            Operation(
                address=SUBNET, resource_type="Microsoft.Network/virtualNetworks/subnets", name="vnet-a/snet-a",
                action=Action.UPDATE, depends_on=[NSG],
                changes=[
                    PropertyChange(path="properties.addressPrefix", before="10.0.1.0/24", after="10.0.2.0/24"),
                    PropertyChange(path="properties.networkSecurityGroup.id", before=None, after_unknown=True),
                ],
            ),
            Operation(
                address=VM, resource_type="Microsoft.Compute/virtualMachines", name="vm-a",
                action=Action.REPLACE,
                changes=[
                    PropertyChange(path="properties.osProfile.computerName", before="a", after="b", forces_replacement=True),
                    PropertyChange(path="properties.osProfile.adminPassword", sensitive=True),
                ],
            ),
            Operation(address=PIP, resource_type="Microsoft.Network/publicIPAddresses", name="pip-a", action=Action.DELETE),
        ],
    )


class TestFormatPlan:
    """Test plan listing."""

    def test_markers_and_values(self, sample_plan):
        output = format_plan(PlanReport.from_plan(sample_plan), ascii_mode=True)

        assert f"+   {NSG} (create)" in output
        assert f"~   {SUBNET} (update)" in output
        assert f"-/+ {VM} (replace)" in output
        assert f"-   {PIP} (delete)" in output
        assert 'location: "westeurope"' in output
        assert 'properties.addressPrefix: "10.0.1.0/24" -> "10.0.2.0/24"' in output
        assert "(known after apply)" in output
        assert "# forces replacement" in output
        assert f"waits for: {NSG}" in output

    def test_sensitive_values_hidden(self, sample_plan):
        output = format_plan(PlanReport.from_plan(sample_plan), ascii_mode=True)
        assert "properties.osProfile.adminPassword: (sensitive) -> (sensitive)" in output

    def test_summary_line(self, sample_plan):
        output = format_plan(PlanReport.from_plan(sample_plan), ascii_mode=True)
        assert "Plan: 1 to create, 1 to update, 1 to replace, 1 to delete, 0 unchanged." in output

    def test_no_changes(self):
        plan = Plan(operations=[
            Operation(address=NSG, resource_type="Microsoft.Network/networkSecurityGroups", name="nsg-a", action=Action.NO_OP),
        ])
        output = format_plan(PlanReport.from_plan(plan), ascii_mode=True)
        assert "No changes" in output
        assert NSG not in output

    def test_ascii_mode_from_env(self, sample_plan, monkeypatch):
        monkeypatch.setenv("DEPLOYGRAPH_ASCII", "1")
        output = format_plan(PlanReport.from_plan(sample_plan))
        output.encode("ascii")

    def test_unicode_by_default(self, sample_plan, monkeypatch):
        monkeypatch.delenv("DEPLOYGRAPH_ASCII", raising=False)
        assert "→" in format_plan(PlanReport.from_plan(sample_plan))


class TestFormatApply:
    """Test apply listing."""

    def test_status_lines(self):
        result = ApplyResult(results=[
            OperationResult(address=NSG, action=Action.CREATE, status=OperationStatus.FAILED, error="quota", attempts=3),
            OperationResult(address=SUBNET, action=Action.UPDATE, status=OperationStatus.BLOCKED, error="blocked"),
            OperationResult(address=VM, action=Action.NO_OP, status=OperationStatus.UNCHANGED),
        ])
        output = format_apply(ApplyReport.from_result(result), ascii_mode=True)

        assert "[FAILED]" in output and f"{NSG} (3 attempts): quota" in output
        assert "[BLOCKED]" in output and f"{SUBNET}: blocked" in output
        assert "1 failed, 1 blocked" in output
        assert "not rolled back" in output

    def test_success(self):
        result = ApplyResult(results=[OperationResult(address=NSG, action=Action.CREATE, status=OperationStatus.APPLIED, attempts=1)])
        output = format_apply(ApplyReport.from_result(result), ascii_mode=True)

        assert "Apply complete: 1 applied" in output
        assert "rolled back" not in output


def test_format_order():
    output = format_order([NSG, SUBNET], {NSG: [], SUBNET: [NSG]})
    assert output.splitlines() == [f"  1. {NSG}", f"  2. {SUBNET}  <- {NSG}"]
