"""Tests for dependency graph."""

import pytest
from conftest import NIC, NSG, NSG_TYPE, SUBNET, VM, VNET
from deploygraph.graph.dependency_graph import DependencyGraph, build_graph
from deploygraph.ingest.models import Reference, ResourceId, ResourceNode
from deploygraph.utils.errors import CycleError, ReferenceResolutionError


def _nsg(name, index, depends_on=(), properties=None):
    return ResourceNode(
        id=ResourceId(type=NSG_TYPE, name=name),
        properties=properties or {},
        depends_on=tuple(ResourceId(type=NSG_TYPE, name=dep) for dep in depends_on),
        declaration_index=index,
    )


def _address(name):
    return f"{NSG_TYPE}/{name}"


class TestDependencyGraph:
    """Test dependency graph construction."""

    def test_build_graph_from_template(self, network_template, make_graph):
        """Edges come from references, dependsOn and parent resources."""
        _, graph = make_graph(network_template)

        assert len(graph) == 5
        assert graph.dependencies_of(SUBNET) == [VNET, NSG]
        assert graph.dependencies_of(NIC) == [SUBNET]
        assert graph.dependencies_of(VM) == [NIC]
        assert graph.dependents_of(VNET) == [SUBNET]

    def test_reference_to_later_declaration(self, network_template, make_graph):
        """Subnet referencing an NSG declared after it is ordered after the NSG."""
        _, graph = make_graph(network_template)
        order = graph.topological_order()

        assert order.index(NSG) < order.index(SUBNET)
        assert order == [VNET, NSG, SUBNET, NIC, VM]

    def test_order_is_deterministic(self, network_template, make_graph):
        orders = {tuple(make_graph(network_template)[1].topological_order()) for _ in range(5)}
        assert len(orders) == 1

    def test_independent_nodes_keep_declaration_order(self):
        graph = build_graph([_nsg("c", 0), _nsg("a", 1), _nsg("b", 2)])
        assert graph.topological_order() == [_address("c"), _address("a"), _address("b")]

    def test_dependencies_before_dependents(self):
        nodes = [_nsg("web", 0, depends_on=["db"]), _nsg("db", 1, depends_on=["net"]), _nsg("net", 2)]
        graph = build_graph(nodes)
        assert graph.topological_order() == [_address("net"), _address("db"), _address("web")]
        assert [node.id.name for node in graph.ordered_nodes()] == ["net", "db", "web"]

    def test_transitive_queries(self, network_template, make_graph):
        _, graph = make_graph(network_template)

        assert graph.get_downstream_resources(NSG) == {SUBNET, NIC, VM}
        assert graph.get_upstream_resources(VM) == {NIC, SUBNET, VNET, NSG}
        assert graph.get_downstream_resources("missing") == set()


class TestGraphErrors:
    """Cycles and dangling references."""

    def test_cycle_detected(self):
        nodes = [_nsg("a", 0, depends_on=["b"]), _nsg("b", 1, depends_on=["a"])]
        with pytest.raises(CycleError) as exc_info:
            build_graph(nodes)

        assert exc_info.value.cycle == [_address("a"), _address("b")]
        assert str(exc_info.value) == (
            f"Dependency cycle detected: {_address('a')} -> {_address('b')} -> {_address('a')}"
        )

    def test_cycle_through_references(self):
        ref_b = Reference(target=ResourceId(type=NSG_TYPE, name="b"))
        ref_c = Reference(target=ResourceId(type=NSG_TYPE, name="c"))
        nodes = [
            _nsg("a", 0),
            _nsg("b", 1, properties={"peer": ref_c}),
            _nsg("c", 2, depends_on=["d"]),
            _nsg("d", 3, properties={"peer": ref_b}),
        ]
        with pytest.raises(CycleError) as exc_info:
            build_graph(nodes)
        assert set(exc_info.value.cycle) == {_address("b"), _address("c"), _address("d")}

    def test_self_reference(self):
        with pytest.raises(CycleError):
            build_graph([_nsg("a", 0, depends_on=["a"])])

    def test_dangling_reference(self):
        ref = Reference(target=ResourceId(type=NSG_TYPE, name="ghost"))
        with pytest.raises(ReferenceResolutionError, match="ghost"):
            build_graph([_nsg("a", 0, properties={"peer": ref})])

    def test_dangling_depends_on(self):
        with pytest.raises(ReferenceResolutionError, match="dependsOn"):
            build_graph([_nsg("a", 0, depends_on=["ghost"])])

    def test_add_node_without_edges(self):
        graph = DependencyGraph()
        graph.add_node(_nsg("a", 0))
        assert _address("a") in graph
        assert graph.dependencies_of(_address("a")) == []
