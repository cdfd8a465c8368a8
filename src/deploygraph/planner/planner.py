"""Diff the desired graph against remote state and produce an ordered Plan."""

from typing import Any, Dict, List, Optional
import networkx as nx
from tenacity import Retrying
from .diff import UNKNOWN, diff_properties, lookup_path
from .models import Action, Operation, Plan
from ..graph.dependency_graph import DependencyGraph
from ..ingest.models import Reference, ResourceId
from ..provider.base import ProviderLike
from ..registry import ResourceTypeCatalog, load_catalog
from ..state.models import ObservedResource, RemoteState
from ..utils.errors import CycleError
from ..utils.logging import get_logger
from ..utils.retry import build_retrying, call_with_retry

logger = get_logger("planner.planner")


class Planner:
    """Owns refresh of RemoteState and classification of each resource.

    plan() never mutates the state it is given; refresh() returns a new
    state object.
    """

    def __init__(
        self,
        provider: Optional[ProviderLike] = None,
        catalog: Optional[ResourceTypeCatalog] = None,
        retrying: Optional[Retrying] = None,
    ):
        # only refresh() needs a provider
        self.provider = provider
        self.catalog = catalog or load_catalog()
        self.retrying = retrying or build_retrying()

    def refresh(self, state: RemoteState, graph: DependencyGraph) -> RemoteState:
        """
        Read current attributes for every desired and previously known resource.

        Returns:
            New RemoteState; resources the provider no longer reports are dropped

        Raises:
            ProviderError: If a read fails after retries
        """
        if self.provider is None:
            raise ValueError("Planner.refresh requires a provider")

        previous = state.snapshot()
        refreshed = RemoteState(scope_id=previous.scope_id, serial=previous.serial)
        targets: Dict[str, ResourceId] = {node.address: node.id for node in graph.get_all_nodes()}
        for address, observed in previous.resources.items():
            targets.setdefault(address, observed.resource_id)

        for address, resource_id in targets.items():
            attributes = call_with_retry(lambda rid=resource_id: self.provider.get(rid), self.retrying)
            if attributes is None:
                if address in previous.resources:
                    logger.warning(f"Resource {address} no longer exists remotely, dropping from state")
                continue
            known = previous.resources.get(address)
            refreshed.resources[address] = ObservedResource(
                type=resource_id.type,
                name=resource_id.name,
                attributes=attributes,
                dependencies=list(known.dependencies) if known else graph.dependencies_of(address),
            )

        logger.info(f"Refreshed state: {len(refreshed.resources)} of {len(targets)} resources exist")
        return refreshed

    def plan(self, graph: DependencyGraph, state: RemoteState, scope_id: Optional[str] = None, target_scope: Optional[str] = None) -> Plan:
        """
        Build a deterministic plan.

        Args:
            graph: Desired resource graph
            state: Observed state (not mutated)

        Returns:
            Plan with creates/updates/replaces/no-ops in topological order,
            followed by deletes in reverse dependency order

        Raises:
            CycleError: If the graph (or recorded state dependencies) has a cycle
        """
        observed_state = state.snapshot()
        order = graph.topological_order()
        operations: Dict[str, Operation] = {}

        for address in order:
            node = graph.get_node(address)
            resource_type = self.catalog.require(node.id.type, node.id.name)
            observed = observed_state.resources.get(address)

            def resolver(reference: Reference) -> Any:
                return self._resolve_for_plan(reference, operations, observed_state)

            changes = diff_properties(node, resource_type, observed.attributes if observed else None, resolver)

            if observed is None:
                action = Action.CREATE
            elif not changes:
                action = Action.NO_OP
            elif any(change.forces_replacement for change in changes):
                action = Action.REPLACE
            else:
                action = Action.UPDATE

            operations[address] = Operation(
                address=address,
                resource_type=node.id.type,
                name=node.id.name,
                action=action,
                changes=changes,
                depends_on=self._upstream_operations(address, graph, operations),
                resource_dependencies=graph.dependencies_of(address),
                node=node,
            )
            logger.debug(f"Planned {action.value} for {address} ({len(changes)} changes)")

        ordered = [operations[address] for address in order]
        ordered.extend(self._plan_deletes(graph, observed_state, operations))

        plan = Plan(scope_id=scope_id or observed_state.scope_id, target_scope=target_scope, operations=ordered)
        summary = plan.summary()
        logger.info(
            f"Plan: {summary['create']} to create, {summary['update']} to update, "
            f"{summary['replace']} to replace, {summary['delete']} to delete, {summary['no-op']} unchanged"
        )
        return plan

    @staticmethod
    def _resolve_for_plan(reference: Reference, operations: Dict[str, Operation], state: RemoteState) -> Any:
        target = reference.target.address
        target_op = operations.get(target)
        if target_op is None or target_op.action in (Action.CREATE, Action.REPLACE):
            return UNKNOWN
        for change in target_op.changes:
            if reference.attribute == change.path or reference.attribute.startswith(change.path + ".") \
                    or change.path.startswith(reference.attribute + "."):
                return UNKNOWN
        observed = state.resources.get(target)
        if observed is None:
            return UNKNOWN
        found, value = lookup_path(observed.attributes, reference.attribute)
        if not found:
            logger.debug(f"Attribute '{reference.attribute}' of {target} not observed yet")
            return UNKNOWN
        return value

    @staticmethod
    def _upstream_operations(address: str, graph: DependencyGraph, operations: Dict[str, Operation]) -> List[str]:
        """Nearest upstream operations that change something, looking through no-ops."""
        upstream: List[str] = []
        seen = set()
        pending = list(graph.dependencies_of(address))
        while pending:
            dependency = pending.pop(0)
            if dependency in seen:
                continue
            seen.add(dependency)
            op = operations[dependency]
            if op.is_change:
                if dependency not in upstream:
                    upstream.append(dependency)
            else:
                pending.extend(graph.dependencies_of(dependency))
        return upstream

    @staticmethod
    def _plan_deletes(graph: DependencyGraph, state: RemoteState, operations: Dict[str, Operation]) -> List[Operation]:
        """
        Deletes for observed resources missing from the graph, dependents first.

        A delete also waits for every kept resource whose recorded dependencies
        still include it and that is being changed (the change drops the link).
        """
        orphans = sorted(address for address in state.resources if address not in graph)
        if not orphans:
            return []

        delete_graph = nx.DiGraph()
        delete_graph.add_nodes_from(orphans)
        for address in orphans:
            for dependency in state.resources[address].dependencies:
                if dependency in delete_graph and dependency != address:
                    # dependent -> dependency: topological order puts dependents first
                    delete_graph.add_edge(address, dependency)

        try:
            order = list(nx.lexicographical_topological_sort(delete_graph))
        except nx.NetworkXUnfeasible:
            cycle = [edge[0] for edge in nx.find_cycle(delete_graph)]
            raise CycleError(cycle)

        holders: Dict[str, List[str]] = {}
        for kept, observed in state.resources.items():
            op = operations.get(kept)
            if op is None or not op.is_change:
                continue
            for dependency in observed.dependencies:
                if dependency in delete_graph:
                    holders.setdefault(dependency, []).append(kept)

        deletes = []
        for address in order:
            observed = state.resources[address]
            deletes.append(Operation(
                address=address,
                resource_type=observed.type,
                name=observed.name,
                action=Action.DELETE,
                depends_on=sorted(set(delete_graph.predecessors(address)) | set(holders.get(address, ()))),
                resource_dependencies=list(observed.dependencies),
            ))
        return deletes
