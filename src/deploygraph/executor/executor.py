"""Apply a Plan against a provider with bounded concurrency."""

import copy
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from tenacity import Retrying
from .models import ApplyResult, OperationResult, OperationStatus, SUCCESS_STATUSES
from ..config.models import EngineConfig
from ..ingest.models import Reference, ResourceNode
from ..planner.diff import lookup_path
from ..planner.models import Action, Operation, Plan
from ..provider.base import ProviderLike
from ..state.models import ObservedResource, RemoteState
from ..utils.errors import (
    BlockedError,
    FatalProviderError,
    OperationTimeoutError,
    ProviderError,
    ReferenceResolutionError,
)
from ..utils.logging import get_logger
from ..utils.retry import build_retrying

logger = get_logger("executor.executor")

FAILED_STATUSES = (OperationStatus.FAILED, OperationStatus.BLOCKED, OperationStatus.CANCELLED)

# How often to check for queued operations a worker has not picked up yet
QUEUE_POLL_INTERVAL = 0.05


@dataclass
class _Outcome:
    attributes: Optional[Dict[str, Any]]
    error: Optional[Exception]
    attempts: int


@dataclass
class _Running:
    operation: Operation
    submitted: float
    # set by the worker thread when the provider call begins
    started: Optional[float] = None


class Executor:
    """Runs plan operations on a thread pool.

    An operation starts only after every operation in its depends_on
    succeeded. A failure marks downstream operations blocked; unrelated
    branches keep going. Creates/updates/replaces run first, deletes after.
    State writes happen on the scheduling thread only.
    """

    def __init__(
        self,
        provider: ProviderLike,
        max_concurrency: int = 4,
        operation_timeout: Optional[float] = None,
        retrying: Optional[Retrying] = None,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.provider = provider
        self.max_concurrency = max_concurrency
        self.operation_timeout = operation_timeout
        self.retrying = retrying or build_retrying()

    @classmethod
    def from_config(cls, provider: ProviderLike, config: EngineConfig) -> "Executor":
        return cls(
            provider,
            max_concurrency=config.executor.max_concurrency,
            operation_timeout=config.executor.operation_timeout,
            retrying=build_retrying(
                max_attempts=config.retry.max_attempts,
                backoff_multiplier=config.retry.backoff_multiplier,
                backoff_max=config.retry.backoff_max,
            ),
        )

    def execute(self, plan: Plan, state: RemoteState, cancel_event: Optional[threading.Event] = None) -> ApplyResult:
        """
        Apply plan operations and update state as each one succeeds.

        Args:
            plan: Plan from Planner.plan
            state: Remote state, updated in place
            cancel_event: Once set, no new operations start

        Returns:
            ApplyResult with one entry per plan operation, in plan order
        """
        cancel_event = cancel_event or threading.Event()
        results: Dict[str, OperationResult] = {}

        for op in plan.operations:
            if not op.is_change:
                results[op.address] = OperationResult(address=op.address, action=op.action, status=OperationStatus.UNCHANGED)

        changes = [op for op in plan.operations if op.is_change and op.action != Action.DELETE]
        deletes = [op for op in plan.operations if op.action == Action.DELETE]
        logger.info(f"Applying {len(changes)} changes and {len(deletes)} deletes (concurrency {self.max_concurrency})")

        known = {op.address for op in plan.operations}
        for phase in (changes, deletes):
            if phase:
                self._run_phase(phase, known, state, results, cancel_event)

        result = ApplyResult(
            results=[results[op.address] for op in plan.operations],
            cancelled=cancel_event.is_set(),
        )
        counts = result.counts()
        logger.info(
            f"Apply complete: {counts['applied']} applied, {counts['failed']} failed, "
            f"{counts['blocked']} blocked, {counts['cancelled']} cancelled, {counts['unchanged']} unchanged"
        )
        return result

    def _run_phase(
        self,
        operations: List[Operation],
        known: set,
        state: RemoteState,
        results: Dict[str, OperationResult],
        cancel_event: threading.Event,
    ) -> None:
        pending = list(operations)
        in_flight: Dict[Future, _Running] = {}
        abandoned = False
        # timed-out workers keep their threads; size the pool so they never
        # hold a slot that max_concurrency grants to a live operation
        pool = ThreadPoolExecutor(max_workers=self.max_concurrency + len(operations), thread_name_prefix="deploygraph")

        try:
            while pending or in_flight:
                if cancel_event.is_set():
                    for op in pending:
                        logger.warning(f"Cancelled before start: {op.address}")
                        results[op.address] = OperationResult(address=op.address, action=op.action, status=OperationStatus.CANCELLED)
                    pending = []
                else:
                    pending = self._dispatch(pending, known, state, results, in_flight, pool)

                if not in_flight:
                    if pending:
                        # Nothing running and nothing ready: upstream can never finish
                        for op in pending:
                            self._block(op, [d for d in op.depends_on if d not in results] or op.depends_on, results)
                        pending = []
                    continue

                done, _ = wait(list(in_flight), timeout=self._wait_timeout(in_flight), return_when=FIRST_COMPLETED)
                for future in done:
                    running = in_flight.pop(future)
                    self._complete(running, future.result(), state, results)
                abandoned = self._expire(in_flight, results) or abandoned
        finally:
            pool.shutdown(wait=not abandoned, cancel_futures=True)

    def _dispatch(
        self,
        pending: List[Operation],
        known: set,
        state: RemoteState,
        results: Dict[str, OperationResult],
        in_flight: Dict[Future, _Running],
        pool: ThreadPoolExecutor,
    ) -> List[Operation]:
        """Block or submit what can be decided now; return what still waits."""
        still_pending = []
        for op in pending:
            upstream = [address for address in op.depends_on if address in known]
            failed = [address for address in upstream if address in results and results[address].status in FAILED_STATUSES]
            if failed:
                self._block(op, failed, results)
                continue

            ready = all(address in results and results[address].status in SUCCESS_STATUSES for address in upstream)
            if not ready or len(in_flight) >= self.max_concurrency:
                still_pending.append(op)
                continue

            try:
                properties = self._resolve_properties(op, state)
            except ReferenceResolutionError as e:
                logger.error(f"Failed {op.action.value} {op.address}: {e}")
                results[op.address] = OperationResult(
                    address=op.address, action=op.action, status=OperationStatus.FAILED,
                    error=str(e), error_type=type(e).__name__,
                )
                continue

            logger.debug(f"Dispatching {op.action.value} {op.address}")
            running = _Running(operation=op, submitted=time.monotonic())
            in_flight[pool.submit(self._perform, running, properties)] = running
        return still_pending

    def _block(self, op: Operation, upstream: List[str], results: Dict[str, OperationResult]) -> None:
        error = BlockedError(op.address, upstream)
        logger.warning(str(error))
        results[op.address] = OperationResult(
            address=op.address, action=op.action, status=OperationStatus.BLOCKED,
            error=str(error), error_type=type(error).__name__,
        )

    def _resolve_properties(self, op: Operation, state: RemoteState) -> Optional[Dict[str, Any]]:
        """Desired properties with references replaced by current state values."""
        if op.action == Action.DELETE or op.node is None:
            return None

        def resolve(value: Any) -> Any:
            if isinstance(value, Reference):
                observed = state.get(value.target.address)
                if observed is None:
                    raise ReferenceResolutionError(op.address, value.target.address, "target not present in state")
                found, resolved = lookup_path(observed.attributes, value.attribute)
                if not found:
                    raise ReferenceResolutionError(
                        op.address, value.target.address, f"attribute '{value.attribute}' not available"
                    )
                return copy.deepcopy(resolved)
            if isinstance(value, dict):
                return {key: resolve(item) for key, item in value.items()}
            if isinstance(value, list):
                return [resolve(item) for item in value]
            return value

        return resolve(op.node.properties)

    def _perform(self, running: _Running, properties: Optional[Dict[str, Any]]) -> _Outcome:
        """Worker thread body; never raises."""
        running.started = time.monotonic()
        op = running.operation
        resource_id = op.resource_id
        attempts = 0

        def call() -> Optional[Dict[str, Any]]:
            nonlocal attempts
            attempts += 1
            if op.action == Action.DELETE:
                self.provider.delete(resource_id)
                return None
            if op.action == Action.REPLACE:
                self.provider.delete(resource_id)
            return self.provider.apply(resource_id, properties)

        try:
            attributes = self.retrying.copy()(call)
            return _Outcome(attributes=attributes, error=None, attempts=attempts)
        except ProviderError as e:
            return _Outcome(attributes=None, error=e, attempts=attempts)
        except Exception as e:
            # Client bugs count as fatal for this operation only
            wrapped = FatalProviderError(f"{type(e).__name__}: {e}")
            wrapped.__cause__ = e
            return _Outcome(attributes=None, error=wrapped, attempts=attempts)

    def _complete(self, running: _Running, outcome: _Outcome, state: RemoteState, results: Dict[str, OperationResult]) -> None:
        op = running.operation
        duration = time.monotonic() - (running.started or running.submitted)

        if outcome.error is not None:
            logger.error(f"Failed {op.action.value} {op.address} after {outcome.attempts} attempt(s): {outcome.error}")
            results[op.address] = OperationResult(
                address=op.address, action=op.action, status=OperationStatus.FAILED,
                error=str(outcome.error), error_type=type(outcome.error).__name__,
                attempts=outcome.attempts, duration_seconds=duration,
            )
            return

        if op.action == Action.DELETE:
            state.remove(op.address)
        else:
            state.put(ObservedResource(
                type=op.resource_type,
                name=op.name,
                attributes=strip_sensitive(outcome.attributes or {}, op.node),
                dependencies=list(op.resource_dependencies),
            ))

        logger.info(f"Applied {op.action.value} {op.address} ({duration:.2f}s)")
        results[op.address] = OperationResult(
            address=op.address, action=op.action, status=OperationStatus.APPLIED,
            attempts=outcome.attempts, duration_seconds=duration,
        )

    def _wait_timeout(self, in_flight: Dict[Future, _Running]) -> Optional[float]:
        if self.operation_timeout is None:
            return None
        now = time.monotonic()
        deadlines = [running.started + self.operation_timeout for running in in_flight.values() if running.started is not None]
        if len(deadlines) < len(in_flight):
            deadlines.append(now + QUEUE_POLL_INTERVAL)
        return max(min(deadlines) - now, 0.0)

    def _expire(self, in_flight: Dict[Future, _Running], results: Dict[str, OperationResult]) -> bool:
        """Fail operations past their deadline; their late results are discarded."""
        if self.operation_timeout is None:
            return False
        now = time.monotonic()
        expired = [
            future for future, running in in_flight.items()
            if running.started is not None and now - running.started >= self.operation_timeout
        ]
        for future in expired:
            op = in_flight.pop(future).operation
            future.cancel()
            error = OperationTimeoutError(f"{op.action.value} {op.address} exceeded {self.operation_timeout}s")
            logger.error(str(error))
            results[op.address] = OperationResult(
                address=op.address, action=op.action, status=OperationStatus.FAILED,
                error=str(error), error_type=type(error).__name__,
                duration_seconds=self.operation_timeout,
            )
        return bool(expired)


def strip_sensitive(attributes: Dict[str, Any], node: Optional[ResourceNode]) -> Dict[str, Any]:
    """Copy of attributes without the node's sensitive paths."""
    cleaned = copy.deepcopy(attributes)
    if node is None:
        return cleaned
    for path in node.sensitive_paths:
        parts = path.split(".")
        parent = cleaned
        for part in parts[:-1]:
            parent = parent.get(part) if isinstance(parent, dict) else None
            if parent is None:
                break
        if isinstance(parent, dict):
            parent.pop(parts[-1], None)
    return cleaned
