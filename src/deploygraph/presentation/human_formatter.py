"""Human-friendly output formatter - converts plan and apply reports to readable text."""

import json
import os
from typing import Any, List, Optional
from ..contracts.reports import ApplyReport, PlanReport
from ..executor.models import OperationStatus
from ..planner.models import Action, Operation, PropertyChange


def _use_ascii(ascii_mode: Optional[bool] = None) -> bool:
    """Resolve whether to use ASCII output (checked at format time)."""
    if ascii_mode is not None:
        return bool(ascii_mode)
    return os.environ.get("DEPLOYGRAPH_ASCII", "").lower() in ("1", "true", "yes")


def _box(title: str, width: int = 65, ascii_mode: bool = False) -> List[str]:
    """Return box-drawing header lines."""
    b = {"tl": "+", "tr": "+", "h": "-", "v": "|"} if ascii_mode else {"tl": "┌", "tr": "┐", "h": "─", "v": "│"}
    h = b["h"] * (width - 2)
    return [
        b["tl"] + h + b["tr"],
        f"{b['v']} {title:<{width - 4}} {b['v']}",
        ("+" if ascii_mode else "└") + h + ("+" if ascii_mode else "┘"),
        "",
    ]


ACTION_MARKERS = {
    Action.CREATE: "+",
    Action.UPDATE: "~",
    Action.REPLACE: "-/+",
    Action.DELETE: "-",
    Action.NO_OP: " ",
}

STATUS_LABELS = {
    OperationStatus.APPLIED: "[APPLIED]",
    OperationStatus.FAILED: "[FAILED]",
    OperationStatus.BLOCKED: "[BLOCKED]",
    OperationStatus.CANCELLED: "[CANCELLED]",
    OperationStatus.UNCHANGED: "[UNCHANGED]",
}


def _format_value(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _format_change(change: PropertyChange, action: Action, arrow: str) -> str:
    if change.sensitive:
        after = "(sensitive)"
    elif change.after_unknown:
        after = "(known after apply)"
    else:
        after = _format_value(change.after)

    if action == Action.CREATE:
        text = f"{change.path}: {after}"
    else:
        before = "(sensitive)" if change.sensitive else _format_value(change.before)
        text = f"{change.path}: {before} {arrow} {after}"
    if change.forces_replacement:
        text += " # forces replacement"
    return text


def _format_operation(op: Operation, arrow: str, show_unchanged: bool) -> List[str]:
    if op.action == Action.NO_OP and not show_unchanged:
        return []
    lines = [f"  {ACTION_MARKERS[op.action]:<3} {op.address} ({op.action.value})"]
    for change in op.changes:
        lines.append(f"        {_format_change(change, op.action, arrow)}")
    if op.depends_on and op.action != Action.NO_OP:
        lines.append(f"        waits for: {', '.join(op.depends_on)}")
    return lines


def format_summary_line(summary: dict) -> str:
    return (
        f"Plan: {summary.get('create', 0)} to create, {summary.get('update', 0)} to update, "
        f"{summary.get('replace', 0)} to replace, {summary.get('delete', 0)} to delete, "
        f"{summary.get('no-op', 0)} unchanged."
    )


def format_plan(report: PlanReport, ascii_mode: Optional[bool] = None, show_unchanged: bool = False) -> str:
    """Format a PlanReport as a readable change listing.
    If ascii_mode is True (or DEPLOYGRAPH_ASCII=1), use ASCII-only characters.
    """
    ascii_mode = _use_ascii(ascii_mode)
    arrow = "->" if ascii_mode else "→"
    lines = []
    lines.extend(_box("deploygraph Plan", 65, ascii_mode))

    if report.scope_id:
        lines.append(f"Scope: {report.scope_id}")
        lines.append("")

    if not report.has_changes:
        lines.append("No changes. Remote state matches the template.")
        return "\n".join(lines)

    for op in report.operations:
        lines.extend(_format_operation(op, arrow, show_unchanged))
    lines.append("")
    lines.append(format_summary_line(report.summary))
    return "\n".join(lines)


def format_apply(report: ApplyReport, ascii_mode: Optional[bool] = None) -> str:
    """Format an ApplyReport with one status line per resource."""
    ascii_mode = _use_ascii(ascii_mode)
    lines = []
    lines.extend(_box("deploygraph Apply", 65, ascii_mode))

    width = max((len(label) for label in STATUS_LABELS.values()), default=0)
    for result in report.results:
        line = f"{STATUS_LABELS[result.status]:<{width}} {result.action.value:<7} {result.address}"
        if result.attempts > 1:
            line += f" ({result.attempts} attempts)"
        if result.error:
            line += f": {result.error}"
        lines.append(line)

    counts = report.summary
    lines.append("")
    lines.append(
        f"Apply {'cancelled' if report.cancelled else 'complete'}: "
        f"{counts.get('applied', 0)} applied, {counts.get('failed', 0)} failed, "
        f"{counts.get('blocked', 0)} blocked, {counts.get('cancelled', 0)} cancelled, "
        f"{counts.get('unchanged', 0)} unchanged."
    )
    if not report.succeeded:
        lines.append("Completed operations were not rolled back. Fix the failures and run apply again.")
    return "\n".join(lines)


def format_order(addresses: List[str], dependencies: dict) -> str:
    """Numbered topological order with direct dependencies."""
    lines = []
    for idx, address in enumerate(addresses, start=1):
        deps = dependencies.get(address) or []
        suffix = f"  <- {', '.join(deps)}" if deps else ""
        lines.append(f"{idx:>3}. {address}{suffix}")
    return "\n".join(lines)
