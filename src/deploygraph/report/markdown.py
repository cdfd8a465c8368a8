"""Markdown report generation from PlanReport."""

import json
from pathlib import Path
from ..contracts.reports import PlanReport
from ..planner.models import Action
from ..utils.errors import DeployGraphError
from ..utils.logging import get_logger

logger = get_logger("report.markdown")


def _cell(value) -> str:
    return json.dumps(value, sort_keys=True, default=str).replace("|", "\\|")


def generate_plan_markdown(report: PlanReport, output_path: Path) -> None:
    """
    Generate markdown report from PlanReport.
    
    Args:
        report: PlanReport from planning
        output_path: Path to output markdown file
        
    Raises:
        DeployGraphError: If file write fails
    """
    summary = report.summary
    sections = []
    
    sections.append("# deploygraph Plan Report")
    sections.append("")
    
    sections.append("## Summary")
    sections.append("")
    sections.append(f"- **Scope:** `{report.scope_id}`")
    sections.append(f"- **Target Scope:** {report.target_scope}")
    for action in Action:
        sections.append(f"- **{action.value}:** {summary.get(action.value, 0)}")
    sections.append("")
    
    if report.parameters:
        sections.append("## Parameters")
        sections.append("")
        sections.append("| Name | Value |")
        sections.append("| --- | --- |")
        for name in sorted(report.parameters):
            sections.append(f"| `{name}` | {_cell(report.parameters[name])} |")
        sections.append("")
    
    sections.append("## Operations")
    sections.append("")
    changed = [op for op in report.operations if op.action != Action.NO_OP]
    if not changed:
        sections.append("No changes.")
        sections.append("")
    for idx, op in enumerate(changed, start=1):
        sections.append(f"### {idx}. {op.action.value}: `{op.address}`")
        sections.append("")
        if op.depends_on:
            sections.append(f"Waits for: {', '.join(f'`{d}`' for d in op.depends_on)}")
            sections.append("")
        if op.changes:
            sections.append("| Property | Before | After | Replace |")
            sections.append("| --- | --- | --- | --- |")
            for change in op.changes:
                if change.sensitive:
                    before, after = "(sensitive)", "(sensitive)"
                else:
                    before = _cell(change.before)
                    after = "(known after apply)" if change.after_unknown else _cell(change.after)
                sections.append(f"| `{change.path}` | {before} | {after} | {'yes' if change.forces_replacement else ''} |")
            sections.append("")
    
    unchanged = [op.address for op in report.operations if op.action == Action.NO_OP]
    if unchanged:
        sections.append("## Unchanged")
        sections.append("")
        for address in unchanged:
            sections.append(f"- `{address}`")
        sections.append("")
    
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("\n".join(sections))
        logger.info(f"Generated markdown report: {output_path}")
    except OSError as e:
        raise DeployGraphError(f"Failed to write markdown report: {e}")
