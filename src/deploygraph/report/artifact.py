"""Write machine-readable JSON reports."""

import json
from pathlib import Path
from typing import Union
from pydantic import BaseModel
from ..utils.errors import DeployGraphError
from ..utils.logging import get_logger

logger = get_logger("report.artifact")


def report_to_json(report: BaseModel) -> str:
    """Stable JSON text for a report model."""
    return json.dumps(report.model_dump(mode="json"), indent=2, sort_keys=True, default=str)


def write_json_report(report: BaseModel, output_path: Union[str, Path]) -> Path:
    """
    Write a report model as JSON.
    
    Raises:
        DeployGraphError: If file write fails
    """
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(report_to_json(report))
        logger.debug(f"Written report: {path}")
    except (OSError, TypeError) as e:
        raise DeployGraphError(f"Failed to write report {path}: {e}")
    return path
