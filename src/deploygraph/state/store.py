"""Persist RemoteState as a JSON file."""

import json
import os
import tempfile
from pathlib import Path
from typing import Union
from pydantic import ValidationError
from .models import RemoteState
from ..utils.errors import StateError
from ..utils.logging import get_logger

logger = get_logger("state.store")

STATE_FORMAT_VERSION = 1


def load_state(state_path: Union[str, Path]) -> RemoteState:
    """
    Load state from a JSON file; a missing file means empty state.
    
    Raises:
        StateError: If the file is unreadable, not JSON, or has the wrong shape
    """
    path = Path(state_path)
    if not path.exists():
        logger.info(f"No state file at {path}, starting from empty state")
        return RemoteState()
    
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise StateError(f"Invalid JSON in state file {path}: {e}")
    except OSError as e:
        raise StateError(f"Error reading state file {path}: {e}")
    
    if not isinstance(data, dict):
        raise StateError(f"State file {path} must contain a JSON object")
    
    version = data.pop("version", None)
    if version != STATE_FORMAT_VERSION:
        raise StateError(f"Unsupported state format version {version!r} in {path} (expected {STATE_FORMAT_VERSION})")
    
    try:
        state = RemoteState(**data)
    except ValidationError as e:
        raise StateError(f"Invalid state file {path}: {e}")
    
    logger.info(f"Loaded state from {path} ({len(state)} resources, serial {state.serial})")
    return state


def save_state(state: RemoteState, state_path: Union[str, Path]) -> None:
    """
    Write state atomically (temp file in the same directory, then rename).
    
    Raises:
        StateError: If the file cannot be written
    """
    path = Path(state_path)
    snapshot = state.snapshot()
    payload = {"version": STATE_FORMAT_VERSION}
    payload.update(snapshot.model_dump())
    
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, sort_keys=True, default=str)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise StateError(f"Failed to write state file {path}: {e}")
    
    logger.info(f"Saved state to {path} ({len(snapshot)} resources, serial {snapshot.serial})")
