"""Load template documents (YAML or JSON) from disk."""

import json
from pathlib import Path
from typing import Dict, Any
import yaml
from .template_validator import validate_template_structure, get_template_summary
from ..utils.errors import ParseError
from ..utils.logging import get_logger

logger = get_logger("ingest.template_loader")

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")


def load_template(template_path: str) -> Dict[str, Any]:
    """
    Load and validate a template file.
    
    Args:
        template_path: Path to a .yaml, .yml or .json template
        
    Returns:
        Parsed and structurally validated template document
        
    Raises:
        ParseError: If the file cannot be read or is malformed
    """
    path = Path(template_path)
    
    if not path.exists():
        raise ParseError(
            f"Template file not found: {template_path}. "
            "Please check the file path and ensure the file exists."
        )
    
    if not path.is_file():
        raise ParseError(f"Path is not a file: {template_path}. Please provide a template file.")
    
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Error reading template file: {e}. Please check file permissions and encoding.")
    
    data = parse_template_text(text, path.suffix.lower())
    validate_template_structure(data)
    
    summary = get_template_summary(data)
    logger.info(
        f"Loaded template from {template_path} "
        f"(scope: {summary['target_scope']}, "
        f"parameters: {summary['parameter_count']}, "
        f"resources: {summary['resource_count']})"
    )
    return data


def parse_template_text(text: str, suffix: str = ".yaml") -> Dict[str, Any]:
    """Parse template text; JSON for .json files, YAML otherwise."""
    if suffix in JSON_SUFFIXES:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in template file: {e}")
    
    if suffix not in YAML_SUFFIXES:
        logger.debug(f"Unrecognized template suffix '{suffix}', parsing as YAML")
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML in template file: {e}")
