"""Tests for template loader."""

import json
import tempfile
from pathlib import Path
import pytest
from deploygraph.ingest.template_loader import load_template, parse_template_text
from deploygraph.ingest.template_validator import validate_template_structure, get_template_summary
from deploygraph.utils.errors import ParseError

YAML_TEMPLATE = """
targetScope: resourceGroup
parameters:
  location:
    type: string
    defaultValue: westeurope
resources:
  - type: Microsoft.Network/virtualNetworks
    name: vnet-a
    location: "[parameters('location')]"
"""


class TestTemplateLoader:
    """Test template file loading."""

    def test_load_yaml_template(self):
        """Test loading a valid YAML template."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(YAML_TEMPLATE)
            temp_path = f.name

        try:
            result = load_template(temp_path)
            assert result["targetScope"] == "resourceGroup"
            assert result["resources"][0]["name"] == "vnet-a"
        finally:
            Path(temp_path).unlink()

    def test_load_json_template(self):
        """Test loading a valid JSON template."""
        data = {"resources": [{"type": "Microsoft.Network/networkSecurityGroups", "name": "nsg-a"}]}
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump(data, f)
            temp_path = f.name

        try:
            assert load_template(temp_path) == data
        finally:
            Path(temp_path).unlink()

    def test_load_missing_file(self):
        """Test loading non-existent file raises error."""
        with pytest.raises(ParseError, match="Template file not found"):
            load_template("nonexistent.yaml")

    def test_load_directory(self, tmp_path):
        """Test loading a directory raises error."""
        with pytest.raises(ParseError, match="not a file"):
            load_template(str(tmp_path))

    def test_load_invalid_json(self):
        """Test loading invalid JSON raises error."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write("invalid json {")
            temp_path = f.name

        try:
            with pytest.raises(ParseError, match="Invalid JSON"):
                load_template(temp_path)
        finally:
            Path(temp_path).unlink()

    def test_load_invalid_yaml(self):
        """Test loading invalid YAML raises error."""
        with pytest.raises(ParseError, match="Invalid YAML"):
            parse_template_text("resources: [unclosed", ".yaml")


class TestTemplateValidator:
    """Test template structure validation."""

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ParseError, match="mapping"):
            validate_template_structure(["not", "a", "mapping"])

    def test_missing_resources(self):
        with pytest.raises(ParseError, match="missing required field: resources"):
            validate_template_structure({"parameters": {}})

    def test_resources_must_be_list(self):
        with pytest.raises(ParseError, match="must be a list"):
            validate_template_structure({"resources": {"a": 1}})

    def test_resource_missing_type(self):
        with pytest.raises(ParseError, match="missing required field: type"):
            validate_template_structure({"resources": [{"name": "x"}]})

    def test_invalid_target_scope(self):
        with pytest.raises(ParseError, match="Invalid targetScope"):
            validate_template_structure({"targetScope": "tenant", "resources": []})

    def test_depends_on_must_be_list(self):
        data = {"resources": [{"type": "Microsoft.Network/virtualNetworks", "name": "v", "dependsOn": "x"}]}
        with pytest.raises(ParseError, match="dependsOn must be a list"):
            validate_template_structure(data)

    def test_unknown_keys_are_tolerated(self):
        """Unknown top-level keys only produce a warning."""
        validate_template_structure({"resources": [], "functions": []})

    def test_summary(self):
        data = {
            "parameters": {"a": {}, "b": {}},
            "resources": [{"type": "t/x", "name": "n"}],
        }
        summary = get_template_summary(data)
        assert summary["parameter_count"] == 2
        assert summary["resource_count"] == 1
        assert summary["target_scope"] == "resourceGroup"
