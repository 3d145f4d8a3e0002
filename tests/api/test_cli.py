"""Tests for the impact-engine CLI (Click commands)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from impact_engine.api.cli import cli
from impact_engine.domain.exceptions import BackendUnavailableError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, chain_file):
    """Run a command against the chain graph snapshot."""

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, ["--graph-file", str(chain_file), *args], **kwargs)

    return _invoke


class TestCliVersion:
    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "impact-engine" in result.output
        assert "1.0.0" in result.output


class TestImpactCommand:
    def test_json(self, invoke):
        result = invoke("impact", "--unit", "A", "--depth", "2", "--format", "json")
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [(r["affected_unit"], r["depth"]) for r in rows] == [("B", 1), ("C", 2)]
        assert rows[1]["path_fields"] == ["F1", "F2"]

    def test_summary_is_default(self, invoke):
        result = invoke("impact", "-u", "A", "-d", "2")
        assert result.exit_code == 0
        assert "Impact Analysis Summary" in result.stdout
        assert "Total Affected Units: 2" in result.stdout
        assert "Maximum Impact Depth: 2" in result.stdout
        assert "Analyzing impact of unit: A" in result.stderr

    def test_csv(self, invoke):
        result = invoke("impact", "-u", "A", "-f", "csv")
        assert result.exit_code == 0
        lines = result.stdout.strip().splitlines()
        assert lines[0].startswith("Source Unit,Source Output Field,Affected Unit")
        assert lines[1] == "A,F1,B,F2,1,F1"

    def test_field(self, invoke):
        result = invoke("impact", "--field", "F1", "-d", "1", "-f", "json")
        assert result.exit_code == 0
        assert [r["affected_unit"] for r in json.loads(result.stdout)] == ["B"]

    @pytest.mark.filterwarnings("error:.*get_text_stream:DeprecationWarning")
    def test_stdin_field(self, invoke):
        result = invoke("impact", "--stdin", "-d", "1", "-f", "json", input="F1\n")
        assert result.exit_code == 0
        assert [r["source_unit"] for r in json.loads(result.stdout)] == ["A"]

    def test_empty_stdin(self, invoke):
        result = invoke("impact", "--stdin", input="")
        assert result.exit_code == 1
        assert "No input received from stdin" in result.stderr

    def test_identifier_required(self, invoke):
        result = invoke("impact")
        assert result.exit_code == 1
        assert "Either --unit, --field, or --stdin must be provided" in result.stderr

    def test_invalid_depth(self, invoke):
        result = invoke("impact", "-u", "A", "-d", "0")
        assert result.exit_code == 1
        assert "depth must be a positive integer" in result.stderr

    def test_unknown_unit_is_empty(self, invoke):
        result = invoke("impact", "-u", "NOPE", "-f", "json")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []


class TestDependenciesCommand:
    def test_upstream(self, invoke):
        result = invoke("dependencies", "-u", "C", "-d", "2", "-f", "json")
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert [(r["affected_unit"], r["depth"]) for r in rows] == [("B", 1), ("A", 2)]


class TestPathsCommand:
    def test_shortest_json(self, invoke):
        result = invoke("paths", "-s", "A", "-t", "C", "-d", "3", "-p", "shortest", "-f", "json")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert len(payload["paths"]) == 1
        assert payload["paths"][0]["length"] == 2
        assert payload["paths"][0]["description"] == "A --[F1]--> B --[F2]--> C"
        assert payload["summary"]["total_paths"] == 1

    def test_summary(self, invoke):
        result = invoke("paths", "--source", "A", "--target", "C")
        assert result.exit_code == 0
        assert "Total Paths Found: 1" in result.stdout
        assert "1. Length 2: A --[F1]--> B --[F2]--> C" in result.stdout

    def test_same_source_and_target(self, invoke):
        result = invoke("paths", "-s", "A", "-t", "A")
        assert result.exit_code == 1
        assert "must be different" in result.stderr

    def test_unknown_strategy(self, invoke):
        result = invoke("paths", "-s", "A", "-t", "C", "--strategy", "widest")
        assert result.exit_code == 1
        assert "path-type" in result.stderr

    def test_source_required(self, invoke):
        result = invoke("paths", "-t", "C")
        assert result.exit_code == 2


class TestCriticalFieldsCommand:
    def test_csv(self, invoke):
        result = invoke("critical-fields", "-f", "csv")
        assert result.exit_code == 0
        lines = result.stdout.strip().splitlines()
        assert lines[0] == "Field Name,Producer Count,Consumer Count,Impact Ratio,Total Connections"
        assert lines[1:] == ["F1,1,1,1.00,2", "F2,1,1,1.00,2"]

    def test_json(self, invoke):
        result = invoke("critical-fields", "--sort-by", "ratio", "-f", "json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [f["field"] for f in payload["fields"]] == ["F1", "F2"]
        assert payload["fields"][0]["risk"] == "LOW"
        assert payload["summary"]["distribution"]["total_fields"] == 2

    def test_summary(self, invoke):
        result = invoke("critical-fields")
        assert result.exit_code == 0
        assert "Total Analyzed Fields: 2" in result.stdout
        assert "F1: LOW RISK (1 affected units)" in result.stdout

    def test_negative_min_consumers(self, invoke):
        result = invoke("critical-fields", "-m", "-1")
        assert result.exit_code == 1

    def test_unknown_sort_key(self, invoke):
        result = invoke("critical-fields", "-s", "popularity")
        assert result.exit_code == 1
        assert "sort-by" in result.stderr


class TestSummaryCommand:
    def test_markdown_is_default(self, invoke):
        result = invoke("summary")
        assert result.exit_code == 0
        assert "# System Impact Analysis Report" in result.stdout
        assert "**System Fragility: LOW**" in result.stdout
        assert "## Connectivity Analysis" in result.stdout

    def test_json(self, invoke):
        result = invoke("summary", "-f", "json", "--no-connectivity")
        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["stats"]["total_units"] == 3
        assert report["stats"]["total_edges"] == 6
        assert report["connectivity"] is None
        assert report["risk"]["fragility"] == "LOW"

    def test_text_without_distribution(self, invoke):
        result = invoke("summary", "-f", "text", "--no-distribution")
        assert result.exit_code == 0
        assert "SYSTEM IMPACT ANALYSIS REPORT" in result.stdout
        assert "FIELD DISTRIBUTION" not in result.stdout

    def test_invalid_top_count(self, invoke):
        result = invoke("summary", "-t", "0")
        assert result.exit_code == 1


class TestBackendErrors:
    def test_memory_backend_without_snapshot(self, runner):
        result = runner.invoke(cli, ["--backend", "memory", "summary"])
        assert result.exit_code == 1
        assert "requires a graph snapshot" in result.stderr

    def test_missing_snapshot(self, runner, tmp_path):
        result = runner.invoke(cli, ["--graph-file", str(tmp_path / "absent.json"), "summary"])
        assert result.exit_code == 1
        assert "not found" in result.stderr

    @patch("impact_engine.api.cli.create_container")
    def test_backend_unavailable(self, mock_create, runner):
        container = MagicMock()
        container.__enter__.return_value = container
        container.__exit__.return_value = False
        container.max_workers = 1
        container.graph.match_chains.side_effect = BackendUnavailableError(
            "Failed to connect to Neo4j at bolt://localhost:7687"
        )
        mock_create.return_value = container

        result = runner.invoke(cli, ["impact", "-u", "A"])
        assert result.exit_code == 1
        assert "Error: Failed to connect to Neo4j" in result.stderr
        container.__exit__.assert_called_once()
