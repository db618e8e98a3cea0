"""Integration tests for the command-line interface."""

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from screeneval.cli.main import app

runner = CliRunner()

CSV = (
    "Title,Year,Human,RCT,RCT Probability,Adults,Adults Probability\n"
    "a,2019,Include,yes,0.9,yes,0.8\n"
    "b,2020,Exclude,yes,0.4,no,0.7\n"
    "c,2021,Include,no,0.3,no,0.9\n"
    "d,2022,Exclude,no,0.95,maybe,0.6\n"
)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    """Temporary working directory holding a scored table."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "scored.csv").write_text(CSV, encoding="utf-8")
    return tmp_path


@pytest.mark.integration
class TestCli:
    """End-to-end CLI runs against a small scored table."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Screening Evaluation v" in result.stdout

    def test_criteria(self, workspace: Path) -> None:
        """Test that discovered criteria are listed."""
        result = runner.invoke(app, ["criteria", "scored.csv"])
        assert result.exit_code == 0
        assert "RCT Probability" in result.stdout
        assert "Adults" in result.stdout

    def test_template_then_evaluate(self, workspace: Path) -> None:
        """Test the template, validate and evaluate workflow."""
        result = runner.invoke(app, ["template", "scored.csv", "-o", "mapping.yaml", "--human", "Human"])
        assert result.exit_code == 0
        mapping = yaml.safe_load((workspace / "mapping.yaml").read_text(encoding="utf-8"))
        assert mapping["mapping"]["RCT"]["human_value_map"] == {}

        # Map the human vocabulary by hand
        for cid in ("RCT", "Adults"):
            mapping["mapping"][cid]["human_value_map"] = {"Include": "include", "Exclude": "exclude"}
        (workspace / "mapping.yaml").write_text(yaml.safe_dump(mapping), encoding="utf-8")

        result = runner.invoke(app, ["validate", "scored.csv", "--mapping", "mapping.yaml"])
        assert result.exit_code == 0, result.stdout

        result = runner.invoke(
            app,
            ["evaluate", "scored.csv", "--mapping", "mapping.yaml", "--json", "out/report.json", "--name", "Run"],
        )
        assert result.exit_code == 0, result.stdout
        payload = json.loads((workspace / "out" / "report.json").read_text(encoding="utf-8"))
        assert payload["report_name"] == "Run"
        assert payload["metrics"]["RCT"]["tp"] == 2
        assert payload["metrics"]["RCT"]["tn"] == 2

    def test_invalid_mapping_fails(self, workspace: Path) -> None:
        """Test that evaluating an unmapped table exits with an error."""
        result = runner.invoke(app, ["evaluate", "scored.csv", "--no-save"])
        assert result.exit_code == 1
        assert "Mapping Issues" in result.stdout

    def test_moderate_and_export(self, workspace: Path) -> None:
        """Test that moderation persists between runs and reaches the export."""
        runner.invoke(app, ["template", "scored.csv", "-o", "mapping.yaml", "--human", "Human"])
        mapping = yaml.safe_load((workspace / "mapping.yaml").read_text(encoding="utf-8"))
        for cid in ("RCT", "Adults"):
            mapping["mapping"][cid]["human_value_map"] = {"Include": "include", "Exclude": "exclude"}
        (workspace / "mapping.yaml").write_text(yaml.safe_dump(mapping), encoding="utf-8")
        assert runner.invoke(app, ["evaluate", "scored.csv", "--mapping", "mapping.yaml"]).exit_code == 0

        result = runner.invoke(app, ["moderate", "scored.csv", "Adults", "1", "--decision", "llm_correct"])
        assert result.exit_code == 0, result.stdout
        assert "Moderated decisions: 1" in result.stdout

        result = runner.invoke(app, ["inspect", "scored.csv", "Adults", "tn"])
        assert result.exit_code == 0, result.stdout

        result = runner.invoke(app, ["export-moderated", "scored.csv", "-o", "exports", "--name", "Eval"])
        assert result.exit_code == 0, result.stdout
        assert (workspace / "exports" / "Eval_moderated_1.csv").exists()

    def test_moderate_requires_decision(self, workspace: Path) -> None:
        result = runner.invoke(app, ["moderate", "scored.csv", "RCT", "0"])
        assert result.exit_code == 1

    def test_moderate_unknown_criterion(self, workspace: Path) -> None:
        result = runner.invoke(app, ["moderate", "scored.csv", "Nope", "0", "-d", "human"])
        assert result.exit_code == 1

    def test_hand_written_yaml_mapping(self, workspace: Path) -> None:
        """Test that unquoted yes/no keys in an edited mapping file are honored."""
        (workspace / "mapping.yaml").write_text(
            "signature: {pairs: []}\n"
            "mapping:\n"
            "  RCT:\n"
            "    human_column: Human\n"
            "    human_value_map: {Include: include, Exclude: exclude}\n"
            "    llm_value_map:\n"
            "      yes: include\n"
            "      no: exclude\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["validate", "scored.csv", "--mapping", "mapping.yaml"])
        assert result.exit_code == 0, result.stdout

    def test_malformed_mapping_file(self, workspace: Path) -> None:
        """Test that a mapping file with unknown decisions exits cleanly."""
        (workspace / "mapping.yaml").write_text(
            "signature: {pairs: []}\nmapping:\n  RCT:\n    llm_value_map: {yes: sometimes}\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["evaluate", "scored.csv", "--mapping", "mapping.yaml", "--no-save"])
        assert result.exit_code == 1
        assert "invalid mapping file" in result.stdout
