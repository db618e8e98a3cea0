"""Integration tests for table ingestion and configuration storage.

These tests verify that delimited files load with stable row indices,
that configurations survive a save/load cycle through the store and
mapping files, and that the moderated dataset is written to disk.
"""

from pathlib import Path

import pandas as pd
import pytest

from screeneval.core.errors import TableLoadError
from screeneval.core.models import ModerationDecision
from screeneval.evaluation.engine import evaluate
from screeneval.export.moderated import write_moderated_csv
from screeneval.io.table import read_table, table_from_dataframe
from screeneval.persistence.compat import import_mapping, load_session, snapshot
from screeneval.persistence.store import ConfigStore, read_configuration, write_configuration

CSV = (
    "Title,Human RCT,RCT,RCT Probability\n"
    "a,Include,yes,0.9\n"
    "b,Exclude,yes,\n"
    "\n"
    "c,Include,no,0.2\n"
)


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    path = tmp_path / "scored.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


@pytest.mark.integration
class TestReadTable:
    """Tests for CSV/TSV ingestion."""

    def test_read_csv(self, csv_path: Path) -> None:
        """Test header order, blank-line skipping and text cells."""
        table = read_table(csv_path)
        assert table.header == ["Title", "Human RCT", "RCT", "RCT Probability"]
        assert table.row_count == 3
        assert table.rows[1]["RCT Probability"] == ""
        assert table.rows[2]["Title"] == "c"
        assert table.rows[0]["RCT Probability"] == "0.9"

    def test_read_tsv(self, tmp_path: Path) -> None:
        """Test that .tsv files are tab separated."""
        path = tmp_path / "scored.tsv"
        path.write_text("A\tA Probability\nyes\t0.7\n", encoding="utf-8")
        table = read_table(path)
        assert table.header == ["A", "A Probability"]
        assert table.rows[0]["A"] == "yes"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises a load error."""
        with pytest.raises(TableLoadError):
            read_table(tmp_path / "nope.csv")

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that an empty file raises a load error."""
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(TableLoadError):
            read_table(path)

    def test_from_dataframe_missing_values(self) -> None:
        """Test that NaN cells become None."""
        df = pd.DataFrame({"A": ["yes", None], "A Probability": [0.5, float("nan")]})
        table = table_from_dataframe(df)
        assert table.rows[1]["A"] is None
        assert table.rows[1]["A Probability"] is None


@pytest.mark.integration
class TestConfigStore:
    """Tests for the file-backed configuration store."""

    def test_save_and_restore(self, tmp_path: Path, paired_table, paired_session) -> None:
        """Test that a stored configuration restores onto the same table."""
        paired_session.set_moderation("RCT", 0, ModerationDecision.HUMAN)
        store = ConfigStore(tmp_path / "configs")
        store.save("last", snapshot(paired_session))
        assert store.names() == ["last"]
        session, restored = load_session(paired_table, store.load("last"))
        assert restored
        assert evaluate(paired_table, session) == evaluate(paired_table, paired_session)

    def test_missing_and_corrupt_entries(self, tmp_path: Path) -> None:
        """Test that absent and unreadable entries load as None."""
        store = ConfigStore(tmp_path / "configs")
        assert store.load("missing") is None
        (tmp_path / "configs" / "broken.json").write_text("{not json", encoding="utf-8")
        assert store.load("broken") is None
        assert not store.delete("missing")

    def test_delete(self, tmp_path: Path, paired_session) -> None:
        """Test removing a stored configuration."""
        store = ConfigStore(tmp_path / "configs")
        store.save("run/1", snapshot(paired_session))
        assert store.names() == ["run_1"]
        assert store.delete("run/1")
        assert store.names() == []

    @pytest.mark.parametrize("suffix", [".json", ".yaml"])
    def test_mapping_file_round_trip(self, tmp_path: Path, paired_session, suffix: str) -> None:
        """Test writing and reading mapping files in both formats."""
        path = tmp_path / f"mapping{suffix}"
        config = snapshot(paired_session)
        write_configuration(path, config)
        assert read_configuration(path) == config


@pytest.mark.integration
def test_write_moderated_csv(tmp_path: Path, design_table, design_session) -> None:
    """Test that the moderated dataset is written with the count in its name."""
    design_session.set_moderation("Design", 1, ModerationDecision.LLM_CORRECT)
    path = write_moderated_csv(design_table, design_session, tmp_path / "out", "Eval")
    assert path.name == "Eval_moderated_1.csv"
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert df["Design Moderation"].tolist()[1] == "Corrected to LLM"
    assert df["Design Final Include"].tolist() == ["", "1", "", "", ""]


HAND_WRITTEN_MAPPING = """\
signature:
  pairs:
    - label_column: RCT
      probability_column: RCT Probability
mapping:
  RCT:
    included: true
    human_column: Human RCT
    human_value_map:
      Include: include
      Exclude: exclude
    llm_value_map:
      yes: include
      maybe: include
      no: exclude
      1: include
"""


@pytest.mark.integration
class TestHandWrittenMapping:
    """Tests for mapping files edited by reviewers."""

    def test_unquoted_vocabulary_keys(self, tmp_path: Path) -> None:
        """Test that unquoted yes/no keys stay labels rather than booleans."""
        path = tmp_path / "mapping.yaml"
        path.write_text(HAND_WRITTEN_MAPPING, encoding="utf-8")
        config = read_configuration(path)
        rct = config.mapping["RCT"]
        assert rct.included is True
        assert set(rct.llm_value_map) == {"yes", "maybe", "no", "1"}
        assert rct.llm_value_map["no"].value == "exclude"

    def test_applies_to_session(self, tmp_path: Path, csv_path: Path) -> None:
        """Test that a hand-written mapping makes the table scorable."""
        path = tmp_path / "mapping.yaml"
        path.write_text(HAND_WRITTEN_MAPPING, encoding="utf-8")
        table = read_table(csv_path)
        session, _ = load_session(table, None)
        import_mapping(session, read_configuration(path))
        assert session.validate(table.rows).valid
        m = evaluate(table, session).confusion["RCT"]
        assert (m.tp, m.tn, m.fp, m.fn) == (2, 0, 1, 0)
