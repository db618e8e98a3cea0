"""Unit tests for configuration compatibility, restore and import."""

import pytest

from screeneval.core.errors import IncompatibleConfigurationError, MappingLockedError
from screeneval.core.models import Decision, FilterOperator, ModerationDecision
from screeneval.evaluation.engine import evaluate
from screeneval.persistence.compat import (
    build_signature,
    compatibility_problem,
    import_mapping,
    is_compatible,
    load_session,
    restore_session,
    snapshot,
)
from screeneval.persistence.models import PersistedConfiguration


class TestSignature:
    """Tests for configuration signatures."""

    def test_pairs_sorted_and_manual_excluded(self, paired_session) -> None:
        """Test that only discovered identities are recorded, sorted."""
        paired_session.add_manual_criterion("Year")
        sig = build_signature(list(paired_session.criteria.values()), paired_session.header)
        assert [p.sort_key for p in sig.pairs] == [
            "Adults|Adults Probability",
            "RCT|RCT Probability",
        ]

    def test_snapshot_captures_state(self, paired_session) -> None:
        """Test that a snapshot carries mapping, thresholds, filters and moderation."""
        paired_session.set_threshold("RCT", 0.7)
        paired_session.set_filter("Adults", "Year", FilterOperator.GT, "2019")
        paired_session.set_moderation("RCT", 2, ModerationDecision.HUMAN)
        snap = snapshot(paired_session)
        assert snap.thresholds["RCT"].yes_maybe_min_prob == 0.7
        assert snap.filters["Adults"].column == "Year"
        assert snap.moderation == {"RCT": {2: ModerationDecision.HUMAN}}
        assert snap.mapping["RCT"].human_column == "Human RCT"


class TestRestore:
    """Tests for all-or-nothing restore."""

    def test_round_trip_same_metrics(self, paired_table, paired_session) -> None:
        """Test that a restored session scores identically."""
        paired_session.set_threshold("Adults", no_min_prob=0.1)
        paired_session.set_moderation("Adults", 3, ModerationDecision.LLM_CORRECT)
        expected = evaluate(paired_table, paired_session)
        restored = restore_session(paired_table, snapshot(paired_session))
        assert evaluate(paired_table, restored) == expected

    def test_changed_pairs_incompatible(self, paired_table, paired_session, table_factory) -> None:
        """Test that a different criterion set is rejected."""
        persisted = snapshot(paired_session)
        header = [h for h in paired_table.header if not h.startswith("Adults")]
        other = table_factory(header, [])
        assert not is_compatible(persisted, other.header, [])
        with pytest.raises(IncompatibleConfigurationError):
            restore_session(other, persisted)

    def test_missing_human_column_incompatible(self, paired_session, table_factory) -> None:
        """Test that an included criterion's human column must exist."""
        persisted = snapshot(paired_session)
        header = ["RCT", "RCT Probability", "Adults", "Adults Probability", "Human RCT"]
        table = table_factory(header, [("yes", "0.9", "no", "0.1", "Include")])
        session, restored = load_session(table, persisted)
        assert not restored
        assert session.config("Adults").human_column is None

    def test_missing_manual_column_incompatible(self, paired_session, paired_table) -> None:
        """Test that manual criteria need their column."""
        persisted = snapshot(paired_session)
        persisted.manual_criteria.append("Gone")
        problem = compatibility_problem(persisted, paired_table.header, list(paired_session.criteria.values()))
        assert problem == "manual criterion column 'Gone' is missing"

    def test_moderation_outside_table_dropped(self, paired_table, paired_session, table_factory) -> None:
        """Test that moderation entries beyond the row count are discarded."""
        paired_session.set_moderation("RCT", 5, ModerationDecision.HUMAN)
        paired_session.set_moderation("RCT", 0, ModerationDecision.HUMAN)
        shorter = table_factory(paired_table.header, [tuple(r.values()) for r in paired_table.rows[:3]])
        restored = restore_session(shorter, snapshot(paired_session))
        assert restored.moderation == {"RCT": {0: ModerationDecision.HUMAN}}

    def test_no_saved_configuration(self, paired_table) -> None:
        """Test that nothing saved means a fresh session."""
        session, restored = load_session(paired_table, None)
        assert not restored
        assert session.config("RCT").human_column is None


class TestImport:
    """Tests for best-effort import."""

    def test_partial_import(self, paired_table, paired_session) -> None:
        """Test that known ids apply, unknown ids are skipped and others excluded."""
        exported = snapshot(paired_session)
        exported.mapping["Ghost"] = exported.mapping["RCT"].model_copy()
        del exported.mapping["Adults"]
        fresh, _ = load_session(paired_table, None)
        report = import_mapping(fresh, exported)
        assert report.applied == ["RCT"]
        assert report.skipped == ["Ghost"]
        assert report.skipped_count == 1
        assert report.excluded == ["Adults"]
        assert fresh.config("RCT").llm_value_map["unsure"] is Decision.EXCLUDE
        assert not fresh.config("Adults").included

    def test_import_clears_missing_human_column(self, paired_table, paired_session) -> None:
        """Test that a human column absent from the table is cleared."""
        exported = snapshot(paired_session)
        exported.mapping["RCT"].human_column = "Old Human"
        fresh, _ = load_session(paired_table, None)
        report = import_mapping(fresh, exported)
        assert report.cleared_human_columns == ["RCT"]
        assert fresh.config("RCT").human_column is None

    def test_import_reports_identity_conflicts(self, paired_table, paired_session) -> None:
        """Test that the live identity wins when the probability column differs."""
        exported = snapshot(paired_session)
        exported.signature.pairs[0].probability_column = "Adults Score"
        fresh, _ = load_session(paired_table, None)
        report = import_mapping(fresh, exported)
        assert report.identity_conflicts == ["Adults"]
        assert fresh.criterion("Adults").probability_column == "Adults Probability"

    def test_import_requires_unlocked_mapping(self, paired_table, paired_session) -> None:
        """Test that a confirmed session rejects imports."""
        paired_session.confirm(paired_table.rows)
        with pytest.raises(MappingLockedError):
            import_mapping(paired_session, PersistedConfiguration.model_validate({"signature": {}}))
