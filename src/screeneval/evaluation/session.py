"""Reviewer session state.

The session owns everything the reviewer edits: criteria, mappings,
thresholds, filters, moderation verdicts and the subset of criteria
selected for the correlation view.  The engine never mutates it; it is
passed by reference to :func:`screeneval.evaluation.engine.evaluate`.

Mapping edits (inclusion, human column, value maps) are locked once the
mapping has been confirmed; call :meth:`EvaluationSession.reopen` to
remap.  Thresholds, filters and moderation stay editable.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config.settings import settings
from ..core.errors import MappingInvalidError, MappingLockedError, UnknownCriterionError
from ..core.models import (
    Criterion,
    CriterionConfig,
    Decision,
    FilterOperator,
    IngestedTable,
    MappingValidation,
    ModerationDecision,
    RowFilter,
    Thresholds,
)
from ..utils.logging import get_logger
from .discovery import detect_criteria, human_column_options, manual_criterion, merge_criteria
from .mapping import validate_mapping
from .moderation import toggle_moderation

logger = get_logger(__name__)


def default_thresholds() -> Thresholds:
    return Thresholds(
        yes_maybe_min_prob=settings.default_yes_maybe_min_prob,
        no_min_prob=settings.default_no_min_prob,
    )


class EvaluationSession:
    """Mutable evaluation state for one loaded table."""

    def __init__(self, header: Sequence[str], row_count: int, criteria: Sequence[Criterion] = ()) -> None:
        self.header: List[str] = list(header)
        self.row_count = row_count
        self.criteria: Dict[str, Criterion] = {}
        self.configs: Dict[str, CriterionConfig] = {}
        self.thresholds: Dict[str, Thresholds] = {}
        self.filters: Dict[str, RowFilter] = {}
        self.moderation: Dict[str, Dict[int, ModerationDecision]] = {}
        self.selected: Dict[str, bool] = {}
        self.confirmed = False
        for crit in criteria:
            self._register(crit)

    @classmethod
    def from_table(cls, table: IngestedTable, suffix: Optional[str] = None) -> "EvaluationSession":
        """Create a fresh session with the criteria discovered in ``table``."""
        return cls(table.header, table.row_count, detect_criteria(table.header, suffix))

    # ------------------------------------------------------------------
    # Criteria
    # ------------------------------------------------------------------

    def _register(self, crit: Criterion) -> None:
        self.criteria[crit.criterion_id] = crit
        self.configs.setdefault(crit.criterion_id, CriterionConfig())
        self.thresholds.setdefault(crit.criterion_id, default_thresholds())
        self.selected.setdefault(crit.criterion_id, True)

    def criterion(self, criterion_id: str) -> Criterion:
        try:
            return self.criteria[criterion_id]
        except KeyError:
            raise UnknownCriterionError(criterion_id) from None

    def config(self, criterion_id: str) -> CriterionConfig:
        self.criterion(criterion_id)
        return self.configs[criterion_id]

    def threshold(self, criterion_id: str) -> Thresholds:
        self.criterion(criterion_id)
        return self.thresholds.setdefault(criterion_id, default_thresholds())

    def included_criteria(self) -> List[Criterion]:
        """Criteria taking part in validation and aggregation, in order."""
        return [c for c in self.criteria.values() if self.configs[c.criterion_id].included]

    def human_column_options(self) -> List[str]:
        return human_column_options(self.header, list(self.criteria.values()))

    def add_manual_criterion(self, column: str, display_name: Optional[str] = None) -> Criterion:
        """Designate ``column`` as a label-only criterion.

        If a criterion with that id already exists its identity is kept and
        it is only marked as included again.
        """
        if column not in self.header:
            raise ValueError(f"Column {column!r} is not in the table header")
        self.require_editable()
        merged = merge_criteria(list(self.criteria.values()), [manual_criterion(column, display_name)])
        for crit in merged:
            if crit.criterion_id not in self.criteria:
                self._register(crit)
                logger.info(f"Added manual criterion {column!r}")
        self.configs[column].included = True
        return self.criteria[column]

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def require_editable(self) -> None:
        if self.confirmed:
            raise MappingLockedError("Mapping is confirmed; reopen the session to remap")

    def set_included(self, criterion_id: str, included: bool) -> None:
        self.require_editable()
        self.config(criterion_id).included = included

    def set_human_column(self, criterion_id: str, column: Optional[str]) -> None:
        """Choose the ground-truth column; the human value map is reset."""
        self.require_editable()
        if column is not None and column not in self.header:
            raise ValueError(f"Column {column!r} is not in the table header")
        cfg = self.config(criterion_id)
        cfg.human_column = column
        cfg.human_value_map = {}

    def set_human_value(self, criterion_id: str, value: str, decision: Optional[Decision]) -> None:
        self.require_editable()
        _set_map_entry(self.config(criterion_id).human_value_map, value, decision)

    def set_llm_value(self, criterion_id: str, value: str, decision: Optional[Decision]) -> None:
        self.require_editable()
        _set_map_entry(self.config(criterion_id).llm_value_map, value, decision)

    def validate(self, rows: Sequence[Mapping[str, Any]]) -> MappingValidation:
        return validate_mapping(rows, list(self.criteria.values()), self.configs)

    def confirm(self, rows: Sequence[Mapping[str, Any]]) -> MappingValidation:
        """Freeze the mapping; raises :class:`MappingInvalidError` if it is not valid."""
        validation = self.validate(rows)
        if not validation.valid:
            logger.warning(f"Refusing to confirm mapping with {len(validation.issues)} issue(s)")
            raise MappingInvalidError(validation)
        self.confirmed = True
        return validation

    def reopen(self) -> None:
        self.confirmed = False

    # ------------------------------------------------------------------
    # Thresholds and filters
    # ------------------------------------------------------------------

    def set_threshold(
        self,
        criterion_id: str,
        yes_maybe_min_prob: Optional[float] = None,
        no_min_prob: Optional[float] = None,
    ) -> Thresholds:
        """Update one or both thresholds, clamped to ``[0, 1]``."""
        current = self.threshold(criterion_id)
        updated = Thresholds(
            yes_maybe_min_prob=_clamp(yes_maybe_min_prob) if yes_maybe_min_prob is not None else current.yes_maybe_min_prob,
            no_min_prob=_clamp(no_min_prob) if no_min_prob is not None else current.no_min_prob,
        )
        self.thresholds[criterion_id] = updated
        return updated

    def set_filter(
        self,
        criterion_id: str,
        column: Optional[str] = None,
        operator: Optional[FilterOperator] = None,
        value: Optional[str] = None,
        enabled: bool = True,
    ) -> RowFilter:
        self.criterion(criterion_id)
        row_filter = RowFilter(
            enabled=enabled,
            column=column,
            operator=FilterOperator(operator) if operator is not None else None,
            value=value,
        )
        self.filters[criterion_id] = row_filter
        return row_filter

    def clear_filter(self, criterion_id: str) -> None:
        self.criterion(criterion_id)
        self.filters.pop(criterion_id, None)

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def set_moderation(
        self,
        criterion_id: str,
        row_index: int,
        decision: ModerationDecision,
    ) -> Optional[ModerationDecision]:
        """Toggle a moderation verdict; returns the verdict now in effect."""
        self.criterion(criterion_id)
        if not 0 <= row_index < self.row_count:
            raise IndexError(f"Row index {row_index} out of range [0, {self.row_count})")
        entries = self.moderation.setdefault(criterion_id, {})
        result = toggle_moderation(entries, row_index, ModerationDecision(decision))
        if not entries:
            del self.moderation[criterion_id]
        return result

    def clear_moderation(self, criterion_id: str, row_index: Optional[int] = None) -> None:
        """Remove one verdict, or all verdicts of a criterion when ``row_index`` is None."""
        self.criterion(criterion_id)
        if row_index is None:
            self.moderation.pop(criterion_id, None)
            return
        entries = self.moderation.get(criterion_id)
        if entries:
            entries.pop(row_index, None)
            if not entries:
                del self.moderation[criterion_id]

    def moderation_for(self, criterion_id: str, row_index: int) -> Optional[ModerationDecision]:
        return self.moderation.get(criterion_id, {}).get(row_index)

    def moderation_count(self, criterion_id: Optional[str] = None) -> int:
        if criterion_id is not None:
            return len(self.moderation.get(criterion_id, {}))
        return sum(len(v) for v in self.moderation.values())

    # ------------------------------------------------------------------
    # Correlation view
    # ------------------------------------------------------------------

    def set_selected(self, criterion_id: str, selected: bool) -> None:
        self.criterion(criterion_id)
        self.selected[criterion_id] = selected

    def selected_criteria(self) -> List[str]:
        """Included criteria chosen for the restricted correlation view."""
        return [c.criterion_id for c in self.included_criteria() if self.selected.get(c.criterion_id, True)]


def _clamp(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Threshold must be a finite number, got {value!r}")
    return max(0.0, min(1.0, value))


def _set_map_entry(value_map: Dict[str, Decision], value: str, decision: Optional[Decision]) -> None:
    if decision is None:
        value_map.pop(value, None)
    else:
        value_map[value] = Decision(decision)
