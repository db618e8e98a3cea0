"""Criterion discovery from table headers.

A criterion is a model label column, optionally paired with a
same-named probability column (label name plus a fixed suffix, by
default ``" Probability"``).  Pairs are discovered automatically; any
other column can be promoted to a label-only criterion by the caller.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..config.settings import settings
from ..core.models import Criterion
from ..utils.logging import get_logger

logger = get_logger(__name__)


def detect_criteria(header: Sequence[str], suffix: Optional[str] = None) -> List[Criterion]:
    """Return the label/probability pairs found in ``header``, in header order."""
    suffix = suffix if suffix is not None else settings.probability_suffix
    columns = set(header)
    criteria: List[Criterion] = []
    seen: set = set()
    for column in header:
        if not suffix or not column.endswith(suffix):
            continue
        label = column[: -len(suffix)]
        if label in columns and label not in seen:
            seen.add(label)
            criteria.append(
                Criterion(
                    criterion_id=label,
                    label_column=label,
                    probability_column=column,
                    display_name=label,
                )
            )
    logger.info(f"Detected {len(criteria)} criteria in {len(header)} columns")
    return criteria


def manual_criterion(column: str, display_name: Optional[str] = None) -> Criterion:
    """Build a label-only criterion for an arbitrary column."""
    return Criterion(
        criterion_id=column,
        label_column=column,
        probability_column=None,
        display_name=display_name or column,
        manual=True,
    )


def merge_criteria(discovered: Sequence[Criterion], manual: Sequence[Criterion]) -> List[Criterion]:
    """Combine discovered and manual criteria without duplicating ids.

    A manual criterion sharing an id with a discovered one never
    replaces it: identity always comes from discovery on the live table.
    """
    merged: Dict[str, Criterion] = {c.criterion_id: c for c in discovered}
    for crit in manual:
        if crit.criterion_id in merged:
            continue
        merged[crit.criterion_id] = crit
    return list(merged.values())


def human_column_options(header: Sequence[str], criteria: Sequence[Criterion]) -> List[str]:
    """Columns eligible as human ground truth (not used by any criterion)."""
    model_columns = set()
    for crit in criteria:
        model_columns.add(crit.label_column)
        if crit.probability_column:
            model_columns.add(crit.probability_column)
    return [h for h in header if h not in model_columns]
