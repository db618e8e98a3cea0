"""Label normalization and probability thresholds.

Human and model cells are converted to :class:`Decision` values here.
Human values go through the reviewer's value map only; unmapped human
values count as ``exclude``.  Model values go through the value map,
then a small built-in vocabulary (``yes``/``maybe``/``no``), then the
probability thresholds.  Threshold adjustment is keyed off the *raw*
label text, never the mapped decision, so custom vocabulary values are
never flipped by a probability.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional

from ..core.models import Criterion, CriterionConfig, Decision, Thresholds

_NUMERIC_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def cell_text(value: Any) -> str:
    """Render a cell as text; absent cells become the empty string."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """Parse the leading numeric part of a cell, returning None unless finite.

    ``"0.83"`` and ``" 0.83 (calibrated)"`` both give ``0.83``; ``"n/a"``,
    ``""`` and non-finite values give ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        match = _NUMERIC_PREFIX.match(cell_text(value))
        if not match:
            return None
        num = float(match.group(1))
    return num if math.isfinite(num) else None


def raw_category(raw_label: Any) -> Optional[Decision]:
    """Classify untransformed label text into its vocabulary family.

    ``yes`` and ``maybe`` (any case) belong to the include family, ``no``
    to the exclude family; anything else has no family.
    """
    label = raw_label.lower() if isinstance(raw_label, str) else ""
    if label in ("yes", "maybe"):
        return Decision.INCLUDE
    if label == "no":
        return Decision.EXCLUDE
    return None


def human_decision(raw_value: Any, human_value_map: Mapping[str, Decision]) -> Decision:
    """Map a human cell to a decision; unmapped values default to exclude."""
    mapped = human_value_map.get(cell_text(raw_value).strip())
    return Decision(mapped) if mapped else Decision.EXCLUDE


def base_model_decision(raw_label: Any, llm_value_map: Mapping[str, Decision]) -> Optional[Decision]:
    """Mapped model decision, else the fallback vocabulary, else None (unknown)."""
    text = cell_text(raw_label)
    mapped = llm_value_map.get(text)
    if mapped is not None:
        return Decision(mapped)
    return raw_category(text)


def apply_thresholds(
    base: Optional[Decision],
    probability: Optional[float],
    thresholds: Thresholds,
    raw_label: Any,
) -> Optional[Decision]:
    """Adjust a base decision using the label's probability.

    A ``yes``/``maybe`` label below ``yes_maybe_min_prob`` becomes exclude;
    a ``no`` label below ``no_min_prob`` becomes include.  Without a usable
    probability the base decision stands.
    """
    if probability is None or math.isnan(probability):
        return base
    family = raw_category(cell_text(raw_label))
    if family is Decision.INCLUDE and probability < thresholds.yes_maybe_min_prob:
        return Decision.EXCLUDE
    if family is Decision.EXCLUDE and probability < thresholds.no_min_prob:
        return Decision.INCLUDE
    return base


def model_decision(
    row: Mapping[str, Any],
    criterion: Criterion,
    config: CriterionConfig,
    thresholds: Thresholds,
) -> Decision:
    """Final model decision for one row; unknown resolves to exclude."""
    raw_label = cell_text(row.get(criterion.label_column))
    decision = base_model_decision(raw_label, config.llm_value_map)
    if criterion.probability_column:
        probability = parse_number(row.get(criterion.probability_column))
        decision = apply_thresholds(decision, probability, thresholds, raw_label)
    return decision or Decision.EXCLUDE


def row_human_decision(row: Mapping[str, Any], config: CriterionConfig) -> Decision:
    """Human decision for one row under a criterion's mapping."""
    if not config.human_column:
        return Decision.EXCLUDE
    return human_decision(row.get(config.human_column), config.human_value_map)
