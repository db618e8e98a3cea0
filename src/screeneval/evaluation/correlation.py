"""Correlation between the error patterns of criteria.

For each unordered pair of criteria the false-positive and
false-negative indicator sequences are correlated four ways
(fp/fp, fn/fn, fp/fn, fn/fp).  Keys follow the
``"{a}-fp_vs_{b}-fn"`` convention used in exports.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .metrics import error_indicators, pearson

_COMBINATIONS: Tuple[Tuple[str, str], ...] = (("fp", "fp"), ("fn", "fn"), ("fp", "fn"), ("fn", "fp"))


def correlation_key(a: str, kind_a: str, b: str, kind_b: str) -> str:
    return f"{a}-{kind_a}_vs_{b}-{kind_b}"


def correlation_table(
    criteria: Sequence[str],
    truth: Mapping[str, Sequence[bool]],
    prediction: Mapping[str, Sequence[bool]],
) -> Dict[str, Optional[float]]:
    """Pearson coefficients for every unordered pair in ``criteria``."""
    vectors: Dict[str, Dict[str, List[int]]] = {}
    for cid in criteria:
        fp, fn = error_indicators(truth[cid], prediction[cid])
        vectors[cid] = {"fp": fp, "fn": fn}
    table: Dict[str, Optional[float]] = {}
    for i, a in enumerate(criteria):
        for b in criteria[i + 1:]:
            for kind_a, kind_b in _COMBINATIONS:
                table[correlation_key(a, kind_a, b, kind_b)] = pearson(vectors[a][kind_a], vectors[b][kind_b])
    return table


def selected_correlations(
    selected: Sequence[str],
    truth: Mapping[str, Sequence[bool]],
    prediction: Mapping[str, Sequence[bool]],
) -> Dict[str, Optional[float]]:
    """Same computation restricted to a reviewer-chosen subset of scored criteria."""
    subset = [cid for cid in selected if cid in truth and cid in prediction]
    return correlation_table(subset, truth, prediction)
