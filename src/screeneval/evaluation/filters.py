"""Row filter evaluation.

Filters are stored per criterion but applied globally: every enabled,
fully specified filter of every criterion (included or not) is ANDed
together and the result restricts the rows scored for *all* criteria.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Sequence

from ..core.models import FilterOperator, RowFilter
from .labels import cell_text, parse_number


def active_filters(filters: Mapping[str, RowFilter]) -> List[RowFilter]:
    """Pool the enabled filters of all criteria into one list."""
    return [f for f in filters.values() if f is not None and f.is_active]


def row_matches(row: Mapping[str, Any], row_filter: RowFilter) -> bool:
    """Evaluate a single filter against a row."""
    cell = cell_text(row.get(row_filter.column or ""))
    target = row_filter.value or ""
    op = row_filter.operator
    if op in (FilterOperator.CONTAINS, FilterOperator.NCONTAINS):
        found = target.lower() in cell.lower()
        return found if op == FilterOperator.CONTAINS else not found
    left = parse_number(cell)
    right = parse_number(target)
    if left is not None and right is not None:
        a, b = left, right
    else:
        a, b = cell, target
    if op == FilterOperator.EQ:
        return a == b
    if op == FilterOperator.NEQ:
        return a != b
    if op == FilterOperator.LT:
        return a < b
    if op == FilterOperator.LTE:
        return a <= b
    if op == FilterOperator.GT:
        return a > b
    if op == FilterOperator.GTE:
        return a >= b
    return True


def row_passes(row: Mapping[str, Any], filters: Iterable[RowFilter]) -> bool:
    """True iff the row satisfies every filter (short-circuits)."""
    return all(row_matches(row, f) for f in filters)


def kept_row_indices(rows: Sequence[Mapping[str, Any]], filters: Mapping[str, RowFilter]) -> List[int]:
    """Original indices of the rows passing the pooled filter set."""
    pooled = active_filters(filters)
    if not pooled:
        return list(range(len(rows)))
    return [i for i, row in enumerate(rows) if row_passes(row, pooled)]
