"""Mapping configuration: value enumeration and validation.

A mapping is valid for scoring when at least one criterion is included
and, for every included criterion, a human column is chosen and every
enumerated human and model value has an include/exclude entry.
Enumeration is capped (``settings.value_enumeration_cap``, default
200 distinct values in row order); values beyond the cap may stay
unmapped without invalidating the mapping.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config.settings import settings
from ..core.models import (
    Criterion,
    CriterionConfig,
    CriterionIssue,
    Decision,
    MappingValidation,
)
from ..utils.logging import get_logger
from .labels import raw_category

logger = get_logger(__name__)


def unique_values(
    rows: Sequence[Mapping[str, Any]],
    column: Optional[str],
    cap: Optional[int] = None,
) -> List[str]:
    """First ``cap`` distinct non-empty trimmed values of ``column``, in row order."""
    if not column:
        return []
    cap = cap if cap is not None else settings.value_enumeration_cap
    seen: Dict[str, None] = {}
    for row in rows:
        value = row.get(column)
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in seen:
            seen[text] = None
            if len(seen) >= cap:
                break
    return list(seen)


def suggest_llm_value_map(values: Sequence[str]) -> Dict[str, Decision]:
    """Pre-fill a model value map from the yes/maybe/no vocabulary."""
    suggested: Dict[str, Decision] = {}
    for value in values:
        family = raw_category(value)
        if family is not None:
            suggested[value] = family
    return suggested


def validate_criterion(
    rows: Sequence[Mapping[str, Any]],
    criterion: Criterion,
    config: CriterionConfig,
    cap: Optional[int] = None,
) -> List[CriterionIssue]:
    """Issues blocking one included criterion from being scored."""
    issues: List[CriterionIssue] = []
    cid = criterion.criterion_id
    if not config.human_column:
        issues.append(CriterionIssue(criterion_id=cid, message="no human column selected"))
    else:
        human_values = unique_values(rows, config.human_column, cap)
        if not human_values:
            issues.append(CriterionIssue(criterion_id=cid, message=f"human column {config.human_column!r} has no values"))
        missing = [v for v in human_values if v not in config.human_value_map]
        if missing:
            issues.append(
                CriterionIssue(
                    criterion_id=cid,
                    message=f"{len(missing)} unmapped human value(s)",
                    unmapped_values=missing,
                )
            )
    llm_values = unique_values(rows, criterion.label_column, cap)
    if not llm_values:
        issues.append(CriterionIssue(criterion_id=cid, message=f"label column {criterion.label_column!r} has no values"))
    missing = [v for v in llm_values if v not in config.llm_value_map]
    if missing:
        issues.append(
            CriterionIssue(
                criterion_id=cid,
                message=f"{len(missing)} unmapped model value(s)",
                unmapped_values=missing,
            )
        )
    return issues


def validate_mapping(
    rows: Sequence[Mapping[str, Any]],
    criteria: Sequence[Criterion],
    configs: Mapping[str, CriterionConfig],
    cap: Optional[int] = None,
) -> MappingValidation:
    """Validate the mapping of every included criterion."""
    included = [c for c in criteria if configs.get(c.criterion_id) and configs[c.criterion_id].included]
    if not included:
        return MappingValidation(valid=False)
    issues: List[CriterionIssue] = []
    for crit in included:
        issues.extend(validate_criterion(rows, crit, configs[crit.criterion_id], cap))
    if issues:
        logger.info(f"Mapping validation found {len(issues)} issue(s)")
    return MappingValidation(valid=not issues, issues=issues)
