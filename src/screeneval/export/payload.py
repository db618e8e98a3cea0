"""Export payload assembly.

Builds the structured document consumed by report and CSV writers:
settings (thresholds, mappings, filters), per-criterion metrics, pooled
accuracy, error correlations, human label distribution and moderation
counts.  Missing metrics stay ``None`` in the payload and are rendered
as a dash by :func:`format_metric`, never as zero.  Every per-criterion
section is keyed by criterion id; ``display_names`` maps ids to labels.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.models import (
    EvaluationResult,
    IngestedTable,
)
from ..evaluation.correlation import selected_correlations
from ..evaluation.engine import human_counts
from ..evaluation.labels import (
    apply_thresholds,
    base_model_decision,
    cell_text,
    parse_number,
    row_human_decision,
)
from ..evaluation.moderation import moderation_label
from ..evaluation.session import EvaluationSession

MISSING = "—"
BUCKETS = ("tp", "tn", "fp", "fn")


def format_metric(value: Optional[float], percent: bool = False, digits: int = 3) -> str:
    """Render a metric; absent values become a dash."""
    if value is None:
        return MISSING
    if percent:
        return f"{value * 100:.1f}%"
    return f"{value:.{digits}f}"


def sanitize_filename(name: str) -> str:
    cleaned = re.sub(r'[\\/:*?"<>|]+', "", name or "report").strip()
    return re.sub(r"\s+", "_", cleaned)[:100] or "report"


def threshold_notes(session: EvaluationSession) -> List[str]:
    """Notes for included criteria scored without a probability column."""
    return [
        f"Thresholds were not applied to {c.display_name}: no probability column."
        for c in session.included_criteria()
        if not c.has_probability
    ]


def build_export_payload(
    table: IngestedTable,
    session: EvaluationSession,
    result: EvaluationResult,
    report_name: str = "LLM Eval Report",
) -> Dict[str, Any]:
    """Assemble the JSON-ready export document for one scoring pass."""
    included = session.included_criteria()
    return {
        "report_name": report_name,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "total_rows": table.row_count,
        "kept_rows": len(result.kept_indices),
        "criteria": [c.model_dump(mode="json") for c in session.criteria.values()],
        "display_names": {c.criterion_id: c.display_name for c in session.criteria.values()},
        "included_criteria": list(result.criteria),
        "thresholds": {
            c.criterion_id: session.threshold(c.criterion_id).model_dump(mode="json") for c in included
        },
        "mapping": {cid: cfg.model_dump(mode="json") for cid, cfg in session.configs.items()},
        "filters": {cid: f.model_dump(mode="json") for cid, f in session.filters.items()},
        "metrics": {cid: m.model_dump(mode="json") for cid, m in result.confusion.items()},
        "pooled_accuracy": result.pooled_accuracy,
        "correlations": result.correlations,
        "selected_correlations": selected_correlations(
            session.selected_criteria(), result.truth, result.prediction
        ),
        "human_counts": {
            cid: counts.model_dump(mode="json") for cid, counts in human_counts(result).items()
        },
        "moderation_counts": result.moderation_counts,
        "notes": threshold_notes(session),
    }


def row_details(
    table: IngestedTable,
    session: EvaluationSession,
    result: EvaluationResult,
    criterion_id: str,
    bucket: str,
) -> List[Dict[str, Any]]:
    """Drill-down rows of one confusion bucket for a criterion."""
    if bucket not in BUCKETS:
        raise ValueError(f"Unknown bucket {bucket!r}; expected one of {', '.join(BUCKETS)}")
    crit = session.criterion(criterion_id)
    config = session.config(criterion_id)
    thresholds = session.threshold(criterion_id)
    indices = getattr(result.buckets[criterion_id], bucket) if criterion_id in result.buckets else []
    details: List[Dict[str, Any]] = []
    for row_index in indices:
        row = table.rows[row_index]
        raw_label = cell_text(row.get(crit.label_column))
        probability = parse_number(row.get(crit.probability_column)) if crit.probability_column else None
        decision = apply_thresholds(
            base_model_decision(raw_label, config.llm_value_map), probability, thresholds, raw_label
        )
        human_value = cell_text(row.get(config.human_column)) if config.human_column else ""
        details.append(
            {
                "row": row_index,
                "human_column": config.human_column,
                "human_value": human_value,
                "human_decision": row_human_decision(row, config).value if config.human_column else None,
                "llm_column": crit.label_column,
                "llm_value": raw_label,
                "llm_decision": decision.value if decision else None,
                "llm_probability": probability,
                "moderation": moderation_label(session.moderation_for(criterion_id, row_index)),
            }
        )
    return details
