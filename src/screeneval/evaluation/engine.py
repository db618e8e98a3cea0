"""Stateless scoring pass over a table and a session.

:func:`evaluate` is a pure function of ``(table, session)``: it applies
the pooled row filters, normalizes human and model labels, applies
thresholds and moderation, and aggregates confusion metrics,
drill-down buckets, error correlations and pooled accuracy.  It can be
called again after every session change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..core.models import (
    Classification,
    Criterion,
    Decision,
    EvaluationResult,
    HumanCounts,
    IngestedTable,
    ModerationDecision,
    RowBuckets,
)
from ..utils.logging import get_logger
from .correlation import correlation_table
from .filters import kept_row_indices
from .labels import model_decision, row_human_decision
from .metrics import classify, compute_confusion, pooled_accuracy
from .moderation import moderated_truth
from .session import EvaluationSession

logger = get_logger(__name__)


@dataclass
class ScoredCriterion:
    """Per-row decisions of one criterion over the kept rows."""

    criterion_id: str
    human: List[bool] = field(default_factory=list)
    truth: List[bool] = field(default_factory=list)
    prediction: List[bool] = field(default_factory=list)
    moderation: List[Optional[ModerationDecision]] = field(default_factory=list)

    def original_classification(self, position: int) -> Classification:
        return classify(self.human[position], self.prediction[position])

    def classification(self, position: int) -> Classification:
        return classify(self.truth[position], self.prediction[position])


def score_criterion(
    table: IngestedTable,
    session: EvaluationSession,
    criterion: Criterion,
    row_indices: Sequence[int],
) -> ScoredCriterion:
    """Human, truth and prediction sequences of one criterion over ``row_indices``."""
    cid = criterion.criterion_id
    config = session.configs[cid]
    thresholds = session.threshold(cid)
    verdicts = session.moderation.get(cid, {})
    entry = ScoredCriterion(criterion_id=cid)
    for row_index in row_indices:
        row = table.rows[row_index]
        human = row_human_decision(row, config) is Decision.INCLUDE
        prediction = model_decision(row, criterion, config, thresholds) is Decision.INCLUDE
        verdict = verdicts.get(row_index)
        entry.human.append(human)
        entry.prediction.append(prediction)
        entry.truth.append(moderated_truth(human, prediction, verdict))
        entry.moderation.append(verdict)
    return entry


def score_rows(table: IngestedTable, session: EvaluationSession) -> tuple[List[int], Dict[str, ScoredCriterion]]:
    """Filter rows and score every included criterion over the kept rows."""
    kept = kept_row_indices(table.rows, session.filters)
    scored = {crit.criterion_id: score_criterion(table, session, crit, kept) for crit in session.included_criteria()}
    return kept, scored


def evaluate(table: IngestedTable, session: EvaluationSession) -> EvaluationResult:
    """Run one scoring pass and return every derived figure."""
    kept, scored = score_rows(table, session)
    criteria = list(scored)
    truth = {cid: s.truth for cid, s in scored.items()}
    prediction = {cid: s.prediction for cid, s in scored.items()}
    buckets: Dict[str, RowBuckets] = {}
    for cid, s in scored.items():
        bucket = RowBuckets()
        for position, row_index in enumerate(kept):
            bucket.add(s.classification(position), row_index)
        buckets[cid] = bucket
    result = EvaluationResult(
        criteria=criteria,
        kept_indices=kept,
        truth=truth,
        prediction=prediction,
        confusion={cid: compute_confusion(truth[cid], prediction[cid]) for cid in criteria},
        buckets=buckets,
        correlations=correlation_table(criteria, truth, prediction),
        pooled_accuracy=pooled_accuracy([truth[c] for c in criteria], [prediction[c] for c in criteria]),
        moderation_counts={cid: session.moderation_count(cid) for cid in criteria},
    )
    logger.debug(
        f"Scored {len(criteria)} criteria over {len(kept)}/{table.row_count} rows "
        f"(pooled accuracy {result.pooled_accuracy:.3f})"
    )
    return result


def human_counts(result: EvaluationResult) -> Dict[str, HumanCounts]:
    """Ground-truth include/exclude totals per criterion over the scored rows."""
    counts: Dict[str, HumanCounts] = {}
    for cid in result.criteria:
        truths = result.truth.get(cid, [])
        include = sum(1 for t in truths if t)
        counts[cid] = HumanCounts(total=len(truths), human_include=include, human_exclude=len(truths) - include)
    return counts
