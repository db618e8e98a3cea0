"""
Criterion evaluation subpackage.

The scoring pipeline runs leaves first:

* :mod:`.discovery`: infer criteria from label/probability column pairs.
* :mod:`.mapping`: enumerate values and validate the reviewer's mapping.
* :mod:`.filters`: pooled AND row filters.
* :mod:`.labels`: label normalization and probability thresholds.
* :mod:`.moderation`: reviewer verdicts overriding ground truth.
* :mod:`.metrics` and :mod:`.correlation`: confusion metrics, pooled
  accuracy and Pearson correlation of error indicators.

:class:`EvaluationSession` holds the mutable reviewer state and
:func:`evaluate` is the pure scoring pass over ``(table, session)``.
"""

from .session import EvaluationSession
from .engine import evaluate, human_counts, score_rows
from .discovery import detect_criteria, human_column_options, manual_criterion
from .mapping import unique_values, validate_mapping
from .metrics import compute_confusion, pearson, pooled_accuracy

__all__ = [
    "EvaluationSession",
    "evaluate",
    "human_counts",
    "score_rows",
    "detect_criteria",
    "human_column_options",
    "manual_criterion",
    "unique_values",
    "validate_mapping",
    "compute_confusion",
    "pearson",
    "pooled_accuracy",
]
