"""Confusion-matrix metrics and error correlation statistics.

All functions are pure.  Degenerate inputs never produce NaN: metrics
with a zero denominator are ``None`` so that consumers can render them
as a dash rather than as zero.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from ..core.models import Classification, Confusion


def classify(truth: bool, prediction: bool) -> Classification:
    """Confusion cell of one truth/prediction pair."""
    if truth and prediction:
        return Classification.TP
    if not truth and not prediction:
        return Classification.TN
    if prediction:
        return Classification.FP
    return Classification.FN


def compute_confusion(truth: Sequence[bool], prediction: Sequence[bool]) -> Confusion:
    """Confusion counts and derived metrics over aligned sequences."""
    tp = tn = fp = fn = 0
    for t, p in zip(truth, prediction):
        cell = classify(t, p)
        if cell is Classification.TP:
            tp += 1
        elif cell is Classification.TN:
            tn += 1
        elif cell is Classification.FP:
            fp += 1
        else:
            fn += 1
    total = tp + tn + fp + fn
    accuracy = (tp + tn) / total if total else 0.0
    precision = tp / (tp + fp) if tp + fp else None
    recall = tp / (tp + fn) if tp + fn else None
    f1: Optional[float] = None
    if precision is not None and recall is not None and precision + recall:
        f1 = 2 * precision * recall / (precision + recall)
    return Confusion(
        tp=tp,
        tn=tn,
        fp=fp,
        fn=fn,
        total=total,
        accuracy=accuracy,
        precision=precision,
        recall=recall,
        f1=f1,
    )


def pooled_accuracy(truths: Sequence[Sequence[bool]], predictions: Sequence[Sequence[bool]]) -> float:
    """Plain accuracy over the concatenation of several criteria's pairs.

    Criteria with more scored rows weigh more in the pooled figure.
    """
    agree = 0
    total = 0
    for truth, prediction in zip(truths, predictions):
        for t, p in zip(truth, prediction):
            total += 1
            agree += int(t == p)
    return agree / total if total else 0.0


def pearson(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """Pearson correlation coefficient, or None for empty/zero-variance input."""
    n = min(len(x), len(y))
    if n == 0:
        return None
    xs = np.asarray(x[:n], dtype=float)
    ys = np.asarray(y[:n], dtype=float)
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denominator = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))
    if denominator == 0.0:
        return None
    r = float(np.sum(dx * dy)) / denominator
    return max(-1.0, min(1.0, r))


def error_indicators(
    truth: Sequence[bool], prediction: Sequence[bool]
) -> tuple[List[int], List[int]]:
    """False-positive and false-negative 0/1 indicator sequences."""
    fp = [1 if (not t and p) else 0 for t, p in zip(truth, prediction)]
    fn = [1 if (t and not p) else 0 for t, p in zip(truth, prediction)]
    return fp, fn
