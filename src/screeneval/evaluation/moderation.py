"""Moderation overlay.

A reviewer can settle a human/model disagreement for one
``(criterion, row)`` pair.  ``human`` confirms the human label and leaves
scoring unchanged; ``llm_correct`` replaces the truth with the model's
prediction, so the pair always lands in TP or TN.  Setting the same
verdict twice clears it.
"""

from __future__ import annotations

from typing import Dict, Optional

from ..core.models import ModerationDecision

MODERATION_LABELS = {
    ModerationDecision.HUMAN: "Confirmed Human",
    ModerationDecision.LLM_CORRECT: "Corrected to LLM",
}


def moderated_truth(truth: bool, prediction: bool, decision: Optional[ModerationDecision]) -> bool:
    """Truth value after applying a moderation verdict."""
    if decision == ModerationDecision.LLM_CORRECT:
        return prediction
    return truth


def toggle_moderation(
    entries: Dict[int, ModerationDecision],
    row_index: int,
    decision: ModerationDecision,
) -> Optional[ModerationDecision]:
    """Set ``decision`` for ``row_index``, or clear it if already set to it.

    Returns the verdict now in effect for the row.
    """
    if entries.get(row_index) == decision:
        del entries[row_index]
        return None
    entries[row_index] = decision
    return decision


def moderation_label(decision: Optional[ModerationDecision]) -> str:
    """Human-readable marker used in exports (empty when unmoderated)."""
    if decision is None:
        return ""
    return MODERATION_LABELS[ModerationDecision(decision)]
