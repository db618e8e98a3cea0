"""Moderated dataset export.

One output row per input row with the original columns unchanged,
followed by four columns per included criterion:

* ``<criterion> Original Classification``: TP/TN/FP/FN without moderation
* ``<criterion> Moderation``: ``""``, ``"Confirmed Human"`` or ``"Corrected to LLM"``
* ``<criterion> New Classification``: TP/TN/FP/FN after moderation
* ``<criterion> Final Include``: ``1``/``0`` for moderated rows, empty otherwise

Classifications are computed for every row, whether or not it passes
the active row filters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pandas as pd  # type: ignore

from ..core.models import IngestedTable
from ..evaluation.engine import score_criterion
from ..evaluation.moderation import moderation_label
from ..evaluation.session import EvaluationSession
from ..utils.logging import get_logger
from .payload import sanitize_filename

logger = get_logger(__name__)


def moderated_columns(name: str) -> List[str]:
    return [
        f"{name} Original Classification",
        f"{name} Moderation",
        f"{name} New Classification",
        f"{name} Final Include",
    ]


def moderated_dataframe(table: IngestedTable, session: EvaluationSession) -> pd.DataFrame:
    """Original table plus per-criterion classification and moderation columns."""
    extra: Dict[str, List[str]] = {}
    all_rows = range(table.row_count)
    for crit in session.included_criteria():
        scored = score_criterion(table, session, crit, all_rows)
        original_col, moderation_col, new_col, final_col = moderated_columns(crit.display_name)
        extra[original_col] = [scored.original_classification(i).value for i in all_rows]
        extra[moderation_col] = [moderation_label(v) for v in scored.moderation]
        extra[new_col] = [scored.classification(i).value for i in all_rows]
        extra[final_col] = [
            ("1" if truth else "0") if verdict is not None else ""
            for truth, verdict in zip(scored.truth, scored.moderation)
        ]
    base = pd.DataFrame(table.rows, columns=table.header)
    return pd.concat([base, pd.DataFrame(extra, index=base.index)], axis=1)


def moderated_filename(report_name: str, moderation_count: int) -> str:
    return f"{sanitize_filename(report_name)}_moderated_{moderation_count}.csv"


def write_moderated_csv(
    table: IngestedTable,
    session: EvaluationSession,
    output_dir: Path,
    report_name: str = "LLM Eval Report",
) -> Path:
    """Write the moderated dataset; the file name carries the moderation count."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / moderated_filename(report_name, session.moderation_count())
    df = moderated_dataframe(table, session)
    df.to_csv(path, index=False)
    logger.info(f"Exported moderated dataset with {session.moderation_count()} moderations to {path}")
    return path
