"""Configuration compatibility, restore and partial import.

Two reuse paths exist and they deliberately differ:

* **Restore** (automatic, on table load) is all-or-nothing.  A saved
  configuration is applied only when the sorted criterion identities
  match exactly and every included criterion's human column still exists;
  otherwise the session starts fresh.
* **Import** (user-initiated) is best effort.  Entries whose criterion id
  exists in the live session are applied, every other live criterion is
  excluded, and the skipped ids are reported.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..core.errors import IncompatibleConfigurationError
from ..core.models import Criterion, IngestedTable
from ..evaluation.session import EvaluationSession
from ..utils.logging import get_logger
from .models import (
    ConfigurationSignature,
    CriterionIdentity,
    ImportReport,
    PersistedConfiguration,
)

logger = get_logger(__name__)


def build_signature(criteria: Sequence[Criterion], header: Sequence[str]) -> ConfigurationSignature:
    """Sorted identities of the discovered criteria plus the header."""
    pairs = [
        CriterionIdentity(label_column=c.label_column, probability_column=c.probability_column)
        for c in criteria
        if not c.manual
    ]
    pairs.sort(key=lambda p: p.sort_key)
    return ConfigurationSignature(pairs=pairs, header=list(header))


def snapshot(session: EvaluationSession) -> PersistedConfiguration:
    """Capture a session's reusable configuration."""
    return PersistedConfiguration(
        signature=build_signature(list(session.criteria.values()), session.header),
        mapping={cid: cfg.model_copy(deep=True) for cid, cfg in session.configs.items()},
        filters={cid: f.model_copy() for cid, f in session.filters.items()},
        thresholds={cid: t.model_copy() for cid, t in session.thresholds.items()},
        moderation={cid: dict(entries) for cid, entries in session.moderation.items()},
        manual_criteria=[c.criterion_id for c in session.criteria.values() if c.manual],
        selected=dict(session.selected),
    )


def compatibility_problem(
    persisted: PersistedConfiguration,
    header: Sequence[str],
    criteria: Sequence[Criterion],
) -> Optional[str]:
    """Reason why ``persisted`` cannot be restored, or None if it can."""
    current = build_signature(criteria, header).pairs
    previous = sorted(persisted.signature.pairs, key=lambda p: p.sort_key)
    if len(previous) != len(current):
        return f"criterion count changed ({len(previous)} -> {len(current)})"
    for old, new in zip(previous, current):
        if old.label_column != new.label_column or old.probability_column != new.probability_column:
            return f"criterion identity changed ({old.sort_key} -> {new.sort_key})"
    columns = set(header)
    for cid, cfg in persisted.mapping.items():
        if cfg.included and cfg.human_column and cfg.human_column not in columns:
            return f"human column {cfg.human_column!r} of {cid!r} is missing"
    for column in persisted.manual_criteria:
        if column not in columns:
            return f"manual criterion column {column!r} is missing"
    return None


def is_compatible(
    persisted: PersistedConfiguration,
    header: Sequence[str],
    criteria: Sequence[Criterion],
) -> bool:
    return compatibility_problem(persisted, header, criteria) is None


def restore_session(
    table: IngestedTable,
    persisted: PersistedConfiguration,
    suffix: Optional[str] = None,
) -> EvaluationSession:
    """Apply a saved configuration to a freshly loaded table, all or nothing."""
    session = EvaluationSession.from_table(table, suffix)
    problem = compatibility_problem(persisted, table.header, list(session.criteria.values()))
    if problem:
        raise IncompatibleConfigurationError(problem)
    for column in persisted.manual_criteria:
        session.add_manual_criterion(column)
    for cid, cfg in persisted.mapping.items():
        if cid in session.criteria:
            session.configs[cid] = cfg.model_copy(deep=True)
    for cid, thr in persisted.thresholds.items():
        if cid in session.criteria:
            session.thresholds[cid] = thr.model_copy()
    for cid, row_filter in persisted.filters.items():
        if cid in session.criteria:
            session.filters[cid] = row_filter.model_copy()
    for cid, flag in persisted.selected.items():
        if cid in session.criteria:
            session.selected[cid] = flag
    dropped = 0
    for cid, entries in persisted.moderation.items():
        if cid not in session.criteria:
            continue
        kept = {i: d for i, d in entries.items() if 0 <= i < table.row_count}
        dropped += len(entries) - len(kept)
        if kept:
            session.moderation[cid] = kept
    if dropped:
        logger.debug(f"Dropped {dropped} moderation entries outside the table")
    logger.info(f"Restored configuration for {len(session.criteria)} criteria")
    return session


def load_session(
    table: IngestedTable,
    persisted: Optional[PersistedConfiguration],
    suffix: Optional[str] = None,
) -> Tuple[EvaluationSession, bool]:
    """Restore ``persisted`` if compatible, else start a fresh session.

    Returns the session and whether the saved configuration was applied.
    """
    if persisted is None:
        return EvaluationSession.from_table(table, suffix), False
    try:
        return restore_session(table, persisted, suffix), True
    except IncompatibleConfigurationError as exc:
        logger.warning(f"Saved configuration not restored: {exc.reason}")
        return EvaluationSession.from_table(table, suffix), False


def import_mapping(session: EvaluationSession, imported: PersistedConfiguration) -> ImportReport:
    """Partially apply an imported configuration to a live session.

    Only mapping, thresholds and filters are imported; criterion identity
    always comes from the live table.
    """
    session.require_editable()
    report = ImportReport()
    for ident in imported.signature.pairs:
        live = session.criteria.get(ident.label_column)
        if live is not None and live.identity != (ident.label_column, ident.probability_column):
            report.identity_conflicts.append(ident.label_column)
    columns = set(session.header)
    for cid, cfg in imported.mapping.items():
        if cid not in session.criteria:
            report.skipped.append(cid)
            continue
        new_cfg = cfg.model_copy(deep=True)
        if new_cfg.human_column and new_cfg.human_column not in columns:
            new_cfg.human_column = None
            new_cfg.human_value_map = {}
            report.cleared_human_columns.append(cid)
        session.configs[cid] = new_cfg
        if cid in imported.thresholds:
            session.thresholds[cid] = imported.thresholds[cid].model_copy()
        row_filter = imported.filters.get(cid)
        if row_filter is not None and (not row_filter.column or row_filter.column in columns):
            session.filters[cid] = row_filter.model_copy()
        report.applied.append(cid)
    for cid in session.criteria:
        if cid not in report.applied:
            session.configs[cid].included = False
            report.excluded.append(cid)
    if report.skipped:
        logger.warning(f"Import skipped {report.skipped_count} unknown criteria: {', '.join(report.skipped)}")
    logger.info(f"Imported mapping for {len(report.applied)} criteria")
    return report
