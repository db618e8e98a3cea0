"""Persisted configuration records."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.models import CriterionConfig, ModerationDecision, RowFilter, Thresholds


class CriterionIdentity(BaseModel):
    """Column identity of a criterion, stable across table reloads."""

    label_column: str
    probability_column: Optional[str] = None

    @property
    def sort_key(self) -> str:
        return f"{self.label_column}|{self.probability_column or ''}"


class ConfigurationSignature(BaseModel):
    """Shape of the table a configuration was saved against."""

    pairs: List[CriterionIdentity] = Field(default_factory=list)
    header: List[str] = Field(default_factory=list)


class PersistedConfiguration(BaseModel):
    """Reusable session configuration as stored in the configuration store."""

    signature: ConfigurationSignature
    mapping: Dict[str, CriterionConfig] = Field(default_factory=dict)
    filters: Dict[str, RowFilter] = Field(default_factory=dict)
    thresholds: Dict[str, Thresholds] = Field(default_factory=dict)
    moderation: Dict[str, Dict[int, ModerationDecision]] = Field(default_factory=dict)
    manual_criteria: List[str] = Field(default_factory=list)
    selected: Dict[str, bool] = Field(default_factory=dict)


class ImportReport(BaseModel):
    """Outcome of a user-initiated partial mapping import."""

    applied: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)
    identity_conflicts: List[str] = Field(default_factory=list)
    cleared_human_columns: List[str] = Field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)
