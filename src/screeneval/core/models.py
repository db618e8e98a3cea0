"""Core domain models for criterion evaluation.

Every record the engine consumes or produces is a Pydantic model so
that sessions, persisted configurations and export payloads share one
validated, JSON-serializable representation.  Derived values
(:class:`Confusion`, :class:`EvaluationResult`) are never a source of
truth: they are recomputed from the table and the session state.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

CellValue = Union[str, int, float, None]
Row = Dict[str, CellValue]


class Decision(str, Enum):
    """Binary include/exclude outcome for one criterion and one row."""

    INCLUDE = "include"
    EXCLUDE = "exclude"


class FilterOperator(str, Enum):
    """Comparison operators supported by row filters."""

    EQ = "eq"
    NEQ = "neq"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    CONTAINS = "contains"
    NCONTAINS = "ncontains"


class ModerationDecision(str, Enum):
    """Reviewer verdict on a human/model disagreement."""

    HUMAN = "human"  # Confirm the human label; no metric change
    LLM_CORRECT = "llm_correct"  # Adopt the model decision as the new truth


class Classification(str, Enum):
    """Confusion-matrix cell of a single (criterion, row) pair."""

    TP = "TP"
    TN = "TN"
    FP = "FP"
    FN = "FN"


class IngestedTable(BaseModel):
    """Parsed delimited file: header in first-seen order plus rows."""

    header: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


class Criterion(BaseModel):
    """One inclusion/exclusion question scored per paper."""

    criterion_id: str
    label_column: str
    probability_column: Optional[str] = None
    display_name: str
    manual: bool = False

    @property
    def identity(self) -> Tuple[str, Optional[str]]:
        return (self.label_column, self.probability_column)

    @property
    def has_probability(self) -> bool:
        return bool(self.probability_column)


class CriterionConfig(BaseModel):
    """Reviewer mapping for a single criterion."""

    included: bool = True
    human_column: Optional[str] = None
    human_value_map: Dict[str, Decision] = Field(default_factory=dict)
    llm_value_map: Dict[str, Decision] = Field(default_factory=dict)

    @field_validator("human_value_map", "llm_value_map", mode="before")
    @classmethod
    def _text_keys(cls, v: Any) -> Any:
        # Hand-written files may carry numeric keys; cell values are text
        if isinstance(v, dict):
            return {str(k): d for k, d in v.items()}
        return v


class RowFilter(BaseModel):
    """Single ``column operator value`` condition attached to a criterion slot."""

    enabled: bool = False
    column: Optional[str] = None
    operator: Optional[FilterOperator] = None
    value: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.column) and self.operator is not None


class Thresholds(BaseModel):
    """Probability thresholds for one criterion."""

    yes_maybe_min_prob: float = Field(0.5, ge=0.0, le=1.0)
    no_min_prob: float = Field(0.5, ge=0.0, le=1.0)


class Confusion(BaseModel):
    """Confusion matrix and derived metrics for one criterion."""

    tp: int = 0
    tn: int = 0
    fp: int = 0
    fn: int = 0
    total: int = 0
    accuracy: float = 0.0
    precision: Optional[float] = None
    recall: Optional[float] = None
    f1: Optional[float] = None


class RowBuckets(BaseModel):
    """Original row indices falling in each confusion cell."""

    tp: List[int] = Field(default_factory=list)
    tn: List[int] = Field(default_factory=list)
    fp: List[int] = Field(default_factory=list)
    fn: List[int] = Field(default_factory=list)

    def add(self, classification: Classification, row_index: int) -> None:
        getattr(self, classification.value.lower()).append(row_index)


class HumanCounts(BaseModel):
    """Ground-truth distribution over the scored rows of a criterion."""

    total: int
    human_include: int
    human_exclude: int


class CriterionIssue(BaseModel):
    """Problem preventing a criterion from being scored."""

    criterion_id: str
    message: str
    unmapped_values: List[str] = Field(default_factory=list)


class MappingValidation(BaseModel):
    """Outcome of validating a session's mapping against a table."""

    valid: bool
    issues: List[CriterionIssue] = Field(default_factory=list)


class EvaluationResult(BaseModel):
    """Everything derived from one scoring pass.

    ``truth`` and ``prediction`` are index-aligned with ``kept_indices``:
    position ``i`` of a criterion's sequence corresponds to original row
    ``kept_indices[i]``.
    """

    criteria: List[str] = Field(default_factory=list)
    kept_indices: List[int] = Field(default_factory=list)
    truth: Dict[str, List[bool]] = Field(default_factory=dict)
    prediction: Dict[str, List[bool]] = Field(default_factory=dict)
    confusion: Dict[str, Confusion] = Field(default_factory=dict)
    buckets: Dict[str, RowBuckets] = Field(default_factory=dict)
    correlations: Dict[str, Optional[float]] = Field(default_factory=dict)
    pooled_accuracy: float = 0.0
    moderation_counts: Dict[str, int] = Field(default_factory=dict)
