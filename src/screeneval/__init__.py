"""Screening evaluation engine.

Compare an LLM's per-criterion screening decisions against
human-annotated ground truth: discover criteria in an evaluated table,
map labels to include/exclude decisions, apply probability thresholds
and row filters, moderate disagreements and aggregate confusion
metrics and error correlations.
"""

__version__ = "0.1.0"
