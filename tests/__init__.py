"""Test suite for the screening evaluation engine.

Unit tests cover discovery, label normalization, filters, mapping
validation, metrics, sessions, persistence and exports.  Run `pytest`
from the project root.
"""
