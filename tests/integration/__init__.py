"""Integration test package.

These tests read and write files under pytest's ``tmp_path`` and drive
the CLI end to end.  Deselect them with ``-m "not integration"``.
"""
