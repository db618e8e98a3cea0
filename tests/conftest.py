"""Shared fixtures for evaluation tests."""

import pytest

from screeneval.core.models import Decision, IngestedTable
from screeneval.evaluation.session import EvaluationSession


def make_table(header, rows):
    """Build an ingested table from row tuples in header order."""
    return IngestedTable(header=list(header), rows=[dict(zip(header, r)) for r in rows])


@pytest.fixture
def design_table():
    """Five papers scored on one criterion with no probability column."""
    return make_table(
        ["Title", "H", "Design"],
        [
            ("p0", "yes", "yes"),
            ("p1", "no", "yes"),
            ("p2", "yes", "no"),
            ("p3", "no", "no"),
            ("p4", "yes", "maybe"),
        ],
    )


@pytest.fixture
def design_session(design_table):
    """Session with ``Design`` as a manual criterion mapped against ``H``."""
    session = EvaluationSession.from_table(design_table)
    session.add_manual_criterion("Design")
    session.set_human_column("Design", "H")
    session.set_human_value("Design", "yes", Decision.INCLUDE)
    session.set_human_value("Design", "no", Decision.EXCLUDE)
    for value, decision in (("yes", Decision.INCLUDE), ("maybe", Decision.INCLUDE), ("no", Decision.EXCLUDE)):
        session.set_llm_value("Design", value, decision)
    return session


@pytest.fixture
def paired_table():
    """Two discovered criteria with probabilities and a human column per criterion."""
    header = [
        "Title",
        "Year",
        "Human RCT",
        "Human Adults",
        "RCT",
        "RCT Probability",
        "Adults",
        "Adults Probability",
    ]
    rows = [
        ("a", "2019", "Include", "Include", "yes", "0.9", "yes", "0.8"),
        ("b", "2020", "Exclude", "Include", "yes", "0.4", "no", "0.7"),
        ("c", "2021", "Include", "Exclude", "no", "0.3", "no", "0.9"),
        ("d", "2022", "Exclude", "Exclude", "no", "0.95", "maybe", "0.6"),
        ("e", "2023", "Include", "Include", "maybe", "0.55", "yes", ""),
        ("f", "2024", "Exclude", "Exclude", "unsure", "0.7", "no", "0.2"),
    ]
    return make_table(header, rows)


@pytest.fixture
def paired_session(paired_table):
    """Valid, fully mapped session over ``paired_table``."""
    session = EvaluationSession.from_table(paired_table)
    for cid, human in (("RCT", "Human RCT"), ("Adults", "Human Adults")):
        session.set_human_column(cid, human)
        session.set_human_value(cid, "Include", Decision.INCLUDE)
        session.set_human_value(cid, "Exclude", Decision.EXCLUDE)
        session.set_llm_value(cid, "yes", Decision.INCLUDE)
        session.set_llm_value(cid, "maybe", Decision.INCLUDE)
        session.set_llm_value(cid, "no", Decision.EXCLUDE)
    session.set_llm_value("RCT", "unsure", Decision.EXCLUDE)
    return session


@pytest.fixture
def table_factory():
    """Factory building ad-hoc tables from a header and row tuples."""
    return make_table
