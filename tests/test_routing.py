"""
Tests for the severity cascade that turns issues into an action and priority.
"""
from itertools import product

import pytest

from core.entities import Action
from core.issues import GeneralIssue, Issue, Severity, count_by_severity, parse_issue_kind, StructuralIssue
from core.routing import decide


def _issues(critical=0, high=0, medium=0, low=0, info=0):
    counts = {
        Severity.CRITICAL: critical,
        Severity.HIGH: high,
        Severity.MEDIUM: medium,
        Severity.LOW: low,
        Severity.INFO: info,
    }
    return [
        Issue(GeneralIssue.OTHER, severity, f"{severity.value} issue")
        for severity, n in counts.items()
        for _ in range(n)
    ]


@pytest.mark.parametrize("counts, action, priority", [
    ({}, Action.NONE, 5),
    ({"info": 7}, Action.NONE, 5),
    ({"low": 2}, Action.NONE, 5),
    ({"low": 3}, Action.IMPROVE, 4),
    ({"medium": 1}, Action.IMPROVE, 4),
    ({"medium": 2}, Action.IMPROVE, 3),
    ({"high": 1}, Action.IMPROVE, 3),
    ({"high": 1, "medium": 1}, Action.IMPROVE, 3),
    ({"high": 1, "medium": 2}, Action.IMPROVE, 2),
    ({"high": 2}, Action.IMPROVE, 2),
    ({"critical": 1}, Action.DELETE, 1),
    ({"critical": 1, "low": 5, "info": 3}, Action.DELETE, 1),
])
def test_cascade(counts, action, priority):
    decision = decide(_issues(**counts))
    assert decision.action is action
    assert decision.priority == priority
    assert decision.needs_work is (action is not Action.NONE)


def test_adding_an_issue_never_lowers_urgency():
    for critical, high, medium, low in product(range(2), range(3), range(3), range(4)):
        base = decide(_issues(critical, high, medium, low)).priority
        for severity in ("critical", "high", "medium", "low", "info"):
            counts = {"critical": critical, "high": high, "medium": medium, "low": low}
            counts[severity] = counts.get(severity, 0) + 1
            assert decide(_issues(**counts)).priority <= base


def test_severity_rank_orders_impact():
    ranks = [s.rank for s in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO)]
    assert ranks == sorted(ranks, reverse=True)


def test_count_by_severity_covers_all_levels():
    counts = count_by_severity(_issues(high=2, info=1))
    assert counts == {
        Severity.CRITICAL: 0,
        Severity.HIGH: 2,
        Severity.MEDIUM: 0,
        Severity.LOW: 0,
        Severity.INFO: 1,
    }


def test_issue_round_trip_and_unknown_kind():
    issue = Issue(StructuralIssue.SHORT_ANSWER, Severity.HIGH, "Answer too short")
    assert Issue.from_dict(issue.to_dict()) == issue

    assert parse_issue_kind("something_new") is GeneralIssue.OTHER
