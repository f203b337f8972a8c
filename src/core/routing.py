"""
Maps an analysis issue set to a work action and queue priority.
"""
from typing import Iterable

from core.entities import Action, RoutingDecision
from core.issues import Issue, Severity, count_by_severity

HIGHEST_PRIORITY = 1
LOWEST_PRIORITY = 5


def decide(issues: Iterable[Issue]) -> RoutingDecision:
    """
    Strict cascade, first match wins. Info issues never trigger an action.
    """
    counts = count_by_severity(issues)
    critical = counts[Severity.CRITICAL]
    high = counts[Severity.HIGH]
    medium = counts[Severity.MEDIUM]
    low = counts[Severity.LOW]

    if critical > 0:
        return RoutingDecision(Action.DELETE, 1)

    if high >= 2 or (high >= 1 and medium >= 2):
        return RoutingDecision(Action.IMPROVE, 2)

    if high >= 1 or medium >= 2:
        return RoutingDecision(Action.IMPROVE, 3)

    if medium >= 1 or low >= 3:
        return RoutingDecision(Action.IMPROVE, 4)

    return RoutingDecision(Action.NONE, LOWEST_PRIORITY)
