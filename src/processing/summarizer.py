from typing import Any, Dict, List

from core.entities import Analysis, RoutingDecision
from core.issues import actionable

MAX_REASON_LENGTH = 500


def build_reason(analysis: Analysis) -> str:
    """
    Work item reason in the form the processor bot parses:
    "Issues: a, b | AI: ... | Fix: x; y | Score: n/100"
    """
    parts: List[str] = []

    issue_summary = ", ".join(i.type.value for i in actionable(analysis.issues)[:5])
    if issue_summary:
        parts.append(f"Issues: {issue_summary}")

    if analysis.assessment:
        parts.append(f"AI: {analysis.assessment[:150]}")

    if analysis.recommendations:
        parts.append(f"Fix: {'; '.join(analysis.recommendations[:2])}")

    parts.append(f"Score: {analysis.overall_score}/100")

    return " | ".join(parts)[:MAX_REASON_LENGTH]


def flag_state(analysis: Analysis, decision: RoutingDecision) -> Dict[str, Any]:
    """Ledger after-state for a flagged item."""
    return {
        "score": analysis.overall_score,
        "action": decision.action.value,
        "priority": decision.priority,
        "issue_count": len(analysis.issues),
        "issues": [i.to_dict() for i in analysis.issues[:10]],
        "duplicates": [m.item_id for m in analysis.duplicates],
        "recommendations": analysis.recommendations,
    }


def verify_state(analysis: Analysis) -> Dict[str, Any]:
    return {
        "score": analysis.overall_score,
        "issue_count": len(analysis.issues),
        "metrics": analysis.metrics,
    }
