"""
Module to fold evaluator dimensions into one score
"""

from typing import Dict, List, Mapping

from core.issues import Issue, ScoreIssue, Severity
from core.schemas import QualityEvaluation

NEUTRAL_SCORE = 50

DEFAULT_WEIGHTS: Dict[str, float] = {
    "technical_accuracy": 0.25,
    "clarity": 0.15,
    "completeness": 0.20,
    "practical_relevance": 0.15,
    "structure_quality": 0.10,
    "difficulty_calibration": 0.10,
    "voice_readiness": 0.05,
}

_DIMENSION_ISSUES = {
    "technical_accuracy": ScoreIssue.LOW_TECHNICAL_ACCURACY,
    "clarity": ScoreIssue.LOW_CLARITY,
    "completeness": ScoreIssue.LOW_COMPLETENESS,
    "practical_relevance": ScoreIssue.LOW_PRACTICAL_RELEVANCE,
    "structure_quality": ScoreIssue.LOW_STRUCTURE_QUALITY,
    "difficulty_calibration": ScoreIssue.LOW_DIFFICULTY_CALIBRATION,
    "voice_readiness": ScoreIssue.LOW_VOICE_READINESS,
}


def weighted_score(
    evaluation: QualityEvaluation,
    weights: Mapping[str, float] = DEFAULT_WEIGHTS,
) -> int:
    """
    Weighted mean over the dimensions present, normalized by their weights.
    Returns NEUTRAL_SCORE when no dimension carries weight.
    """
    total = 0.0
    total_weight = 0.0

    for name, dimension in evaluation.dimensions().items():
        weight = weights.get(name, 0.0)
        total += dimension.score * weight
        total_weight += weight

    if total_weight <= 0:
        return NEUTRAL_SCORE

    return int(round(total / total_weight))


def low_dimension_issues(
    evaluation: QualityEvaluation,
    *,
    low_threshold: float = 60,
    high_threshold: float = 40,
) -> List[Issue]:
    """
    One issue per dimension scoring below low_threshold. Severity is high
    below high_threshold, medium otherwise. The message is the dimension's
    feedback.
    """
    issues: List[Issue] = []

    for name, dimension in evaluation.dimensions().items():
        if dimension.score >= low_threshold:
            continue
        severity = Severity.HIGH if dimension.score < high_threshold else Severity.MEDIUM
        message = dimension.feedback or f"{name} scored {dimension.score:.0f}/100"
        issues.append(Issue(_DIMENSION_ISSUES[name], severity, message))

    return issues
