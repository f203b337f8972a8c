"""
Issue vocabulary produced by the analyzer, scorer and duplicate check.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Union


class Severity(str, Enum):
    """
    Ordinal issue impact. Compare with ``rank``, not with the string value.
    """
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


class StructuralIssue(str, Enum):
    MISSING_QUESTION = "missing_question"
    SHORT_QUESTION = "short_question"
    MISSING_QUESTION_MARK = "missing_question_mark"
    VAGUE_QUESTION = "vague_question"
    MISSING_ANSWER = "missing_answer"
    SHORT_ANSWER = "short_answer"
    TRUNCATED_ANSWER = "truncated_answer"
    MISSING_EXPLANATION = "missing_explanation"
    SHORT_EXPLANATION = "short_explanation"
    TRUNCATED_EXPLANATION = "truncated_explanation"
    MISSING_CODE_EXAMPLE = "missing_code_example"


class ContentIssue(str, Enum):
    PLACEHOLDER_CONTENT = "placeholder_content"
    IRRELEVANT_BEHAVIORAL = "irrelevant_behavioral"
    ANSWER_MISMATCH = "answer_mismatch"
    REPETITIVE_CONTENT = "repetitive_content"
    DIFFICULTY_MISMATCH = "difficulty_mismatch"


class RelevanceIssue(str, Enum):
    LOW_CHANNEL_RELEVANCE = "low_channel_relevance"
    MISSING_TAGS = "missing_tags"
    INSUFFICIENT_TAGS = "insufficient_tags"


class VoiceIssue(str, Enum):
    MISSING_VOICE_KEYWORDS = "missing_voice_keywords"
    INSUFFICIENT_VOICE_KEYWORDS = "insufficient_voice_keywords"
    EXCESSIVE_VOICE_KEYWORDS = "excessive_voice_keywords"
    WEAK_VOICE_KEYWORDS = "weak_voice_keywords"
    VERBOSE_FOR_VOICE = "verbose_for_voice"


class ScoreIssue(str, Enum):
    LOW_TECHNICAL_ACCURACY = "low_technical_accuracy"
    LOW_CLARITY = "low_clarity"
    LOW_COMPLETENESS = "low_completeness"
    LOW_PRACTICAL_RELEVANCE = "low_practical_relevance"
    LOW_STRUCTURE_QUALITY = "low_structure_quality"
    LOW_DIFFICULTY_CALIBRATION = "low_difficulty_calibration"
    LOW_VOICE_READINESS = "low_voice_readiness"


class DuplicateIssue(str, Enum):
    LIKELY_DUPLICATE = "likely_duplicate"
    POTENTIAL_DUPLICATE = "potential_duplicate"


class GeneralIssue(str, Enum):
    OTHER = "other"


IssueKind = Union[
    StructuralIssue,
    ContentIssue,
    RelevanceIssue,
    VoiceIssue,
    ScoreIssue,
    DuplicateIssue,
    GeneralIssue,
]

_ISSUE_CATEGORIES = (
    StructuralIssue,
    ContentIssue,
    RelevanceIssue,
    VoiceIssue,
    ScoreIssue,
    DuplicateIssue,
)


def parse_issue_kind(value: str) -> IssueKind:
    """
    Map a stored issue type string back to its enum member.
    Unknown strings map to GeneralIssue.OTHER.
    """
    for category in _ISSUE_CATEGORIES:
        try:
            return category(value)
        except ValueError:
            continue
    return GeneralIssue.OTHER


@dataclass(frozen=True)
class Issue:
    type: IssueKind
    severity: Severity
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Issue":
        return cls(
            type=parse_issue_kind(data.get("type", "")),
            severity=Severity(data.get("severity", Severity.INFO.value)),
            message=data.get("message", ""),
        )


def count_by_severity(issues: Iterable[Issue]) -> Dict[Severity, int]:
    counts = {severity: 0 for severity in Severity}
    for issue in issues:
        counts[issue.severity] += 1
    return counts


def actionable(issues: Iterable[Issue]) -> List[Issue]:
    """Issues above info, in the order they were raised."""
    return [i for i in issues if i.severity is not Severity.INFO]
