"""
Deterministic rule checks run on every item before AI scoring.

analyze() runs four independent checks (structure, content, channel
relevance, voice readiness) and returns the issues plus descriptive
metrics. Metrics are for reporting only and never affect routing.
"""
import re
from typing import Any, Dict, List, Tuple

from core.channels import get_channel
from core.issues import (
    ContentIssue,
    Issue,
    RelevanceIssue,
    Severity,
    StructuralIssue,
    VoiceIssue,
)
from ingestion.base import ContentItem
from processing.deduplicator import similarity
from services.config import AnalyzerThresholds

DEFAULT_THRESHOLDS = AnalyzerThresholds()

IRRELEVANT_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"how did the candidate",
        r"tell me about yourself",
        r"what are your strengths",
        r"where do you see yourself",
        r"why should we hire you",
        r"what is your salary",
    )
]

PLACEHOLDERS = [
    "TODO", "FIXME", "TBD", "placeholder", "lorem ipsum",
    "example here", "add more", "needs work", "[insert",
]

TRUNCATION_PATTERNS = [
    re.compile(r"\.{3,}$"),
    re.compile(r"\.\.\s*$"),
    re.compile(r"continues\s*$", re.IGNORECASE),
    re.compile(r"etc\.?\s*$", re.IGNORECASE),
    re.compile(r"and so on\s*$", re.IGNORECASE),
    re.compile(r"\[truncated", re.IGNORECASE),
    re.compile(r"\[continued", re.IGNORECASE),
]

CODE_BLOCK = re.compile(r"```[\s\S]*?```")

ADVANCED_TERMS = re.compile(
    r"\b(distributed|consensus|sharding|replication|eventual consistency|cap theorem)\b",
    re.IGNORECASE,
)

_SIGNIFICANT_SPLIT = re.compile(r"\W+")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def is_truncated(text: str) -> bool:
    return any(p.search(text) for p in TRUNCATION_PATTERNS)


def has_code_block(text: str) -> bool:
    return bool(CODE_BLOCK.search(text or ""))


def _significant_words(text: str) -> set:
    return {w for w in _SIGNIFICANT_SPLIT.split(text.lower()) if len(w) > 3}


def analyze_structure(item: ContentItem, thresholds: AnalyzerThresholds = DEFAULT_THRESHOLDS) -> List[Issue]:
    issues: List[Issue] = []

    question = item.question
    if not question:
        issues.append(Issue(StructuralIssue.MISSING_QUESTION, Severity.CRITICAL, "Question is missing"))
    else:
        if len(question) < thresholds.min_question_length:
            issues.append(Issue(
                StructuralIssue.SHORT_QUESTION,
                Severity.HIGH,
                f"Question too short ({len(question)} chars, min {thresholds.min_question_length})",
            ))
        if not question.strip().endswith("?"):
            issues.append(Issue(StructuralIssue.MISSING_QUESTION_MARK, Severity.LOW, "Question should end with ?"))
        if len(question.split()) < 5:
            issues.append(Issue(StructuralIssue.VAGUE_QUESTION, Severity.MEDIUM, "Question lacks specificity"))

    answer = item.answer
    if not answer:
        issues.append(Issue(StructuralIssue.MISSING_ANSWER, Severity.CRITICAL, "Answer is missing"))
    else:
        if len(answer) < thresholds.min_answer_length:
            issues.append(Issue(
                StructuralIssue.SHORT_ANSWER,
                Severity.HIGH,
                f"Answer too short ({len(answer)} chars, min {thresholds.min_answer_length})",
            ))
        if is_truncated(answer):
            issues.append(Issue(StructuralIssue.TRUNCATED_ANSWER, Severity.HIGH, "Answer appears truncated"))

    explanation = item.explanation
    if not explanation:
        issues.append(Issue(StructuralIssue.MISSING_EXPLANATION, Severity.HIGH, "Explanation is missing"))
    else:
        if len(explanation) < thresholds.min_explanation_length:
            issues.append(Issue(
                StructuralIssue.SHORT_EXPLANATION,
                Severity.MEDIUM,
                f"Explanation too short ({len(explanation)} chars, min {thresholds.min_explanation_length})",
            ))
        if is_truncated(explanation):
            issues.append(Issue(
                StructuralIssue.TRUNCATED_EXPLANATION, Severity.HIGH, "Explanation appears truncated"
            ))

        channel = get_channel(item.channel)
        if (
            channel is not None
            and channel.technical
            and len(explanation) > thresholds.code_example_min_length
            and not has_code_block(explanation)
        ):
            issues.append(Issue(
                StructuralIssue.MISSING_CODE_EXAMPLE,
                Severity.LOW,
                "Technical content could benefit from code examples",
            ))

    return issues


def analyze_content(item: ContentItem, thresholds: AnalyzerThresholds = DEFAULT_THRESHOLDS) -> List[Issue]:
    issues: List[Issue] = []
    content = item.combined_text.lower()

    for placeholder in PLACEHOLDERS:
        if placeholder.lower() in content:
            issues.append(Issue(
                ContentIssue.PLACEHOLDER_CONTENT, Severity.HIGH, f'Contains placeholder: "{placeholder}"'
            ))
            break

    for pattern in IRRELEVANT_PATTERNS:
        if pattern.search(item.question or ""):
            issues.append(Issue(
                ContentIssue.IRRELEVANT_BEHAVIORAL, Severity.CRITICAL, "Non-technical behavioral question"
            ))
            break

    if item.question and item.answer:
        question_words = _significant_words(item.question)
        answer_words = _significant_words(item.answer)
        overlap = len(question_words & answer_words)
        if overlap < 2 and len(question_words) > 5:
            issues.append(Issue(
                ContentIssue.ANSWER_MISMATCH, Severity.MEDIUM, "Answer may not directly address the question"
            ))

    if item.answer and item.explanation:
        prefix = item.explanation[:len(item.answer) * 2]
        if similarity(item.answer, prefix) > thresholds.repetition_similarity:
            issues.append(Issue(
                ContentIssue.REPETITIVE_CONTENT, Severity.MEDIUM, "Answer and explanation are too similar"
            ))

    if item.difficulty and item.explanation:
        word_count = len(item.explanation.split())
        advanced = bool(ADVANCED_TERMS.search(item.explanation))

        if item.difficulty == "beginner" and advanced:
            issues.append(Issue(
                ContentIssue.DIFFICULTY_MISMATCH, Severity.LOW, "Beginner question uses advanced terminology"
            ))
        if item.difficulty == "advanced" and word_count < thresholds.advanced_min_words and not advanced:
            issues.append(Issue(
                ContentIssue.DIFFICULTY_MISMATCH, Severity.LOW, "Advanced question lacks depth"
            ))

    return issues


def analyze_relevance(item: ContentItem) -> List[Issue]:
    issues: List[Issue] = []

    channel = get_channel(item.channel)
    if channel is not None and channel.terms:
        content = item.combined_text.lower()
        if not any(term in content for term in channel.terms):
            issues.append(Issue(
                RelevanceIssue.LOW_CHANNEL_RELEVANCE,
                Severity.MEDIUM,
                f"No {item.channel} specific terms found",
            ))

    if not item.tags:
        issues.append(Issue(RelevanceIssue.MISSING_TAGS, Severity.LOW, "No tags assigned"))
    elif len(item.tags) < 3:
        issues.append(Issue(
            RelevanceIssue.INSUFFICIENT_TAGS, Severity.INFO, "Could use more tags for discoverability"
        ))

    return issues


def analyze_voice_readiness(item: ContentItem, thresholds: AnalyzerThresholds = DEFAULT_THRESHOLDS) -> List[Issue]:
    if not item.voice_suitable:
        return []

    issues: List[Issue] = []
    keywords = item.voice_keywords or []

    if not keywords:
        issues.append(Issue(
            VoiceIssue.MISSING_VOICE_KEYWORDS, Severity.MEDIUM, "Marked voice-suitable but no keywords"
        ))
    elif len(keywords) < thresholds.min_voice_keywords:
        issues.append(Issue(
            VoiceIssue.INSUFFICIENT_VOICE_KEYWORDS,
            Severity.LOW,
            f"Only {len(keywords)} voice keywords (min {thresholds.min_voice_keywords})",
        ))
    elif len(keywords) > thresholds.max_voice_keywords:
        issues.append(Issue(
            VoiceIssue.EXCESSIVE_VOICE_KEYWORDS,
            Severity.INFO,
            f"{len(keywords)} voice keywords may be too many",
        ))

    if keywords:
        single_word = [k for k in keywords if len(k.split()) == 1]
        if len(single_word) > len(keywords) * 0.5:
            issues.append(Issue(VoiceIssue.WEAK_VOICE_KEYWORDS, Severity.LOW, "Too many single-word keywords"))

    if item.answer:
        sentences = [s for s in _SENTENCE_SPLIT.split(item.answer) if s.strip()]
        if len(sentences) > thresholds.max_voice_sentences:
            issues.append(Issue(
                VoiceIssue.VERBOSE_FOR_VOICE, Severity.INFO, "Answer may be too long for voice practice"
            ))

    return issues


def calculate_metrics(item: ContentItem) -> Dict[str, Any]:
    return {
        "question_length": len(item.question or ""),
        "answer_length": len(item.answer or ""),
        "explanation_length": len(item.explanation or ""),
        "word_count": len(item.combined_text.split()),
        "has_code": has_code_block(item.explanation or ""),
        "has_diagram": bool(item.diagram),
        "tag_count": len(item.tags),
        "voice_keyword_count": len(item.voice_keywords or []),
    }


def analyze(
    item: ContentItem,
    thresholds: AnalyzerThresholds = DEFAULT_THRESHOLDS,
) -> Tuple[List[Issue], Dict[str, Any]]:
    issues: List[Issue] = []
    issues.extend(analyze_structure(item, thresholds))
    issues.extend(analyze_content(item, thresholds))
    issues.extend(analyze_relevance(item))
    issues.extend(analyze_voice_readiness(item, thresholds))
    return issues, calculate_metrics(item)
