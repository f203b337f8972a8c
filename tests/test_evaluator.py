"""
Tests for AI scoring: response parsing, weighted folding and failure containment.
"""
import json

import pytest

from core.issues import ScoreIssue, Severity
from core.schemas import QualityEvaluation
from core.scoring import NEUTRAL_SCORE, low_dimension_issues, weighted_score
from processing.evaluator import QualityScorer, ScoringFailure, _extract_json, build_prompt, parse_evaluation
from factories import FakeLLM, evaluation_json, make_item


def _evaluation(**dimensions) -> QualityEvaluation:
    return QualityEvaluation.model_validate({
        name: {"score": score, "feedback": f"{name} feedback"} for name, score in dimensions.items()
    })


# =============================================================================
# Folding
# =============================================================================

def test_weighted_score_uniform():
    evaluation = QualityEvaluation.model_validate_json(evaluation_json(82))
    assert weighted_score(evaluation) == 82


def test_weighted_score_normalizes_over_present_dimensions():
    evaluation = _evaluation(technical_accuracy=90, clarity=60)
    # (90 * 0.25 + 60 * 0.15) / 0.40 = 78.75
    assert weighted_score(evaluation) == 79


def test_weighted_score_without_weight_is_neutral():
    evaluation = _evaluation(clarity=20)
    assert weighted_score(evaluation, {"technical_accuracy": 1.0}) == NEUTRAL_SCORE


def test_low_dimension_issues():
    evaluation = _evaluation(technical_accuracy=85, clarity=55, completeness=30, practical_relevance=60)

    issues = low_dimension_issues(evaluation)

    assert [(i.type, i.severity) for i in issues] == [
        (ScoreIssue.LOW_CLARITY, Severity.MEDIUM),
        (ScoreIssue.LOW_COMPLETENESS, Severity.HIGH),
    ]
    assert issues[0].message == "clarity feedback"


# =============================================================================
# Parsing
# =============================================================================

def test_extract_json_strips_fences_and_prose():
    payload = '{"clarity": {"score": 70}}'
    assert _extract_json(f"```json\n{payload}\n```") == payload
    assert _extract_json(f"Here is my review:\n{payload}\nThanks!") == payload


def test_parse_evaluation_accepts_camel_case():
    evaluation = parse_evaluation(evaluation_json(75))

    assert isinstance(evaluation, QualityEvaluation)
    assert evaluation.technical_accuracy.score == 75
    assert evaluation.overall_assessment == "Solid, accurate answer."
    assert set(evaluation.dimensions()) == {
        "technical_accuracy", "clarity", "completeness",
        "practical_relevance", "structure_quality", "difficulty_calibration",
    }


@pytest.mark.parametrize("raw", [
    "not json at all",
    "",
    json.dumps({"overallAssessment": "no dimensions here"}),
    json.dumps({"clarity": {"score": 150, "feedback": "out of range"}}),
    json.dumps({"clarity": {"feedback": "score missing"}}),
])
def test_parse_evaluation_failures(raw):
    assert isinstance(parse_evaluation(raw), ScoringFailure)


def test_prompt_asks_for_voice_only_when_suitable():
    assert "voiceReadiness" not in build_prompt(make_item())
    assert "voiceReadiness" in build_prompt(make_item(voice_suitable=True))


# =============================================================================
# QualityScorer
# =============================================================================

async def test_scorer_success():
    low = evaluation_json(80, clarity={"score": 35, "feedback": "Answer is hard to follow"})
    scorer = QualityScorer(FakeLLM([low]))

    outcome = await scorer.score(make_item())

    assert not outcome.failed
    assert outcome.overall_score == 73
    assert [(i.type, i.severity, i.message) for i in outcome.issues] == [
        (ScoreIssue.LOW_CLARITY, Severity.HIGH, "Answer is hard to follow"),
    ]
    assert outcome.recommendations == ["Add a diagram", "Mention sticky sessions"]
    assert outcome.assessment == "Solid, accurate answer."


@pytest.mark.parametrize("response", [
    RuntimeError("connection refused"),
    "I cannot review this question.",
])
async def test_scorer_failure_is_neutral(response):
    scorer = QualityScorer(FakeLLM([response]))

    outcome = await scorer.score(make_item())

    assert outcome.failed
    assert outcome.overall_score == NEUTRAL_SCORE
    assert outcome.issues == []
    assert outcome.recommendations == []
    assert outcome.assessment is None
