import logging
import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Union

from pydantic import ValidationError

from core.issues import Issue
from core.schemas import QualityEvaluation
from core.scoring import DEFAULT_WEIGHTS, NEUTRAL_SCORE, low_dimension_issues, weighted_score
from ingestion.base import ContentItem
from services.llm import OllamaClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringFailure:
    """The evaluator produced nothing usable."""
    reason: str


@dataclass(frozen=True)
class ScoreOutcome:
    """
    What the pipeline keeps from one scoring call. On failure the score is
    neutral and no issues are added.
    """
    overall_score: int
    issues: List[Issue] = field(default_factory=list)
    evaluation: Optional[QualityEvaluation] = None
    failure: Optional[ScoringFailure] = None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    @property
    def recommendations(self) -> List[str]:
        return list(self.evaluation.top_improvements) if self.evaluation else []

    @property
    def assessment(self) -> Optional[str]:
        return self.evaluation.overall_assessment if self.evaluation else None


def _extract_json(content: str) -> str:
    """
    Extract a JSON object from an LLM response, stripping markdown code
    blocks and surrounding prose if present.
    """
    content = content.strip()

    match = re.match(r'^```(?:json)?\s*\n?(.*?)\n?```$', content, re.DOTALL)
    if match:
        return match.group(1).strip()

    object_match = re.search(r'\{.*\}', content, re.DOTALL)
    if object_match:
        return object_match.group(0)

    return content


def build_prompt(item: ContentItem) -> str:
    voice_block = ""
    voice_key = ""
    if item.voice_suitable:
        voice_block = "7. VOICE READINESS: Can the answer be delivered aloud in a short spoken reply?\n"
        voice_key = '  "voiceReadiness": { "score": 0-100, "feedback": "spoken delivery assessment" },\n'

    return f"""You are an expert technical interview content reviewer. Analyze this interview question comprehensively.

QUESTION: "{item.question or ''}"
ANSWER: "{(item.answer or '')[:300]}"
EXPLANATION: "{(item.explanation or '')[:800]}"
CHANNEL: {item.channel}
SUB-CHANNEL: {item.sub_channel or 'general'}
DIFFICULTY: {item.difficulty or 'intermediate'}

Score each dimension 0-100 and provide specific feedback:

1. TECHNICAL ACCURACY: Is the content factually correct? Are best practices followed?
2. CLARITY: Is the question clear? Is the answer easy to understand?
3. COMPLETENESS: Does the answer fully address the question? Are edge cases covered?
4. PRACTICAL RELEVANCE: Is this asked in real interviews? Is it useful for candidates?
5. STRUCTURE QUALITY: Is content well-organized? Good use of examples?
6. DIFFICULTY CALIBRATION: Does complexity match the stated difficulty level?
{voice_block}
Return ONLY valid JSON:
{{
  "technicalAccuracy": {{ "score": 0-100, "feedback": "specific issue or strength" }},
  "clarity": {{ "score": 0-100, "feedback": "specific issue or strength" }},
  "completeness": {{ "score": 0-100, "feedback": "what's missing or well-covered" }},
  "practicalRelevance": {{ "score": 0-100, "feedback": "interview relevance assessment" }},
  "structureQuality": {{ "score": 0-100, "feedback": "organization feedback" }},
  "difficultyCalibration": {{ "score": 0-100, "feedback": "difficulty match assessment" }},
{voice_key}  "overallAssessment": "2-3 sentence summary of content quality",
  "topImprovements": ["improvement 1", "improvement 2", "improvement 3"]
}}"""


def parse_evaluation(raw_content: str) -> Union[QualityEvaluation, ScoringFailure]:
    """
    Single validation boundary for the untrusted evaluator response.
    """
    clean_json = _extract_json(raw_content or "")
    try:
        evaluation = QualityEvaluation.model_validate_json(clean_json)
    except ValidationError as e:
        return ScoringFailure(f"Invalid evaluator response: {e.error_count()} validation error(s)")

    if not evaluation.dimensions():
        return ScoringFailure("Evaluator response contained no scored dimensions")

    return evaluation


class QualityScorer:
    """
    Scores an item through the external evaluator and folds the result
    into one overall score plus low-dimension issues.
    """

    def __init__(
        self,
        llm: OllamaClient,
        *,
        weights: Mapping[str, float] = DEFAULT_WEIGHTS,
        low_threshold: float = 60,
        high_threshold: float = 40,
    ):
        self.llm = llm
        self.weights = weights
        self.low_threshold = low_threshold
        self.high_threshold = high_threshold

    async def evaluate(self, item: ContentItem) -> Union[QualityEvaluation, ScoringFailure]:
        try:
            response = await self.llm.evaluate(build_prompt(item))
        except Exception as e:
            logger.warning(f"Evaluator call failed for {item.id}: {e}")
            return ScoringFailure(str(e))

        logger.debug(f"Evaluator response for {item.id} ({response.get('latency_ms')}ms)")
        return parse_evaluation(response.get("content", ""))

    async def score(self, item: ContentItem) -> ScoreOutcome:
        result = await self.evaluate(item)

        if isinstance(result, ScoringFailure):
            logger.warning(f"AI scoring failed for {item.id}: {result.reason}; using neutral score")
            return ScoreOutcome(overall_score=NEUTRAL_SCORE, failure=result)

        overall = weighted_score(result, self.weights)
        issues = low_dimension_issues(
            result,
            low_threshold=self.low_threshold,
            high_threshold=self.high_threshold,
        )
        logger.info(f"Overall score for {item.id}: {overall}/100 ({len(issues)} low dimension(s))")
        return ScoreOutcome(overall_score=overall, issues=issues, evaluation=result)
