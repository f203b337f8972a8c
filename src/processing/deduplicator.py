"""
Near-duplicate detection over a bounded same-channel candidate pool.
"""
import logging
import re
from typing import FrozenSet, List

from core.entities import SimilarityMatch
from core.issues import DuplicateIssue, Issue, Severity
from ingestion.base import ItemSource

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    text = _NON_ALNUM.sub("", (text or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


def word_set(text: str) -> FrozenSet[str]:
    return frozenset(normalize_text(text).split())


def similarity(text1: str, text2: str) -> float:
    """
    Jaccard ratio of the normalized word sets. 0.0 when both are empty.
    """
    words1 = word_set(text1)
    words2 = word_set(text2)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


class SimilarityIndex:
    """
    O(candidates) scan per item. Fine for hundreds of items per run.
    """

    def __init__(
        self,
        source: ItemSource,
        *,
        threshold: float = 0.75,
        likely_threshold: float = 0.85,
        max_matches: int = 5,
        min_words: int = 3,
    ):
        self.source = source
        self.threshold = threshold
        self.likely_threshold = likely_threshold
        self.max_matches = max_matches
        self.min_words = min_words

    async def find_similar(
        self,
        item_id: str,
        text: str,
        channel: str,
        max_candidates: int = 150,
    ) -> List[SimilarityMatch]:
        words = word_set(text)
        if len(words) < self.min_words:
            logger.debug(f"Skipping similarity check for {item_id}: only {len(words)} words")
            return []

        candidates = await self.source.fetch_channel_candidates(
            channel=channel,
            exclude_id=item_id,
            limit=max_candidates,
        )

        matches: List[SimilarityMatch] = []
        for candidate in candidates:
            if candidate.id == item_id or not candidate.question:
                continue
            other = word_set(candidate.question)
            if len(other) < self.min_words:
                continue
            score = len(words & other) / len(words | other)
            if score >= self.threshold:
                matches.append(SimilarityMatch(
                    item_id=candidate.id,
                    similarity=score,
                    excerpt=candidate.question[:80],
                ))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:self.max_matches]

    def duplicate_issues(self, matches: List[SimilarityMatch]) -> List[Issue]:
        """
        At most one issue: likely duplicate if any match clears the likely
        threshold, potential duplicate otherwise.
        """
        likely = [m for m in matches if m.similarity >= self.likely_threshold]
        if likely:
            return [Issue(
                DuplicateIssue.LIKELY_DUPLICATE,
                Severity.HIGH,
                f"Very similar to: {_describe(likely)}",
            )]

        potential = [m for m in matches if self.threshold <= m.similarity < self.likely_threshold]
        if potential:
            return [Issue(
                DuplicateIssue.POTENTIAL_DUPLICATE,
                Severity.MEDIUM,
                f"Similar to: {_describe(potential)}",
            )]

        return []


def _describe(matches: List[SimilarityMatch]) -> str:
    return ", ".join(f"{m.item_id} ({round(m.similarity * 100)}%)" for m in matches)
