"""
Tests for text similarity and the same-channel duplicate scan.
"""
from typing import List, Optional

import pytest

from core.entities import SimilarityMatch
from core.issues import DuplicateIssue, Severity
from ingestion.base import ContentItem, ItemNotFoundError, ItemSource
from processing.deduplicator import SimilarityIndex, normalize_text, similarity
from factories import HASHING_ITEM, insert_malformed_question, insert_question, make_item

BASE_QUESTION = HASHING_ITEM["question"]
LIKELY_QUESTION = "How does consistent hashing distribute keys across cache nodes in a large cluster?"
POTENTIAL_QUESTION = "How does consistent hashing distribute keys across cache nodes in a large busy cluster today?"


class StaticSource(ItemSource):
    """Candidate pool held in memory."""

    def __init__(self, items: List[ContentItem]):
        self.items = items
        self.calls = 0

    async def fetch_unjudged(self, *, bot_name: str, limit: int, channel: Optional[str] = None,
                             within_days: int = 7) -> List[ContentItem]:
        return self.items[:limit]

    async def get_item(self, item_id: str) -> ContentItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError(item_id)

    async def fetch_channel_candidates(self, *, channel: str, exclude_id: str, limit: int) -> List[ContentItem]:
        self.calls += 1
        return [i for i in self.items if i.channel == channel][:limit]


def _candidate(item_id: str, question: str, channel: str = "system-design") -> ContentItem:
    return make_item(HASHING_ITEM, id=item_id, question=question, channel=channel)


# =============================================================================
# similarity()
# =============================================================================

def test_normalize_text():
    assert normalize_text("  What's   the CAP-theorem?\n") == "whats the captheorem"
    assert normalize_text(None) == ""


def test_similarity_bounds_and_symmetry():
    a = "How do you shard a relational database?"
    b = "How would you shard a large database?"

    assert similarity(a, a) == 1.0
    assert similarity(a, b) == similarity(b, a)
    assert 0.0 < similarity(a, b) < 1.0
    assert similarity("", "") == 0.0
    assert similarity("caching", "") == 0.0


def test_similarity_ignores_case_and_punctuation():
    assert similarity("What is a CDN?", "what is a cdn") == 1.0


def test_similarity_known_ratios():
    assert similarity(BASE_QUESTION, LIKELY_QUESTION) == pytest.approx(12 / 13)
    assert similarity(BASE_QUESTION, POTENTIAL_QUESTION) == pytest.approx(12 / 15)


# =============================================================================
# SimilarityIndex
# =============================================================================

async def test_find_similar_sorted_and_thresholded():
    source = StaticSource([
        _candidate("potential", POTENTIAL_QUESTION),
        _candidate("unrelated", "What is the difference between TCP and UDP transport?"),
        _candidate("likely", LIKELY_QUESTION),
        _candidate("other-channel", LIKELY_QUESTION, channel="devops"),
    ])
    index = SimilarityIndex(source)

    matches = await index.find_similar("sd-hash-1", BASE_QUESTION, "system-design")

    assert [m.item_id for m in matches] == ["likely", "potential"]
    assert matches[0].similarity == pytest.approx(12 / 13)
    assert matches[0].excerpt == LIKELY_QUESTION[:80]


async def test_find_similar_skips_self_and_caps_matches():
    items = [_candidate(f"copy-{i}", BASE_QUESTION) for i in range(7)]
    items.append(_candidate("sd-hash-1", BASE_QUESTION))
    index = SimilarityIndex(StaticSource(items), max_matches=5)

    matches = await index.find_similar("sd-hash-1", BASE_QUESTION, "system-design")

    assert len(matches) == 5
    assert all(m.item_id != "sd-hash-1" for m in matches)
    assert all(m.similarity == 1.0 for m in matches)


async def test_malformed_candidate_does_not_poison_the_pool(db, source):
    await insert_question(db, make_item(HASHING_ITEM, id="likely", question=LIKELY_QUESTION))
    await insert_malformed_question(db, "sd-bad")

    candidates = await source.fetch_channel_candidates(channel="system-design", exclude_id="sd-hash-1", limit=10)
    matches = await SimilarityIndex(source).find_similar("sd-hash-1", BASE_QUESTION, "system-design")

    assert [c.id for c in candidates] == ["likely"]
    assert [m.item_id for m in matches] == ["likely"]


async def test_short_text_skips_candidate_fetch():
    source = StaticSource([_candidate("tiny", "Define CDN?")])
    index = SimilarityIndex(source)

    assert await index.find_similar("x", "Define CDN?", "system-design") == []
    assert source.calls == 0


def test_duplicate_issues_picks_most_severe():
    index = SimilarityIndex(StaticSource([]))
    likely = SimilarityMatch("a", 0.92, "...")
    potential = SimilarityMatch("b", 0.8, "...")

    issues = index.duplicate_issues([likely, potential])
    assert len(issues) == 1
    assert issues[0].type is DuplicateIssue.LIKELY_DUPLICATE
    assert issues[0].severity is Severity.HIGH
    assert "a (92%)" in issues[0].message

    issues = index.duplicate_issues([potential])
    assert [(i.type, i.severity) for i in issues] == [(DuplicateIssue.POTENTIAL_DUPLICATE, Severity.MEDIUM)]
    assert "b (80%)" in issues[0].message

    assert index.duplicate_issues([]) == []
