from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any

from core.issues import Issue


class WorkStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Action(str, Enum):
    """
    Routing outcome for an analyzed item. NONE means verified.
    """
    DELETE = "delete"
    IMPROVE = "improve"
    NONE = "none"


class LedgerAction(str, Enum):
    VERIFY = "verify"
    FLAG = "flag"
    CLAIM = "claim"
    COMPLETE = "complete"
    FAIL = "fail"


@dataclass(frozen=True)
class WorkItem:
    """
    Durable unit of follow-up work on a content item.
    """
    id: int
    item_id: str
    item_type: str
    action: str
    priority: int
    status: WorkStatus
    reason: Optional[str]
    created_by: str
    assigned_to: str
    created_at: Optional[datetime]
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class LedgerEntry:
    """
    One audited bot action. Append-only.
    """
    bot_name: str
    action: str
    item_id: str
    item_type: str = "question"
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SimilarityMatch:
    item_id: str
    similarity: float
    excerpt: str


@dataclass(frozen=True)
class RoutingDecision:
    action: Action
    priority: int

    @property
    def needs_work(self) -> bool:
        return self.action is not Action.NONE


@dataclass
class Analysis:
    """
    Working memory for one item during one pass. Never persisted as a row.
    """
    item_id: str
    channel: Optional[str]
    issues: List[Issue] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    scores: Dict[str, Any] = field(default_factory=dict)
    overall_score: int = 50
    assessment: Optional[str] = None
    duplicates: List[SimilarityMatch] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    scoring_failed: bool = False

    def add_issues(self, issues: List[Issue]) -> None:
        self.issues.extend(issues)


@dataclass(frozen=True)
class ItemResult:
    """
    Per-item outcome kept for the run report.
    """
    item_id: str
    channel: Optional[str]
    score: int
    issue_count: int
    action: Action
    priority: int
    top_issues: List[str] = field(default_factory=list)
    work_item_id: Optional[int] = None


@dataclass
class RunStats:
    """
    Aggregate counters for one verifier pass.
    """
    total_analyzed: int = 0
    passed: int = 0
    flagged: int = 0
    errors: int = 0
    scoring_failures: int = 0
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_issue_type: Dict[str, int] = field(default_factory=dict)
    by_channel: Dict[str, int] = field(default_factory=dict)
    by_action: Dict[str, int] = field(default_factory=dict)
    score_total: int = 0

    @property
    def average_score(self) -> Optional[float]:
        if not self.total_analyzed:
            return None
        return round(self.score_total / self.total_analyzed, 1)

    def record(self, analysis: Analysis, decision: RoutingDecision) -> None:
        self.total_analyzed += 1
        self.score_total += analysis.overall_score
        if decision.needs_work:
            self.flagged += 1
            self.by_action[decision.action.value] = self.by_action.get(decision.action.value, 0) + 1
        else:
            self.passed += 1

        for issue in analysis.issues:
            self.by_issue_type[issue.type.value] = self.by_issue_type.get(issue.type.value, 0) + 1
            self.by_severity[issue.severity.value] = self.by_severity.get(issue.severity.value, 0) + 1

        channel = analysis.channel or "unknown"
        self.by_channel[channel] = self.by_channel.get(channel, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_analyzed": self.total_analyzed,
            "passed": self.passed,
            "flagged": self.flagged,
            "errors": self.errors,
            "scoring_failures": self.scoring_failures,
            "average_score": self.average_score,
            "by_severity": dict(self.by_severity),
            "by_issue_type": dict(self.by_issue_type),
            "by_channel": dict(self.by_channel),
            "by_action": dict(self.by_action),
        }


@dataclass
class RunReport:
    bot_name: str
    mode: str
    stats: RunStats = field(default_factory=RunStats)
    results: List[ItemResult] = field(default_factory=list)
    aborted: bool = False

    def lowest_scoring(self, n: int = 5) -> List[ItemResult]:
        return sorted(self.results, key=lambda r: r.score)[:n]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bot_name": self.bot_name,
            "mode": self.mode,
            "aborted": self.aborted,
            "stats": self.stats.to_dict(),
            "lowest_scoring": [
                {
                    "item_id": r.item_id,
                    "score": r.score,
                    "top_issues": r.top_issues,
                }
                for r in self.lowest_scoring()
            ],
            "results": [
                {
                    "item_id": r.item_id,
                    "channel": r.channel,
                    "score": r.score,
                    "issue_count": r.issue_count,
                    "action": r.action.value,
                    "priority": r.priority,
                    "work_item_id": r.work_item_id,
                }
                for r in self.results
            ],
        }
