"""
Verifier pipeline - the work queue's primary producer.

Per item: rule analysis -> AI scoring -> duplicate check -> routing ->
enqueue + "flag" ledger entry, or a "verify" ledger entry when no action
is needed.
"""
import asyncio
import logging
from typing import List, Optional, Tuple, Union

from core.entities import (
    Action,
    Analysis,
    ItemResult,
    LedgerAction,
    LedgerEntry,
    RoutingDecision,
    RunReport,
    WorkItem,
)
from core.routing import decide
from ingestion.base import ContentItem, ItemNotFoundError, ItemSource
from processing.analyzer import analyze
from processing.deduplicator import SimilarityIndex
from processing.evaluator import QualityScorer
from processing.summarizer import build_reason, flag_state, verify_state
from services.config import AnalyzerThresholds, RunnerConfig
from services.ledger import Ledger
from services.work_queue import WorkQueue
from workflows.base import BotPipeline

logger = logging.getLogger(__name__)

SCAN_MODE = "scan"
QUEUE_MODE = "queue"


class VerifierPipeline(BotPipeline):
    """
    Runs one verification pass in scan mode (unjudged items straight from
    the item source) or queue mode (work items assigned to this bot).
    """

    def __init__(
        self,
        *,
        source: ItemSource,
        queue: WorkQueue,
        ledger: Ledger,
        scorer: QualityScorer,
        similarity_index: SimilarityIndex,
        runner_config: Optional[RunnerConfig] = None,
        thresholds: Optional[AnalyzerThresholds] = None,
        bot_name: str = "verifier",
        processor_bot: str = "processor",
        max_candidates: int = 150,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.source = source
        self.queue = queue
        self.ledger = ledger
        self.scorer = scorer
        self.similarity_index = similarity_index
        self.runner_config = runner_config or RunnerConfig()
        self.thresholds = thresholds or AnalyzerThresholds()
        self.bot_name = bot_name
        self.processor_bot = processor_bot
        self.max_candidates = max_candidates
        self.stop_event = stop_event or asyncio.Event()

        if self.runner_config.mode not in (SCAN_MODE, QUEUE_MODE):
            raise ValueError(f"Unknown verifier mode: {self.runner_config.mode}")

    @property
    def name(self) -> str:
        return self.bot_name

    def stop(self) -> None:
        """Ask the pass to stop before the next item."""
        self.stop_event.set()

    async def run(self) -> RunReport:
        mode = self.runner_config.mode
        report = RunReport(bot_name=self.bot_name, mode=mode)

        if mode == QUEUE_MODE:
            batch = await self._fetch_queue_batch()
        else:
            batch = await self._fetch_scan_batch()

        logger.info(f"[{self.name}] Found {len(batch)} items to analyze ({mode} mode)")

        for index, (item, work_item) in enumerate(batch):
            if self.stop_event.is_set():
                logger.warning(f"[{self.name}] Stop requested, {len(batch) - index} items left unprocessed")
                report.aborted = True
                await self._release_unprocessed(batch[index:])
                break

            if index > 0 and self.runner_config.item_delay_seconds > 0:
                await asyncio.sleep(self.runner_config.item_delay_seconds)

            await self._run_one(report, item, work_item, index, len(batch))

        logger.info(
            f"[{self.name}] Pass finished: {report.stats.total_analyzed} analyzed, "
            f"{report.stats.passed} passed, {report.stats.flagged} flagged, {report.stats.errors} errors"
        )
        return report

    async def _fetch_scan_batch(self) -> List[Tuple[ContentItem, Optional[WorkItem]]]:
        items = await self.source.fetch_unjudged(
            bot_name=self.bot_name,
            limit=self.runner_config.limit,
            channel=self.runner_config.channel,
            within_days=self.runner_config.recent_days,
        )
        return [(item, None) for item in items]

    async def _fetch_queue_batch(self) -> List[Tuple[ContentItem, Optional[WorkItem]]]:
        work_items = await self.queue.claim_next(self.bot_name, self.runner_config.limit)
        batch = []
        for work_item in work_items:
            try:
                item = await self.source.get_item(work_item.item_id)
            except ItemNotFoundError:
                logger.warning(f"[{self.name}] Work item {work_item.id}: item {work_item.item_id} not found")
                await self.queue.fail(work_item.id, "Item not found")
                continue
            except Exception as e:
                logger.error(f"[{self.name}] Work item {work_item.id}: could not load item {work_item.item_id}: {e}")
                await self._fail_quietly(work_item, e)
                continue
            batch.append((item, work_item))
        return batch

    async def _run_one(
        self,
        report: RunReport,
        item: ContentItem,
        work_item: Optional[WorkItem],
        index: int,
        total: int,
    ) -> None:
        logger.info(f"[{self.name}] [{index + 1}/{total}] Analyzing {item.id}: {(item.question or '')[:50]}")

        try:
            if work_item is None and await self.ledger.has_recent_action(
                item.id,
                self.bot_name,
                (LedgerAction.VERIFY.value, LedgerAction.FLAG.value),
                self.runner_config.recent_days,
            ):
                logger.info(f"[{self.name}] {item.id} was judged by another run, skipping")
                return

            analysis, decision, result = await self._judge(item)

            if work_item is not None:
                await self.queue.complete(work_item.id, {
                    "verified": result.action is Action.NONE,
                    "score": result.score,
                    "issues": result.issue_count,
                })

            self._record(report, analysis, decision, result)

        except Exception as e:
            report.stats.errors += 1
            logger.exception(f"[{self.name}] Error processing item {item.id}: {e}")
            if work_item is not None:
                await self._fail_quietly(work_item, e)

    async def _release_unprocessed(self, remaining: List[Tuple[ContentItem, Optional[WorkItem]]]) -> None:
        """Fail claimed work items this pass will not reach so they can be requeued."""
        for _, work_item in remaining:
            if work_item is not None:
                await self._fail_quietly(work_item, "Run stopped before processing")

    async def _fail_quietly(self, work_item: WorkItem, error: Union[Exception, str]) -> None:
        try:
            await self.queue.fail(work_item.id, str(error))
        except Exception as e:
            logger.error(f"[{self.name}] Could not mark work item {work_item.id} failed: {e}")

    async def analyze_item(self, item: ContentItem) -> Analysis:
        """Rule checks, AI scoring and duplicate detection for one item."""
        issues, metrics = analyze(item, self.thresholds)
        analysis = Analysis(item_id=item.id, channel=item.channel, issues=issues, metrics=metrics)
        logger.debug(f"[{self.name}] {item.id}: {len(issues)} issues from rule analysis")

        outcome = await self.scorer.score(item)
        analysis.overall_score = outcome.overall_score
        analysis.add_issues(outcome.issues)
        analysis.recommendations = outcome.recommendations
        analysis.assessment = outcome.assessment
        analysis.scoring_failed = outcome.failed
        if outcome.evaluation is not None:
            analysis.scores = outcome.evaluation.model_dump(exclude_none=True)

        if item.question and item.channel:
            matches = await self.similarity_index.find_similar(
                item.id,
                item.question,
                item.channel,
                max_candidates=self.max_candidates,
            )
            analysis.duplicates = matches
            analysis.add_issues(self.similarity_index.duplicate_issues(matches))
            if matches:
                logger.info(f"[{self.name}] {item.id}: {len(matches)} similar items")

        return analysis

    async def process_item(self, item: ContentItem, report: Optional[RunReport] = None) -> ItemResult:
        analysis, decision, result = await self._judge(item)
        if report is not None:
            self._record(report, analysis, decision, result)
        return result

    async def _judge(self, item: ContentItem) -> Tuple[Analysis, RoutingDecision, ItemResult]:
        analysis = await self.analyze_item(item)
        decision = decide(analysis.issues)
        work_item_id = await self._apply_decision(item, analysis, decision)

        most_severe = sorted(analysis.issues, key=lambda i: i.severity.rank, reverse=True)
        result = ItemResult(
            item_id=item.id,
            channel=item.channel,
            score=analysis.overall_score,
            issue_count=len(analysis.issues),
            action=decision.action,
            priority=decision.priority,
            top_issues=[i.type.value for i in most_severe[:3]],
            work_item_id=work_item_id,
        )
        return analysis, decision, result

    @staticmethod
    def _record(report: RunReport, analysis: Analysis, decision: RoutingDecision, result: ItemResult) -> None:
        report.stats.record(analysis, decision)
        if analysis.scoring_failed:
            report.stats.scoring_failures += 1
        report.results.append(result)

    async def _apply_decision(
        self,
        item: ContentItem,
        analysis: Analysis,
        decision: RoutingDecision,
    ) -> Optional[int]:
        # Queue write precedes the ledger entry; a failed enqueue leaves the item unjudged
        if decision.needs_work:
            work_item_id = await self.queue.enqueue(
                item.id,
                decision.action.value,
                build_reason(analysis),
                self.bot_name,
                decision.priority,
                assigned_to=self.processor_bot,
            )
            await self.ledger.record(LedgerEntry(
                bot_name=self.bot_name,
                action=LedgerAction.FLAG.value,
                item_id=item.id,
                after_state={**flag_state(analysis, decision), "work_item_id": work_item_id},
                reason=(
                    f"Flagged for {decision.action.value}: {len(analysis.issues)} issues, "
                    f"score {analysis.overall_score}/100"
                ),
            ))
            logger.info(
                f"[{self.name}] {item.id} flagged: {decision.action.value} (priority {decision.priority})"
            )
            return work_item_id

        await self.ledger.record(LedgerEntry(
            bot_name=self.bot_name,
            action=LedgerAction.VERIFY.value,
            item_id=item.id,
            after_state=verify_state(analysis),
            reason=f"Passed verification with score {analysis.overall_score}/100",
        ))
        logger.info(f"[{self.name}] {item.id} verified - score {analysis.overall_score}/100")
        return None
