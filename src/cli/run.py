import argparse
import asyncio
from datetime import date
import logging
import os
import sys
import time
from typing import List, Optional

from pydantic import ValidationError

from services.config import Config, load_config
from services.logging import setup_logging
from services.database import Database
from services.ledger import Ledger
from services.llm import OllamaClient
from services.run_tracker import RunTracker
from services.work_queue import WorkQueue
from ingestion.database_source import DatabaseItemSource
from processing.deduplicator import SimilarityIndex
from processing.evaluator import QualityScorer
from workflows.verifier import VerifierPipeline
from delivery.base import DeliveryChannel
from delivery.file_delivery import FileDelivery
from delivery.log_delivery import LogDelivery

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one verifier bot pass")
    parser.add_argument("--config", help="Path to config.yml")
    parser.add_argument("--mode", choices=["scan", "queue"], help="scan unjudged items or drain the verifier queue")
    parser.add_argument("--limit", type=int, help="Maximum items to analyze")
    parser.add_argument("--channel", help="Only analyze this channel")
    parser.add_argument("--cleanup", action="store_true", help="Delete finished work items past the retention window")
    parser.add_argument("--cleanup-days", type=int, help="Retention window in days for --cleanup (implies --cleanup)")
    parser.add_argument("--no-report-file", action="store_true", help="Skip writing the report files")
    return parser.parse_args(argv)


def ensure_db_dir(db_path: str) -> None:
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
        logger.info(f"Created directory: {db_dir}")


def build_pipeline(config: Config, db: Database) -> VerifierPipeline:
    llm = OllamaClient(
        base_url=config.OLLAMA_BASE_URL,
        model=config.OLLAMA_MODEL,
        timeout=config.OLLAMA_TIMEOUT,
        max_retries=config.OLLAMA_MAX_RETRIES,
    )
    ledger = Ledger(db)
    source = DatabaseItemSource(db)

    return VerifierPipeline(
        source=source,
        queue=WorkQueue(db, ledger),
        ledger=ledger,
        scorer=QualityScorer(
            llm,
            weights=config.scoring.weights,
            low_threshold=config.scoring.low_dimension_score,
            high_threshold=config.scoring.high_severity_score,
        ),
        similarity_index=SimilarityIndex(
            source,
            threshold=config.similarity.threshold,
            likely_threshold=config.similarity.likely_threshold,
            max_matches=config.similarity.max_matches,
            min_words=config.similarity.min_words,
        ),
        runner_config=config.runner,
        thresholds=config.thresholds,
        bot_name=config.BOT_NAME,
        processor_bot=config.PROCESSOR_BOT,
        max_candidates=config.similarity.max_candidates,
    )


async def main(argv: Optional[List[str]] = None) -> int:
    start_time = time.perf_counter()
    setup_logging()
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.mode:
        config.runner.mode = args.mode
    if args.limit is not None:
        config.runner.limit = args.limit
    if args.channel:
        config.runner.channel = args.channel

    logger.info(
        f"Starting verifier run: mode={config.runner.mode} limit={config.runner.limit} "
        f"channel={config.runner.channel or 'all'}"
    )

    ensure_db_dir(config.DATABASE_PATH)
    db = Database(config.DATABASE_PATH)
    await db.init_tables()
    await DatabaseItemSource(db).init_tables()

    pipeline = build_pipeline(config, db)
    if not await pipeline.scorer.llm.health_check():
        logger.warning("Evaluator not ready, items will get the neutral score")

    queue_stats = await pipeline.queue.stats()
    logger.info(f"Queue status: {queue_stats}")

    if args.cleanup or args.cleanup_days is not None:
        days = args.cleanup_days if args.cleanup_days is not None else config.runner.retention_days
        await pipeline.queue.cleanup(days)

    runs = RunTracker(db)
    run_id = await runs.start_run(config.BOT_NAME)

    try:
        report = await pipeline.run()
    except Exception as e:
        logger.exception(f"Verifier run failed: {e}")
        await runs.fail_run(run_id, e)
        return 1

    await runs.complete_run(
        run_id,
        {"processed": report.stats.total_analyzed, "created": report.stats.flagged},
        report.to_dict(),
    )

    deliveries: List[DeliveryChannel] = [LogDelivery()]
    if not args.no_report_file:
        deliveries.append(FileDelivery(config.runner.report_dir))

    today = date.today().isoformat()
    for delivery in deliveries:
        try:
            await delivery.deliver(report=report, run_date=today)
        except Exception as e:
            logger.error(f"Report delivery failed: channel={delivery.name}, error={e}")

    logger.info(f"Total time: {time.perf_counter() - start_time:.1f}s")
    return 0


def console_main() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    console_main()
