"""
Log delivery channel - run summary as structured log lines
"""
import logging

from core.entities import RunReport
from delivery.base import DeliveryChannel

logger = logging.getLogger(__name__)


class LogDelivery(DeliveryChannel):
    name = "log"

    async def deliver(
        self,
        *,
        report: RunReport,
        run_date: str,
    ) -> None:
        stats = report.stats
        total = stats.total_analyzed or 1

        logger.info(
            f"Verification report {run_date}: {stats.total_analyzed} analyzed, "
            f"{stats.passed} passed ({round(stats.passed / total * 100)}%), "
            f"{stats.flagged} flagged ({round(stats.flagged / total * 100)}%), "
            f"{stats.errors} errors, avg score {stats.average_score}"
        )

        severities = ", ".join(f"{k}={v}" for k, v in stats.by_severity.items() if v)
        if severities:
            logger.info(f"Issues by severity: {severities}")

        top_types = sorted(stats.by_issue_type.items(), key=lambda kv: kv[1], reverse=True)[:10]
        if top_types:
            logger.info("Top issue types: " + ", ".join(f"{k}={v}" for k, v in top_types))

        if stats.by_channel:
            logger.info("By channel: " + ", ".join(f"{k}={v}" for k, v in stats.by_channel.items()))

        for result in report.lowest_scoring():
            logger.info(f"Low score: {result.item_id} {result.score}/100 ({', '.join(result.top_issues)})")
