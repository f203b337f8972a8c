"""
File delivery channel
"""
import json
from pathlib import Path

from core.entities import RunReport
from delivery.base import DeliveryChannel


class FileDelivery(DeliveryChannel):
    name = "file"

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    async def deliver(
        self,
        *,
        report: RunReport,
        run_date: str,
    ) -> None:
        base = self.output_dir / f"{report.bot_name}_{report.mode}_{run_date}"

        json_path = base.with_suffix(".json")
        md_path = base.with_suffix(".md")

        json_path.write_text(
            json.dumps(report.to_dict(), indent=2),
            encoding="utf-8",
        )

        stats = report.stats
        md_lines = list[str]()
        md_lines.append(f"# Verification report: {report.bot_name} ({report.mode})")
        md_lines.append("")
        md_lines.append(f"- Total analyzed: {stats.total_analyzed}")
        md_lines.append(f"- Passed: {stats.passed}")
        md_lines.append(f"- Flagged: {stats.flagged}")
        md_lines.append(f"- Errors: {stats.errors}")
        md_lines.append(f"- Average score: {stats.average_score}")
        if report.aborted:
            md_lines.append("- **Aborted before the end of the batch**")
        md_lines.append("")

        md_lines.append("## Issues by severity")
        for severity, count in stats.by_severity.items():
            md_lines.append(f"- {severity}: {count}")
        md_lines.append("")

        md_lines.append("## Top issue types")
        top_types = sorted(stats.by_issue_type.items(), key=lambda kv: kv[1], reverse=True)[:10]
        for issue_type, count in top_types:
            md_lines.append(f"- {issue_type}: {count}")
        md_lines.append("")

        md_lines.append("## By channel")
        for channel, count in stats.by_channel.items():
            md_lines.append(f"- {channel}: {count}")
        md_lines.append("")

        lowest = report.lowest_scoring()
        if lowest:
            md_lines.append("## Lowest scoring items")
            for result in lowest:
                md_lines.append(f"- {result.item_id}: {result.score}/100 - {', '.join(result.top_issues)}")

        md_path.write_text("\n".join(md_lines) + "\n", encoding="utf-8")
