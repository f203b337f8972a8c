"""
Tests for run report delivery.
"""
import json
import logging

from core.entities import Action, ItemResult, RunReport, RunStats
from delivery.file_delivery import FileDelivery
from delivery.log_delivery import LogDelivery


def _report() -> RunReport:
    stats = RunStats(
        total_analyzed=2,
        passed=1,
        flagged=1,
        score_total=130,
        by_severity={"high": 2},
        by_issue_type={"short_answer": 1, "missing_explanation": 1},
        by_channel={"system-design": 2},
        by_action={"improve": 1},
    )
    return RunReport(
        bot_name="verifier",
        mode="scan",
        stats=stats,
        results=[
            ItemResult("sd-1", "system-design", 82, 0, Action.NONE, 5),
            ItemResult("sd-2", "system-design", 48, 2, Action.IMPROVE, 2,
                       ["short_answer", "missing_explanation"], 7),
        ],
    )


async def test_file_delivery_writes_json_and_markdown(tmp_path):
    delivery = FileDelivery(str(tmp_path / "reports"))

    await delivery.deliver(report=_report(), run_date="2026-10-17")

    data = json.loads((tmp_path / "reports" / "verifier_scan_2026-10-17.json").read_text())
    assert data["stats"]["average_score"] == 65.0
    assert data["lowest_scoring"][0]["item_id"] == "sd-2"
    assert data["results"][1]["action"] == "improve"
    assert data["results"][1]["work_item_id"] == 7

    markdown = (tmp_path / "reports" / "verifier_scan_2026-10-17.md").read_text()
    assert "- Flagged: 1" in markdown
    assert "- sd-2: 48/100 - short_answer, missing_explanation" in markdown


async def test_log_delivery_summarizes(caplog):
    with caplog.at_level(logging.INFO, logger="delivery.log_delivery"):
        await LogDelivery().deliver(report=_report(), run_date="2026-10-17")

    assert "2 analyzed, 1 passed (50%), 1 flagged (50%)" in caplog.text
    assert "Issues by severity: high=2" in caplog.text
    assert "Low score: sd-2 48/100" in caplog.text

