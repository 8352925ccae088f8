"""
Result reporting.

Aggregates a BatchResult into a Report and writes it as a JSON document.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog

from nft_batcher.core.result import BatchResult, OutcomeCategory

logger = structlog.get_logger(__name__)


@dataclass
class Report:
    """
    Summary of one batch run.

    Counts are derived from the entries; ``result`` holds the full
    serialized BatchResult in input order.
    """

    run_id: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
    skipped: int = 0
    cancelled: bool = False
    fatal_error: Optional[str] = None
    result: Dict[str, Any] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return (
            self.fatal_error is None
            and not self.cancelled
            and self.failed == 0
            and self.timed_out == 0
        )

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "skipped": self.skipped,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "created_at": self.created_at.isoformat(),
            "counts": self.counts,
            "cancelled": self.cancelled,
            "fatal_error": self.fatal_error,
            "result": self.result,
        }


class ResultReporter:
    """Builds reports from batch results."""

    @staticmethod
    def summarize(result: BatchResult) -> Report:
        """
        Summarize a batch result.

        Summarizing the same result twice yields equal reports apart from
        ``created_at``.

        Args:
            result: Completed (or partial) batch result

        Returns:
            Report with per-category counts
        """
        counts = {category: 0 for category in OutcomeCategory}
        for entry in result.entries:
            counts[entry.category] += 1

        return Report(
            run_id=result.run_id,
            total=result.size,
            succeeded=counts[OutcomeCategory.SUCCEEDED],
            failed=counts[OutcomeCategory.FAILED],
            timed_out=counts[OutcomeCategory.TIMED_OUT],
            skipped=counts[OutcomeCategory.SKIPPED],
            cancelled=result.cancelled,
            fatal_error=result.fatal_error,
            result=result.to_dict(),
        )

    @staticmethod
    def write_report(report: Report, path: Union[str, Path]) -> Path:
        """Write a report as indented JSON, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report.to_dict(), indent=2))
        logger.info("report_written", path=str(path), run_id=report.run_id, **report.counts)
        return path
