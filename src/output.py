from __future__ import annotations

import csv
from datetime import datetime
import logging
from pathlib import Path
from typing import Iterable

from records import BenchmarkResult


logger = logging.getLogger(__name__)

MAX_RESPONSE_CHARS = 1000

CSV_HEADER = (
    "Provider",
    "Model",
    "PromptFile",
    "StartTime",
    "FirstTokenTime",
    "EndTime",
    "TTFT_MS",
    "TotalTime_MS",
    "InputTokens",
    "OutputTokens",
    "TotalTokens",
    "TokensPerSecond",
    "Cost",
    "Success",
    "Error",
    "Response",
)


def default_output_path(now: datetime | None = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    return Path("results") / f"benchmark_{stamp}.csv"


def _format_timestamp(value: float | None) -> str:
    if value is None:
        return ""
    return datetime.fromtimestamp(value).astimezone().isoformat()


def _truncate(text: str) -> str:
    if len(text) <= MAX_RESPONSE_CHARS:
        return text
    return text[:MAX_RESPONSE_CHARS] + "..."


def result_to_row(result: BenchmarkResult) -> list[str]:
    return [
        result.provider,
        result.model,
        result.prompt_name,
        _format_timestamp(result.start_time),
        _format_timestamp(result.first_token_time),
        _format_timestamp(result.end_time),
        f"{result.ttft_s * 1000:.2f}",
        f"{result.total_time_s * 1000:.2f}",
        str(result.input_tokens),
        str(result.output_tokens),
        str(result.total_tokens),
        f"{result.tokens_per_second:.2f}",
        f"{result.cost:.6f}",
        "true" if result.success else "false",
        result.error_message or "",
        _truncate(result.response),
    ]


def write_results_csv(path: Path, results: Iterable[BenchmarkResult]) -> int:
    """Write one row per result and return the number of rows written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        for result in results:
            writer.writerow(result_to_row(result))
            count += 1
    logger.debug("Wrote %d result row(s) to %s", count, path)
    return count
