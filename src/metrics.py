from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from threading import Lock
import time
from typing import Callable, Iterable

from records import BenchmarkResult


Clock = Callable[[], float]


class MetricsRecorder:
    """Mutable timing and token accumulator for one in-flight call.

    The recorder is finalized exactly once, by either ``complete`` or
    ``set_error``; later finalization attempts are ignored and return False.
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._chunks: list[str] = []
        self._finalized = False

        self.start_time = clock()
        self.first_token_time: float | None = None
        self.end_time: float | None = None
        self.input_tokens = 0
        self.output_tokens = 0
        self.ttft_s = 0.0
        self.total_time_s = 0.0
        self.tokens_per_second = 0.0
        self.cost = 0.0
        self.error: BaseException | None = None
        self.success = False

    @property
    def response(self) -> str:
        with self._lock:
            return "".join(self._chunks)

    @property
    def finalized(self) -> bool:
        with self._lock:
            return self._finalized

    def record_first_token(self) -> bool:
        with self._lock:
            if self.first_token_time is not None:
                return False
            self.first_token_time = self._clock()
            return True

    def add_response_content(self, content: str) -> None:
        if not content:
            return
        with self._lock:
            self._chunks.append(content)

    def add_tokens(self, input_tokens: int, output_tokens: int) -> None:
        with self._lock:
            self.input_tokens += input_tokens
            self.output_tokens += output_tokens

    def set_cost(self, cost: float) -> None:
        with self._lock:
            self.cost = cost

    def discard_partial(self) -> None:
        """Drop text and token counts gathered before an aborted call."""
        with self._lock:
            self._chunks.clear()
            self.input_tokens = 0
            self.output_tokens = 0
            self.cost = 0.0

    def complete(self) -> bool:
        with self._lock:
            if self._finalized:
                return False
            self._finalized = True
            self.end_time = self._clock()
            self.success = True

            if self.first_token_time is not None:
                self.ttft_s = self.first_token_time - self.start_time
            self.total_time_s = self.end_time - self.start_time
            if self.total_time_s > 0 and self.output_tokens > 0:
                self.tokens_per_second = self.output_tokens / self.total_time_s
            return True

    def set_error(self, error: BaseException) -> bool:
        with self._lock:
            if self._finalized:
                return False
            self._finalized = True
            self.error = error
            self.success = False
            self.end_time = self._clock()
            return True

    def to_result(self, provider: str, model: str, prompt_name: str) -> BenchmarkResult:
        with self._lock:
            return BenchmarkResult(
                provider=provider,
                model=model,
                prompt_name=prompt_name,
                start_time=self.start_time,
                first_token_time=self.first_token_time,
                end_time=self.end_time,
                ttft_s=self.ttft_s,
                total_time_s=self.total_time_s,
                input_tokens=self.input_tokens,
                output_tokens=self.output_tokens,
                total_tokens=self.input_tokens + self.output_tokens,
                tokens_per_second=self.tokens_per_second,
                cost=self.cost,
                response="".join(self._chunks),
                success=self.success,
                error_type=type(self.error).__name__ if self.error is not None else None,
                error_message=str(self.error) if self.error is not None else None,
            )


@dataclass(frozen=True, slots=True)
class LatencyStats:
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "mean": self.mean,
            "min": self.min,
            "max": self.max,
            "p50": self.p50,
            "p95": self.p95,
            "p99": self.p99,
        }


@dataclass(frozen=True, slots=True)
class Summary:
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    error_rate: float = 0.0
    ttft: LatencyStats = LatencyStats()
    total_time: LatencyStats = LatencyStats()
    avg_tokens_per_second: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost: float = 0.0
    avg_cost_per_run: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "total_runs": self.total_runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "error_rate": self.error_rate,
            "ttft_s": self.ttft.to_dict(),
            "total_time_s": self.total_time.to_dict(),
            "avg_tokens_per_second": self.avg_tokens_per_second,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost": self.total_cost,
            "avg_cost_per_run": self.avg_cost_per_run,
        }


def percentile(sorted_values: list[float], percent: float) -> float:
    """Nearest-rank percentile of an already sorted sequence."""
    if not sorted_values:
        return 0.0
    count = len(sorted_values)
    index = ceil(percent * count / 100) - 1
    index = min(max(index, 0), count - 1)
    return float(sorted_values[index])


def latency_stats(values: Iterable[float]) -> LatencyStats:
    ordered = sorted(values)
    if not ordered:
        return LatencyStats()
    return LatencyStats(
        mean=sum(ordered) / len(ordered),
        min=ordered[0],
        max=ordered[-1],
        p50=percentile(ordered, 50),
        p95=percentile(ordered, 95),
        p99=percentile(ordered, 99),
    )


def calculate_summary(results: Iterable[BenchmarkResult]) -> Summary:
    total_runs = 0
    successful: list[BenchmarkResult] = []
    for result in results:
        total_runs += 1
        if result.success:
            successful.append(result)

    if total_runs == 0:
        return Summary()

    failed_runs = total_runs - len(successful)
    total_cost = sum(result.cost for result in successful)
    return Summary(
        total_runs=total_runs,
        successful_runs=len(successful),
        failed_runs=failed_runs,
        error_rate=failed_runs / total_runs,
        ttft=latency_stats(result.ttft_s for result in successful),
        total_time=latency_stats(result.total_time_s for result in successful),
        avg_tokens_per_second=(
            sum(result.tokens_per_second for result in successful) / len(successful)
            if successful
            else 0.0
        ),
        total_input_tokens=sum(result.input_tokens for result in successful),
        total_output_tokens=sum(result.output_tokens for result in successful),
        total_cost=total_cost,
        avg_cost_per_run=(total_cost / len(successful) if successful else 0.0),
    )
