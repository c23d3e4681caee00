from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
import logging
import queue
from threading import Event, Lock, Thread
import time
from typing import Callable, cast

from backends import StreamingProvider
from errors import (
    BenchmarkError,
    ConfigurationError,
    ProviderError,
    RequestCancelledError,
    RequestTimeoutError,
)
from metrics import MetricsRecorder, Summary, calculate_summary
from pricing import ModelsConfig, ModelTarget, calculate_cost
from prompts import Prompt
from records import BenchmarkResult, ChatRequest
from registry import ProviderRegistry
from streaming import ChatStream


logger = logging.getLogger(__name__)

PromptSource = Callable[[], list[Prompt]]
ResultCallback = Callable[[BenchmarkResult], None]
PlanCallback = Callable[[int], None]


class RunState(str, Enum):
    IDLE = "idle"
    LOADING_PROMPTS = "loading_prompts"
    RUNNING = "running"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class RunSettings:
    concurrency: int = 1
    runs: int = 1
    request_timeout_s: float = 60.0
    poll_interval_s: float = 0.05

    def validate(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.runs < 1:
            raise ValueError("runs must be >= 1")
        if self.request_timeout_s <= 0:
            raise ValueError("request_timeout_s must be > 0")
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")


@dataclass(frozen=True, slots=True)
class WorkItem:
    prompt: Prompt
    target: ModelTarget
    repetition: int


_STOP = object()


class BenchmarkRunner:
    def __init__(
        self,
        registry: ProviderRegistry,
        models: ModelsConfig,
        prompt_source: PromptSource,
        settings: RunSettings | None = None,
        provider_names: list[str] | None = None,
        on_result: ResultCallback | None = None,
        on_plan: PlanCallback | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.models = models
        self.prompt_source = prompt_source
        self.settings = settings or RunSettings()
        self.settings.validate()
        self.provider_names = provider_names
        self.on_result = on_result
        self.on_plan = on_plan
        self.planned_calls = 0
        self.clock = clock
        self.state = RunState.IDLE
        self._results: list[BenchmarkResult] = []
        self._results_lock = Lock()

    def run(self, cancel_event: Event | None = None) -> RunState:
        cancel_event = cancel_event or Event()

        self.state = RunState.LOADING_PROMPTS
        try:
            prompts = self.prompt_source()
        except Exception:
            self.state = RunState.IDLE
            raise
        logger.debug("Loaded %d prompt(s)", len(prompts))

        providers = self._resolve_providers()
        targets = [
            target
            for target in self.models.targets(self.provider_names)
            if target.provider in providers
        ]
        logger.info(
            "Benchmarking %d prompt(s) x %d model(s) x %d run(s) with concurrency=%d",
            len(prompts), len(targets), self.settings.runs, self.settings.concurrency,
        )
        self.planned_calls = len(prompts) * len(targets) * self.settings.runs
        if self.on_plan is not None:
            self.on_plan(self.planned_calls)

        self.state = RunState.RUNNING
        if self.settings.concurrency <= 1:
            self._run_sequential(prompts, targets, providers, cancel_event)
        else:
            self._run_concurrent(prompts, targets, providers, cancel_event)

        self.state = RunState.CANCELLED if cancel_event.is_set() else RunState.DONE
        logger.info("Run finished with state=%s results=%d", self.state.value, len(self._results))
        return self.state

    def get_results(self) -> list[BenchmarkResult]:
        with self._results_lock:
            return list(self._results)

    def get_summary(self) -> Summary:
        return calculate_summary(self.get_results())

    def _resolve_providers(self) -> dict[str, StreamingProvider]:
        names = self.provider_names
        if names is None:
            names = self.models.provider_names()

        providers: dict[str, StreamingProvider] = {}
        for name in names:
            if not self.models.list_models(name):
                continue
            try:
                providers[name] = self.registry.get_provider(name)
            except ConfigurationError as exc:
                logger.warning("Skipping provider %r: %s", name, exc)
        return providers

    def _iter_work(self, prompts: list[Prompt], targets: list[ModelTarget]):
        for prompt in prompts:
            for target in targets:
                for repetition in range(self.settings.runs):
                    yield WorkItem(prompt=prompt, target=target, repetition=repetition)

    def _run_sequential(
        self,
        prompts: list[Prompt],
        targets: list[ModelTarget],
        providers: dict[str, StreamingProvider],
        cancel_event: Event,
    ) -> None:
        logger.debug("Running benchmarks sequentially")
        for item in self._iter_work(prompts, targets):
            if cancel_event.is_set():
                return
            result = self._run_single(providers[item.target.provider], item, cancel_event)
            self._add_result(result)

    def _run_concurrent(
        self,
        prompts: list[Prompt],
        targets: list[ModelTarget],
        providers: dict[str, StreamingProvider],
        cancel_event: Event,
    ) -> None:
        workers = self.settings.concurrency
        logger.debug("Running benchmarks with %d concurrent workers", workers)
        work_queue: queue.Queue[object] = queue.Queue(maxsize=workers * 2)

        def produce() -> None:
            for item in self._iter_work(prompts, targets):
                if not self._put(work_queue, item, cancel_event):
                    return
            for _ in range(workers):
                if not self._put(work_queue, _STOP, cancel_event):
                    return

        producer = Thread(target=produce, name="benchmark-producer", daemon=True)
        producer.start()
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="benchmark-worker") as executor:
            futures = [
                executor.submit(self._worker, worker_id, work_queue, providers, cancel_event)
                for worker_id in range(1, workers + 1)
            ]
            for future in futures:
                future.result()
        producer.join()

    def _worker(
        self,
        worker_id: int,
        work_queue: queue.Queue[object],
        providers: dict[str, StreamingProvider],
        cancel_event: Event,
    ) -> None:
        while not cancel_event.is_set():
            try:
                item = work_queue.get(timeout=self.settings.poll_interval_s)
            except queue.Empty:
                continue
            if item is _STOP:
                return
            if cancel_event.is_set():
                return
            work = cast(WorkItem, item)
            logger.debug(
                "Worker %d: processing %s with %s/%s",
                worker_id, work.prompt.name, work.target.provider, work.target.model,
            )
            result = self._run_single(providers[work.target.provider], work, cancel_event)
            self._add_result(result)

    def _put(self, work_queue: queue.Queue[object], item: object, cancel_event: Event) -> bool:
        while not cancel_event.is_set():
            try:
                work_queue.put(item, timeout=self.settings.poll_interval_s)
                return True
            except queue.Full:
                continue
        return False

    def build_request(self, item: WorkItem) -> ChatRequest:
        spec = item.target.spec
        return ChatRequest(
            model=item.target.model,
            user_prompt=item.prompt.user,
            system_prompt=item.prompt.system,
            max_tokens=spec.max_tokens,
            temperature=spec.temperature,
            top_p=spec.top_p,
            extra_params=dict(spec.parameters),
            timeout_s=self.settings.request_timeout_s,
        )

    def _run_single(
        self, provider: StreamingProvider, item: WorkItem, cancel_event: Event
    ) -> BenchmarkResult:
        metrics = MetricsRecorder(clock=self.clock)
        request = self.build_request(item)
        deadline = metrics.start_time + self.settings.request_timeout_s

        try:
            provider.validate_request(request)
            stream = provider.stream_chat(request, cancel_event=cancel_event)
        except BenchmarkError as exc:
            metrics.set_error(exc)
            return self._finish(provider, item, metrics)
        except Exception as exc:  # noqa: BLE001
            metrics.set_error(
                ProviderError(provider.name, "failed to start streaming chat", exc)
            )
            return self._finish(provider, item, metrics)

        self._consume(provider, request, stream, metrics, deadline, cancel_event)
        return self._finish(provider, item, metrics)

    def _consume(
        self,
        provider: StreamingProvider,
        request: ChatRequest,
        stream: ChatStream,
        metrics: MetricsRecorder,
        deadline: float,
        cancel_event: Event,
    ) -> None:
        while True:
            if cancel_event.is_set():
                stream.cancel()
                metrics.discard_partial()
                metrics.set_error(
                    RequestCancelledError(
                        "streaming response", self.clock() - metrics.start_time
                    )
                )
                return

            remaining = deadline - self.clock()
            if remaining <= 0:
                stream.cancel()
                metrics.discard_partial()
                metrics.set_error(
                    RequestTimeoutError(
                        "streaming response", self.settings.request_timeout_s
                    )
                )
                return

            try:
                event = stream.next_event(
                    timeout=min(remaining, self.settings.poll_interval_s)
                )
            except queue.Empty:
                continue

            if event is None:
                if cancel_event.is_set():
                    continue
                break
            if event.error is not None:
                error = event.error
                if not isinstance(error, BenchmarkError):
                    error = ProviderError(
                        provider.name, "error in streaming response", error
                    )
                metrics.set_error(error)
                return
            if event.content:
                metrics.record_first_token()
                metrics.add_response_content(event.content)
            if event.is_complete:
                stream.cancel()
                break

        response = metrics.response
        metrics.add_tokens(
            provider.get_token_count(request.input_text),
            provider.get_token_count(response),
        )
        metrics.complete()

    def _finish(
        self, provider: StreamingProvider, item: WorkItem, metrics: MetricsRecorder
    ) -> BenchmarkResult:
        if metrics.success:
            pricing = self.models.get_model_pricing(item.target.provider, item.target.model)
            metrics.set_cost(
                calculate_cost(metrics.input_tokens, metrics.output_tokens, pricing)
            )
        return metrics.to_result(provider.name, item.target.model, item.prompt.name)

    def _add_result(self, result: BenchmarkResult) -> None:
        with self._results_lock:
            self._results.append(result)
        if not result.success:
            logger.debug(
                "Call failed: %s/%s on %s: %s",
                result.provider, result.model, result.prompt_name, result.error_message,
            )
        self._notify(result)

    def _notify(self, result: BenchmarkResult) -> None:
        if self.on_result is None:
            return
        try:
            self.on_result(result)
        except Exception:  # noqa: BLE001
            logger.warning("Result callback failed", exc_info=True)
