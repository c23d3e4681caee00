from __future__ import annotations

from pathlib import Path
import sys
from threading import Event, Lock, Timer
import time
from typing import Callable, Iterator

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from backends import StreamingProvider
from errors import ConfigurationError, PromptLoadError
from pricing import ModelsConfig
from prompts import Prompt
from providers import ProviderConfig
from records import BenchmarkResult, ChatRequest, StreamEvent
from registry import ProviderRegistry
from runner import BenchmarkRunner, RunSettings, RunState


Script = Callable[[ChatRequest], Iterator[StreamEvent]]


class FakeProvider(StreamingProvider):
    kind = "fake"

    def __init__(self, config: ProviderConfig, script: Script) -> None:
        super().__init__(config)
        self.script = script
        self.requests: list[ChatRequest] = []

    def _iter_events(self, request: ChatRequest) -> Iterator[StreamEvent]:
        self.requests.append(request)
        return self.script(request)


class ExplodingProvider(StreamingProvider):
    kind = "exploding"

    def stream_chat(self, request, cancel_event=None):  # noqa: ANN001
        raise RuntimeError("socket refused")


def reply(*chunks: str) -> Script:
    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        for chunk in chunks:
            yield StreamEvent(content=chunk)
        yield StreamEvent(is_complete=True)

    return script


def _make_runner(
    scripts: dict[str, Script],
    models: dict[str, object],
    prompts: list[Prompt],
    settings: RunSettings | None = None,
    **kwargs: object,
) -> tuple[BenchmarkRunner, dict[str, FakeProvider]]:
    built: dict[str, FakeProvider] = {}

    def factory(config: ProviderConfig) -> FakeProvider:
        provider = FakeProvider(config, scripts[config.name])
        built[config.name] = provider
        return provider

    registry = ProviderRegistry({"fake": factory})
    for name in scripts:
        registry.register_config(name, ProviderConfig(name=name, kind="fake"))
    runner = BenchmarkRunner(
        registry=registry,
        models=ModelsConfig.from_dict(models),
        prompt_source=lambda: list(prompts),
        settings=settings,
        **kwargs,  # type: ignore[arg-type]
    )
    return runner, built


PROMPTS = [Prompt(name="p1", user="hello world!"), Prompt(name="p2", user="bye")]


def test_sequential_run_visits_prompts_models_and_repetitions_in_order() -> None:
    runner, built = _make_runner(
        {"openai": reply("ok")},
        {"openai": {"m1": {}, "m2": {}}},
        PROMPTS,
        settings=RunSettings(runs=2),
    )

    assert runner.state is RunState.IDLE
    assert runner.run() is RunState.DONE

    order = [(result.prompt_name, result.model) for result in runner.get_results()]
    assert order == [
        ("p1", "m1"),
        ("p1", "m1"),
        ("p1", "m2"),
        ("p1", "m2"),
        ("p2", "m1"),
        ("p2", "m1"),
        ("p2", "m2"),
        ("p2", "m2"),
    ]
    assert len(built["openai"].requests) == 8
    assert runner.state is RunState.DONE


def test_successful_call_records_tokens_and_cost() -> None:
    runner, _ = _make_runner(
        {"openai": reply("abcd", "efgh")},
        {"openai": {"gpt": {"token_price": {"input": 1.0, "output": 2.0}}}},
        [Prompt(name="p1", user="hello world!")],
    )
    runner.run()

    (result,) = runner.get_results()
    assert result.success is True
    assert result.response == "abcdefgh"
    assert result.input_tokens == 3
    assert result.output_tokens == 2
    assert result.total_tokens == 5
    assert result.cost == pytest.approx(7e-6)
    assert result.ttft_s >= 0.0
    assert result.total_time_s >= result.ttft_s
    assert result.first_token_time is not None


def test_request_carries_model_spec_parameters() -> None:
    runner, built = _make_runner(
        {"openai": reply("ok")},
        {
            "openai": {
                "gpt": {
                    "max_tokens": 128,
                    "temperature": 0.4,
                    "top_p": 0.9,
                    "parameters": {"seed": 3},
                }
            }
        },
        [Prompt(name="p1", user="question", system="be terse")],
    )
    runner.run()

    (request,) = built["openai"].requests
    assert request.model == "gpt"
    assert request.system_prompt == "be terse"
    assert request.max_tokens == 128
    assert request.temperature == pytest.approx(0.4)
    assert request.top_p == pytest.approx(0.9)
    assert request.extra_params == {"seed": 3}


def test_empty_stream_is_a_success_with_zero_ttft() -> None:
    runner, _ = _make_runner(
        {"openai": reply()},
        {"openai": {"gpt": {}}},
        [Prompt(name="p1", user="hello")],
    )
    runner.run()

    (result,) = runner.get_results()
    assert result.success is True
    assert result.ttft_s == 0.0
    assert result.output_tokens == 0
    assert result.tokens_per_second == 0.0
    assert result.response == ""


def test_source_failure_becomes_provider_error_result() -> None:
    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        yield StreamEvent(content="partial")
        raise RuntimeError("stream reset")

    runner, _ = _make_runner(
        {"openai": script}, {"openai": {"gpt": {}}}, [Prompt(name="p1", user="hi")]
    )
    runner.run()

    (result,) = runner.get_results()
    assert result.success is False
    assert result.error_type == "ProviderError"
    assert "stream reset" in (result.error_message or "")
    assert result.cost == 0.0


def test_foreign_error_event_is_wrapped_as_provider_error() -> None:
    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        yield StreamEvent(error=ValueError("bad frame"))

    runner, _ = _make_runner(
        {"openai": script}, {"openai": {"gpt": {}}}, [Prompt(name="p1", user="hi")]
    )
    runner.run()

    (result,) = runner.get_results()
    assert result.error_type == "ProviderError"
    assert "error in streaming response" in (result.error_message or "")


def test_invalid_request_is_recorded_without_streaming() -> None:
    runner, built = _make_runner(
        {"openai": reply("never")},
        {"openai": {"gpt": {"temperature": 5.0}}},
        [Prompt(name="p1", user="hi")],
    )
    runner.run()

    (result,) = runner.get_results()
    assert result.success is False
    assert result.error_type == "ValidationError"
    assert built["openai"].requests == []


def test_stream_start_failure_is_wrapped() -> None:
    registry = ProviderRegistry({"exploding": ExplodingProvider})
    registry.register_config("boom", ProviderConfig(name="boom", kind="exploding"))
    runner = BenchmarkRunner(
        registry=registry,
        models=ModelsConfig.from_dict({"boom": {"gpt": {}}}),
        prompt_source=lambda: [Prompt(name="p1", user="hi")],
    )
    runner.run()

    (result,) = runner.get_results()
    assert result.error_type == "ProviderError"
    assert "failed to start streaming chat" in (result.error_message or "")


def test_slow_stream_times_out() -> None:
    release = Event()

    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        yield StreamEvent(content="first")
        release.wait(5.0)
        yield StreamEvent(is_complete=True)

    runner, _ = _make_runner(
        {"openai": script},
        {"openai": {"gpt": {}}},
        [Prompt(name="p1", user="hi")],
        settings=RunSettings(request_timeout_s=0.1, poll_interval_s=0.01),
    )
    try:
        started = time.monotonic()
        runner.run()
        elapsed = time.monotonic() - started
    finally:
        release.set()

    (result,) = runner.get_results()
    assert result.success is False
    assert result.error_type == "RequestTimeoutError"
    assert result.response == ""
    assert elapsed < 2.0


def test_unconfigured_provider_is_skipped() -> None:
    def broken_factory(config: ProviderConfig) -> StreamingProvider:
        raise ConfigurationError("BROKEN_API_KEY", "API key is required")

    registry = ProviderRegistry(
        {"fake": lambda config: FakeProvider(config, reply("ok")), "broken": broken_factory}
    )
    registry.register_config("good", ProviderConfig(name="good", kind="fake"))
    registry.register_config("bad", ProviderConfig(name="bad", kind="broken"))
    runner = BenchmarkRunner(
        registry=registry,
        models=ModelsConfig.from_dict({"bad": {"m": {}}, "good": {"m": {}}}),
        prompt_source=lambda: [Prompt(name="p1", user="hi")],
    )

    assert runner.run() is RunState.DONE
    assert [result.provider for result in runner.get_results()] == ["good"]


def test_provider_filter_limits_targets() -> None:
    runner, built = _make_runner(
        {"openai": reply("a"), "groq": reply("b")},
        {"openai": {"m": {}}, "groq": {"m": {}}},
        [Prompt(name="p1", user="hi")],
        provider_names=["groq"],
    )
    runner.run()

    assert [result.provider for result in runner.get_results()] == ["groq"]
    assert "openai" not in built


def test_prompt_load_failure_aborts_run() -> None:
    def failing_source() -> list[Prompt]:
        raise PromptLoadError("prompt source not found: prompts")

    registry = ProviderRegistry({})
    runner = BenchmarkRunner(
        registry=registry,
        models=ModelsConfig.from_dict({"openai": {"gpt": {}}}),
        prompt_source=failing_source,
    )
    with pytest.raises(PromptLoadError):
        runner.run()
    assert runner.get_results() == []
    assert runner.state is RunState.IDLE


def test_concurrent_run_bounds_in_flight_calls() -> None:
    lock = Lock()
    active = {"now": 0, "max": 0}

    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        with lock:
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
        try:
            time.sleep(0.05)
            yield StreamEvent(content="done")
        finally:
            with lock:
                active["now"] -= 1
        yield StreamEvent(is_complete=True)

    prompts = [Prompt(name=f"p{index}", user="hi") for index in range(6)]
    runner, _ = _make_runner(
        {"openai": script},
        {"openai": {"gpt": {}}},
        prompts,
        settings=RunSettings(concurrency=3, poll_interval_s=0.01),
    )

    assert runner.run() is RunState.DONE
    results = runner.get_results()
    assert len(results) == 6
    assert all(result.success for result in results)
    assert sorted(result.prompt_name for result in results) == sorted(
        prompt.name for prompt in prompts
    )
    assert 2 <= active["max"] <= 3


@pytest.mark.parametrize("concurrency", [1, 3])
def test_cancellation_stops_scheduling_new_work(concurrency: int) -> None:
    cancel_event = Event()

    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        time.sleep(0.02)
        yield StreamEvent(content="x")
        yield StreamEvent(is_complete=True)

    def on_result(result: BenchmarkResult) -> None:
        cancel_event.set()

    prompts = [Prompt(name=f"p{index}", user="hi") for index in range(20)]
    runner, _ = _make_runner(
        {"openai": script},
        {"openai": {"gpt": {}}},
        prompts,
        settings=RunSettings(concurrency=concurrency, poll_interval_s=0.01),
        on_result=on_result,
    )

    started = time.monotonic()
    state = runner.run(cancel_event)
    elapsed = time.monotonic() - started

    results = runner.get_results()
    assert state is RunState.CANCELLED
    assert 1 <= len(results) < len(prompts)
    assert elapsed < 2.0
    for result in results:
        assert result.success or result.error_type == "RequestCancelledError"
    if concurrency == 1:
        assert len(results) == 1


def test_cancel_during_stream_discards_partial_response() -> None:
    cancel_event = Event()
    release = Event()

    def script(request: ChatRequest) -> Iterator[StreamEvent]:
        yield StreamEvent(content="partial")
        release.wait(5.0)
        yield StreamEvent(content=" rest")
        yield StreamEvent(is_complete=True)

    runner, _ = _make_runner(
        {"openai": script},
        {"openai": {"gpt": {}}},
        [Prompt(name="p1", user="hi")],
        settings=RunSettings(poll_interval_s=0.01),
    )
    timer = Timer(0.1, cancel_event.set)
    timer.start()
    try:
        state = runner.run(cancel_event)
    finally:
        timer.cancel()
        release.set()

    results = runner.get_results()
    assert state is RunState.CANCELLED
    assert len(results) == 1
    assert results[0].success is False
    assert results[0].error_type == "RequestCancelledError"
    assert results[0].response == ""
    assert results[0].output_tokens == 0


def test_result_callback_failure_does_not_abort_run() -> None:
    def on_result(result: BenchmarkResult) -> None:
        raise RuntimeError("progress display crashed")

    runner, _ = _make_runner(
        {"openai": reply("ok")},
        {"openai": {"gpt": {}}},
        PROMPTS,
        on_result=on_result,
    )
    assert runner.run() is RunState.DONE
    assert len(runner.get_results()) == 2


def test_summary_reflects_collected_results() -> None:
    runner, _ = _make_runner(
        {"openai": reply("ok")}, {"openai": {"gpt": {}}}, PROMPTS
    )
    runner.run()

    summary = runner.get_summary()
    assert summary.total_runs == 2
    assert summary.successful_runs == 2
    assert summary.error_rate == 0.0


def test_planned_calls_cover_only_resolved_providers() -> None:
    def broken_factory(config: ProviderConfig) -> StreamingProvider:
        raise ConfigurationError("BROKEN_API_KEY", "API key is required")

    registry = ProviderRegistry(
        {"fake": lambda config: FakeProvider(config, reply("ok")), "broken": broken_factory}
    )
    registry.register_config("good", ProviderConfig(name="good", kind="fake"))
    registry.register_config("bad", ProviderConfig(name="bad", kind="broken"))
    planned: list[int] = []
    runner = BenchmarkRunner(
        registry=registry,
        models=ModelsConfig.from_dict({"bad": {"m": {}}, "good": {"a": {}, "b": {}}}),
        prompt_source=lambda: list(PROMPTS),
        settings=RunSettings(runs=3),
        on_plan=planned.append,
    )

    assert runner.run() is RunState.DONE
    assert planned == [12]
    assert runner.planned_calls == len(runner.get_results()) == 12


def test_requests_carry_the_run_timeout() -> None:
    runner, built = _make_runner(
        {"openai": reply("ok")},
        {"openai": {"gpt": {}}},
        [Prompt(name="p1", user="hi")],
        settings=RunSettings(request_timeout_s=7.5),
    )
    runner.run()

    assert [request.timeout_s for request in built["openai"].requests] == [7.5]


@pytest.mark.parametrize(
    "settings",
    [
        RunSettings(concurrency=0),
        RunSettings(runs=0),
        RunSettings(request_timeout_s=0),
        RunSettings(poll_interval_s=0),
    ],
)
def test_invalid_settings_are_rejected(settings: RunSettings) -> None:
    with pytest.raises(ValueError):
        settings.validate()
