from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import json
import logging
import os
from pathlib import Path
import queue
import signal
import sys
from threading import Event, Lock
import time
import uuid

import typer

from backends import StreamingProvider, retry_call
from errors import BenchmarkError, ConfigurationError, RequestTimeoutError
from metrics import LatencyStats, Summary, calculate_summary
from output import default_output_path, write_results_csv
from pricing import ModelsConfig, load_models_config
from prompts import Prompt, load_prompts
from providers import ProviderConfig, ProviderConfigStore
from records import BenchmarkResult, ChatRequest
from registry import ProviderRegistry
from runner import BenchmarkRunner, RunSettings, RunState
from storage import BenchmarkStorage


logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "LLM_LATENCY_BENCH_LOG_LEVEL"


def _setup_logging() -> None:
    """Configure root logger from LLM_LATENCY_BENCH_LOG_LEVEL env var (default: WARNING)."""
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


app = typer.Typer(no_args_is_help=True, help="LLM streaming latency and cost benchmark CLI")
provider_app = typer.Typer(no_args_is_help=True, help="Provider management commands")
report_app = typer.Typer(no_args_is_help=True, help="Report commands")
app.add_typer(provider_app, name="provider")
app.add_typer(report_app, name="report")


DEFAULT_PROVIDER_CONFIG = Path("providers.toml")
DEFAULT_BENCH_DB = Path("bench.duckdb")
DEFAULT_PROMPTS = Path("prompts")
DEFAULT_MODELS = Path("models.yaml")
DEFAULT_PROVIDER_TEST_PROMPT = "Reply with one short sentence."
VALIDATION_TIMEOUT_S = 60.0


@dataclass(slots=True)
class _RunProgress:
    run_id: str
    concurrency: int
    enabled: bool = True
    min_update_interval_s: float = 0.2
    total_calls: int = field(init=False, default=0)
    completed_calls: int = field(init=False, default=0)
    success_calls: int = field(init=False, default=0)
    failed_calls: int = field(init=False, default=0)
    total_cost: float = field(init=False, default=0.0)
    _lock: Lock = field(init=False, repr=False)
    _interactive: bool = field(init=False, repr=False)
    _start_perf: float = field(init=False, repr=False)
    _last_emit_perf: float = field(init=False, default=0.0, repr=False)
    _last_line_len: int = field(init=False, default=0, repr=False)
    _started: bool = field(init=False, default=False, repr=False)
    _finalized: bool = field(init=False, default=False, repr=False)

    def __post_init__(self) -> None:
        self._lock = Lock()
        self._interactive = bool(self.enabled and sys.stderr.isatty())
        self._start_perf = time.perf_counter()

    def start(self, total_calls: int) -> None:
        self.total_calls = total_calls
        if not self.enabled or self._started:
            return
        self._started = True
        self._start_perf = time.perf_counter()
        typer.echo(
            f"[run] run_id={self.run_id} total_calls={total_calls} concurrency={self.concurrency}",
            err=True,
        )

    def on_result(self, result: BenchmarkResult) -> None:
        if not self.enabled:
            return

        with self._lock:
            self.completed_calls += 1
            if result.success:
                self.success_calls += 1
                self.total_cost += result.cost
            else:
                self.failed_calls += 1

            now = time.perf_counter()
            finished = self.completed_calls >= self.total_calls
            if not finished and now - self._last_emit_perf < self.min_update_interval_s:
                return
            self._last_emit_perf = now
            self._emit_progress(now=now, final=finished)

    def finalize(self) -> None:
        if not self.enabled or not self._started:
            return

        with self._lock:
            if self._finalized:
                return
            self._finalized = True
            if self.completed_calls < self.total_calls:
                self._emit_progress(now=time.perf_counter(), final=True)
            elif self._interactive:
                typer.echo("", err=True)

    def _emit_progress(self, now: float, final: bool) -> None:
        percent = (
            (self.completed_calls / self.total_calls) * 100.0
            if self.total_calls > 0
            else 100.0
        )
        elapsed_s = max(now - self._start_perf, 1e-9)
        line = (
            f"[progress] {self.completed_calls}/{self.total_calls} ({percent:5.1f}%) "
            f"ok={self.success_calls} fail={self.failed_calls} "
            f"cost=${self.total_cost:.4f} elapsed={elapsed_s:.1f}s"
        )

        if self._interactive:
            padded_line = line
            if len(line) < self._last_line_len:
                padded_line = line + (" " * (self._last_line_len - len(line)))
            self._last_line_len = len(line)
            typer.echo(f"\r{padded_line}", err=True, nl=final)
            return

        typer.echo(line, err=True)


def _build_registry(config: Path) -> ProviderRegistry:
    registry = ProviderRegistry()
    for name, provider_config in ProviderConfigStore(config).load_or_default().items():
        registry.register_config(name, provider_config)
    return registry


def _parse_provider_names(providers: str | None) -> list[str] | None:
    if providers is None:
        return None
    names: list[str] = []
    for name in providers.split(","):
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


def _install_signal_handlers(cancel_event: Event) -> dict[int, object]:
    def handle_signal(signum: int, frame: object) -> None:
        logger.warning("Received signal %d, cancelling benchmark run", signum)
        cancel_event.set()

    previous: dict[int, object] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, handle_signal)
        except ValueError:
            # Only the main thread may install handlers.
            logger.debug("Cannot install handler for signal %d", signum)
    return previous


def _restore_signal_handlers(previous: dict[int, object]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)  # type: ignore[arg-type]


def _stream_once(
    provider: StreamingProvider, request: ChatRequest, timeout_s: float
) -> str:
    stream = provider.stream_chat(request)
    deadline = time.monotonic() + timeout_s
    chunks: list[str] = []
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise RequestTimeoutError("provider validation", timeout_s)
            try:
                event = stream.next_event(timeout=remaining)
            except queue.Empty:
                continue
            if event is None:
                break
            if event.error is not None:
                raise event.error
            chunks.append(event.content)
            if event.is_complete:
                break
    finally:
        stream.cancel()

    text = "".join(chunks)
    if not text:
        raise ValueError("Provider returned an empty response")
    return text


def _validate_provider(
    registry: ProviderRegistry,
    name: str,
    model: str | None,
    prompt: str,
    retries: int,
) -> dict[str, object]:
    if not model:
        return {
            "provider": name,
            "model": None,
            "status": "failed",
            "error_type": "ConfigurationError",
            "error_message": "no model configured for provider",
        }

    try:
        provider = registry.get_provider(name)
        request = ChatRequest(model=model, user_prompt=prompt, timeout_s=VALIDATION_TIMEOUT_S)
        provider.validate_request(request)
        text = retry_call(
            provider,
            lambda: _stream_once(provider, request, VALIDATION_TIMEOUT_S),
            max_attempts=retries,
        )
    except Exception as exc:  # noqa: BLE001
        return {
            "provider": name,
            "model": model,
            "status": "failed",
            "error_type": type(exc).__name__,
            "error_message": str(exc),
        }

    return {
        "provider": name,
        "model": model,
        "status": "ok",
        "output_tokens": provider.get_token_count(text),
    }


def _render_provider_validation_report(
    scope: str, results: list[dict[str, object]], passed: int, failed: int
) -> str:
    lines = [
        "Provider validation summary",
        f"Scope : {scope}",
        f"Total : {len(results)}",
        f"Passed: {passed}",
        f"Failed: {failed}",
        "",
        "Results:",
    ]
    for result in results:
        provider = str(result.get("provider", "-"))
        model = str(result.get("model") or "-")
        if result.get("status") == "ok":
            output_tokens = result.get("output_tokens", 0)
            lines.append(f"- OK   {provider} ({model}) output_tokens={output_tokens}")
            continue

        error_type = str(result.get("error_type", "Error"))
        error_message = str(result.get("error_message", ""))
        if error_message:
            lines.append(f"- FAIL {provider} ({model}) {error_type}: {error_message}")
        else:
            lines.append(f"- FAIL {provider} ({model}) {error_type}")
    return "\n".join(lines)


def _render_stats_line(label: str, stats: LatencyStats) -> str:
    return (
        f"- {label:<12} mean={stats.mean:.4f} min={stats.min:.4f} max={stats.max:.4f} "
        f"p50={stats.p50:.4f} p95={stats.p95:.4f} p99={stats.p99:.4f}"
    )


def _render_report_summary(
    run_id: str,
    target_summaries: dict[tuple[str, str], Summary],
    db: Path,
) -> str:
    lines = [
        "Benchmark summary",
        f"Run ID : {run_id}",
        f"Targets: {len(target_summaries)}",
        f"DB     : {db}",
    ]

    for provider_name, model in sorted(target_summaries):
        summary = target_summaries[(provider_name, model)]
        lines.extend(
            [
                "",
                f"[{provider_name}/{model}]",
                (
                    f"Runs: total={summary.total_runs} ok={summary.successful_runs} "
                    f"fail={summary.failed_runs} error_rate={summary.error_rate * 100:.2f}%"
                ),
                "Latency (s):",
                _render_stats_line("ttft", summary.ttft),
                _render_stats_line("total_time", summary.total_time),
                (
                    f"Tokens: input={summary.total_input_tokens} output={summary.total_output_tokens} "
                    f"avg_tps={summary.avg_tokens_per_second:.2f}"
                ),
                f"Cost: total=${summary.total_cost:.6f} avg/run=${summary.avg_cost_per_run:.6f}",
            ]
        )

    return "\n".join(lines)


def _parse_config_json(config_json: object) -> dict[str, object]:
    if not isinstance(config_json, str) or not config_json.strip():
        return {}
    try:
        payload = json.loads(config_json)
    except json.JSONDecodeError:
        return {}
    if isinstance(payload, dict):
        return payload
    return {}


def _format_timestamp(value: object) -> str:
    if value is None:
        return "-"
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return "-"
    return datetime.fromtimestamp(numeric).astimezone().isoformat(timespec="seconds")


def _format_duration(value: object) -> str:
    if value is None:
        return "-"
    try:
        return f"{float(value):.3f}s"
    except (TypeError, ValueError):
        return "-"


def _render_report_list(runs: list[dict[str, object]], db: Path) -> str:
    lines = [
        "Benchmark runs",
        f"Total : {len(runs)}",
        f"DB    : {db}",
        "",
        "Runs:",
    ]
    for run in runs:
        run_id = str(run.get("run_id", "-"))
        started_at = _format_timestamp(run.get("started_at"))
        duration_s = _format_duration(run.get("duration_s"))
        target_count = int(run.get("target_count") or 0)
        result_count = int(run.get("result_count") or 0)
        success_count = int(run.get("success_count") or 0)
        failed_count = int(run.get("failed_count") or 0)
        total_cost = float(run.get("total_cost") or 0.0)
        lines.append(
            (
                f"- {run_id} started={started_at} duration={duration_s} "
                f"targets={target_count} results={result_count} ok={success_count} "
                f"fail={failed_count} cost=${total_cost:.6f}"
            )
        )
    return "\n".join(lines)


@provider_app.command("add")
def provider_add(
    name: str = typer.Option(..., "--name", help="Provider name"),
    kind: str | None = typer.Option(
        None, "--kind", help="Backend type (openai, groq, anthropic, azure_openai, gemini). Defaults to the name."
    ),
    api_base: str | None = typer.Option(None, "--api-base", help="Provider base URL"),
    api_key_env: str | None = typer.Option(
        None, "--api-key-env", help="Environment variable storing API key"
    ),
    api_version: str | None = typer.Option(
        None, "--api-version", help="API version (Azure OpenAI)"
    ),
    timeout_s: float | None = typer.Option(
        None, "--timeout", help="HTTP timeout in seconds passed to the backend"
    ),
    config: Path = typer.Option(
        DEFAULT_PROVIDER_CONFIG, "--config", help="Provider registry file", hidden=True
    ),
) -> None:
    provider = ProviderConfig(
        name=name,
        kind=kind,
        api_base=api_base,
        api_key_env=api_key_env,
        api_version=api_version,
        timeout_s=timeout_s,
    )
    if provider.provider_kind not in ProviderRegistry().available_kinds():
        typer.echo(f"Unsupported provider kind: {provider.provider_kind}")
        raise typer.Exit(1)

    ProviderConfigStore(config).save_provider(provider)
    logger.debug("Provider %r added to %s", name, config)
    typer.echo(f"Provider added: {name}")


@provider_app.command("list")
def provider_list(
    config: Path = typer.Option(
        DEFAULT_PROVIDER_CONFIG, "--config", help="Provider registry file", hidden=True
    ),
) -> None:
    providers = ProviderConfigStore(config).list_providers()
    if not providers:
        typer.echo("No providers configured.")
        return

    for provider in providers:
        api_base = provider.api_base or "-"
        api_key_env = provider.api_key_env or "-"
        typer.echo(f"{provider.name}\t{provider.provider_kind}\t{api_base}\t{api_key_env}")


@provider_app.command("remove")
def provider_remove(
    name: str = typer.Option(..., "--name", help="Provider name"),
    config: Path = typer.Option(
        DEFAULT_PROVIDER_CONFIG, "--config", help="Provider registry file", hidden=True
    ),
) -> None:
    try:
        ProviderConfigStore(config).remove_provider(name)
    except KeyError:
        typer.echo(f"Provider not found: {name}")
        raise typer.Exit(1)
    typer.echo(f"Provider removed: {name}")


@provider_app.command("validate")
def provider_validate(
    name: str | None = typer.Option(
        None, "--name", help="Provider name (validate all when omitted)"
    ),
    model: str | None = typer.Option(
        None, "--model", help="Model to call. Defaults to the provider's first model in the models file."
    ),
    prompt: str = typer.Option(
        DEFAULT_PROVIDER_TEST_PROMPT, "--prompt", "-p", help="Validation prompt"
    ),
    retries: int = typer.Option(
        3, "--retries", min=1, help="Attempts per provider for transient failures"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output machine-readable JSON"
    ),
    models_file: Path = typer.Option(
        DEFAULT_MODELS, "--models", help="Models and pricing file (YAML)"
    ),
    config: Path = typer.Option(
        DEFAULT_PROVIDER_CONFIG, "--config", help="Provider registry file", hidden=True
    ),
) -> None:
    registry = _build_registry(config)
    if name:
        if name not in registry.registered_names():
            typer.echo(f"Provider not found: {name}")
            raise typer.Exit(1)
        names = [name]
        scope = name
    else:
        names = sorted(registry.registered_names())
        scope = "all"

    models = ModelsConfig()
    if models_file.exists():
        try:
            models = load_models_config(models_file)
        except ConfigurationError as exc:
            typer.echo(f"Failed to load models: {exc}")
            raise typer.Exit(1)

    results: list[dict[str, object]] = []
    for provider_name in names:
        provider_model = model
        if provider_model is None:
            configured = models.list_models(provider_name)
            provider_model = configured[0] if configured else None
        results.append(
            _validate_provider(registry, provider_name, provider_model, prompt, retries)
        )

    passed = sum(1 for result in results if result["status"] == "ok")
    failed = len(results) - passed
    payload = {
        "scope": scope,
        "total": len(results),
        "passed": passed,
        "failed": failed,
        "results": results,
    }
    if json_output:
        typer.echo(json.dumps(payload, ensure_ascii=False))
    else:
        typer.echo(
            _render_provider_validation_report(
                scope=scope, results=results, passed=passed, failed=failed
            )
        )
    if failed:
        raise typer.Exit(1)


@app.command("run")
def run_benchmark(
    providers: str | None = typer.Option(
        None,
        "--providers",
        help="Comma-separated provider names. Defaults to every provider in the models file.",
    ),
    prompts: Path = typer.Option(
        DEFAULT_PROMPTS, "--prompts", help="Prompt directory (YAML) or prompt file (.txt or .jsonl)"
    ),
    models_file: Path = typer.Option(
        DEFAULT_MODELS, "--models", help="Models and pricing file (YAML)"
    ),
    concurrent: int = typer.Option(1, "--concurrent", "-c", min=1, help="Number of concurrent calls"),
    runs: int = typer.Option(1, "--runs", "-r", min=1, help="Repetitions per prompt and model"),
    timeout: float = typer.Option(60.0, "--timeout", help="Per-call timeout in seconds"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="CSV output file. Defaults to results/benchmark_<timestamp>.csv"
    ),
    db: Path = typer.Option(DEFAULT_BENCH_DB, "--db", "-d", help="DuckDB output file"),
    progress: bool = typer.Option(
        True,
        "--progress/--no-progress",
        help="Show live progress on stderr",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config: Path = typer.Option(
        DEFAULT_PROVIDER_CONFIG, "--config", help="Provider registry file", hidden=True
    ),
    run_id: str | None = typer.Option(
        None, "--run-id", help="Optional run id", hidden=True
    ),
) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    provider_names = _parse_provider_names(providers)
    if provider_names is not None and not provider_names:
        typer.echo("No providers specified.")
        raise typer.Exit(1)

    try:
        models = load_models_config(models_file)
    except ConfigurationError as exc:
        typer.echo(f"Failed to load models: {exc}")
        raise typer.Exit(1)

    if provider_names is not None:
        unknown = [name for name in provider_names if not models.list_models(name)]
        if unknown:
            typer.echo("No models configured for provider(s): " + ", ".join(unknown))
            raise typer.Exit(1)

    try:
        settings = RunSettings(
            concurrency=concurrent, runs=runs, request_timeout_s=timeout
        )
        settings.validate()
    except ValueError as exc:
        typer.echo(f"Invalid run settings: {exc}")
        raise typer.Exit(1)

    actual_run_id = run_id or f"run-{uuid.uuid4().hex[:8]}"
    run_progress = _RunProgress(
        run_id=actual_run_id, concurrency=concurrent, enabled=progress
    )
    registry = _build_registry(config)

    def load_run_prompts() -> list[Prompt]:
        logger.debug("Loading prompts from %s", prompts)
        return load_prompts(prompts)

    runner = BenchmarkRunner(
        registry=registry,
        models=models,
        prompt_source=load_run_prompts,
        settings=settings,
        provider_names=provider_names,
        on_result=run_progress.on_result,
        on_plan=run_progress.start,
    )

    cancel_event = Event()
    previous_handlers = _install_signal_handlers(cancel_event)
    started_at = time.time()
    logger.info("Starting benchmark run %s", actual_run_id)
    try:
        state = runner.run(cancel_event)
    except BenchmarkError as exc:
        typer.echo(f"Failed to load prompts: {exc}")
        raise typer.Exit(1)
    finally:
        _restore_signal_handlers(previous_handlers)
        run_progress.finalize()
    finished_at = time.time()

    results = runner.get_results()
    if not results:
        typer.echo("No benchmark results were produced.")
        raise typer.Exit(1)
    summary = calculate_summary(results)

    csv_path = output or default_output_path()
    write_results_csv(csv_path, results)

    storage = BenchmarkStorage(db)
    try:
        storage.save_run(
            run_id=actual_run_id,
            started_at=started_at,
            finished_at=finished_at,
            config_json=json.dumps(
                {
                    "providers": provider_names,
                    "prompts": str(prompts),
                    "models": str(models_file),
                    "concurrency": concurrent,
                    "runs": runs,
                    "timeout_s": timeout,
                    "state": state.value,
                },
                ensure_ascii=True,
            ),
            results=results,
            summary=summary,
        )
    finally:
        storage.close()

    if state is RunState.CANCELLED:
        logger.warning("Benchmark run %s was cancelled; partial results saved", actual_run_id)
    logger.info("Benchmark run %s finished", actual_run_id)
    typer.echo(
        json.dumps(
            {
                "run_id": actual_run_id,
                "state": state.value,
                "summary": summary.to_dict(),
                "csv": str(csv_path),
                "db": str(db),
            },
            ensure_ascii=False,
        )
    )


@report_app.command("summary")
def report_summary(
    run_id: str | None = typer.Option(
        None, "--run-id", help="Run identifier. Defaults to latest run."
    ),
    provider: str | None = typer.Option(None, "--provider", help="Provider name"),
    model: str | None = typer.Option(None, "--model", help="Model name"),
    json_output: bool = typer.Option(
        False, "--json", help="Output machine-readable JSON"
    ),
    db: Path = typer.Option(DEFAULT_BENCH_DB, "--db", "-d", help="DuckDB output file"),
) -> None:
    storage = BenchmarkStorage(db)
    try:
        actual_run_id = run_id
        if not actual_run_id:
            runs = storage.list_runs()
            if not runs:
                typer.echo("No runs found.")
                raise typer.Exit(1)
            actual_run_id = str(runs[0]["run_id"])

        targets = [
            (target_provider, target_model)
            for target_provider, target_model in storage.list_run_targets(actual_run_id)
            if (provider is None or target_provider == provider)
            and (model is None or target_model == model)
        ]
        if not targets:
            typer.echo(f"No results found for run: {actual_run_id}")
            raise typer.Exit(1)

        summaries = {
            (target_provider, target_model): calculate_summary(
                storage.get_results(actual_run_id, target_provider, target_model)
            )
            for target_provider, target_model in targets
        }
        if json_output:
            typer.echo(
                json.dumps(
                    {
                        "run_id": actual_run_id,
                        "targets": [
                            {
                                "provider": target_provider,
                                "model": target_model,
                                "summary": summaries[(target_provider, target_model)].to_dict(),
                            }
                            for target_provider, target_model in targets
                        ],
                    },
                    ensure_ascii=False,
                )
            )
        else:
            typer.echo(
                _render_report_summary(
                    run_id=actual_run_id, target_summaries=summaries, db=db
                )
            )
    finally:
        storage.close()


@report_app.command("list")
def report_list(
    limit: int | None = typer.Option(
        None, "--limit", "-n", min=1, help="Maximum number of runs to show"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output machine-readable JSON"
    ),
    db: Path = typer.Option(DEFAULT_BENCH_DB, "--db", "-d", help="DuckDB output file"),
) -> None:
    storage = BenchmarkStorage(db)
    try:
        runs = storage.list_runs_with_stats()
        if not runs:
            typer.echo("No runs found.")
            raise typer.Exit(1)

        if limit is not None:
            runs = runs[:limit]

        output_runs: list[dict[str, object]] = []
        for run in runs:
            config = _parse_config_json(run.get("config_json"))
            output_runs.append(
                {
                    "run_id": run.get("run_id"),
                    "started_at": run.get("started_at"),
                    "finished_at": run.get("finished_at"),
                    "duration_s": run.get("duration_s"),
                    "started_at_iso": _format_timestamp(run.get("started_at")),
                    "target_count": run.get("target_count"),
                    "result_count": run.get("result_count"),
                    "success_count": run.get("success_count"),
                    "failed_count": run.get("failed_count"),
                    "total_cost": run.get("total_cost"),
                    "prompts": config.get("prompts"),
                    "state": config.get("state"),
                }
            )

        if json_output:
            typer.echo(
                json.dumps(
                    {
                        "db": str(db),
                        "total": len(output_runs),
                        "runs": output_runs,
                    },
                    ensure_ascii=False,
                )
            )
            return

        typer.echo(_render_report_list(output_runs, db=db))
    finally:
        storage.close()


@report_app.command("remove")
def report_remove(
    run_id: str = typer.Option(..., "--run-id", help="Run identifier to remove"),
    db: Path = typer.Option(DEFAULT_BENCH_DB, "--db", "-d", help="DuckDB output file"),
) -> None:
    storage = BenchmarkStorage(db)
    try:
        deleted = storage.delete_run(run_id=run_id)
        if not deleted:
            typer.echo(f"Run not found: {run_id}")
            raise typer.Exit(1)
        typer.echo(f"Run removed: {run_id}")
    finally:
        storage.close()


def main() -> None:
    _setup_logging()
    app()


if __name__ == "__main__":
    main()
