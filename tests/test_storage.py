from __future__ import annotations

from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from metrics import calculate_summary
from records import BenchmarkResult
from storage import BenchmarkStorage


def _result(
    provider: str,
    model: str,
    *,
    prompt_name: str = "p1",
    success: bool = True,
    ttft_s: float = 0.2,
    cost: float = 0.001,
) -> BenchmarkResult:
    return BenchmarkResult(
        provider=provider,
        model=model,
        prompt_name=prompt_name,
        start_time=100.0,
        first_token_time=100.0 + ttft_s if success else None,
        end_time=101.0,
        ttft_s=ttft_s if success else 0.0,
        total_time_s=1.0 if success else 0.0,
        input_tokens=10 if success else 0,
        output_tokens=20 if success else 0,
        total_tokens=30 if success else 0,
        tokens_per_second=20.0 if success else 0.0,
        cost=cost if success else 0.0,
        response="hello" if success else "",
        success=success,
        error_type=None if success else "RequestTimeoutError",
        error_message=None if success else "timeout error in streaming response after 60s",
    )


@pytest.fixture
def storage(tmp_path: Path):
    storage = BenchmarkStorage(tmp_path / "nested" / "bench.duckdb")
    yield storage
    storage.close()


def _save(storage: BenchmarkStorage, run_id: str, started_at: float, results: list[BenchmarkResult]) -> None:
    storage.save_run(
        run_id=run_id,
        started_at=started_at,
        finished_at=started_at + 5.0,
        config_json='{"prompts": "prompts", "concurrency": 2}',
        results=results,
        summary=calculate_summary(results),
    )


def test_save_run_persists_run_and_results(storage: BenchmarkStorage) -> None:
    results = [
        _result("openai", "gpt-4o-mini", ttft_s=0.2),
        _result("openai", "gpt-4o-mini", prompt_name="p2", success=False),
        _result("groq", "llama", ttft_s=0.1),
    ]
    _save(storage, "run-1", 10.0, results)

    run = storage.get_run("run-1")
    assert run["duration_s"] == pytest.approx(5.0)
    assert run["summary"]["total_runs"] == 3
    assert run["summary"]["failed_runs"] == 1

    loaded = storage.get_results("run-1")
    assert loaded == results


def test_get_results_filters_by_provider_and_model(storage: BenchmarkStorage) -> None:
    _save(
        storage,
        "run-1",
        10.0,
        [
            _result("openai", "gpt-4o-mini"),
            _result("openai", "gpt-4o"),
            _result("groq", "llama"),
        ],
    )

    assert [result.model for result in storage.get_results("run-1", provider="openai")] == [
        "gpt-4o-mini",
        "gpt-4o",
    ]
    only = storage.get_results("run-1", provider="openai", model="gpt-4o")
    assert len(only) == 1
    assert storage.get_results("run-1", provider="missing") == []


def test_list_run_targets_is_sorted_and_distinct(storage: BenchmarkStorage) -> None:
    _save(
        storage,
        "run-1",
        10.0,
        [
            _result("openai", "gpt-4o-mini"),
            _result("groq", "llama"),
            _result("openai", "gpt-4o-mini", prompt_name="p2"),
        ],
    )
    assert storage.list_run_targets("run-1") == [
        ("groq", "llama"),
        ("openai", "gpt-4o-mini"),
    ]


def test_list_runs_with_stats_orders_latest_first(storage: BenchmarkStorage) -> None:
    _save(storage, "run-old", 10.0, [_result("openai", "gpt", cost=0.5)])
    _save(
        storage,
        "run-new",
        20.0,
        [
            _result("openai", "gpt", cost=0.25),
            _result("groq", "llama", cost=0.25),
            _result("groq", "llama", success=False),
        ],
    )
    _save(storage, "run-empty", 5.0, [])

    runs = storage.list_runs_with_stats()

    assert [run["run_id"] for run in runs] == ["run-new", "run-old", "run-empty"]
    newest = runs[0]
    assert newest["target_count"] == 2
    assert newest["result_count"] == 3
    assert newest["success_count"] == 2
    assert newest["failed_count"] == 1
    assert newest["total_cost"] == pytest.approx(0.5)
    assert runs[2]["result_count"] == 0
    assert [run["run_id"] for run in storage.list_runs()] == ["run-new", "run-old", "run-empty"]


def test_duplicate_run_id_rolls_back(storage: BenchmarkStorage) -> None:
    _save(storage, "run-1", 10.0, [_result("openai", "gpt")])
    with pytest.raises(Exception):
        _save(storage, "run-1", 20.0, [_result("groq", "llama")])

    assert storage.list_run_targets("run-1") == [("openai", "gpt")]
    assert len(storage.list_runs()) == 1


def test_delete_run_removes_results(storage: BenchmarkStorage) -> None:
    _save(storage, "run-1", 10.0, [_result("openai", "gpt")])

    assert storage.delete_run("run-1") is True
    assert storage.delete_run("run-1") is False
    assert storage.get_results("run-1") == []
    with pytest.raises(KeyError):
        storage.get_run("run-1")


def test_data_survives_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "bench.duckdb"
    first = BenchmarkStorage(db_path)
    _save(first, "run-1", 10.0, [_result("openai", "gpt")])
    first.close()

    second = BenchmarkStorage(db_path)
    try:
        assert [run["run_id"] for run in second.list_runs()] == ["run-1"]
        assert len(second.get_results("run-1")) == 1
    finally:
        second.close()
