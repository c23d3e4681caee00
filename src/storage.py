from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import duckdb

from metrics import Summary
from records import BenchmarkResult

logger = logging.getLogger(__name__)

_RESULT_COLUMNS = (
    "provider",
    "model",
    "prompt_name",
    "start_time",
    "first_token_time",
    "end_time",
    "ttft_s",
    "total_time_s",
    "input_tokens",
    "output_tokens",
    "total_tokens",
    "tokens_per_second",
    "cost",
    "response",
    "success",
    "error_type",
    "error_message",
)


class BenchmarkStorage:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        logger.debug("Opening database: %s", db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.connection = duckdb.connect(str(db_path))
        self._init_schema()

    def _init_schema(self) -> None:
        logger.debug("Initializing schema")
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS runs (
                run_id VARCHAR PRIMARY KEY,
                started_at DOUBLE NOT NULL,
                finished_at DOUBLE,
                duration_s DOUBLE,
                config_json VARCHAR NOT NULL,
                summary_json VARCHAR
            );

            CREATE TABLE IF NOT EXISTS results (
                run_id VARCHAR NOT NULL,
                seq BIGINT NOT NULL,
                provider VARCHAR NOT NULL,
                model VARCHAR NOT NULL,
                prompt_name VARCHAR NOT NULL,
                start_time DOUBLE NOT NULL,
                first_token_time DOUBLE,
                end_time DOUBLE,
                ttft_s DOUBLE NOT NULL,
                total_time_s DOUBLE NOT NULL,
                input_tokens BIGINT NOT NULL,
                output_tokens BIGINT NOT NULL,
                total_tokens BIGINT NOT NULL,
                tokens_per_second DOUBLE NOT NULL,
                cost DOUBLE NOT NULL,
                response VARCHAR NOT NULL,
                success BOOLEAN NOT NULL,
                error_type VARCHAR,
                error_message VARCHAR,
                PRIMARY KEY (run_id, seq)
            );
            """
        )

    def save_run(
        self,
        run_id: str,
        started_at: float,
        finished_at: float,
        config_json: str,
        results: list[BenchmarkResult],
        summary: Summary,
    ) -> None:
        logger.debug("Saving run %s with %d result(s)", run_id, len(results))
        self.connection.execute("BEGIN TRANSACTION")
        try:
            self.connection.execute(
                """
                INSERT INTO runs (
                    run_id, started_at, finished_at, duration_s, config_json, summary_json
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    run_id,
                    started_at,
                    finished_at,
                    finished_at - started_at,
                    config_json,
                    json.dumps(summary.to_dict(), ensure_ascii=True),
                ],
            )
            if results:
                placeholders = ", ".join("?" for _ in range(len(_RESULT_COLUMNS) + 2))
                self.connection.executemany(
                    f"""
                    INSERT INTO results (run_id, seq, {", ".join(_RESULT_COLUMNS)})
                    VALUES ({placeholders})
                    """,
                    [
                        (run_id, seq, *(getattr(result, column) for column in _RESULT_COLUMNS))
                        for seq, result in enumerate(results)
                    ],
                )
            self.connection.execute("COMMIT")
        except Exception:  # noqa: BLE001
            logger.warning("Error while saving run %s, rolling back transaction", run_id, exc_info=True)
            self.connection.execute("ROLLBACK")
            raise

    def get_run(self, run_id: str) -> dict[str, Any]:
        row = self.connection.execute(
            """
            SELECT run_id, started_at, finished_at, duration_s, config_json, summary_json
            FROM runs
            WHERE run_id = ?
            """,
            [run_id],
        ).fetchone()
        if row is None:
            raise KeyError(run_id)
        return self._run_row_to_dict(row)

    def delete_run(self, run_id: str) -> bool:
        existing = self.connection.execute(
            "SELECT 1 FROM runs WHERE run_id = ? LIMIT 1",
            [run_id],
        ).fetchone()
        if existing is None:
            return False

        logger.debug("Deleting run: %s", run_id)
        self.connection.execute("BEGIN TRANSACTION")
        try:
            self.connection.execute("DELETE FROM results WHERE run_id = ?", [run_id])
            self.connection.execute("DELETE FROM runs WHERE run_id = ?", [run_id])
            self.connection.execute("COMMIT")
        except Exception:  # noqa: BLE001
            logger.warning("Error during deletion of run %s, rolling back transaction", run_id, exc_info=True)
            self.connection.execute("ROLLBACK")
            raise
        return True

    def list_runs(self) -> list[dict[str, Any]]:
        rows = self.connection.execute(
            """
            SELECT run_id, started_at, finished_at, duration_s, config_json, summary_json
            FROM runs
            ORDER BY started_at DESC
            """
        ).fetchall()
        return [self._run_row_to_dict(row) for row in rows]

    def list_runs_with_stats(self) -> list[dict[str, Any]]:
        rows = self.connection.execute(
            """
            WITH result_counts AS (
                SELECT
                    run_id,
                    COUNT(DISTINCT provider || '/' || model) AS target_count,
                    COUNT(*) AS result_count,
                    SUM(CASE WHEN success THEN 1 ELSE 0 END) AS success_count,
                    SUM(CASE WHEN success THEN 0 ELSE 1 END) AS failed_count,
                    SUM(cost) AS total_cost
                FROM results
                GROUP BY run_id
            )
            SELECT
                runs.run_id,
                runs.started_at,
                runs.finished_at,
                runs.duration_s,
                runs.config_json,
                COALESCE(result_counts.target_count, 0) AS target_count,
                COALESCE(result_counts.result_count, 0) AS result_count,
                COALESCE(result_counts.success_count, 0) AS success_count,
                COALESCE(result_counts.failed_count, 0) AS failed_count,
                COALESCE(result_counts.total_cost, 0) AS total_cost
            FROM runs
            LEFT JOIN result_counts USING (run_id)
            ORDER BY runs.started_at DESC
            """
        ).fetchall()
        return [
            {
                "run_id": row[0],
                "started_at": row[1],
                "finished_at": row[2],
                "duration_s": row[3],
                "config_json": row[4],
                "target_count": int(row[5] or 0),
                "result_count": int(row[6] or 0),
                "success_count": int(row[7] or 0),
                "failed_count": int(row[8] or 0),
                "total_cost": float(row[9] or 0.0),
            }
            for row in rows
        ]

    def list_run_targets(self, run_id: str) -> list[tuple[str, str]]:
        rows = self.connection.execute(
            """
            SELECT DISTINCT provider, model
            FROM results
            WHERE run_id = ?
            ORDER BY provider ASC, model ASC
            """,
            [run_id],
        ).fetchall()
        return [(row[0], row[1]) for row in rows]

    def get_results(
        self,
        run_id: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> list[BenchmarkResult]:
        query = f"SELECT {', '.join(_RESULT_COLUMNS)} FROM results WHERE run_id = ?"
        params: list[Any] = [run_id]
        if provider is not None:
            query += " AND provider = ?"
            params.append(provider)
        if model is not None:
            query += " AND model = ?"
            params.append(model)
        query += " ORDER BY seq"

        rows = self.connection.execute(query, params).fetchall()
        return [BenchmarkResult(**dict(zip(_RESULT_COLUMNS, row))) for row in rows]

    def close(self) -> None:
        self.connection.close()

    @staticmethod
    def _run_row_to_dict(row: Any) -> dict[str, Any]:
        return {
            "run_id": row[0],
            "started_at": row[1],
            "finished_at": row[2],
            "duration_s": row[3],
            "config_json": row[4],
            "summary": json.loads(row[5]) if row[5] else None,
        }
