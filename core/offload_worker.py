"""
FILE: core/offload_worker.py
-----------------------------
Entry point executed inside the offload process.

Module-level so ProcessPoolExecutor can pickle it by reference. Takes and
returns plain dicts only:
  in  : {"test_id", "rows", "columns", "categorical_column", "numerical_column"}
  out : {"result": <TestResult as dict>}  or  {"error": {"kind", "message"}}
"""

from typing import Any

from core.errors import StatEngineError
from core.statistician_engine import run_test
from Schemas.dataset import Dataset


def execute(payload: dict[str, Any]) -> dict[str, Any]:
    try:
        dataset = Dataset(rows=tuple(payload["rows"]), columns=tuple(payload["columns"]))
        result = run_test(
            payload["test_id"],
            dataset,
            payload["categorical_column"],
            payload["numerical_column"],
        )
    except StatEngineError as exc:
        return {"error": exc.to_payload()}
    return {"result": result.model_dump(mode="python")}
