"""
FILE: core/offload.py
----------------------
Runs a test in a separate worker process with a timeout.

  IDLE ──dispatch──▶ DISPATCHED ──▶ COMPLETED ─┐
                                 ├─▶ TIMED_OUT ─┼──▶ IDLE
                                 └─▶ FAILED ────┘

At most one computation is outstanding. A request that arrives while the
worker is busy, or when no worker is available, runs synchronously on the
caller's thread. On timeout the worker process is terminated and a fresh
one is started before OffloadTimeoutError is raised. The terminal state
reached by the latest dispatch is kept in `last_outcome`.
"""

import logging
import threading
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures.process import BrokenProcessPool
from enum import Enum
from typing import Any

from config import get_offload_enabled, get_offload_timeout
from core import statistician_engine
from core.errors import OffloadTimeoutError, error_from_payload
from core.offload_worker import execute
from Schemas.dataset import Dataset
from Schemas.statistician import TestResult
from Schemas.test_catalog import TestKind

logger = logging.getLogger(__name__)


class OffloadState(str, Enum):
    IDLE       = "idle"
    DISPATCHED = "dispatched"
    COMPLETED  = "completed"
    TIMED_OUT  = "timed_out"
    FAILED     = "failed"


class OffloadCoordinator:
    """
    Owns a single-worker process pool.

    Usage:
        with OffloadCoordinator(timeout=10) as coordinator:
            result = coordinator.run_test("independent-t-test", dataset, "group", "score")
    """

    def __init__(self, timeout: float | None = None, enabled: bool | None = None):
        self.timeout = timeout if timeout is not None else get_offload_timeout()
        self.enabled = enabled if enabled is not None else get_offload_enabled()
        self._lock = threading.Lock()
        self._state = OffloadState.IDLE
        self.last_outcome: OffloadState | None = None
        self._executor: ProcessPoolExecutor | None = None
        if self.enabled:
            self._start_executor()

    # ── Lifecycle ──

    def _start_executor(self) -> None:
        try:
            self._executor = ProcessPoolExecutor(max_workers=1)
        except (OSError, NotImplementedError) as exc:
            logger.warning("Offload worker unavailable, running synchronously: %s", exc)
            self._executor = None

    def _stop_executor(self) -> None:
        if self._executor is None:
            return
        # shutdown() does not stop a worker that is mid-computation. `_processes`
        # (pid -> Process) is private to CPython's concurrent.futures.process since 3.2
        processes = list((getattr(self._executor, "_processes", None) or {}).values())
        self._executor.shutdown(wait=False, cancel_futures=True)
        for process in processes:
            process.terminate()
        self._executor = None

    def _restart_executor(self) -> None:
        logger.info("Restarting offload worker")
        self._stop_executor()
        self._start_executor()

    def close(self) -> None:
        with self._lock:
            self._stop_executor()
            self._state = OffloadState.IDLE

    def __enter__(self) -> "OffloadCoordinator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> OffloadState:
        return self._state

    @property
    def available(self) -> bool:
        return self._executor is not None

    # ── Dispatch ──

    def _acquire(self) -> bool:
        """Moves IDLE → DISPATCHED. False when busy or no worker exists."""
        with self._lock:
            if self._executor is None or self._state == OffloadState.DISPATCHED:
                return False
            self._state = OffloadState.DISPATCHED
            return True

    def _release(self, outcome: OffloadState, restart: bool = False) -> None:
        """Records the terminal state and returns to IDLE in one critical section."""
        with self._lock:
            self._state = outcome
            self.last_outcome = outcome
            logger.debug("Offload finished: %s", outcome.value)
            if restart:
                self._restart_executor()
            self._state = OffloadState.IDLE

    def run_test(
        self,
        test_id: TestKind | str,
        dataset: Dataset | list[dict],
        categorical_column: str,
        numerical_column: str,
    ) -> TestResult:
        if not isinstance(dataset, Dataset):
            dataset = Dataset.from_rows(list(dataset or []))

        if not self._acquire():
            logger.debug("Offload busy or unavailable; running %s synchronously", test_id)
            return statistician_engine.run_test(test_id, dataset, categorical_column, numerical_column)

        payload: dict[str, Any] = {
            "test_id": test_id.value if isinstance(test_id, TestKind) else str(test_id),
            "rows": dataset.to_payload(),
            "columns": list(dataset.columns),
            "categorical_column": categorical_column,
            "numerical_column": numerical_column,
        }

        try:
            future = self._executor.submit(execute, payload)
            logger.debug("Dispatched %s to offload worker", payload["test_id"])
            response = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            self._release(OffloadState.TIMED_OUT, restart=True)
            logger.info("Offloaded %s timed out after %.1fs", payload["test_id"], self.timeout)
            raise OffloadTimeoutError(
                f"The computation did not finish within {self.timeout:g} seconds."
            )
        except BrokenProcessPool:
            self._release(OffloadState.FAILED, restart=True)
            logger.warning("Offload worker crashed; running %s synchronously", payload["test_id"])
            return statistician_engine.run_test(test_id, dataset, categorical_column, numerical_column)
        except Exception:
            self._release(OffloadState.FAILED)
            raise

        if "error" in response:
            self._release(OffloadState.FAILED)
            raise error_from_payload(response["error"])

        self._release(OffloadState.COMPLETED)
        return TestResult.model_validate(response["result"])
