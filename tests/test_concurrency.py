import threading
import time

import pytest

from rowmend.core.concurrency import Executor, ExecutorConfig, resolve_executor_config, run_bounded
from rowmend.core.config import PipelineConfig


def _double(x):
    return x * 2


def test_map_unordered_collects_all_results():
    cfg = ExecutorConfig(max_workers=3, window=3, kind="thread")
    seen = []
    Executor(cfg).map_unordered(range(10), _double, seen.append)
    assert sorted(seen) == [x * 2 for x in range(10)]


def test_map_unordered_reports_errors_and_continues():
    cfg = ExecutorConfig(max_workers=2, window=2, kind="thread")
    seen, errors = [], []

    def fn(x):
        if x == 2:
            raise OSError("bad item")
        return x

    Executor(cfg).map_unordered([1, 2, 3], fn, seen.append, on_error=lambda item, exc: errors.append(item))
    assert sorted(seen) == [1, 3]
    assert errors == [2]


def test_map_unordered_fail_fast_raises():
    cfg = ExecutorConfig(max_workers=2, window=2, kind="thread")

    def fn(x):
        if x == 0:
            raise OSError("first")
        return x

    with pytest.raises(OSError, match="first"):
        Executor(cfg).map_unordered(range(4), fn, lambda _: None, fail_fast=True)


def test_window_bounds_in_flight_tasks():
    cfg = ExecutorConfig(max_workers=2, window=2, kind="thread")
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def fn(x):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.01)
        with lock:
            state["active"] -= 1
        return x

    Executor(cfg).map_unordered(range(8), fn, lambda _: None)
    assert state["peak"] <= 2


def test_process_executor_runs_picklable_fn():
    cfg = ExecutorConfig(max_workers=2, window=4, kind="process")
    seen = []
    Executor(cfg).map_unordered([1, 2, 3], _double, seen.append)
    assert sorted(seen) == [2, 4, 6]


def test_resolve_executor_config():
    cfg = resolve_executor_config(PipelineConfig(max_workers=8), n_items=3)
    assert cfg.max_workers == 3
    assert cfg.window == 6
    assert cfg.kind == "thread"

    cfg = resolve_executor_config(PipelineConfig(max_workers=0, executor_kind="PROCESS"))
    assert cfg.max_workers >= 1
    assert cfg.kind == "process"

    cfg = resolve_executor_config(PipelineConfig(max_workers=2, executor_kind="bogus"))
    assert cfg.kind == "thread"


def test_run_bounded_inline_for_single_worker():
    threads = []

    def fn(x):
        threads.append(threading.current_thread())
        return x

    cfg = ExecutorConfig(max_workers=1, window=2, kind="thread")
    assert run_bounded([1, 2, 3], fn, cfg=cfg, fail_fast=True) == [1, 2, 3]
    assert set(threads) == {threading.main_thread()}


def test_run_bounded_records_errors_when_not_fail_fast():
    errors = []

    def fn(x):
        if x == 2:
            raise OSError("nope")
        return x

    cfg = ExecutorConfig(max_workers=1, window=2, kind="thread")
    out = run_bounded([1, 2, 3], fn, cfg=cfg, fail_fast=False, on_error=lambda item, exc: errors.append(item))
    assert out == [1, 3]
    assert errors == [2]
    with pytest.raises(OSError):
        run_bounded([1, 2, 3], fn, cfg=cfg, fail_fast=True)
