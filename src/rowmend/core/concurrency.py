# concurrency.py
# SPDX-License-Identifier: MIT
"""Bounded worker pools for the file-set driver.

Wraps thread and process pool executors with a bounded submission window.
Each submitted task is one whole file; tasks share nothing but their
immutable arguments.
"""
from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from concurrent.futures import (
    FIRST_COMPLETED,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass
from typing import Literal, TypeVar

from .config import PipelineConfig
from .log import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings used to construct worker pools.

    Attributes:
        max_workers (int): Maximum number of worker threads or
            processes.
        window (int): Maximum number of in-flight tasks allowed
            before backpressure is applied.
        kind (Literal["thread", "process"]): Executor implementation
            to use.
    """
    max_workers: int
    window: int
    kind: Literal["thread", "process"]


class Executor:
    """Run tasks in a thread or process pool with bounded submission.

    At most ``cfg.window`` tasks are in flight; results reach the callback
    in completion order, not submission order.
    """

    def __init__(self, cfg: ExecutorConfig) -> None:
        self.cfg = cfg

    def _make_executor(self):
        if self.cfg.max_workers < 1:
            raise ValueError("Executor requires max_workers >= 1")
        if self.cfg.kind == "process":
            return ProcessPoolExecutor(max_workers=self.cfg.max_workers)
        return ThreadPoolExecutor(max_workers=self.cfg.max_workers, thread_name_prefix="rowmend")

    def map_unordered(
        self,
        items: Iterable[T],
        fn: Callable[[T], R],
        on_result: Callable[[R], None],
        *,
        fail_fast: bool = False,
        on_error: Callable[[T, BaseException], None] | None = None,
    ) -> None:
        """Submit items to workers and consume results as they complete.

        Args:
            items (Iterable[T]): Items to process.
            fn (Callable[[T], R]): Worker function invoked for each item.
                Must be picklable for process pools.
            on_result (Callable[[R], None]): Callback for each successful
                result.
            fail_fast (bool): Re-raise the first worker error. Pending
                tasks that have not started are cancelled.
            on_error (Callable[[T, BaseException], None] | None): Callback
                for worker errors, invoked with the failing item.

        Raises:
            Exception: The first worker error when ``fail_fast`` is True.
        """
        window = max(self.cfg.window, self.cfg.max_workers)
        with self._make_executor() as pool:
            pending: dict[Future[R], T] = {}

            def _drain() -> None:
                done, _ = wait(list(pending), return_when=FIRST_COMPLETED)
                for fut in done:
                    item = pending.pop(fut)
                    try:
                        result = fut.result()
                    except Exception as exc:  # noqa: BLE001
                        if on_error:
                            on_error(item, exc)
                        if fail_fast:
                            for other in pending:
                                other.cancel()
                            raise
                        continue
                    on_result(result)

            for item in items:
                pending[pool.submit(fn, item)] = item
                if len(pending) >= window:
                    _drain()

            while pending:
                _drain()


def resolve_executor_config(pc: PipelineConfig, *, n_items: int | None = None) -> ExecutorConfig:
    """Build executor settings for the file-set driver.

    ``max_workers = 0`` means one worker per file, capped at the CPU
    count. The worker count never exceeds the number of files.
    """
    max_workers = pc.max_workers or (os.cpu_count() or 1)
    if n_items is not None and n_items > 0:
        max_workers = min(max_workers, n_items)
    max_workers = max(1, max_workers)
    kind = (pc.executor_kind or "thread").strip().lower()
    if kind not in {"thread", "process"}:
        log.warning("Unknown executor kind %r; using threads.", pc.executor_kind)
        kind = "thread"
    return ExecutorConfig(max_workers=max_workers, window=max_workers * 2, kind=kind)  # type: ignore[arg-type]


def run_bounded(
    items: Iterable[T],
    fn: Callable[[T], R],
    *,
    cfg: ExecutorConfig,
    fail_fast: bool,
    on_error: Callable[[T, BaseException], None] | None = None,
) -> list[R]:
    """Run ``fn`` over ``items`` and return results in completion order.

    A single thread worker runs inline on the calling thread.
    """
    results: list[R] = []
    if cfg.max_workers == 1 and cfg.kind == "thread":
        for item in items:
            try:
                results.append(fn(item))
            except Exception as exc:  # noqa: BLE001
                if on_error:
                    on_error(item, exc)
                if fail_fast:
                    raise
        return results
    Executor(cfg).map_unordered(items, fn, results.append, fail_fast=fail_fast, on_error=on_error)
    return results


__all__ = [
    "Executor",
    "ExecutorConfig",
    "resolve_executor_config",
    "run_bounded",
]
