"""
Transform Worker Pool Module

This module owns the worker processes that run the CPU-bound transform.

Each worker process keeps its own cache of loaded transform functions keyed
by module path, so a module is imported at most once per process for the
lifetime of the pool no matter how many chunks the process handles.

Usage:
    pool = TransformWorkerPool(max_workers=4)
    try:
        future = pool.submit(chunk, "/path/to/transform.py")
        transformed = future.result()
    finally:
        pool.terminate()
"""

from concurrent.futures import Future, ProcessPoolExecutor
from typing import Dict, List, Optional, Sequence
import logging
import os
import threading

from mdx_transform.records import MdxRecord
from mdx_transform.transform_loader import TransformFunction, load_transform_function

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    """One worker per CPU, leaving one for the coordinating process."""
    return max(1, (os.cpu_count() or 2) - 1)


class TransformCache:
    """Loaded transform functions of one worker process, keyed by module path."""

    def __init__(self):
        self._functions: Dict[str, TransformFunction] = {}
        self.load_count = 0

    def get(self, module_path: str) -> TransformFunction:
        transform = self._functions.get(module_path)
        if transform is None:
            transform = load_transform_function(module_path)
            self._functions[module_path] = transform
            self.load_count += 1
            logger.debug(f"Worker {os.getpid()} loaded transform from {module_path}")
        return transform

    def __contains__(self, module_path: str) -> bool:
        return module_path in self._functions


# Set by _init_worker in each worker process
_worker_cache: Optional[TransformCache] = None


def _init_worker() -> None:
    global _worker_cache
    _worker_cache = TransformCache()


def _get_worker_cache() -> TransformCache:
    if _worker_cache is None:
        _init_worker()
    return _worker_cache


def transform_chunk(records: Sequence[MdxRecord], module_path: str) -> List[MdxRecord]:
    """
    Apply the transform to the paraphrase of every record in a chunk.

    Runs inside a worker process. entry, content_type and rowid are copied
    unchanged and the output has the same length and order as the input.

    Raises:
        TypeError: If the transform returns something other than a string
    """
    transform = _get_worker_cache().get(module_path)

    transformed = []
    for record in records:
        paraphrase = transform(record.paraphrase)
        if not isinstance(paraphrase, str):
            raise TypeError(
                f"transform_html must return str, got {type(paraphrase).__name__} "
                f"for entry '{record.entry}'"
            )
        transformed.append(
            MdxRecord(
                entry=record.entry,
                paraphrase=paraphrase,
                content_type=record.content_type,
                rowid=record.rowid,
            )
        )
    return transformed


class TransformWorkerPool:
    """
    Bounded pool of worker processes for transform_chunk.

    terminate() must run on every exit path; the pool is also a context
    manager that does so. Calling terminate() more than once is a no-op.
    """

    def __init__(self, max_workers: Optional[int] = None):
        """
        Start the pool. Worker processes are spawned on first use.

        Args:
            max_workers: Number of worker processes (default: CPUs - 1)
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1 (got {max_workers})")

        self.max_workers = max_workers or default_worker_count()
        self._executor = ProcessPoolExecutor(
            max_workers=self.max_workers,
            initializer=_init_worker,
        )
        self._lock = threading.Lock()
        self._terminated = False
        self.dispatch_count = 0

        logger.info(f"Started transform worker pool: max_workers={self.max_workers}")

    def __enter__(self) -> "TransformWorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate(cancel_pending=exc_type is not None)

    @property
    def terminated(self) -> bool:
        return self._terminated

    def submit(self, chunk: Sequence[MdxRecord], module_path: str) -> "Future[List[MdxRecord]]":
        """
        Queue one chunk for transformation.

        Args:
            chunk: Records to transform (copied into the worker)
            module_path: Absolute path of the transform module

        Returns:
            Future resolving to the transformed records

        Raises:
            RuntimeError: If the pool has been terminated
        """
        with self._lock:
            if self._terminated:
                raise RuntimeError("Transform worker pool has been terminated")
            self.dispatch_count += 1
        return self._executor.submit(transform_chunk, list(chunk), module_path)

    def dispatch(self, chunk: Sequence[MdxRecord], module_path: str) -> List[MdxRecord]:
        """Transform one chunk and wait for the result."""
        return self.submit(chunk, module_path).result()

    def terminate(self, cancel_pending: bool = False) -> None:
        """
        Shut down all worker processes.

        Args:
            cancel_pending: Drop chunks that have not started yet instead of
                running them. Chunks already running are waited for.
        """
        with self._lock:
            if self._terminated:
                return
            self._terminated = True

        self._executor.shutdown(wait=True, cancel_futures=cancel_pending)
        logger.info(
            f"Transform worker pool terminated ({self.dispatch_count:,} chunks dispatched)"
        )
