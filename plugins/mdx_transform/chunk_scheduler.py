"""
Chunk Scheduler Module

Fans one page of HTML records out to the worker pool in fixed-size chunks
and joins the results back in the original order.

Larger chunks mean fewer round trips to the workers; smaller chunks spread
the work more evenly across them.
"""

from concurrent.futures import Future
from typing import List, Sequence
import logging

from mdx_transform.records import DEFAULT_CHUNK_SIZE, MdxRecord
from mdx_transform.worker_pool import TransformWorkerPool

logger = logging.getLogger(__name__)


def split_into_chunks(records: Sequence[MdxRecord], chunk_size: int) -> List[List[MdxRecord]]:
    """
    Slice records into consecutive chunks of at most chunk_size.

    Raises:
        ValueError: If chunk_size is less than 1
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1 (got {chunk_size})")
    return [list(records[i:i + chunk_size]) for i in range(0, len(records), chunk_size)]


def transform_records_in_parallel(
    records: Sequence[MdxRecord],
    pool: TransformWorkerPool,
    module_path: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[MdxRecord]:
    """
    Transform records across the pool and return them in input order.

    All chunks are submitted before any result is awaited. If one chunk
    fails, chunks that have not started are cancelled and the chunk's
    exception is raised; no partial result is returned.

    Args:
        records: HTML records to transform
        pool: Worker pool to dispatch to
        module_path: Absolute path of the transform module
        chunk_size: Records per dispatch

    Returns:
        Transformed records, same length and order as ``records``
    """
    chunks = split_into_chunks(records, chunk_size)
    if not chunks:
        return []

    futures: List[Future] = [pool.submit(chunk, module_path) for chunk in chunks]

    transformed: List[MdxRecord] = []
    try:
        # Results are collected by chunk index, completion order does not matter
        for index, future in enumerate(futures):
            transformed.extend(future.result())
    except Exception as e:
        for future in futures:
            future.cancel()
        logger.error(f"Chunk {index + 1}/{len(chunks)} failed: {e}")
        raise

    logger.debug(f"Transformed {len(transformed):,} records in {len(chunks)} chunks")
    return transformed
