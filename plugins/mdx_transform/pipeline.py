"""
Transform Pipeline Module

This module drives a transform run from a source store to a target store:

    PageCursor -> split by content type -> chunked parallel transform
               -> reassemble page -> insert into target

Pages are processed one at a time. Within a page, HTML chunks run in
parallel on the worker pool and the coordinator waits for all of them
before writing the page and fetching the next one.

Two orderings are supported (see ReorderMode):
- INTERLEAVED: one pass; every page is written in source order with its
  HTML records replaced by their transformed versions.
- HTML_FIRST: a paginated pass over HTML records only, then all LINK
  records in one final batch.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional
import logging
import math
import time

from mdx_transform.chunk_scheduler import transform_records_in_parallel
from mdx_transform.page_cursor import PageCursor
from mdx_transform.partitioner import split_records_by_content_type
from mdx_transform.record_store import MdxStore
from mdx_transform.records import ContentType, MdxRecord, ReorderMode, TransformOptions
from mdx_transform.transform_loader import load_transform_function, validate_module_exists
from mdx_transform.worker_pool import TransformWorkerPool

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
PoolFactory = Callable[[Optional[int]], TransformWorkerPool]


class TransformPipeline:
    """Run one transform from a source store into a target store."""

    def __init__(
        self,
        source: MdxStore,
        target: MdxStore,
        module_path: str,
        options: Optional[TransformOptions] = None,
        pool_factory: PoolFactory = TransformWorkerPool,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Args:
            source: Store to read from
            target: Store to insert into
            module_path: Path to the transform module
            options: Page/chunk sizes, worker count and reorder mode
            pool_factory: Called with max_workers to create the worker pool
            progress_callback: Called as (records_written, total) after each write
        """
        self.source = source
        self.target = target
        self.module_path = module_path
        self.options = options or TransformOptions()
        self._pool_factory = pool_factory
        self._progress_callback = progress_callback

        self.records_written = 0
        self.html_records_transformed = 0
        self.batches_written = 0
        self.chunks_dispatched = 0
        self._total = 0

    def _transform_page(self, html_records: List[MdxRecord], pool: TransformWorkerPool) -> List[MdxRecord]:
        transformed = transform_records_in_parallel(
            html_records, pool, self.module_path, self.options.chunk_size
        )
        self.html_records_transformed += len(transformed)
        self.chunks_dispatched += math.ceil(len(html_records) / self.options.chunk_size)
        return transformed

    def process_records_in_parallel(self, pool: TransformWorkerPool) -> Iterator[List[MdxRecord]]:
        """
        Yield every source page in source order with HTML records transformed.

        Args:
            pool: Worker pool owned by the caller

        Yields:
            Reassembled pages
        """
        cursor = PageCursor(self.source, self.options.page_size)
        for page in cursor:
            html_records, _ = split_records_by_content_type(page.records)
            transformed = iter(self._transform_page(html_records, pool))

            # Put each transformed record back at its original position
            yield [
                next(transformed) if record.content_type == ContentType.HTML else record
                for record in page.records
            ]

    def transform_html_records_in_parallel(self, pool: TransformWorkerPool) -> Iterator[List[MdxRecord]]:
        """
        Yield pages of transformed HTML records only.

        Args:
            pool: Worker pool owned by the caller

        Yields:
            Transformed HTML records, one list per source page
        """
        cursor = PageCursor(self.source, self.options.page_size, content_type=ContentType.HTML)
        for page in cursor:
            yield self._transform_page(page.records, pool)

    def _write(self, records: List[MdxRecord]) -> None:
        if not records:
            return

        write_start_time = time.time()
        written = self.target.insert_records(records)
        self.records_written += written
        self.batches_written += 1

        write_time = time.time() - write_start_time
        records_per_second = written / write_time if write_time > 0 else 0
        logger.info(
            f"Batch {self.batches_written}: wrote {written:,} records "
            f"({self.records_written:,}/{self._total:,} total) "
            f"at {records_per_second:,.0f} records/sec"
        )

        if self._progress_callback is not None:
            self._progress_callback(self.records_written, self._total)

    def _terminate_pool(self, pool: TransformWorkerPool, cancel_pending: bool) -> None:
        try:
            pool.terminate(cancel_pending=cancel_pending)
        except Exception:
            logger.exception("Exception occurred during worker pool termination")

    def run(self) -> Dict[str, Any]:
        """
        Execute the transform.

        The worker pool is created once and terminated exactly once, whether
        the run succeeds, fails or is interrupted.

        Returns:
            Result dictionary with counts and timings

        Raises:
            FileNotFoundError, ImportError, TypeError: If the transform module
                cannot be loaded (raised before any work is dispatched)
            sqlite3.Error: On source or target access failures
            Exception: Whatever the transform raises for a chunk
        """
        start_time = time.time()
        mode = ReorderMode(self.options.reorder_mode)

        self.module_path = str(validate_module_exists(self.module_path))
        load_transform_function(self.module_path)

        source_record_count = self.source.get_total_record_count()
        self._total = source_record_count
        logger.info(
            f"Starting transform of {source_record_count:,} records "
            f"(mode={mode.value}, page_size={self.options.page_size:,}, "
            f"chunk_size={self.options.chunk_size:,})"
        )

        pool = self._pool_factory(self.options.max_workers)
        failed = False
        try:
            if mode is ReorderMode.HTML_FIRST:
                for records in self.transform_html_records_in_parallel(pool):
                    self._write(records)
                logger.info(f"HTML records inserted ({self.html_records_transformed:,})")

                link_records = self.source.fetch_link_records()
                self._write(link_records)
                logger.info(f"LINK records inserted ({len(link_records):,})")
            else:
                for records in self.process_records_in_parallel(pool):
                    self._write(records)
        except BaseException as e:
            failed = True
            logger.error(f"Transform failed after {self.records_written:,} records: {e}")
            raise
        finally:
            self._terminate_pool(pool, cancel_pending=failed)

        elapsed_time = time.time() - start_time
        avg_records_per_second = self.records_written / elapsed_time if elapsed_time > 0 else 0
        success = self.records_written == source_record_count

        result = {
            'source_record_count': source_record_count,
            'records_written': self.records_written,
            'html_records_transformed': self.html_records_transformed,
            'batches_written': self.batches_written,
            'chunks_dispatched': self.chunks_dispatched,
            'reorder_mode': mode.value,
            'elapsed_time_seconds': elapsed_time,
            'avg_records_per_second': avg_records_per_second,
            'success': success,
            'timestamp': datetime.now().isoformat(),
        }

        if success:
            logger.info(
                f"Successfully wrote {self.records_written:,} records in {elapsed_time:.2f} seconds "
                f"({avg_records_per_second:,.0f} records/sec average)"
            )
        else:
            logger.warning(
                f"Transform completed with issues. Source: {source_record_count:,}, "
                f"Written: {self.records_written:,}"
            )

        return result


def run_transform_pipeline(
    source: MdxStore,
    target: MdxStore,
    module_path: str,
    options: Optional[TransformOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """Convenience wrapper: build a TransformPipeline and run it."""
    pipeline = TransformPipeline(
        source,
        target,
        module_path,
        options=options,
        progress_callback=progress_callback,
    )
    return pipeline.run()
