"""
MDX Dictionary Transform Utilities

This package migrates dictionary records from one SQLite database to
another, running a user-supplied transform over HTML records in parallel
worker processes. Runs are orchestrated by the Airflow DAGs in dags/.

Modules:
- records: Record model, content types and run options
- record_store: SQLite-backed source/target store
- page_cursor: Keyset pagination over a store
- partitioner: Split records by content type
- transform_loader: Load transform_html from a module file
- worker_pool: Worker processes with per-process transform cache
- chunk_scheduler: Chunked fan-out/fan-in over the worker pool
- pipeline: Page-by-page transform orchestration
- workflows: Transform and debug entry points
- validation: Post-run record count checks
- config: Environment-driven run options

Performance Options:
- MDX_PAGE_SIZE=N: Records read per page
- MDX_CHUNK_SIZE=N: Records per worker dispatch
- MDX_TRANSFORM_WORKERS=N: Number of worker processes
"""

__version__ = "1.0.0"

from mdx_transform import records
from mdx_transform import record_store
from mdx_transform import page_cursor
from mdx_transform import partitioner
from mdx_transform import transform_loader
from mdx_transform import worker_pool
from mdx_transform import chunk_scheduler
from mdx_transform import pipeline
from mdx_transform import workflows
from mdx_transform import validation
from mdx_transform import config

__all__ = [
    "records",
    "record_store",
    "page_cursor",
    "partitioner",
    "transform_loader",
    "worker_pool",
    "chunk_scheduler",
    "pipeline",
    "workflows",
    "validation",
    "config",
]
