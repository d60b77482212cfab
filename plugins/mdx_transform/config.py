"""
Transform Configuration Module

Run options come from environment variables with fixed defaults, and can be
overridden per run (e.g. from DAG params).

Environment:
- MDX_PAGE_SIZE: Records read from the source per page (default 10000)
- MDX_CHUNK_SIZE: Records sent to a worker per dispatch (default 1000)
- MDX_TRANSFORM_WORKERS: Worker processes (default CPUs - 1)
"""

from typing import Optional, Union
import logging
import os

from mdx_transform.records import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PAGE_SIZE,
    ReorderMode,
    TransformOptions,
)

logger = logging.getLogger(__name__)


def _int_from_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got '{raw}')")


def _require_positive(name: str, value: Optional[int]) -> None:
    if value is not None and value < 1:
        raise ValueError(f"{name} must be at least 1 (got {value})")


def get_transform_options(
    page_size: Optional[int] = None,
    chunk_size: Optional[int] = None,
    max_workers: Optional[int] = None,
    html_before_link: bool = False,
    reorder_mode: Optional[Union[ReorderMode, str]] = None,
) -> TransformOptions:
    """
    Resolve run options from arguments, then environment, then defaults.

    Args:
        page_size: Records per page
        chunk_size: Records per worker dispatch
        max_workers: Worker process count
        html_before_link: Shortcut for reorder_mode=HTML_FIRST
        reorder_mode: Explicit reorder mode (wins over html_before_link)

    Returns:
        TransformOptions

    Raises:
        ValueError: If a size is not a positive integer
    """
    if page_size is None:
        page_size = _int_from_env('MDX_PAGE_SIZE', DEFAULT_PAGE_SIZE)
    if chunk_size is None:
        chunk_size = _int_from_env('MDX_CHUNK_SIZE', DEFAULT_CHUNK_SIZE)
    if max_workers is None:
        max_workers = _int_from_env('MDX_TRANSFORM_WORKERS', None)

    _require_positive('page_size', page_size)
    _require_positive('chunk_size', chunk_size)
    _require_positive('max_workers', max_workers)

    if reorder_mode is None:
        reorder_mode = ReorderMode.HTML_FIRST if html_before_link else ReorderMode.INTERLEAVED

    return TransformOptions(
        page_size=page_size,
        chunk_size=chunk_size,
        max_workers=max_workers,
        reorder_mode=ReorderMode(reorder_mode),
    )
