"""
Record Types Module

This module defines the record model shared by the store, the pipeline and
the worker processes, together with the run options for a transform.

Records are plain dataclasses so they can be pickled into worker processes
and back without any custom serialization.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

# Paraphrases starting with this marker are redirects to another entry
LINK_PREFIX = "@@@LINK="

DEFAULT_PAGE_SIZE = 10000
DEFAULT_CHUNK_SIZE = 1000


class ContentType(IntEnum):
    """Discriminant stored in the mdx.content_type column."""

    HTML = 0
    LINK = 1


class ReorderMode(str, Enum):
    """
    How transformed and pass-through records are ordered in the target.

    INTERLEAVED keeps the source order page by page. HTML_FIRST writes every
    transformed HTML record first, then every LINK record.
    """

    INTERLEAVED = "interleaved"
    HTML_FIRST = "html_first"


@dataclass
class MdxRecord:
    """
    A single dictionary entry.

    Attributes:
        entry: Headword (lookup key), not unique
        paraphrase: HTML body or @@@LINK= redirect
        content_type: HTML or LINK; None means "classify on insert"
        rowid: SQLite rowid in the store the record was read from
    """

    entry: str
    paraphrase: str
    content_type: Optional[ContentType] = None
    rowid: Optional[int] = None


@dataclass
class TransformOptions:
    """Tunables for a single transform run."""

    page_size: int = DEFAULT_PAGE_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_workers: Optional[int] = None
    reorder_mode: ReorderMode = ReorderMode.INTERLEAVED

    def __post_init__(self):
        # Accept the plain string values used in DAG params
        self.reorder_mode = ReorderMode(self.reorder_mode)

    @property
    def html_before_link(self) -> bool:
        return self.reorder_mode is ReorderMode.HTML_FIRST


def infer_content_type(paraphrase: str) -> ContentType:
    """Classify a paraphrase by its textual prefix."""
    return ContentType.LINK if paraphrase.startswith(LINK_PREFIX) else ContentType.HTML
