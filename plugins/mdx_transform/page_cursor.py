"""
Page Cursor Module

Keyset pagination over an MdxStore. The cursor only remembers the rowid of
the last record it returned, so memory use is bounded by one page no matter
how large the store is.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional
import logging

from mdx_transform.record_store import MdxStore
from mdx_transform.records import DEFAULT_PAGE_SIZE, ContentType, MdxRecord

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One batch of records ordered by rowid, plus the next watermark."""

    records: List[MdxRecord]
    last_rowid: int

    def __len__(self) -> int:
        return len(self.records)


class PageCursor:
    """
    Lazily pulls rowid-ordered pages from a store.

    Each call to ``next_page`` returns the records strictly after the current
    watermark. Records inserted behind the watermark during a run are not
    seen; records are never returned twice.

    Usage:
        cursor = PageCursor(store, page_size=10000, content_type=ContentType.HTML)
        for page in cursor:
            process(page.records)
    """

    def __init__(
        self,
        store: MdxStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        content_type: Optional[ContentType] = None,
        start_after: int = 0,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1 (got {page_size})")
        self.store = store
        self.page_size = page_size
        self.content_type = content_type
        self.watermark = start_after
        self.exhausted = False

    def next_page(self) -> Optional[Page]:
        """
        Fetch the next page.

        Returns:
            The next Page, or None once no records remain after the watermark
        """
        if self.exhausted:
            return None

        records = self.store.fetch_page(self.watermark, self.page_size, self.content_type)
        if not records:
            self.exhausted = True
            return None

        self.watermark = records[-1].rowid
        return Page(records=records, last_rowid=self.watermark)

    def __iter__(self) -> Iterator[Page]:
        while True:
            page = self.next_page()
            if page is None:
                return
            yield page
