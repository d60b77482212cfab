"""
MDX Record Store Module

This module wraps a single SQLite database holding dictionary records in a
table named ``mdx``. It is used both as the read-only source of a transform
run and as the freshly initialized target.

Every open store is tracked in a class-level registry so that all
connections can be closed from one place when a run ends or is interrupted.
"""

from typing import Iterable, List, Optional, Sequence, Set
import logging
import sqlite3
import threading

from mdx_transform.records import LINK_PREFIX, ContentType, MdxRecord, infer_content_type

logger = logging.getLogger(__name__)

SELECT_COLUMNS = "entry, paraphrase, content_type, rowid"

CREATE_TABLE_SQL = """
CREATE TABLE mdx (
    entry TEXT NOT NULL,
    paraphrase TEXT NOT NULL,
    content_type INTEGER NOT NULL
)
"""


def _row_to_record(row: Sequence) -> MdxRecord:
    entry, paraphrase, content_type, rowid = row
    return MdxRecord(
        entry=entry,
        paraphrase=paraphrase,
        content_type=ContentType(content_type),
        rowid=rowid,
    )


class MdxStore:
    """
    SQLite-backed record store.

    Usage:
        with MdxStore("dict.db", optimize=True, readonly=True) as source:
            total = source.get_total_record_count()
            page = source.fetch_page(0, 10000)
    """

    _instances: Set["MdxStore"] = set()
    _instances_lock = threading.Lock()

    def __init__(
        self,
        filename: str,
        initialize: bool = False,
        optimize: bool = False,
        readonly: bool = False,
    ):
        """
        Open a store.

        Args:
            filename: Path to the SQLite database file
            initialize: Drop and recreate the mdx table (target preparation)
            optimize: Add and index the content_type column if it is missing
            readonly: Open the connection in read-only mode
        """
        self.filename = str(filename)
        self.readonly = readonly
        self._conn: Optional[sqlite3.Connection] = self._connect(readonly)

        with MdxStore._instances_lock:
            MdxStore._instances.add(self)

        if initialize:
            self._initialize()
        if optimize:
            self._optimize()

    def _connect(self, readonly: bool) -> sqlite3.Connection:
        if readonly:
            return sqlite3.connect(f"file:{self.filename}?mode=ro", uri=True)
        return sqlite3.connect(self.filename)

    def __enter__(self) -> "MdxStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Store {self.filename} has been closed")
        return self._conn

    @property
    def closed(self) -> bool:
        return self._conn is None

    @classmethod
    def close_all(cls) -> None:
        """Close every store that is still open."""
        with cls._instances_lock:
            instances = list(cls._instances)
        for instance in instances:
            instance.close()

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug(f"Closed store {self.filename}")
        with MdxStore._instances_lock:
            MdxStore._instances.discard(self)

    def _fetch_rows(self, query: str, parameters: Sequence = ()) -> List[Sequence]:
        try:
            return self.conn.execute(query, parameters).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error reading from {self.filename}: {e}")
            logger.error(f"Query: {query}")
            raise

    def _query(self, query: str, parameters: Sequence = ()) -> List[MdxRecord]:
        return [_row_to_record(row) for row in self._fetch_rows(query, parameters)]

    def get_total_record_count(self, content_type: Optional[ContentType] = None) -> int:
        """
        Count records, optionally of a single content type.

        Args:
            content_type: Restrict the count to this type

        Returns:
            Number of records
        """
        if content_type is not None:
            rows = self._fetch_rows(
                "SELECT COUNT(*) FROM mdx WHERE content_type = ?", (int(content_type),)
            )
        else:
            rows = self._fetch_rows("SELECT COUNT(*) FROM mdx")
        return rows[0][0] or 0

    def fetch_page(
        self,
        after_rowid: int,
        page_size: int,
        content_type: Optional[ContentType] = None,
    ) -> List[MdxRecord]:
        """
        Read the next page of records using keyset pagination on rowid.

        Args:
            after_rowid: Watermark; only records with a greater rowid are returned
            page_size: Maximum number of records to return
            content_type: Optional discriminant filter

        Returns:
            Records ordered by rowid (empty when the store is exhausted)
        """
        if content_type is not None:
            return self._query(
                f"SELECT {SELECT_COLUMNS} FROM mdx "
                "WHERE content_type = ? AND rowid > ? ORDER BY rowid LIMIT ?",
                (int(content_type), after_rowid, page_size),
            )
        return self._query(
            f"SELECT {SELECT_COLUMNS} FROM mdx WHERE rowid > ? ORDER BY rowid LIMIT ?",
            (after_rowid, page_size),
        )

    def fetch_records(self, content_type: Optional[ContentType] = None) -> List[MdxRecord]:
        """Read all records (optionally of one type) ordered by rowid."""
        if content_type is not None:
            return self._query(
                f"SELECT {SELECT_COLUMNS} FROM mdx WHERE content_type = ? ORDER BY rowid",
                (int(content_type),),
            )
        return self._query(f"SELECT {SELECT_COLUMNS} FROM mdx ORDER BY rowid")

    def fetch_html_records(self) -> List[MdxRecord]:
        return self.fetch_records(ContentType.HTML)

    def fetch_link_records(self) -> List[MdxRecord]:
        return self.fetch_records(ContentType.LINK)

    def fetch_records_by_entries(self, entries: Iterable[str]) -> List[MdxRecord]:
        """
        Read all records whose entry is in ``entries``.

        Duplicate entries are requested once. Entries without any record are
        reported with a warning.

        Args:
            entries: Headwords to look up

        Returns:
            Matching records ordered by rowid
        """
        unique_entries = list(dict.fromkeys(entries))
        if not unique_entries:
            return []

        placeholders = ", ".join("?" for _ in unique_entries)
        records = self._query(
            f"SELECT {SELECT_COLUMNS} FROM mdx WHERE entry IN ({placeholders}) ORDER BY rowid",
            unique_entries,
        )

        found_entries = {record.entry for record in records}
        for entry in unique_entries:
            if entry not in found_entries:
                logger.warning(f"No record found for entry: {entry}")

        return records

    def insert_records(self, records: Iterable[MdxRecord]) -> int:
        """
        Insert records in a single transaction.

        Records without a content type are classified from their paraphrase.
        Either every record is written or none is.

        Args:
            records: Records to insert (rowid is ignored, the store assigns one)

        Returns:
            Number of records inserted
        """
        rows = []
        for record in records:
            if record.content_type is None:
                record.content_type = infer_content_type(record.paraphrase)
            rows.append((record.entry, record.paraphrase, int(record.content_type)))

        try:
            with self.conn:
                self.conn.executemany(
                    "INSERT INTO mdx (entry, paraphrase, content_type) VALUES (?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            logger.error(f"Error inserting {len(rows):,} records into {self.filename}: {e}")
            raise

        return len(rows)

    def delete_records(self, entries: Iterable[str]) -> int:
        """Delete every record whose entry is in ``entries``."""
        entries = list(entries)
        if not entries:
            return 0
        placeholders = ", ".join("?" for _ in entries)
        with self.conn:
            cursor = self.conn.execute(
                f"DELETE FROM mdx WHERE entry IN ({placeholders})", entries
            )
        return cursor.rowcount

    def _initialize(self) -> None:
        with self.conn:
            self.conn.execute("DROP TABLE IF EXISTS mdx")
            self.conn.execute(CREATE_TABLE_SQL)
        logger.info(f"Initialized mdx table in {self.filename}")

    def _has_content_type_column(self) -> bool:
        columns = self.conn.execute("PRAGMA table_info(mdx)").fetchall()
        return any(column[1] == "content_type" for column in columns)

    def _optimize(self) -> None:
        """
        Add, back-fill and index the content_type column on legacy tables.

        Legacy databases only have (entry, paraphrase). The schema change goes
        through a separate read-write connection so it also works when this
        store was opened read-only.
        """
        if self._has_content_type_column():
            return

        logger.info(f"Adding content_type column to {self.filename}")
        writer = sqlite3.connect(self.filename)
        try:
            with writer:
                writer.execute("ALTER TABLE mdx ADD COLUMN content_type INTEGER")
                writer.execute(
                    "UPDATE mdx SET content_type = "
                    "CASE WHEN paraphrase LIKE ? THEN ? ELSE ? END",
                    (f"{LINK_PREFIX}%", int(ContentType.LINK), int(ContentType.HTML)),
                )
                writer.execute(
                    "CREATE INDEX mdx_content_type_index ON mdx (content_type)"
                )
        finally:
            writer.close()
