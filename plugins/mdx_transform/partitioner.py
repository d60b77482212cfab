"""Split record batches by content type."""

from typing import List, Sequence, Tuple

from mdx_transform.records import ContentType, MdxRecord


def split_records_by_content_type(
    records: Sequence[MdxRecord],
) -> Tuple[List[MdxRecord], List[MdxRecord]]:
    """
    Partition records into (html_records, link_records).

    Relative order inside each group is preserved.

    Raises:
        ValueError: If a record has no content type
    """
    html_records: List[MdxRecord] = []
    link_records: List[MdxRecord] = []
    for record in records:
        if record.content_type == ContentType.HTML:
            html_records.append(record)
        elif record.content_type == ContentType.LINK:
            link_records.append(record)
        else:
            raise ValueError(
                f"Record '{record.entry}' (rowid {record.rowid}) has no content type"
            )
    return html_records, link_records
