"""
Transform Workflows

Entry points used by the DAGs:
- transform: run a transform module over a whole database into a new one
- debug: dump selected entries (optionally transformed) to individual files
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging
import os

from mdx_transform.partitioner import split_records_by_content_type
from mdx_transform.pipeline import ProgressCallback, TransformPipeline
from mdx_transform.record_store import MdxStore
from mdx_transform.records import MdxRecord, TransformOptions
from mdx_transform.transform_loader import load_transform_function, validate_module_exists

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def default_output_path(db_path: PathLike) -> str:
    """output.db next to the input database."""
    return os.path.join(os.path.dirname(os.path.abspath(db_path)), 'output.db')


def default_debug_dir(db_path: PathLike) -> str:
    """debug/ next to the input database."""
    return os.path.join(os.path.dirname(os.path.abspath(db_path)), 'debug')


def run_transform_workflow(
    source: MdxStore,
    target: MdxStore,
    module_path: PathLike,
    options: Optional[TransformOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """
    Transform every record of ``source`` into ``target``.

    Args:
        source: Source store
        target: Target store (expected to be empty)
        module_path: Path to the transform module
        options: Run options
        progress_callback: Optional (records_written, total) observer

    Returns:
        Pipeline result dictionary
    """
    options = options or TransformOptions()
    logger.info("→ transform workflow")
    logger.info(f"• module: {module_path}")
    resolved_path = validate_module_exists(module_path)
    if options.html_before_link:
        logger.info("• mode: HTML before LINK")

    pipeline = TransformPipeline(
        source,
        target,
        str(resolved_path),
        options=options,
        progress_callback=progress_callback,
    )
    result = pipeline.run()

    logger.info("✓ transform workflow complete")
    return result


def _file_name_for(record: MdxRecord, extension: str) -> str:
    # Entries may contain path separators (e.g. "AC/DC"); keep files inside output_dir
    entry = record.entry
    for separator in (os.sep, os.altsep):
        if separator:
            entry = entry.replace(separator, '_')
    return f"{entry}_{record.rowid}.{extension}"


def write_records_to_files(
    records: List[MdxRecord],
    output_dir: PathLike,
    module_path: Optional[PathLike] = None,
) -> List[str]:
    """
    Write each record to its own file.

    HTML records go to <entry>_<rowid>.html (transformed first when a module
    is given), LINK records to <entry>_<rowid>.txt.

    Returns:
        Paths of the written files
    """
    os.makedirs(output_dir, exist_ok=True)
    html_records, link_records = split_records_by_content_type(records)

    if module_path:
        transform = load_transform_function(module_path)
        html_records = [
            MdxRecord(
                entry=record.entry,
                paraphrase=transform(record.paraphrase),
                content_type=record.content_type,
                rowid=record.rowid,
            )
            for record in html_records
        ]

    written = []
    for records_of_type, extension, label in (
        (html_records, 'html', 'HTML'),
        (link_records, 'txt', 'LINK'),
    ):
        for record in records_of_type:
            file_path = os.path.join(output_dir, _file_name_for(record, extension))
            with open(file_path, 'w', encoding='utf-8') as f:
                f.write(record.paraphrase)
            logger.info(f"Written {label} record: {file_path}")
            written.append(file_path)

    return written


def run_debug_workflow(
    store: MdxStore,
    entries: Iterable[str],
    output_dir: PathLike,
    module_path: Optional[PathLike] = None,
) -> List[str]:
    """
    Dump the records of selected entries to files for inspection.

    Args:
        store: Store to read from
        entries: Headwords to export
        output_dir: Directory for the files (created if missing)
        module_path: Optional transform module applied to HTML records

    Returns:
        Paths of the written files
    """
    logger.info("→ debug mode")
    if module_path:
        logger.info(f"• module: {module_path}")
        validate_module_exists(module_path)

    records = store.fetch_records_by_entries(entries)
    if not records:
        logger.info("✓ no records found")
        return []

    logger.info(f"✓ found {len(records)} records")
    return write_records_to_files(records, output_dir, module_path)


def migrate_database(
    db_path: PathLike,
    module_path: PathLike,
    output_path: Optional[PathLike] = None,
    options: Optional[TransformOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """
    Open source and target databases, run the transform and close both.

    The source is opened read-only (after adding the content_type column if
    needed); the target is recreated from scratch.

    Args:
        db_path: Source database file
        module_path: Path to the transform module
        output_path: Target database file (default: output.db next to the source)
        options: Run options
        progress_callback: Optional (records_written, total) observer

    Returns:
        Pipeline result dictionary with the target path under 'output_path'
    """
    if not os.path.isfile(db_path):
        raise FileNotFoundError(f"Database not found at path: {db_path}")
    output_path = str(output_path or default_output_path(db_path))
    if os.path.abspath(output_path) == os.path.abspath(db_path):
        raise ValueError(f"Output database must differ from the input database: {db_path}")

    source = target = None
    try:
        source = MdxStore(db_path, optimize=True, readonly=True)
        target = MdxStore(output_path, initialize=True)
        result = run_transform_workflow(
            source, target, module_path, options=options, progress_callback=progress_callback
        )
    finally:
        for store in (target, source):
            if store is not None:
                store.close()

    result['output_path'] = output_path
    return result
