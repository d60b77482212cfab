"""
MDX Debug Export DAG

Writes the records of selected entries to individual files so they can be
inspected by hand, optionally after running them through a transform module.

HTML records are written as <entry>_<rowid>.html, LINK records as
<entry>_<rowid>.txt.
"""

from airflow.sdk import dag, task
from airflow.models.param import Param
from pendulum import datetime
from typing import List
import logging

from mdx_transform import workflows
from mdx_transform.record_store import MdxStore

logger = logging.getLogger(__name__)


@dag(
    start_date=datetime(2025, 1, 1),
    schedule=None,
    catchup=False,
    is_paused_upon_creation=False,
    doc_md=__doc__,
    default_args={
        "owner": "data-team",
        "retries": 0,
    },
    params={
        "db_path": Param(
            type="string",
            description="Path to the input MDX database"
        ),
        "entries": Param(
            default=[],
            type="array",
            description="Entries (headwords) to export"
        ),
        "output_dir": Param(
            default="",
            type="string",
            description="Directory for the files (default: debug/ next to the input)"
        ),
        "transform_module_path": Param(
            default="",
            type="string",
            description="Optional transform module; transformation is skipped when empty"
        ),
    },
    tags=["mdx", "sqlite", "debug"],
)
def mdx_debug_export():
    """
    Export selected entries to files.
    """

    @task
    def export_records(**context) -> List[str]:
        """
        Returns:
            Paths of the written files
        """
        params = context["params"]
        db_path = params["db_path"]
        entries = params.get("entries", [])
        if isinstance(entries, str):
            entries = [e.strip() for e in entries.split(',') if e.strip()]

        output_dir = params.get("output_dir") or workflows.default_debug_dir(db_path)

        try:
            store = MdxStore(db_path, optimize=True, readonly=True)
            written = workflows.run_debug_workflow(
                store,
                entries,
                output_dir,
                module_path=params.get("transform_module_path") or None,
            )
        finally:
            MdxStore.close_all()

        logger.info(f"Exported {len(written)} files to {output_dir}")
        return written

    export_records()


# Instantiate the DAG
mdx_debug_export()
