"""
MDX Dictionary Transform DAG

This DAG runs a transform module over every record of an MDX dictionary
database and writes the result into a new database. It handles:
1. Validation of the input database and transform module
2. Paginated, parallel transformation of HTML records
3. Record count validation and reporting

LINK records are copied unchanged. With html_before_link enabled, all HTML
records are written before all LINK records; otherwise source order is kept.
"""

from airflow.sdk import Asset, dag, task
from airflow.models.param import Param
from pendulum import datetime
from typing import Dict, Any
import logging
import os

from mdx_transform import config, transform_loader, validation, workflows
from mdx_transform.record_store import MdxStore

logger = logging.getLogger(__name__)


@dag(
    start_date=datetime(2025, 1, 1),
    schedule=None,  # Run manually or trigger via API
    catchup=False,
    max_active_runs=1,
    is_paused_upon_creation=False,
    doc_md=__doc__,
    default_args={
        "owner": "data-team",
        # A failed transform leaves a partial target; rerun from scratch instead
        "retries": 0,
    },
    params={
        "db_path": Param(
            type="string",
            description="Path to the input MDX database"
        ),
        "transform_module_path": Param(
            type="string",
            description="Path to a Python file defining transform_html(html: str) -> str"
        ),
        "output_path": Param(
            default="",
            type="string",
            description="Path to the output database (default: output.db next to the input, overwritten)"
        ),
        "html_before_link": Param(
            default=False,
            type="boolean",
            description="Place all HTML records before LINK records, preserving relative order within each type"
        ),
        "page_size": Param(
            default=10000,
            type="integer",
            minimum=1,
            description="Number of records read from the source per page"
        ),
        "chunk_size": Param(
            default=1000,
            type="integer",
            minimum=1,
            description="Number of records sent to a worker per dispatch"
        ),
        "max_workers": Param(
            default=0,
            type="integer",
            minimum=0,
            description="Worker processes (0 uses MDX_TRANSFORM_WORKERS or CPUs - 1)"
        ),
    },
    tags=["migration", "mdx", "sqlite", "transform"],
)
def mdx_transform_migration():
    """
    Main DAG for MDX dictionary transforms.
    """

    @task
    def validate_inputs(**context) -> Dict[str, Any]:
        """
        Check the input database and transform module before any work starts.

        Returns:
            Resolved run configuration
        """
        params = context["params"]
        db_path = params["db_path"]

        if not os.path.isfile(db_path):
            raise FileNotFoundError(f"Database not found at path: {db_path}")

        module_path = str(transform_loader.validate_module_exists(params["transform_module_path"]))
        transform_loader.load_transform_function(module_path)

        output_path = params.get("output_path") or workflows.default_output_path(db_path)
        logger.info(f"✓ Input: {db_path}")
        logger.info(f"✓ Module: {module_path}")
        logger.info(f"✓ Output: {output_path}")

        return {
            "db_path": db_path,
            "module_path": module_path,
            "output_path": output_path,
        }

    @task(outlets=[Asset("mdx_transform_output")])
    def transform_records(run_config: Dict[str, Any], **context) -> Dict[str, Any]:
        """
        Run the transform pipeline.

        Args:
            run_config: Output of validate_inputs

        Returns:
            Pipeline result dictionary
        """
        params = context["params"]
        options = config.get_transform_options(
            page_size=params["page_size"],
            chunk_size=params["chunk_size"],
            max_workers=params.get("max_workers") or None,
            html_before_link=params.get("html_before_link", False),
        )

        result = workflows.migrate_database(
            db_path=run_config["db_path"],
            module_path=run_config["module_path"],
            output_path=run_config["output_path"],
            options=options,
        )

        if result["success"]:
            logger.info(
                f"✓ Wrote {result['records_written']:,} records "
                f"in {result['elapsed_time_seconds']:.2f}s "
                f"({result['avg_records_per_second']:,.0f} records/sec)"
            )
        else:
            logger.error(
                f"✗ Transform incomplete: {result['records_written']:,} of "
                f"{result['source_record_count']:,} records written"
            )

        return result

    @task
    def validate_output(run_config: Dict[str, Any], transform_result: Dict[str, Any]) -> Dict[str, Any]:
        """
        Compare record counts between input and output databases.

        Returns:
            Validation result dictionary
        """
        try:
            source = MdxStore(run_config["db_path"], readonly=True)
            target = MdxStore(run_config["output_path"], readonly=True)
            result = validation.validate_record_counts(source, target)
        finally:
            MdxStore.close_all()

        logger.info("\n" + validation.generate_migration_report(result, transform_result))

        if not result["success"]:
            raise ValueError(f"Record count validation failed: {'; '.join(result['errors'])}")

        return result

    run_config = validate_inputs()
    transform_result = transform_records(run_config)
    validate_output(run_config, transform_result)


# Instantiate the DAG
mdx_transform_migration()
