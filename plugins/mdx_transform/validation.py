"""
Transform Validation Module

This module verifies a finished transform by comparing record counts between
the source and target stores, in total and per content type.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from mdx_transform.record_store import MdxStore
from mdx_transform.records import ContentType

logger = logging.getLogger(__name__)


def _compare_counts(label: str, source_count: int, target_count: int) -> Dict[str, Any]:
    row_difference = target_count - source_count
    percentage_difference = (row_difference / source_count * 100) if source_count > 0 else 0
    return {
        'label': label,
        'source_count': source_count,
        'target_count': target_count,
        'row_difference': row_difference,
        'percentage_difference': percentage_difference,
        'validation_passed': source_count == target_count,
    }


def validate_record_counts(source: MdxStore, target: MdxStore) -> Dict[str, Any]:
    """
    Compare record counts between source and target.

    Args:
        source: Store the transform read from
        target: Store the transform wrote to

    Returns:
        Validation result dictionary with one entry per content type plus total
    """
    results: List[Dict[str, Any]] = [
        _compare_counts(
            'total',
            source.get_total_record_count(),
            target.get_total_record_count(),
        )
    ]
    for content_type in ContentType:
        results.append(
            _compare_counts(
                content_type.name,
                source.get_total_record_count(content_type),
                target.get_total_record_count(content_type),
            )
        )

    errors = []
    for result in results:
        if result['validation_passed']:
            logger.info(
                f"✓ Record count validation passed for {result['label']}: "
                f"{result['source_count']:,} records"
            )
        else:
            message = (
                f"Record count mismatch for {result['label']}: "
                f"Source={result['source_count']:,}, Target={result['target_count']:,}, "
                f"Difference={result['row_difference']:+,} ({result['percentage_difference']:+.2f}%)"
            )
            logger.warning(f"✗ {message}")
            errors.append(message)

    return {
        'source': source.filename,
        'target': target.filename,
        'count_results': results,
        'success': not errors,
        'errors': errors,
        'validation_time': datetime.now().isoformat(),
    }


def generate_migration_report(
    validation_result: Dict[str, Any],
    transform_result: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Generate a human-readable transform report.

    Args:
        validation_result: Result of validate_record_counts
        transform_result: Optional result of TransformPipeline.run

    Returns:
        Formatted report string
    """
    report_lines = [
        "=" * 80,
        "MDX TRANSFORM REPORT",
        "=" * 80,
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Source: {validation_result.get('source')}",
        f"Target: {validation_result.get('target')}",
        "",
    ]

    if transform_result:
        report_lines.extend([
            "TRANSFORM STATISTICS",
            "-" * 40,
            f"Mode: {transform_result.get('reorder_mode')}",
            f"Records Written: {transform_result.get('records_written', 0):,}",
            f"HTML Records Transformed: {transform_result.get('html_records_transformed', 0):,}",
            f"Chunks Dispatched: {transform_result.get('chunks_dispatched', 0):,}",
            f"Total Time: {transform_result.get('elapsed_time_seconds', 0):.2f} seconds",
            f"Average Rate: {transform_result.get('avg_records_per_second', 0):,.0f} records/second",
            "",
        ])

    report_lines.extend([
        "RECORD COUNTS",
        "-" * 40,
    ])
    for result in validation_result.get('count_results', []):
        status = "✓ PASS" if result['validation_passed'] else "✗ FAIL"
        report_lines.append(
            f"{status} {result['label']}: source={result['source_count']:,} "
            f"target={result['target_count']:,} diff={result['row_difference']:+,}"
        )

    report_lines.extend([
        "",
        f"OVERALL: {'SUCCESS' if validation_result.get('success') else 'FAILED'}",
        "=" * 80,
    ])

    return "\n".join(report_lines)
