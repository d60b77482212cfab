"""
Tests for chunked fan-out and ordered fan-in.
"""

import threading
from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest
from mdx_transform.chunk_scheduler import split_into_chunks, transform_records_in_parallel
from mdx_transform.records import ContentType, MdxRecord
from mdx_transform.worker_pool import TransformWorkerPool


def html_records(*paraphrases):
    return [
        MdxRecord(entry=p, paraphrase=p, content_type=ContentType.HTML, rowid=i + 1)
        for i, p in enumerate(paraphrases)
    ]


def resolved(value=None, exception=None):
    future = Future()
    if exception is not None:
        future.set_exception(exception)
    else:
        future.set_result(value)
    return future


class TestSplitIntoChunks:

    def test_even_split(self):
        chunks = split_into_chunks(list(range(6)), 2)
        assert chunks == [[0, 1], [2, 3], [4, 5]]

    def test_last_chunk_is_shorter(self):
        assert split_into_chunks(list(range(5)), 2) == [[0, 1], [2, 3], [4]]

    def test_chunk_larger_than_input(self):
        assert split_into_chunks([1, 2], 10) == [[1, 2]]

    def test_empty(self):
        assert split_into_chunks([], 3) == []

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError, match='chunk_size'):
            split_into_chunks([1], 0)


class TestTransformRecordsInParallel:

    def test_results_follow_chunk_order(self):
        """Test that results are joined by chunk index, not completion order."""
        records = html_records('a', 'b', 'c')
        submitted = []
        completion_order = []

        def complete_in_reverse():
            for index, (future, chunk) in reversed(list(enumerate(submitted))):
                completion_order.append(index)
                future.set_result(
                    [MdxRecord(r.entry, r.paraphrase.upper(), r.content_type, r.rowid) for r in chunk]
                )

        def submit(chunk, module_path):
            future = Future()
            submitted.append((future, chunk))
            # Once every chunk is queued, finish them last chunk first
            if len(submitted) == len(records):
                threading.Thread(target=complete_in_reverse).start()
            return future

        pool = MagicMock()
        pool.submit.side_effect = submit

        transformed = transform_records_in_parallel(records, pool, '/t.py', chunk_size=1)

        assert completion_order == [2, 1, 0]
        assert [r.paraphrase for r in transformed] == ['A', 'B', 'C']
        assert [r.rowid for r in transformed] == [1, 2, 3]
        assert pool.submit.call_count == 3

    def test_empty_input_dispatches_nothing(self):
        pool = MagicMock()
        assert transform_records_in_parallel([], pool, '/t.py', chunk_size=2) == []
        pool.submit.assert_not_called()

    def test_failed_chunk_cancels_the_rest(self):
        """Test that one failing chunk fails the whole call."""
        pending = MagicMock()
        pool = MagicMock()
        pool.submit.side_effect = [
            resolved(exception=ValueError('chunk 1 exploded')),
            pending,
        ]

        with pytest.raises(ValueError, match='chunk 1 exploded'):
            transform_records_in_parallel(html_records('a', 'b'), pool, '/t.py', chunk_size=1)

        pending.cancel.assert_called_once()
        pending.result.assert_not_called()

    def test_with_real_pool(self, uppercase_module):
        records = html_records('ab', 'cd', 'ef')
        with TransformWorkerPool(max_workers=2) as pool:
            transformed = transform_records_in_parallel(records, pool, uppercase_module, chunk_size=1)

        assert [r.paraphrase for r in transformed] == ['AB', 'CD', 'EF']
        assert [r.rowid for r in transformed] == [1, 2, 3]
        assert pool.dispatch_count == 3
