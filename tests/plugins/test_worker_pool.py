"""
Tests for the Transform Worker Pool Module

Pools here start real worker processes; transform modules are small files
under tmp_path.
"""

import os

import pytest
from mdx_transform import worker_pool
from mdx_transform.records import ContentType, MdxRecord
from mdx_transform.worker_pool import (
    TransformCache,
    TransformWorkerPool,
    default_worker_count,
    transform_chunk,
)


def html_record(entry, rowid=None):
    return MdxRecord(entry=entry, paraphrase=entry, content_type=ContentType.HTML, rowid=rowid)


class TestTransformCache:

    def test_loads_each_module_once(self, uppercase_module):
        cache = TransformCache()
        first = cache.get(uppercase_module)
        second = cache.get(uppercase_module)

        assert first is second
        assert cache.load_count == 1
        assert uppercase_module in cache

    def test_keyed_by_module_path(self, uppercase_module, identity_module):
        cache = TransformCache()
        assert cache.get(uppercase_module)('ab') == 'AB'
        assert cache.get(identity_module)('ab') == 'ab'
        assert cache.load_count == 2


class TestTransformChunk:
    """Run transform_chunk in the test process."""

    @pytest.fixture(autouse=True)
    def fresh_cache(self, monkeypatch):
        monkeypatch.setattr(worker_pool, '_worker_cache', None)

    def test_transforms_paraphrase_only(self, uppercase_module):
        records = [html_record('ab', rowid=4), html_record('cd', rowid=9)]
        transformed = transform_chunk(records, uppercase_module)

        assert [r.paraphrase for r in transformed] == ['AB', 'CD']
        assert [r.entry for r in transformed] == ['ab', 'cd']
        assert [r.rowid for r in transformed] == [4, 9]
        assert all(r.content_type is ContentType.HTML for r in transformed)

    def test_does_not_mutate_input(self, uppercase_module):
        records = [html_record('ab')]
        transform_chunk(records, uppercase_module)
        assert records[0].paraphrase == 'ab'

    def test_non_string_result(self, write_module):
        path = write_module("def transform_html(html):\n    return len(html)\n")
        with pytest.raises(TypeError, match='must return str'):
            transform_chunk([html_record('ab')], path)

    def test_empty_chunk(self, uppercase_module):
        assert transform_chunk([], uppercase_module) == []


class TestTransformWorkerPool:

    def test_default_worker_count(self):
        assert default_worker_count() >= 1

    @pytest.mark.parametrize('max_workers', [0, -2])
    def test_invalid_worker_count(self, max_workers):
        with pytest.raises(ValueError, match='max_workers'):
            TransformWorkerPool(max_workers=max_workers)

    def test_dispatch(self, uppercase_module):
        with TransformWorkerPool(max_workers=2) as pool:
            result = pool.dispatch([html_record('ab'), html_record('cd')], uppercase_module)

        assert [r.paraphrase for r in result] == ['AB', 'CD']
        assert pool.dispatch_count == 1
        assert pool.terminated

    def test_module_loaded_once_per_worker(self, write_module, tmp_path):
        """Test that a single worker imports the module once for many chunks."""
        log_path = tmp_path / 'loads.log'
        module_path = write_module(f"""
import os

with open({str(log_path)!r}, 'a') as f:
    f.write(f"{{os.getpid()}}\\n")

def transform_html(html):
    return html
""")

        with TransformWorkerPool(max_workers=1) as pool:
            for entry in ('a', 'b', 'c'):
                pool.dispatch([html_record(entry)], module_path)

        lines = log_path.read_text().splitlines()
        assert len(lines) == 1
        assert lines[0] != str(os.getpid())

    def test_terminate_is_idempotent(self):
        pool = TransformWorkerPool(max_workers=1)
        pool.terminate()
        pool.terminate()
        assert pool.terminated

    def test_submit_after_terminate(self, uppercase_module):
        pool = TransformWorkerPool(max_workers=1)
        pool.terminate()
        with pytest.raises(RuntimeError, match='terminated'):
            pool.submit([html_record('a')], uppercase_module)

    def test_worker_error_propagates(self, write_module):
        path = write_module("def transform_html(html):\n    raise ValueError('bad html: ' + html)\n")
        with TransformWorkerPool(max_workers=1) as pool:
            with pytest.raises(ValueError, match='bad html: ab'):
                pool.dispatch([html_record('ab')], path)
