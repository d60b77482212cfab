"""
Shared fixtures for the MDX transform tests.

Stores are real SQLite files under tmp_path and transform modules are real
Python files, so the worker processes load them exactly as in production.
"""

import os
import sys
import textwrap

import pytest

plugins_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'plugins'))
if plugins_dir not in sys.path:
    sys.path.insert(0, plugins_dir)

from mdx_transform.record_store import MdxStore
from mdx_transform.records import ContentType, MdxRecord

UPPERCASE_TRANSFORM = """
def transform_html(html):
    return html.upper()
"""

IDENTITY_TRANSFORM = """
def transform_html(html):
    return html
"""


def make_records(rows):
    """Build records from (entry, paraphrase, content_type) tuples."""
    return [
        MdxRecord(entry=entry, paraphrase=paraphrase, content_type=content_type)
        for entry, paraphrase, content_type in rows
    ]


@pytest.fixture
def write_module(tmp_path):
    """Write a transform module file and return its path."""
    counter = {'n': 0}

    def _write(source: str, name: str = None) -> str:
        counter['n'] += 1
        path = tmp_path / (name or f"transform_{counter['n']}.py")
        path.write_text(textwrap.dedent(source), encoding='utf-8')
        return str(path)

    return _write


@pytest.fixture
def uppercase_module(write_module):
    return write_module(UPPERCASE_TRANSFORM, 'uppercase.py')


@pytest.fixture
def identity_module(write_module):
    return write_module(IDENTITY_TRANSFORM, 'identity.py')


@pytest.fixture
def make_store(tmp_path):
    """Create an initialized store, optionally pre-filled with records."""
    counter = {'n': 0}

    def _make(records=None, name: str = None) -> MdxStore:
        counter['n'] += 1
        store = MdxStore(str(tmp_path / (name or f"store_{counter['n']}.db")), initialize=True)
        if records:
            store.insert_records(records)
        return store

    return _make


@pytest.fixture
def scenario_records():
    """a, x, b, y, c with a/b/c HTML and x/y LINK."""
    return make_records([
        ('a', 'a', ContentType.HTML),
        ('x', '@@@LINK=a', ContentType.LINK),
        ('b', 'b', ContentType.HTML),
        ('y', '@@@LINK=b', ContentType.LINK),
        ('c', 'c', ContentType.HTML),
    ])


@pytest.fixture(autouse=True)
def close_stores():
    yield
    MdxStore.close_all()


@pytest.fixture
def build_records():
    return make_records
