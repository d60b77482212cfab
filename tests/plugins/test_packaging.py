"""
Tests for the project packaging metadata.
"""

import os

import pytest

tomllib = pytest.importorskip("tomllib")

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))


@pytest.fixture(scope="module")
def pyproject():
    with open(os.path.join(PROJECT_ROOT, 'pyproject.toml'), 'rb') as f:
        return tomllib.load(f)


class TestPyproject:

    def test_readme_is_not_the_design_notes(self, pyproject):
        """Test that the long description, if any, points at an existing README."""
        readme = pyproject['project'].get('readme')
        if readme is not None:
            assert readme != 'DESIGN.md'
            assert os.path.isfile(os.path.join(PROJECT_ROOT, readme))

    def test_installs_package_from_plugins(self, pyproject):
        setuptools_config = pyproject['tool']['setuptools']
        assert setuptools_config['package-dir'] == {'': 'plugins'}
        assert setuptools_config['packages'] == ['mdx_transform']
        assert os.path.isfile(os.path.join(PROJECT_ROOT, 'plugins', 'mdx_transform', '__init__.py'))
