"""
Tests for the reference scanner.

Run with: python -m pytest cleanup_pipeline/scanners/test_dead_code.py -v
"""

import ast

from cleanup_pipeline.extractors.extract_blocks import extract_blocks
from cleanup_pipeline.scanners.dead_code import (
    build_index,
    find_companion_files,
    find_dead_code,
    find_redundant_imports,
    find_unused_components,
    module_name,
    scan_references,
)


def _project(files):
    trees = {path: ast.parse(source) for path, source in files.items()}
    blocks = []
    for path, source in files.items():
        blocks.extend(extract_blocks(source, trees[path], path))
    return blocks, trees


def test_module_name():
    assert module_name('pkg/sub/mod.py') == 'pkg.sub.mod'
    assert module_name('pkg/__init__.py') == 'pkg'


class TestRedundantImports:
    """Tests for find_redundant_imports()."""

    def test_unused_names_reported_per_file(self):
        _, trees = _project({
            'app/views.py': 'import os\nimport sys\nfrom json import dumps, loads\n\nprint(sys.argv, dumps)\n',
        })
        assert find_redundant_imports(build_index(trees)) == {'app/views.py': ['loads', 'os']}

    def test_aliases_and_dotted_imports(self):
        _, trees = _project({
            'a.py': 'import os.path\nimport numpy as np\n\nos.path.join("x")\n',
        })
        assert find_redundant_imports(build_index(trees)) == {'a.py': ['np']}

    def test_all_and_future_and_init_are_exempt(self):
        _, trees = _project({
            'pkg/__init__.py': 'from .core import run\n',
            'pkg/api.py': 'from __future__ import annotations\nfrom .core import run\n\n__all__ = ["run"]\n',
        })
        assert find_redundant_imports(build_index(trees)) == {}

    def test_noqa_imports_are_not_reported(self):
        sources = {
            'pkg/util.py': (
                'import readline  # noqa: F401\n'
                'import os  # noqa\n'
                'import sys  # noqa: E501\n'
                'from json import (\n'
                '    dumps,  # noqa: F401, E501\n'
                '    loads,\n'
                ')\n'
            ),
        }
        _, trees = _project(sources)

        assert find_redundant_imports(build_index(trees, sources)) == {'pkg/util.py': ['loads', 'sys']}
        # Without the source text, comments are invisible
        assert len(find_redundant_imports(build_index(trees))['pkg/util.py']) == 5


class TestUnusedComponents:
    """Tests for find_unused_components()."""

    def test_module_imported_nowhere(self):
        _, trees = _project({
            'app/main.py': 'from app import helpers\n',
            'app/helpers.py': 'x = 1\n',
            'app/legacy.py': 'y = 2\n',
            'app/__init__.py': '',
        })
        assert find_unused_components(build_index(trees)) == ['app/legacy.py', 'app/main.py']

    def test_relative_imports_count(self):
        _, trees = _project({
            'pkg/__init__.py': 'from . import a\n',
            'pkg/a.py': 'from .b import thing\n',
            'pkg/b.py': 'thing = 1\n',
        })
        assert find_unused_components(build_index(trees)) == []

    def test_scripts_and_tests_are_never_unused(self):
        _, trees = _project({
            'tool.py': 'if __name__ == "__main__":\n    print(1)\n',
            'tests/test_tool.py': 'import tool\n',
        })
        assert find_unused_components(build_index(trees)) == []

    def test_imports_from_tests_do_not_count(self):
        _, trees = _project({
            'lib/orphan.py': 'def f():\n    return 1\n',
            'lib/test_orphan.py': 'from lib.orphan import f\n',
        })
        assert find_unused_components(build_index(trees)) == ['lib/orphan.py']


class TestDeadCode:
    """Tests for find_dead_code()."""

    def test_unreferenced_function_is_dead(self):
        blocks, trees = _project({
            'app/util.py': 'def used():\n    return 1\n\n\ndef unused():\n    return 2\n',
            'app/main.py': 'from app.util import used\n\nused()\n',
        })
        dead = find_dead_code(blocks, build_index(trees))
        assert [b.name for b in dead] == ['unused']

    def test_attribute_access_counts_as_reference(self):
        blocks, trees = _project({
            'app/util.py': 'def helper():\n    return 1\n',
            'app/main.py': 'from app import util\n\nutil.helper()\n',
        })
        assert find_dead_code(blocks, build_index(trees)) == []

    def test_exempt_definitions(self):
        blocks, trees = _project({
            'app/cli.py': (
                'import functools\n\n\n'
                'def main():\n    return 0\n\n\n'
                '@functools.lru_cache\ndef registered():\n    return 1\n\n\n'
                'def __getattr__(name):\n    return name\n'
            ),
        })
        assert find_dead_code(blocks, build_index(trees)) == []

    def test_excluded_files_are_skipped(self):
        blocks, trees = _project({'old.py': 'def gone():\n    return 1\n'})
        assert find_dead_code(blocks, build_index(trees), excluded_files=['old.py']) == []


def test_find_companion_files(tmp_path):
    (tmp_path / 'ui').mkdir()
    for name in ('card.py', 'test_card.py', 'card.stories.py', 'cardigan.py'):
        (tmp_path / 'ui' / name).write_text('')
    assert find_companion_files(tmp_path, 'ui/card.py') == ['ui/test_card.py', 'ui/card.stories.py']


def test_scan_references_skips_dead_code_in_unused_modules():
    blocks, trees = _project({
        'app/__init__.py': '',
        'app/main.py': 'if __name__ == "__main__":\n    pass\n',
        'app/orphan.py': 'def lonely():\n    return 1\n',
    })
    report = scan_references(blocks, trees)
    assert report.unused_components == ['app/orphan.py']
    assert report.dead_code == []
