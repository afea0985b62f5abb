"""
Checks that every .pyi stub declares the public names of its module.

Run with: python -m pytest cleanup_pipeline/test_stubs.py -v
"""

import ast
from pathlib import Path

import pytest

PACKAGE_ROOT = Path(__file__).parent
STUBS = sorted(PACKAGE_ROOT.rglob('*.pyi'))


def _public_names(path):
    tree = ast.parse(path.read_text(encoding='utf-8'))
    names = set()
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.add(node.name)
    return {name for name in names if not name.startswith('_')}


def test_stubs_are_shipped():
    assert {p.relative_to(PACKAGE_ROOT).as_posix() for p in STUBS} >= {
        'models/duplicate_group.pyi',
        'similarity/grouping.pyi',
        'similarity/structural.pyi',
        'utils/timing.pyi',
    }


@pytest.mark.parametrize('stub', STUBS, ids=lambda p: p.relative_to(PACKAGE_ROOT).as_posix())
def test_stub_matches_module(stub):
    module = stub.with_suffix('.py')
    assert module.exists()
    assert _public_names(stub) == _public_names(module)
