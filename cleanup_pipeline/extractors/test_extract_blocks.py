"""
Tests for extract_blocks module.

Run with: python -m pytest cleanup_pipeline/extractors/test_extract_blocks.py -v
"""

import ast
from pathlib import Path

from cleanup_pipeline.extractors.extract_blocks import (
    BlockExtractor,
    PythonAstProvider,
    block_signature,
    calculate_complexity,
    extract_blocks,
    hash_content,
    iter_source_files,
    normalize_content,
)
from cleanup_pipeline.models.code_block import BlockKind


SAMPLE = '''\
import os


def greet(name):
    if not name:
        return "nobody"
    return f"hi {name}"


@staticmethod
def decorated(a, b=1, *rest):
    return a


shout = lambda text: text.upper()


class Greeter:
    def hello(self):
        for _ in range(2):
            print("hi")
'''


def _blocks(source=SAMPLE, file='pkg/sample.py'):
    return extract_blocks(source, ast.parse(source), file)


# ---------------------------------------------------------------------------
# Normalization and hashing
# ---------------------------------------------------------------------------

def test_normalize_collapses_whitespace_and_quotes():
    """Whitespace runs collapse and quote styles unify."""
    assert normalize_content("  x = 'a'\n\t\ty = `b`  ") == 'x = "a" y = "b"'


def test_hash_ignores_formatting_noise():
    """Blocks differing only in whitespace or quote style hash the same."""
    a = "def f():\n    return 'x'\n"
    b = 'def f():\n        return "x"'
    assert hash_content(a) == hash_content(b)


def test_hash_differs_for_different_code():
    assert hash_content('def f(): return 1') != hash_content('def f(): return 2')


def test_hash_length():
    assert len(hash_content('anything')) == 16


# ---------------------------------------------------------------------------
# Complexity
# ---------------------------------------------------------------------------

def _complexity(source):
    return calculate_complexity(ast.parse(source).body[0])


def test_complexity_of_straight_line_function_is_one():
    assert _complexity('def f(x):\n    return x + 1\n') == 1


def test_complexity_counts_if_elif_and_ternary():
    source = (
        'def f(x):\n'
        '    if x > 1:\n'
        '        return 1\n'
        '    elif x < 0:\n'
        '        return 2\n'
        '    return 3 if x else 4\n'
    )
    assert _complexity(source) == 4


def test_complexity_counts_each_boolean_operator():
    assert _complexity('def f(a, b, c):\n    return a and b or c\n') == 3
    assert _complexity('def f(a, b, c):\n    return a and b and c\n') == 3


def test_complexity_counts_loops():
    source = (
        'def f(xs):\n'
        '    for x in xs:\n'
        '        while x:\n'
        '            x -= 1\n'
    )
    assert _complexity(source) == 3


def test_complexity_counts_match_cases():
    source = (
        'def f(x):\n'
        '    match x:\n'
        '        case 1:\n'
        '            return "a"\n'
        '        case _:\n'
        '            return "b"\n'
    )
    assert _complexity(source) == 3


# ---------------------------------------------------------------------------
# Block extraction
# ---------------------------------------------------------------------------

class TestExtractBlocks:
    """Tests for extract_blocks()."""

    def test_extracts_functions_lambdas_and_classes(self):
        names = [(b.name, b.kind) for b in _blocks()]
        assert names == [
            ('greet', BlockKind.FUNCTION),
            ('decorated', BlockKind.FUNCTION),
            ('shout', BlockKind.FUNCTION),
            ('Greeter', BlockKind.CLASS),
        ]

    def test_methods_are_not_separate_blocks(self):
        assert 'hello' not in [b.name for b in _blocks()]

    def test_spans_are_verbatim_and_one_indexed(self):
        greet = _blocks()[0]
        assert greet.start_line == 4
        assert greet.end_line == 7
        assert greet.raw_content.splitlines()[0] == 'def greet(name):'
        assert greet.line_count == 4

    def test_decorators_belong_to_the_span(self):
        decorated = _blocks()[1]
        assert decorated.raw_content.startswith('@staticmethod')
        assert decorated.start_line == 10

    def test_complexity_recorded_per_block(self):
        blocks = {b.name: b for b in _blocks()}
        assert blocks['greet'].complexity_score == 2
        assert blocks['shout'].complexity_score == 1
        assert blocks['Greeter'].complexity_score == 2

    def test_file_is_recorded(self):
        assert all(b.file == 'pkg/sample.py' for b in _blocks())

    def test_extraction_is_idempotent(self):
        assert _blocks() == _blocks()

    def test_signature_reflects_parameter_shape(self):
        blocks = {b.name: b for b in _blocks()}
        assert blocks['greet'].signature == 'pos=1,kw=0'
        assert blocks['decorated'].signature == 'pos=2,kw=0,varargs'
        assert blocks['shout'].signature == 'pos=1,kw=0'

    def test_async_signature(self):
        tree = ast.parse('async def f(a):\n    return a\n')
        assert block_signature(tree.body[0]) == 'pos=1,kw=0,async'


# ---------------------------------------------------------------------------
# Project scanning
# ---------------------------------------------------------------------------

def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path


def test_iter_source_files_skips_hidden_and_vendor_dirs(tmp_path):
    _write(tmp_path, 'app/main.py', 'x = 1\n')
    _write(tmp_path, '.venv/lib/mod.py', 'x = 1\n')
    _write(tmp_path, 'node_modules/pkg/mod.py', 'x = 1\n')
    _write(tmp_path, '.cleanup-backups/b/app/main.py', 'x = 1\n')
    _write(tmp_path, 'README.md', '# hi\n')

    files = iter_source_files(tmp_path, skip_dirs=('.cleanup-backups',))
    assert [f.relative_to(tmp_path).as_posix() for f in files] == ['app/main.py']


def test_iter_source_files_applies_exclude_globs(tmp_path):
    _write(tmp_path, 'app/main.py', 'x = 1\n')
    _write(tmp_path, 'app/generated/schema.py', 'x = 1\n')

    files = iter_source_files(tmp_path, exclude=('app/generated/*',))
    assert [f.name for f in files] == ['main.py']


class TestBlockExtractor:
    """Tests for BlockExtractor.scan()."""

    def test_scan_collects_blocks_from_every_file(self, tmp_path):
        _write(tmp_path, 'a.py', 'def foo():\n    return 1\n')
        _write(tmp_path, 'b.py', 'def foo():\n    return 1\n')

        result = BlockExtractor(tmp_path, exclude=()).scan()

        assert result.files == ['a.py', 'b.py']
        assert len(result.blocks) == 2
        assert result.blocks[0].normalized_hash == result.blocks[1].normalized_hash
        assert result.total_lines == 4

    def test_unparsable_file_is_skipped_not_fatal(self, tmp_path, capsys):
        _write(tmp_path, 'good.py', 'def ok():\n    return 1\n')
        _write(tmp_path, 'bad.py', 'def broken(:\n')

        result = BlockExtractor(tmp_path, exclude=()).scan()

        assert result.parse_failures == 1
        assert result.files == ['good.py']
        assert 'Warning: Skipping bad.py' in capsys.readouterr().err

    def test_custom_provider_is_used(self, tmp_path):
        calls = []

        class RecordingProvider(PythonAstProvider):
            def parse(self, source, filename):
                calls.append(filename)
                return super().parse(source, filename)

        _write(tmp_path, 'pkg/mod.py', 'def f():\n    pass\n')
        BlockExtractor(tmp_path, provider=RecordingProvider(), exclude=()).scan()
        assert calls == ['pkg/mod.py']

    def test_code_metrics(self, tmp_path):
        _write(tmp_path, 'a.py', 'x = 1\ny = 2\n')
        metrics = BlockExtractor(tmp_path, exclude=()).code_metrics()
        assert metrics.files == 1
        assert metrics.lines == 2
        assert metrics.bytes == len('x = 1\ny = 2\n')
