"""
Code Block Extraction

Walks a project tree, parses every source file into a syntax tree and
extracts one CodeBlock per module-level function, lambda binding and
class. Each block carries its verbatim span, a normalized content hash
and a cyclomatic complexity score.

A file that cannot be read or parsed is reported on stderr, counted and
skipped; it never aborts the scan.
"""

from __future__ import annotations

import ast
import fnmatch
import hashlib
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from ..config import config
from ..constants import ExtractionDefaults
from ..models.code_block import BlockKind, CodeBlock
from ..models.metrics import CodeMetrics


_WHITESPACE_RE = re.compile(r'\s+')
_QUOTES_RE = re.compile(r"['\"`]")

_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)


class SyntaxTreeProvider(Protocol):
    """Parser collaborator: turns file text into a syntax tree."""

    def parse(self, source: str, filename: str) -> ast.Module:
        ...


class PythonAstProvider:
    """Default provider backed by the standard-library ast module."""

    def parse(self, source: str, filename: str) -> ast.Module:
        return ast.parse(source, filename=filename)


def normalize_content(text: str) -> str:
    """
    Normalize source text for exact-duplicate comparison.

    Collapses whitespace runs to a single space, maps every quote
    character to a double quote and trims the ends, so formatting noise
    and quote style do not affect the hash.
    """
    text = _WHITESPACE_RE.sub(' ', text)
    text = _QUOTES_RE.sub('"', text)
    return text.strip()


def hash_content(text: str) -> str:
    """SHA-256 of the normalized text, truncated to HASH_LENGTH hex chars."""
    digest = hashlib.sha256(normalize_content(text).encode('utf-8')).hexdigest()
    return digest[:ExtractionDefaults.HASH_LENGTH]


def calculate_complexity(node: ast.AST) -> int:
    """
    Cyclomatic complexity of a subtree.

    Starts at 1 and adds one for every if/elif, conditional expression,
    for/async for, while and match case, plus one for every and/or
    operator in a boolean expression.
    """
    complexity = 1
    for child in ast.walk(node):
        if isinstance(child, (ast.If, ast.IfExp, ast.For, ast.AsyncFor, ast.While, ast.match_case)):
            complexity += 1
        elif isinstance(child, ast.BoolOp):
            complexity += len(child.values) - 1
    return complexity


def _arguments_signature(args: ast.arguments, is_async: bool = False) -> str:
    positional = len(args.posonlyargs) + len(args.args)
    parts = [f"pos={positional}", f"kw={len(args.kwonlyargs)}"]
    if args.vararg is not None:
        parts.append('varargs')
    if args.kwarg is not None:
        parts.append('varkw')
    if is_async:
        parts.append('async')
    return ','.join(parts)


def block_signature(node: ast.AST) -> str:
    """Coarse parameter-shape key used to partition near-duplicate comparison."""
    if isinstance(node, _FUNCTION_NODES):
        return _arguments_signature(node.args, isinstance(node, ast.AsyncFunctionDef))
    if isinstance(node, ast.Lambda):
        return _arguments_signature(node.args)
    if isinstance(node, ast.ClassDef):
        return f"class,bases={len(node.bases)}"
    return ''


def _lambda_binding(node: ast.stmt) -> Optional[tuple]:
    """(name, lambda) for `name = lambda ...` and `name: T = lambda ...` statements."""
    if isinstance(node, ast.Assign) and len(node.targets) == 1:
        target, value = node.targets[0], node.value
    elif isinstance(node, ast.AnnAssign) and node.value is not None:
        target, value = node.target, node.value
    else:
        return None
    if isinstance(target, ast.Name) and isinstance(value, ast.Lambda):
        return target.id, value
    return None


def _span(node: ast.stmt) -> tuple:
    start = node.lineno
    for decorator in getattr(node, 'decorator_list', []):
        start = min(start, decorator.lineno)
    return start, node.end_lineno or node.lineno


def extract_blocks(source: str, tree: ast.Module, file: str) -> List[CodeBlock]:
    """
    Extract CodeBlocks from one parsed file.

    Only module-level units are extracted; nested functions and methods
    are part of their enclosing block's span.

    Args:
        source: File text the tree was parsed from
        tree: Parsed module
        file: Project-relative POSIX path recorded on each block

    Returns:
        Blocks in source order
    """
    lines = source.splitlines()
    blocks = []

    for node in tree.body:
        if isinstance(node, _FUNCTION_NODES):
            name, kind, measured = node.name, BlockKind.FUNCTION, node
        elif isinstance(node, ast.ClassDef):
            name, kind, measured = node.name, BlockKind.CLASS, node
        else:
            binding = _lambda_binding(node)
            if binding is None:
                continue
            name, measured = binding
            kind = BlockKind.FUNCTION

        start, end = _span(node)
        raw_content = '\n'.join(lines[start - 1:end])

        blocks.append(CodeBlock(
            file=file,
            start_line=start,
            end_line=end,
            raw_content=raw_content,
            normalized_hash=hash_content(raw_content),
            complexity_score=calculate_complexity(measured),
            kind=kind,
            name=name,
            signature=block_signature(measured),
        ))

    return blocks


def iter_source_files(
    root: Path,
    extensions: Sequence[str] = ExtractionDefaults.SOURCE_EXTENSIONS,
    exclude: Sequence[str] = (),
    skip_dirs: Iterable[str] = (),
) -> List[Path]:
    """
    Collect source files under root in sorted order.

    Hidden directories, virtualenvs, node_modules, caches and the
    pipeline's own working directories are never entered.
    """
    root = Path(root)
    skipped = set(ExtractionDefaults.SKIPPED_DIRS) | set(skip_dirs)
    results = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        kept = []
        for d in dirnames:
            rel = d if rel_dir == '.' else f"{rel_dir}/{d}"
            if d.startswith('.') or d in skipped or rel in skipped:
                continue
            kept.append(d)
        dirnames[:] = kept
        for name in filenames:
            full_path = Path(dirpath) / name
            if full_path.suffix not in extensions:
                continue
            rel_path = full_path.relative_to(root).as_posix()
            if any(fnmatch.fnmatch(rel_path, pattern) for pattern in exclude):
                continue
            results.append(full_path)

    results.sort(key=lambda p: p.as_posix())
    return results


@dataclass
class ExtractionResult:
    """Blocks and per-file context produced by one scan."""

    blocks: List[CodeBlock] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    sources: Dict[str, str] = field(default_factory=dict)
    trees: Dict[str, ast.Module] = field(default_factory=dict)
    total_lines: int = 0
    parse_failures: int = 0


class BlockExtractor:
    """Scans a project and extracts CodeBlocks from every parsable file."""

    def __init__(
        self,
        project_root: Path,
        provider: Optional[SyntaxTreeProvider] = None,
        extensions: Sequence[str] = None,
        exclude: Sequence[str] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.provider = provider or PythonAstProvider()
        self.extensions = tuple(extensions or config.SOURCE_EXTENSIONS)
        self.exclude = tuple(exclude if exclude is not None else config.EXCLUDE_GLOBS)
        self.skip_dirs = (config.BACKUP_DIR, config.REPORTS_DIR, config.COVERAGE_DIR)

    def source_files(self) -> List[Path]:
        return iter_source_files(self.project_root, self.extensions, self.exclude, self.skip_dirs)

    def extract_file(self, path: Path, result: ExtractionResult) -> None:
        rel_path = path.relative_to(self.project_root).as_posix()
        try:
            source = path.read_text(encoding='utf-8')
            tree = self.provider.parse(source, rel_path)
        except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
            print(f"Warning: Skipping {rel_path}: {e}", file=sys.stderr)
            result.parse_failures += 1
            return

        blocks = extract_blocks(source, tree, rel_path)
        result.files.append(rel_path)
        result.sources[rel_path] = source
        result.trees[rel_path] = tree
        result.total_lines += len(source.splitlines())
        result.blocks.extend(blocks)

        if config.DEBUG:
            print(f"DEBUG: {rel_path}: {len(blocks)} blocks", file=sys.stderr)

    def scan(self) -> ExtractionResult:
        """Extract blocks from every source file under the project root."""
        result = ExtractionResult()
        for path in self.source_files():
            self.extract_file(path, result)

        print(
            f"Extracted {len(result.blocks)} blocks from {len(result.files)} files"
            f" ({result.parse_failures} skipped)",
            file=sys.stderr,
        )
        return result

    def code_metrics(self) -> CodeMetrics:
        """Size of the source tree as currently on disk."""
        files = lines = size = 0
        for path in self.source_files():
            try:
                data = path.read_bytes()
            except OSError:
                continue
            files += 1
            size += len(data)
            lines += len(data.decode('utf-8', errors='replace').splitlines())
        return CodeMetrics(files=files, lines=lines, bytes=size)
