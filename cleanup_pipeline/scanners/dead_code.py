"""
Reference Scanner - Dead code, redundant imports and unused components

Builds a per-module index of what each parsed file imports, binds and
loads, then answers three questions over the whole project:
- which imported names are never used in their own file
- which module-level definitions are never referenced anywhere
- which modules are never imported by any other module
"""

from __future__ import annotations

import ast
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from ..annotators.risk_classifier import is_test_file
from ..config import config
from ..models.code_block import BlockKind, CodeBlock

# Modules that are entry points by convention and never "unused"
ENTRY_POINT_STEMS = ('__init__', '__main__', 'conftest', 'setup', 'manage', 'wsgi', 'asgi')

# Bare `# noqa`, or `# noqa: ...` naming F401, keeps the lint autofix off an import
NOQA_PATTERN = re.compile(r"#\s*noqa(?::\s*(?P<codes>[A-Z]+[0-9]+(?:[\s,]+[A-Z]+[0-9]+)*))?", re.IGNORECASE)


def module_name(rel_path: str) -> str:
    """Dotted module name for a project-relative .py path."""
    parts = list(Path(rel_path).with_suffix('').parts)
    if parts and parts[-1] == '__init__':
        parts = parts[:-1]
    return '.'.join(parts)


def _string_list(node: ast.AST) -> Set[str]:
    if isinstance(node, (ast.List, ast.Tuple)):
        return {
            elt.value for elt in node.elts
            if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
        }
    return set()


@dataclass
class ModuleInfo:
    """What one module imports, binds and references."""

    file: str
    module: str
    imports: Set[str] = field(default_factory=set)
    bound_imports: Dict[str, int] = field(default_factory=dict)
    imported_names: Set[str] = field(default_factory=set)
    loaded: Set[str] = field(default_factory=set)
    attributes: Set[str] = field(default_factory=set)
    exports: Set[str] = field(default_factory=set)
    suppressed_lines: Set[int] = field(default_factory=set)
    is_script: bool = False

    @property
    def is_package_init(self) -> bool:
        return Path(self.file).name == '__init__.py'

    @property
    def references(self) -> Set[str]:
        return self.loaded | self.attributes | self.imported_names | self.exports


class _ModuleCollector(ast.NodeVisitor):
    def __init__(self, info: ModuleInfo) -> None:
        self.info = info

    def _add_import(self, dotted: str) -> None:
        parts = dotted.split('.')
        for i in range(1, len(parts) + 1):
            self.info.imports.add('.'.join(parts[:i]))

    def visit_Import(self, node: ast.Import) -> None:  # noqa: N802
        for alias in node.names:
            self._add_import(alias.name)
            bound = alias.asname or alias.name.split('.')[0]
            self.info.bound_imports.setdefault(bound, alias.lineno)
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:  # noqa: N802
        module = node.module or ''
        if node.level:
            module = self._resolve_relative(module, node.level)
        if module:
            self._add_import(module)
        for alias in node.names:
            if alias.name == '*':
                continue
            self.info.imported_names.add(alias.name)
            self._add_import(f"{module}.{alias.name}" if module else alias.name)
            if node.module != '__future__':
                self.info.bound_imports.setdefault(alias.asname or alias.name, alias.lineno)
        self.generic_visit(node)

    def visit_If(self, node: ast.If) -> None:  # noqa: N802
        test = node.test
        if (
            isinstance(test, ast.Compare)
            and isinstance(test.left, ast.Name)
            and test.left.id == '__name__'
            and any(isinstance(c, ast.Constant) and c.value == '__main__' for c in test.comparators)
        ):
            self.info.is_script = True
        self.generic_visit(node)

    def visit_Assign(self, node: ast.Assign) -> None:  # noqa: N802
        for target in node.targets:
            if isinstance(target, ast.Name) and target.id == '__all__':
                self.info.exports.update(_string_list(node.value))
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:  # noqa: N802
        if isinstance(node.ctx, ast.Load):
            self.info.loaded.add(node.id)
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:  # noqa: N802
        self.info.attributes.add(node.attr)
        self.generic_visit(node)

    def _resolve_relative(self, module: str, level: int) -> str:
        parts = module_name(self.info.file).split('.')
        if not self.info.is_package_init:
            parts = parts[:-1]
        if level > 1:
            parts = parts[:-(level - 1)] if level - 1 <= len(parts) else []
        suffix = module.split('.') if module else []
        return '.'.join(parts + suffix)


def noqa_lines(source: str) -> Set[int]:
    """1-based lines whose noqa comment exempts an unused import."""
    lines = set()
    for number, line in enumerate(source.splitlines(), start=1):
        match = NOQA_PATTERN.search(line)
        if not match:
            continue
        codes = match.group('codes')
        if codes is None or 'F401' in re.split(r'[\s,]+', codes.upper()):
            lines.add(number)
    return lines


def collect_module_info(file: str, tree: ast.Module, source: Optional[str] = None) -> ModuleInfo:
    info = ModuleInfo(file=file, module=module_name(file))
    if source is not None:
        info.suppressed_lines = noqa_lines(source)
    _ModuleCollector(info).visit(tree)
    return info


def build_index(
    trees: Mapping[str, ast.Module],
    sources: Optional[Mapping[str, str]] = None,
) -> Dict[str, ModuleInfo]:
    """ModuleInfo for every parsed file, keyed by project-relative path."""
    sources = sources or {}
    return {
        file: collect_module_info(file, tree, sources.get(file))
        for file, tree in sorted(trees.items())
    }


def find_redundant_imports(index: Mapping[str, ModuleInfo]) -> Dict[str, List[str]]:
    """
    Imported names never used in their own file.

    Package __init__ files re-export by importing and are exempt; names
    listed in __all__ count as used, and imports on a `# noqa` line are
    left alone since the lint autofix will not touch them either.
    """
    redundant = {}
    for file, info in index.items():
        if info.is_package_init:
            continue
        unused = sorted(
            name for name, line in info.bound_imports.items()
            if name not in info.loaded
            and name not in info.exports
            and line not in info.suppressed_lines
        )
        if unused:
            redundant[file] = unused
    return redundant


def _is_imported(module: str, file: str, importers: Mapping[str, Set[str]]) -> bool:
    """True if another file imports the module by its full name or any dotted suffix of it."""
    parts = module.split('.')
    for i in range(len(parts)):
        if importers.get('.'.join(parts[i:]), set()) - {file}:
            return True
    return False


def find_unused_components(index: Mapping[str, ModuleInfo]) -> List[str]:
    """
    Modules that no other non-test module imports.

    Entry-point modules, scripts, package __init__ files and tests are
    never reported.
    """
    importers: Dict[str, Set[str]] = {}
    for file, info in index.items():
        if is_test_file(file):
            continue
        for imported in info.imports:
            importers.setdefault(imported, set()).add(file)

    unused = []
    for file, info in index.items():
        if is_test_file(file) or info.is_script or Path(file).stem in ENTRY_POINT_STEMS:
            continue
        if not _is_imported(info.module, file, importers):
            unused.append(file)
    return unused


def find_dead_code(
    blocks: Sequence[CodeBlock],
    index: Mapping[str, ModuleInfo],
    excluded_files: Iterable[str] = (),
) -> List[CodeBlock]:
    """
    Module-level definitions whose name is referenced nowhere in the project.

    References are loaded names, attribute names, from-import names and
    __all__ entries from every scanned file, tests included. Dunder names,
    `main`, decorated definitions (registered by their decorator), test
    files and scripts are never reported.
    """
    referenced: Set[str] = set()
    for info in index.values():
        referenced |= info.references

    excluded = set(excluded_files)
    dead = []
    for block in blocks:
        if block.kind not in (BlockKind.FUNCTION, BlockKind.CLASS) or not block.name:
            continue
        info = index.get(block.file)
        if block.file in excluded or info is None or info.is_script or is_test_file(block.file):
            continue
        name = block.name
        if name == 'main' or (name.startswith('__') and name.endswith('__')):
            continue
        if block.raw_content.lstrip().startswith('@'):
            continue
        if name not in referenced:
            dead.append(block)
    return dead


def find_companion_files(project_root: Path, file: str) -> List[str]:
    """
    Existing test and story files that belong to a module by naming convention.

    Returns project-relative POSIX paths, excluding the module itself.
    """
    root = Path(project_root)
    path = Path(file)
    stem = path.stem
    parent = root / path.parent
    candidates = [
        parent / f"test_{stem}.py",
        parent / f"{stem}_test.py",
        parent / 'tests' / f"test_{stem}.py",
    ]
    candidates.extend(sorted(parent.glob(f"{stem}.test.*")))
    candidates.extend(sorted(parent.glob(f"{stem}.spec.*")))
    candidates.extend(sorted(parent.glob(f"{stem}.stories.*")))

    companions = []
    for candidate in candidates:
        if candidate.is_file():
            rel = candidate.relative_to(root).as_posix()
            if rel != file and rel not in companions:
                companions.append(rel)
    return companions


@dataclass
class ReferenceReport:
    """Findings of one reference scan."""

    redundant_imports: Dict[str, List[str]] = field(default_factory=dict)
    unused_components: List[str] = field(default_factory=list)
    dead_code: List[CodeBlock] = field(default_factory=list)


def scan_references(
    blocks: Sequence[CodeBlock],
    trees: Mapping[str, ast.Module],
    sources: Optional[Mapping[str, str]] = None,
) -> ReferenceReport:
    """Run all three reference analyses over one extraction result."""
    index = build_index(trees, sources)
    unused_components = find_unused_components(index)
    report = ReferenceReport(
        redundant_imports=find_redundant_imports(index),
        unused_components=unused_components,
        dead_code=find_dead_code(blocks, index, excluded_files=unused_components),
    )

    print(
        f"References: {len(report.dead_code)} dead definitions, "
        f"{sum(len(v) for v in report.redundant_imports.values())} redundant imports, "
        f"{len(report.unused_components)} unused modules",
        file=sys.stderr,
    )
    if config.DEBUG:
        for file in report.unused_components:
            print(f"DEBUG: unused module {file}", file=sys.stderr)
    return report
