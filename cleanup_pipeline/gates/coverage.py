"""
Coverage summary reader.

Understands two tool-produced JSON shapes:
- Istanbul coverage-summary.json: {"total": {"lines": {"pct": 82.1}, ...},
  "<file>": {...}}
- coverage.py `coverage json`: {"totals": {"percent_covered": 82.1, ...},
  "files": {"<file>": {"summary": {...}}}}

A missing or unreadable summary reads as zero coverage for every metric.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from ..config import config
from ..models.metrics import CoverageSummary

_METRICS = ('statements', 'branches', 'functions', 'lines')


def _pct(value) -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(max(pct, 0.0), 100.0)


def _ratio(covered, total, default: float) -> float:
    try:
        covered, total = float(covered), float(total)
    except (TypeError, ValueError):
        return default
    if total <= 0:
        return default
    return _pct(covered / total * 100)


def _istanbul_summary(entry: dict) -> CoverageSummary:
    return CoverageSummary(**{
        metric: _pct((entry.get(metric) or {}).get('pct'))
        for metric in _METRICS
    })


def _coveragepy_summary(summary: dict) -> CoverageSummary:
    lines = _pct(summary.get('percent_covered'))
    statements = _ratio(summary.get('covered_lines'), summary.get('num_statements'), lines)
    branches = _ratio(summary.get('covered_branches'), summary.get('num_branches'), lines)
    return CoverageSummary(statements=statements, branches=branches, functions=lines, lines=lines)


@dataclass
class CoverageReport:
    """Overall and per-file coverage from one test run."""

    total: CoverageSummary = field(default_factory=CoverageSummary)
    files: Dict[str, CoverageSummary] = field(default_factory=dict)

    def for_file(self, file: str) -> CoverageSummary:
        """Coverage of a project-relative file; zero when it was not measured."""
        return self.files.get(file, CoverageSummary())


def _relative_key(key: str, project_root: Optional[Path]) -> str:
    path = Path(key)
    if project_root is not None and path.is_absolute():
        try:
            return path.resolve().relative_to(Path(project_root).resolve()).as_posix()
        except ValueError:
            return path.as_posix()
    return path.as_posix()


def parse_coverage_data(data: dict, project_root: Optional[Path] = None) -> CoverageReport:
    """Build a CoverageReport from either supported JSON shape."""
    if not isinstance(data, dict):
        return CoverageReport()

    if 'totals' in data:
        report = CoverageReport(total=_coveragepy_summary(data.get('totals') or {}))
        for key, entry in (data.get('files') or {}).items():
            report.files[_relative_key(key, project_root)] = _coveragepy_summary((entry or {}).get('summary') or {})
        return report

    if 'total' in data:
        report = CoverageReport(total=_istanbul_summary(data.get('total') or {}))
        for key, entry in data.items():
            if key != 'total' and isinstance(entry, dict):
                report.files[_relative_key(key, project_root)] = _istanbul_summary(entry)
        return report

    return CoverageReport()


def read_coverage_report(path: Path, project_root: Optional[Path] = None) -> CoverageReport:
    """
    Read a coverage summary file.

    Args:
        path: Location of the JSON summary
        project_root: Used to relativize absolute per-file keys

    Returns:
        CoverageReport, all zeros if the file is absent or invalid
    """
    path = Path(path)
    if not path.exists():
        if config.DEBUG:
            print(f"DEBUG: no coverage summary at {path}", file=sys.stderr)
        return CoverageReport()
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        print(f"Warning: Could not read coverage summary {path}: {e}", file=sys.stderr)
        return CoverageReport()
    return parse_coverage_data(data, project_root)
