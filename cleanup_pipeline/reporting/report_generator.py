"""
Report Generator

Renders a PipelineRunResult as a Markdown document and persists it next
to a JSON dump of the same run:

    <reports_dir>/cleanup-report-<YYYYmmdd-HHMMSS>.md
    <reports_dir>/cleanup-report-<YYYYmmdd-HHMMSS>.json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..constants import ReportDefaults
from ..models.metrics import PerformanceMetrics
from ..models.scan_report import PipelineRunResult

NEXT_STEPS = [
    'Review the review requests opened for each committed removal',
    'Run additional manual testing on critical paths',
    'Monitor production metrics after deployment',
    'Schedule regular cleanup runs (monthly recommended)',
    'Update coding standards to prevent future duplicates',
]


def format_bytes(size: float) -> str:
    """Human-readable byte count (1536 -> '1.5 KB')."""
    if size <= 0:
        return '0 Bytes'
    units = ['Bytes', 'KB', 'MB', 'GB']
    exponent = 0
    while size >= 1024 and exponent < len(units) - 1:
        size /= 1024
        exponent += 1
    return f"{round(size, 2):g} {units[exponent]}"


def format_change(baseline: float, current: float) -> str:
    """Signed percentage change, or N/A without a baseline."""
    if baseline <= 0:
        return 'N/A'
    change = (current - baseline) / baseline * 100
    sign = '+' if change > 0 else ''
    return f"{sign}{change:.1f}%"


def _ms(value: float) -> str:
    return f"{value:.0f}ms"


def performance_rows(baseline: PerformanceMetrics, current: PerformanceMetrics) -> List[List[str]]:
    rows = [
        ('Load Time', baseline.load_time_ms, current.load_time_ms, _ms),
        ('Bundle Size', baseline.bundle_size_bytes, current.bundle_size_bytes, format_bytes),
        ('Memory Usage', baseline.memory_bytes, current.memory_bytes, format_bytes),
        ('Build Time', baseline.build_time_ms, current.build_time_ms, _ms),
        ('Test Execution', baseline.test_duration_ms, current.test_duration_ms, _ms),
    ]
    return [[name, fmt(before), fmt(after), format_change(before, after)] for name, before, after, fmt in rows]


def recommendations(run: PipelineRunResult) -> List[str]:
    analysis = run.analysis
    found = []
    if len(analysis.duplicates) > ReportDefaults.HIGH_DUPLICATE_COUNT:
        found.append('Consider a pre-commit hook that detects duplicate code before it enters the codebase.')
    if len(analysis.unused_components) > ReportDefaults.HIGH_UNUSED_COMPONENTS:
        found.append('Review the module layout and consider consolidating rarely used modules.')
    if analysis.redundant_import_count > ReportDefaults.HIGH_REDUNDANT_IMPORTS:
        found.append('Enable the unused-import lint rule (F401) and fix on save.')
    if run.results and (run.failed / len(run.results) * 100) > ReportDefaults.HIGH_FAILURE_RATE_PCT:
        found.append('High failure rate detected. Consider improving test coverage before the next cleanup run.')
    if not found:
        found.append('Codebase is in good shape! Continue with regular maintenance.')
    return found


def _table(header: List[str], rows: List[List[str]]) -> List[str]:
    lines = ['| ' + ' | '.join(header) + ' |', '|' + '|'.join('---' for _ in header) + '|']
    lines.extend('| ' + ' | '.join(str(cell) for cell in row) + ' |' for row in rows)
    return lines


class ReportGenerator:
    """
    Writes the human-readable and machine-readable run report.

    Args:
        reports_dir: Directory reports are written to (created if missing)
        project_root: Project the run cleaned, shown in the report header
    """

    def __init__(self, reports_dir: Path, project_root: Optional[Path] = None) -> None:
        self.reports_dir = Path(reports_dir)
        self.project_root = Path(project_root) if project_root else None

    def render_markdown(self, run: PipelineRunResult) -> str:
        options = run.options
        analysis = run.analysis
        metrics = analysis.metrics

        mode = 'dry run' if options.dry_run else 'live'
        lines = ['# Code Cleanup Report', '']
        if self.project_root is not None:
            lines.append(f"- Project: `{self.project_root}`")
        lines.extend([
            f"- Started: {run.started_at:%Y-%m-%d %H:%M:%S}",
            f"- Mode: {mode} (max risk: {options.max_risk.value}; "
            f"kinds: {', '.join(k.value for k in options.kinds)})",
            '',
            '## Summary',
            '',
        ])
        lines.extend(_table(['Metric', 'Value'], [
            ['Candidates', len(run.candidates)],
            ['Successful removals', run.successful],
            ['Failed removals', run.failed],
            ['Success rate', f"{run.success_rate:g}%"],
            ['Lines saved', run.total_lines_saved],
        ]))
        if run.stopped_early:
            lines.extend(['', 'The run was stopped before every candidate was attempted.'])

        lines.extend(['', '## Analysis', ''])
        lines.extend(_table(['Finding', 'Count', 'Estimated savings'], [
            ['Exact duplicate groups', metrics.exact_duplicate_groups, f"{metrics.duplicate_lines} lines"],
            ['Near duplicate groups', metrics.near_duplicate_groups, 'manual review'],
            ['Dead code definitions', len(analysis.dead_code), f"{metrics.dead_code_lines} lines"],
            ['Redundant imports', analysis.redundant_import_count, f"{len(analysis.redundant_imports)} files"],
            ['Unused modules', len(analysis.unused_components), '-'],
        ]))
        lines.extend([
            '',
            f"Scanned {metrics.total_files} files ({metrics.total_lines} lines, {metrics.total_blocks} blocks, "
            f"{metrics.parse_failures} skipped); average complexity {metrics.average_complexity:g}. "
            f"Estimated savings: {metrics.estimated_savings_lines} lines "
            f"({metrics.estimated_savings_percentage:g}%).",
        ])

        if analysis.near_duplicates:
            lines.extend(['', '### Near Duplicates (manual review)', ''])
            for group in analysis.near_duplicates:
                locations = ', '.join(f"`{m.location}`" for m in group.members)
                lines.append(f"- {group.similarity_percent:g}% similar: {locations} - {group.recommendation}")

        if analysis.dead_code:
            limit = ReportDefaults.DEAD_CODE_SECTION_LIMIT
            lines.extend(['', '### Dead Code', ''])
            for block in analysis.dead_code[:limit]:
                lines.append(f"- `{block.location}` {block.kind.value} {block.name or ''}".rstrip())
            if len(analysis.dead_code) > limit:
                lines.append(f"- ... and {len(analysis.dead_code) - limit} more")

        if run.baseline_metrics is not None and run.current_metrics is not None:
            lines.extend(['', '## Performance', ''])
            lines.extend(_table(
                ['Metric', 'Baseline', 'Current', 'Change'],
                performance_rows(run.baseline_metrics, run.current_metrics),
            ))

        succeeded = [r for r in run.results if r.success]
        failed = [r for r in run.results if not r.success]
        if succeeded:
            lines.extend(['', '## Successful Removals', ''])
            for result in succeeded:
                candidate = result.candidate
                lines.append(
                    f"- `{candidate.id}` ({candidate.kind}, {candidate.risk.value} risk): "
                    f"{candidate.description or ', '.join(candidate.files)}; "
                    f"{result.lines_saved} lines saved; revert with `git revert {result.rollback_reference}`"
                )
        if failed:
            lines.extend(['', '## Failed Removals', ''])
            for result in failed:
                candidate = result.candidate
                lines.append(
                    f"- `{candidate.id}` ({candidate.kind}, {candidate.risk.value} risk): "
                    f"{candidate.description or ', '.join(candidate.files)}"
                )
                lines.extend(f"  - {issue}" for issue in result.issues or [])

        if run.dry_run_listing:
            lines.extend(['', '## Would Be Removed', ''])
            lines.extend(f"- {entry}" for entry in run.dry_run_listing)
        elif options.dry_run:
            lines.extend(['', '## Would Be Removed', '', 'Nothing matches the selected risk level and kinds.'])

        if run.warnings:
            lines.extend(['', '## Warnings', ''])
            lines.extend(f"- {warning}" for warning in run.warnings)

        lines.extend(['', '## Recommendations', ''])
        lines.extend(f"- {item}" for item in recommendations(run))

        lines.extend(['', '## Next Steps', ''])
        lines.extend(f"{i}. {step}" for i, step in enumerate(NEXT_STEPS, start=1))
        lines.append('')
        return '\n'.join(lines)

    def write(self, run: PipelineRunResult) -> Dict[str, str]:
        """
        Persist the Markdown and JSON reports.

        Returns:
            Format -> written path (also stored on run.report_files)
        """
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        stem = f"cleanup-report-{run.started_at:%Y%m%d-%H%M%S}"
        markdown_path = self.reports_dir / f"{stem}.md"
        json_path = self.reports_dir / f"{stem}.json"
        run.report_files = {'markdown': str(markdown_path), 'json': str(json_path)}

        markdown_path.write_text(self.render_markdown(run), encoding='utf-8')
        json_path.write_text(json.dumps(run.model_dump(mode='json'), indent=2), encoding='utf-8')

        print(f"Report written to {markdown_path}", file=sys.stderr)
        return run.report_files
