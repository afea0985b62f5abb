"""
Tests for ReportGenerator.

Run with: python -m pytest cleanup_pipeline/reporting/test_report_generator.py -v
"""

import json
from datetime import datetime

from cleanup_pipeline.models import (
    AnalysisMetrics,
    AnalysisResult,
    DeadCodeCandidate,
    EstimatedSavings,
    PerformanceMetrics,
    PipelineOptions,
    PipelineRunResult,
    RemovalResult,
    RiskLevel,
)
from cleanup_pipeline.reporting.report_generator import (
    ReportGenerator,
    format_bytes,
    format_change,
    recommendations,
)


def _candidate(id, lines=4):
    return DeadCodeCandidate(
        id=id,
        files=['app/util.py'],
        line_ranges=[(3, 6)],
        risk=RiskLevel.LOW,
        estimated_savings=EstimatedSavings(lines=lines),
        description=f'Unreferenced function {id} in app/util.py',
    )


def _run(**overrides):
    values = dict(
        options=PipelineOptions(),
        started_at=datetime(2026, 3, 1, 9, 30, 0),
        analysis=AnalysisResult(metrics=AnalysisMetrics(total_files=3, total_lines=120, dead_code_lines=4)),
        results=[
            RemovalResult(candidate=_candidate('dead-ok'), success=True, rollback_reference='abc123'),
            RemovalResult(
                candidate=_candidate('dead-bad'),
                success=False,
                issues=['Coverage dropped from 82% to 74%'],
            ),
        ],
        baseline_metrics=PerformanceMetrics(load_time_ms=100, bundle_size_bytes=2048, build_time_ms=1000),
        current_metrics=PerformanceMetrics(load_time_ms=90, bundle_size_bytes=1024, build_time_ms=1000),
    )
    values.update(overrides)
    return PipelineRunResult(**values)


def test_format_bytes():
    assert format_bytes(0) == '0 Bytes'
    assert format_bytes(512) == '512 Bytes'
    assert format_bytes(1536) == '1.5 KB'
    assert format_bytes(1024 * 1024) == '1 MB'


def test_format_change():
    assert format_change(100, 110) == '+10.0%'
    assert format_change(100, 90) == '-10.0%'
    assert format_change(0, 50) == 'N/A'


def test_markdown_sections(tmp_path):
    markdown = ReportGenerator(tmp_path).render_markdown(_run())

    assert markdown.startswith('# Code Cleanup Report')
    assert '| Lines saved | 4 |' in markdown
    assert '| Success rate | 50% |' in markdown
    assert '| Load Time | 100ms | 90ms | -10.0% |' in markdown
    assert '| Bundle Size | 2 KB | 1 KB | -50.0% |' in markdown
    assert '## Successful Removals' in markdown
    assert 'git revert abc123' in markdown
    assert '## Failed Removals' in markdown
    assert '  - Coverage dropped from 82% to 74%' in markdown
    assert '## Next Steps' in markdown


def test_high_failure_rate_is_recommended():
    assert any('High failure rate' in r for r in recommendations(_run()))


def test_clean_run_is_in_good_shape():
    assert recommendations(_run(results=[])) == ['Codebase is in good shape! Continue with regular maintenance.']


def test_dry_run_listing(tmp_path):
    run = _run(
        options=PipelineOptions(dry_run=True),
        results=[],
        current_metrics=None,
        dry_run_listing=['[low] dead-code: Unreferenced function helper in app/util.py'],
    )
    markdown = ReportGenerator(tmp_path).render_markdown(run)
    assert '## Would Be Removed' in markdown
    assert '- [low] dead-code: Unreferenced function helper in app/util.py' in markdown
    assert '## Performance' not in markdown


def test_write_persists_markdown_and_json(tmp_path):
    run = _run()
    files = ReportGenerator(tmp_path / 'reports').write(run)

    assert files['markdown'].endswith('cleanup-report-20260301-093000.md')
    data = json.loads((tmp_path / 'reports' / 'cleanup-report-20260301-093000.json').read_text())
    assert data['successful'] == 1
    assert data['results'][1]['issues'] == ['Coverage dropped from 82% to 74%']
    assert data['report_files'] == files
