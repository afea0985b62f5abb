"""
Tests for PerformanceMonitor.

Run with: python -m pytest cleanup_pipeline/monitoring/test_performance_monitor.py -v
"""

from cleanup_pipeline.config import ToolCommands
from cleanup_pipeline.models.metrics import PerformanceMetrics, TestRunResult
from cleanup_pipeline.monitoring.performance_monitor import PerformanceMonitor
from cleanup_pipeline.utils.fake_runner import FakeRunner
from cleanup_pipeline.utils.process import CommandFailedError


def _monitor(tmp_path, runner, **commands):
    values = dict(build=['make', 'build'], load_probe=['python', '-c', 'import app'], bundle_dir='dist')
    values.update(commands)
    return PerformanceMonitor(tmp_path, runner, ToolCommands(**values), max_regression=0.10)


class TestMeasure:
    """Tests for measure()."""

    def test_records_build_probe_bundle_and_tests(self, tmp_path):
        (tmp_path / 'dist' / 'sub').mkdir(parents=True)
        (tmp_path / 'dist' / 'a.whl').write_bytes(b'x' * 100)
        (tmp_path / 'dist' / 'sub' / 'b.js').write_bytes(b'y' * 50)
        runner = (
            FakeRunner()
            .on('make', duration_ms=1200.0)
            .on('python', duration_ms=80.0, peak_memory_bytes=30 * 1024 * 1024)
        )

        metrics = _monitor(tmp_path, runner).measure(TestRunResult(passed=True, duration_ms=450.0))

        assert metrics.build_time_ms == 1200.0
        assert metrics.build_succeeded
        assert metrics.load_time_ms == 80.0
        assert metrics.memory_bytes == 30 * 1024 * 1024
        assert metrics.bundle_size_bytes == 150
        assert metrics.test_duration_ms == 450.0

    def test_failed_build_is_recorded(self, tmp_path):
        runner = FakeRunner().on('make', returncode=2)
        assert not _monitor(tmp_path, runner).measure().build_succeeded

    def test_missing_build_tool_is_a_failed_build(self, tmp_path):
        def missing(args, cwd):
            raise CommandFailedError(args, 127, 'not found')

        runner = FakeRunner().on('make', effect=missing)
        assert not _monitor(tmp_path, runner).measure().build_succeeded

    def test_unconfigured_commands_measure_zero(self, tmp_path):
        runner = FakeRunner()
        metrics = _monitor(tmp_path, runner, build=None, load_probe=None).measure()
        assert metrics.build_time_ms == 0
        assert metrics.load_time_ms == 0
        assert metrics.bundle_size_bytes == 0
        assert runner.calls == []


class TestCompare:
    """Tests for compare()."""

    def test_no_warnings_within_limits(self, tmp_path):
        monitor = _monitor(tmp_path, FakeRunner())
        before = PerformanceMetrics(load_time_ms=100, build_time_ms=1000, bundle_size_bytes=500)
        after = PerformanceMetrics(load_time_ms=109, build_time_ms=900, bundle_size_bytes=400)
        assert monitor.compare(before, after) == []

    def test_regressions_are_reported(self, tmp_path):
        monitor = _monitor(tmp_path, FakeRunner())
        before = PerformanceMetrics(load_time_ms=100, build_time_ms=1000, memory_bytes=1000, bundle_size_bytes=500)
        after = PerformanceMetrics(
            load_time_ms=120, build_time_ms=1200, memory_bytes=2000, bundle_size_bytes=600, build_succeeded=False,
        )
        warnings = monitor.compare(before, after)
        assert len(warnings) == 5
        assert warnings[0].startswith('Load time regressed by 20.0%')
        assert 'Bundle size increased by 100 bytes' in warnings

    def test_zero_baseline_never_regresses(self, tmp_path):
        monitor = _monitor(tmp_path, FakeRunner())
        assert monitor.compare(PerformanceMetrics(), PerformanceMetrics(load_time_ms=50)) == []
