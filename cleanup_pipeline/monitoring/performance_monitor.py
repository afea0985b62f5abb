"""
Performance Monitor

Captures the measurements used as before/after baselines: build time and
success, load time and peak resident memory of a load probe command
(sampled with psutil while it runs), total bundle size, and the duration
of the most recent test run.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from ..config import ToolCommands, config
from ..models.metrics import PerformanceMetrics, TestRunResult
from ..utils.process import CommandFailedError, ProcessRunner


def _pct_change(before: float, after: float) -> float:
    if before <= 0:
        return 0.0
    return (after - before) / before * 100


class PerformanceMonitor:
    """
    Measures build, load, memory and bundle-size metrics of a project.

    Args:
        project_root: Project the commands run in
        runner: ProcessRunner for the build and load probe commands
        commands: Build and load probe commands, bundle directory
        max_regression: Allowed relative growth (0.10 = 10%) before compare() warns
    """

    def __init__(
        self,
        project_root: Path,
        runner: ProcessRunner,
        commands: ToolCommands,
        max_regression: Optional[float] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.runner = runner
        self.commands = commands
        self.max_regression = config.MAX_PERF_REGRESSION if max_regression is None else max_regression

    def bundle_size(self) -> int:
        """Total size in bytes of every file under the bundle directory."""
        bundle_dir = self.project_root / self.commands.bundle_dir
        if not bundle_dir.is_dir():
            return 0
        return sum(p.stat().st_size for p in bundle_dir.rglob('*') if p.is_file())

    def _run_build(self) -> tuple:
        if not self.commands.build:
            return 0.0, True
        try:
            result = self.runner.run(self.commands.build, cwd=self.project_root)
        except CommandFailedError as e:
            print(f"Warning: Build command unavailable: {e}", file=sys.stderr)
            return 0.0, False
        if not result.ok:
            print(f"Warning: Build failed with exit code {result.returncode}", file=sys.stderr)
        return result.duration_ms, result.ok

    def _run_load_probe(self) -> tuple:
        if not self.commands.load_probe:
            return 0.0, 0
        try:
            result = self.runner.run(self.commands.load_probe, cwd=self.project_root, track_memory=True)
        except CommandFailedError as e:
            print(f"Warning: Load probe unavailable: {e}", file=sys.stderr)
            return 0.0, 0
        return result.duration_ms, result.peak_memory_bytes

    def measure(self, test_result: Optional[TestRunResult] = None) -> PerformanceMetrics:
        """
        Capture one PerformanceMetrics snapshot.

        Args:
            test_result: Most recent test run, whose duration is recorded

        Returns:
            Measurements; unconfigured commands contribute zeros
        """
        build_time_ms, build_succeeded = self._run_build()
        load_time_ms, memory_bytes = self._run_load_probe()
        metrics = PerformanceMetrics(
            load_time_ms=load_time_ms,
            memory_bytes=memory_bytes,
            bundle_size_bytes=self.bundle_size(),
            build_time_ms=build_time_ms,
            build_succeeded=build_succeeded,
            test_duration_ms=test_result.duration_ms if test_result else 0.0,
        )
        if config.DEBUG:
            print(
                f"DEBUG: perf load={metrics.load_time_ms:.0f}ms mem={metrics.memory_mb:.1f}MB"
                f" bundle={metrics.bundle_size_bytes}B build={metrics.build_time_ms:.0f}ms",
                file=sys.stderr,
            )
        return metrics

    def compare(self, baseline: PerformanceMetrics, current: PerformanceMetrics) -> List[str]:
        """Regression warnings between two snapshots (empty when nothing regressed)."""
        warnings = []
        limit = self.max_regression * 100

        load_change = _pct_change(baseline.load_time_ms, current.load_time_ms)
        if load_change > limit:
            warnings.append(
                f"Load time regressed by {load_change:.1f}% "
                f"({baseline.load_time_ms:.0f}ms -> {current.load_time_ms:.0f}ms)"
            )

        build_change = _pct_change(baseline.build_time_ms, current.build_time_ms)
        if build_change > limit:
            warnings.append(
                f"Build time regressed by {build_change:.1f}% "
                f"({baseline.build_time_ms:.0f}ms -> {current.build_time_ms:.0f}ms)"
            )

        memory_change = _pct_change(baseline.memory_bytes, current.memory_bytes)
        if memory_change > limit:
            warnings.append(
                f"Memory usage grew by {memory_change:.1f}% "
                f"({baseline.memory_mb:.1f}MB -> {current.memory_mb:.1f}MB)"
            )

        if current.bundle_size_bytes > baseline.bundle_size_bytes:
            warnings.append(
                f"Bundle size increased by {current.bundle_size_bytes - baseline.bundle_size_bytes} bytes"
            )

        if baseline.build_succeeded and not current.build_succeeded:
            warnings.append('Build no longer succeeds')

        return warnings
