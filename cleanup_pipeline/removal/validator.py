"""
Removal validation: decides commit vs. rollback for one candidate.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import ToolCommands, config
from ..models.metrics import MetricsSnapshot, TestRunResult
from ..utils.process import CommandFailedError, ProcessRunner

ISSUE_TESTS_FAILING = 'Tests failing after removal'
ISSUE_PERFORMANCE = 'Performance degraded by more than {pct:g}%'
ISSUE_BUNDLE = 'Bundle size increased unexpectedly'
ISSUE_TYPECHECK = 'Type check/compilation errors'
ISSUE_BUILD = 'Build failed after removal'


@dataclass
class ValidationOutcome:
    safe: bool
    issues: List[str] = field(default_factory=list)


class RemovalValidator:
    """
    Itemized post-removal checks. Any single failing check blocks commit.

    - tests must still pass
    - line coverage must not drop by more than max_coverage_drop points
    - load time must not grow by more than max_perf_regression
    - bundle size must not grow
    - the build must not start failing
    - the type/compile check must succeed
    """

    def __init__(
        self,
        project_root: Path,
        runner: ProcessRunner,
        commands: ToolCommands,
        max_coverage_drop: Optional[float] = None,
        max_perf_regression: Optional[float] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.runner = runner
        self.commands = commands
        self.max_coverage_drop = config.MAX_COVERAGE_DROP if max_coverage_drop is None else max_coverage_drop
        self.max_perf_regression = (
            config.MAX_PERF_REGRESSION if max_perf_regression is None else max_perf_regression
        )

    def typecheck(self) -> bool:
        if not self.commands.typecheck:
            return True
        try:
            return self.runner.run(self.commands.typecheck, cwd=self.project_root).ok
        except CommandFailedError as e:
            print(f"Warning: Type check unavailable: {e}", file=sys.stderr)
            return False

    def validate_removal(
        self,
        before: MetricsSnapshot,
        after: MetricsSnapshot,
        test_result: TestRunResult,
    ) -> ValidationOutcome:
        issues = []

        if not test_result.passed:
            issues.append(ISSUE_TESTS_FAILING)

        coverage_before = before.line_coverage
        coverage_after = after.line_coverage
        if coverage_after < coverage_before - self.max_coverage_drop:
            issues.append(f"Coverage dropped from {coverage_before:g}% to {coverage_after:g}%")

        load_before = before.performance.load_time_ms
        if load_before > 0 and after.performance.load_time_ms > load_before * (1 + self.max_perf_regression):
            issues.append(ISSUE_PERFORMANCE.format(pct=self.max_perf_regression * 100))

        if after.performance.bundle_size_bytes > before.performance.bundle_size_bytes:
            issues.append(ISSUE_BUNDLE)

        if before.performance.build_succeeded and not after.performance.build_succeeded:
            issues.append(ISSUE_BUILD)

        if not self.typecheck():
            issues.append(ISSUE_TYPECHECK)

        if issues and config.DEBUG:
            print(f"DEBUG: validation issues: {issues}", file=sys.stderr)
        return ValidationOutcome(safe=not issues, issues=issues)
