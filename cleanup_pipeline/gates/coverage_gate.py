"""
Test & Coverage Gate

Guards every mutation of the working tree with the project's own test
suite:

    NOT_VERIFIED -> BASELINE_PASSING -> (per candidate) SAFETY_NET_READY
                                     -> POST_REMOVAL_VERIFIED

The baseline must pass before any removal is attempted; a missing or
failing suite is fatal for the whole run. Before a candidate touches an
under-covered file, a minimal import smoke test is written for it so the
suite has at least some signal if the removal breaks the module.
"""

from __future__ import annotations

import re
import sys
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from ..annotators.risk_classifier import is_test_file
from ..config import ToolCommands, config
from ..extractors.extract_blocks import iter_source_files
from ..models.metrics import TestRunResult
from ..scanners.dead_code import module_name
from ..utils.process import CommandFailedError, ProcessRunner, tail
from .coverage import CoverageReport, read_coverage_report


class GateState(str, Enum):
    NOT_VERIFIED = "not_verified"
    BASELINE_PASSING = "baseline_passing"
    SAFETY_NET_READY = "safety_net_ready"
    POST_REMOVAL_VERIFIED = "post_removal_verified"


class BaselineTestsFailedError(Exception):
    """The test suite is missing or failing before any removal."""

    def __init__(self, reason: str, result: Optional[TestRunResult] = None) -> None:
        self.reason = reason
        self.result = result
        super().__init__(reason)


class GateStateError(RuntimeError):
    """A gate operation was attempted out of order."""


SAFETY_NET_TEMPLATE = '''\
"""Safety net for {file}: the module must keep importing after cleanup."""

import importlib
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[{depth}]


def test_{test_name}_still_imports():
    if str(PROJECT_ROOT) not in sys.path:
        sys.path.insert(0, str(PROJECT_ROOT))
    module = importlib.import_module({module!r})
    assert module is not None
'''


def _identifier(text: str) -> str:
    return re.sub(r'\W', '_', text).strip('_') or 'module'


class CoverageGate:
    """
    Runs the test suite and tracks the gate state for one pipeline run.

    Args:
        project_root: Project whose suite is run
        runner: ProcessRunner used for the test command
        commands: Test command, tests directory and coverage file location
        coverage_threshold: Line coverage (%) below which a safety net is written
    """

    def __init__(
        self,
        project_root: Path,
        runner: ProcessRunner,
        commands: ToolCommands,
        coverage_threshold: Optional[float] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.runner = runner
        self.commands = commands
        self.coverage_threshold = (
            config.COVERAGE_THRESHOLD if coverage_threshold is None else coverage_threshold
        )
        self.state = GateState.NOT_VERIFIED
        self.baseline: Optional[TestRunResult] = None
        self.baseline_report = CoverageReport()
        self.last_report = CoverageReport()

    @property
    def coverage_path(self) -> Path:
        return self.project_root / self.commands.coverage_file

    def _require(self, *states: GateState) -> None:
        if self.state not in states:
            allowed = ', '.join(s.value for s in states)
            raise GateStateError(f"gate is {self.state.value}, expected one of: {allowed}")

    def has_test_suite(self) -> bool:
        """A test command is configured and at least one test module exists."""
        if not self.commands.test:
            return False
        return any(
            is_test_file(path.relative_to(self.project_root).as_posix())
            for path in iter_source_files(self.project_root)
        )

    def run_tests(self) -> TestRunResult:
        """
        Run the suite once and read the coverage summary it produced.

        A stale summary is removed first so a run that writes none reads
        as zero coverage. Command failures become a failed result.
        """
        if not self.commands.test:
            return TestRunResult(passed=False, failure_messages=['No test command configured'])

        if self.coverage_path.exists():
            self.coverage_path.unlink()

        try:
            proc = self.runner.run(self.commands.test, cwd=self.project_root)
        except CommandFailedError as e:
            self.last_report = CoverageReport()
            return TestRunResult(passed=False, failure_messages=[str(e)])

        self.last_report = read_coverage_report(self.coverage_path, self.project_root)
        failures = [] if proc.ok else tail(proc.stdout + '\n' + proc.stderr)
        result = TestRunResult(
            passed=proc.ok,
            coverage=self.last_report.total,
            duration_ms=proc.duration_ms,
            failure_messages=failures,
        )
        if config.DEBUG:
            print(
                f"DEBUG: tests {'passed' if result.passed else 'failed'}"
                f" ({result.coverage.lines:.1f}% lines, {result.duration_ms:.0f}ms)",
                file=sys.stderr,
            )
        return result

    def ensure_baseline(self) -> TestRunResult:
        """
        Require a passing suite before any removal.

        Raises:
            BaselineTestsFailedError: If no suite exists or it fails
        """
        if not self.has_test_suite():
            raise BaselineTestsFailedError('No test suite found; tests are required before cleanup')

        result = self.run_tests()
        if not result.passed:
            detail = result.failure_messages[-1] if result.failure_messages else 'test command failed'
            raise BaselineTestsFailedError(f"Baseline tests failing: {detail}", result)

        self.baseline = result
        self.baseline_report = self.last_report
        self.state = GateState.BASELINE_PASSING
        print(f"Baseline tests passing ({result.coverage.lines:.1f}% line coverage)", file=sys.stderr)
        return result

    def file_coverage(self, file: str) -> float:
        """Baseline line coverage of a project-relative file."""
        return self.baseline_report.for_file(file).lines

    def safety_net_path(self, file: str) -> Path:
        name = _identifier(module_name(file))
        return self.project_root / self.commands.tests_dir / f"test_{name}_safety_net.py"

    def create_safety_nets(self, files: Iterable[str]) -> List[str]:
        """
        Write an import smoke test for every under-covered Python file.

        Existing files are never overwritten.

        Returns:
            Project-relative paths of the tests that were created
        """
        self._require(GateState.BASELINE_PASSING, GateState.SAFETY_NET_READY, GateState.POST_REMOVAL_VERIFIED)

        created = []
        depth = len(Path(self.commands.tests_dir).parts)
        for file in files:
            if not file.endswith('.py') or is_test_file(file):
                continue
            if self.file_coverage(file) >= self.coverage_threshold:
                continue
            path = self.safety_net_path(file)
            if path.exists():
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            module = module_name(file)
            path.write_text(
                SAFETY_NET_TEMPLATE.format(
                    file=file,
                    depth=depth,
                    test_name=_identifier(module),
                    module=module,
                ),
                encoding='utf-8',
            )
            created.append(path.relative_to(self.project_root).as_posix())

        self.state = GateState.SAFETY_NET_READY
        if created:
            print(f"Created {len(created)} safety-net test(s)", file=sys.stderr)
        return created

    def remove_safety_nets(self, paths: Iterable[str]) -> None:
        for rel in paths:
            path = self.project_root / rel
            if path.exists():
                path.unlink()

    def verify_post_removal(self) -> TestRunResult:
        """Run the suite after a removal; the result feeds validation."""
        self._require(GateState.SAFETY_NET_READY)
        result = self.run_tests()
        self.state = GateState.POST_REMOVAL_VERIFIED
        return result
