"""
Cleanup Orchestrator

Sequences one pipeline run in seven phases:

1. Setup - clean working tree, branch check, install, working dirs
2. Analysis - extractor, analyzer, risk classifier
3. Test Preparation - baseline suite must pass (fatal otherwise)
4. Performance Baseline - metrics every later phase compares against
5. Safe Removal - candidates filtered by risk and kind, applied serially
6. Post-Removal Validation - re-measure; regressions only warn
7. Reporting - Markdown and JSON report

In dry-run mode phases 5 and 6 are replaced by a listing of what would be
removed; the report is still written and no source file is mutated.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..annotators.risk_classifier import RiskClassifier
from ..config import ToolCommands, config
from ..extractors.extract_blocks import BlockExtractor
from ..gates.coverage_gate import BaselineTestsFailedError, CoverageGate
from ..models.metrics import TestRunResult
from ..models.scan_report import PipelineOptions, PipelinePhase, PipelineRunResult
from ..monitoring.performance_monitor import PerformanceMonitor
from ..removal.backup import BackupStore
from ..removal.safe_remover import SafeRemover, sort_by_risk
from ..reporting.report_generator import ReportGenerator
from ..utils.git import GitRepository
from ..utils.process import CommandFailedError, ProcessRunner, SubprocessRunner
from ..utils.timing import Stopwatch, TimingLog
from .analysis import analyze_project
from .candidates import build_candidates, filter_candidates
from .selection import CandidateSelector, SelectAll

PHASE_ORDER = [
    PipelinePhase.SETUP,
    PipelinePhase.ANALYSIS,
    PipelinePhase.TEST_PREPARATION,
    PipelinePhase.PERFORMANCE_BASELINE,
    PipelinePhase.SAFE_REMOVAL,
    PipelinePhase.POST_REMOVAL_VALIDATION,
    PipelinePhase.REPORTING,
]


class PipelineAbortedError(Exception):
    """A fatal condition stopped the whole run."""

    def __init__(self, phase: PipelinePhase, reason: str) -> None:
        self.phase = phase
        self.reason = reason
        super().__init__(f"{phase.value}: {reason}")


def _relative(project_root: Path, path: Path) -> str:
    try:
        return path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


class CleanupOrchestrator:
    """
    Programmatic entry point of the cleanup pipeline.

    Args:
        project_root: Git working tree to clean up
        runner: ProcessRunner for every external command (SubprocessRunner by default)
        commands: External commands and locations (from config by default)
        selector: Candidate selector used for interactive runs
        main_branch: Expected main branch (only warned about)
    """

    def __init__(
        self,
        project_root: Path,
        runner: Optional[ProcessRunner] = None,
        commands: Optional[ToolCommands] = None,
        selector: Optional[CandidateSelector] = None,
        main_branch: Optional[str] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.runner = runner or SubprocessRunner()
        self.commands = commands or ToolCommands.from_config()
        self.selector = selector or SelectAll()
        self.main_branch = main_branch or config.MAIN_BRANCH
        self.base_branch = self.main_branch

        self.git = GitRepository(self.project_root, self.runner)
        self.backups = BackupStore(self.project_root, Path(config.BACKUP_DIR))
        self.reports_dir = self.project_root / config.REPORTS_DIR
        self.coverage_dir = self.project_root / config.COVERAGE_DIR

        self.extractor = BlockExtractor(self.project_root)
        self.classifier = RiskClassifier(self.project_root)
        self.gate = CoverageGate(self.project_root, self.runner, self.commands)
        self.monitor = PerformanceMonitor(self.project_root, self.runner, self.commands)
        self.reporter = ReportGenerator(self.reports_dir, self.project_root)

        self.remover: Optional[SafeRemover] = None
        self.timings = TimingLog()
        self._stop_requested = False

    @property
    def working_dirs(self) -> List[str]:
        return [
            _relative(self.project_root, self.backups.backup_dir),
            _relative(self.project_root, self.reports_dir),
            _relative(self.project_root, self.coverage_dir),
        ]

    def request_stop(self) -> None:
        """Let the current candidate finish, then start no further ones."""
        self._stop_requested = True
        if self.remover is not None:
            self.remover.request_stop()

    @contextmanager
    def _phase(self, run: PipelineRunResult, phase: PipelinePhase):
        run.phase = phase
        number = PHASE_ORDER.index(phase) + 1
        print(f"Phase {number}/{len(PHASE_ORDER)}: {phase.value.replace('_', ' ').title()}", file=sys.stderr)
        with Stopwatch(self.timings.get(phase.value)):
            yield

    def _warn(self, run: PipelineRunResult, message: str) -> None:
        print(f"Warning: {message}", file=sys.stderr)
        run.warnings.append(message)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def setup(self, run: PipelineRunResult) -> None:
        try:
            clean = self.git.is_clean(ignore=self.working_dirs)
            branch = self.git.current_branch()
        except CommandFailedError as e:
            raise PipelineAbortedError(PipelinePhase.SETUP, f"Version control unavailable: {e}") from e

        if not clean:
            raise PipelineAbortedError(
                PipelinePhase.SETUP,
                'Working tree has uncommitted changes; commit or stash them before cleanup',
            )
        if branch != self.main_branch:
            self._warn(run, f"Not on {self.main_branch} (current branch: {branch})")
        self.base_branch = branch

        if self.commands.install:
            try:
                ok = self.runner.run(self.commands.install, cwd=self.project_root).ok
            except CommandFailedError:
                ok = False
            if not ok:
                self._warn(run, 'Dependency installation failed')

        for directory in (self.backups.backup_dir, self.reports_dir, self.coverage_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def test_preparation(self) -> TestRunResult:
        try:
            return self.gate.ensure_baseline()
        except BaselineTestsFailedError as e:
            raise PipelineAbortedError(PipelinePhase.TEST_PREPARATION, e.reason) from e

    def safe_removal(self, run: PipelineRunResult) -> None:
        selector = self.selector if run.options.interactive else SelectAll()
        run.candidates = selector.select_subset(sort_by_risk(run.candidates))

        self.remover = SafeRemover(
            self.project_root,
            self.runner,
            self.commands,
            backups=self.backups,
            gate=self.gate,
            monitor=self.monitor,
            base_branch=self.base_branch,
            code_metrics=self.extractor.code_metrics,
        )
        if self._stop_requested:
            self.remover.request_stop()

        run.results = self.remover.run(run.candidates)
        run.stopped_early = self.remover.stop_requested
        if self.remover.halted_reason:
            self._warn(run, self.remover.halted_reason)

    def post_removal_validation(self, run: PipelineRunResult) -> None:
        latest_tests = self.gate.baseline
        for result in run.results:
            if result.metrics_after is not None and result.metrics_after.tests is not None:
                latest_tests = result.metrics_after.tests

        run.current_metrics = self.monitor.measure(latest_tests)
        for warning in self.monitor.compare(run.baseline_metrics, run.current_metrics):
            self._warn(run, f"Performance regression: {warning}")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, options: Optional[PipelineOptions] = None) -> PipelineRunResult:
        """
        Execute the pipeline.

        Raises:
            PipelineAbortedError: Dirty tree, missing git, or failing baseline tests
        """
        options = options or PipelineOptions()
        run = PipelineRunResult(options=options)

        with self._phase(run, PipelinePhase.SETUP):
            self.setup(run)

        with self._phase(run, PipelinePhase.ANALYSIS):
            run.analysis = analyze_project(self.project_root, self.extractor, self.classifier)

        with self._phase(run, PipelinePhase.TEST_PREPARATION):
            baseline_tests = self.test_preparation()

        with self._phase(run, PipelinePhase.PERFORMANCE_BASELINE):
            run.baseline_metrics = self.monitor.measure(baseline_tests)

        candidates = build_candidates(run.analysis, self.classifier)
        run.candidates = filter_candidates(candidates, options.max_risk, options.kinds)
        print(
            f"{len(run.candidates)} of {len(candidates)} candidates at or below "
            f"{options.max_risk.value} risk",
            file=sys.stderr,
        )

        if options.dry_run:
            run.candidates = sort_by_risk(run.candidates)
            run.dry_run_listing = [
                f"[{c.risk.value}] {c.kind}: {c.description or ', '.join(c.files)}"
                for c in run.candidates
            ]
            print('Dry run - would remove:', file=sys.stderr)
            for line in run.dry_run_listing:
                print(f"  {line}", file=sys.stderr)
        else:
            with self._phase(run, PipelinePhase.SAFE_REMOVAL):
                self.safe_removal(run)
            with self._phase(run, PipelinePhase.POST_REMOVAL_VALIDATION):
                self.post_removal_validation(run)

        with self._phase(run, PipelinePhase.REPORTING):
            run.finished_at = datetime.now()
            run.timings = self.timings.to_dict()
            self.reporter.write(run)

        run.phase = PipelinePhase.COMPLETE
        if config.DEBUG:
            for name, timing in run.timings.items():
                print(f"DEBUG: phase {name}: {timing['total_ms']:.0f}ms", file=sys.stderr)
        return run
