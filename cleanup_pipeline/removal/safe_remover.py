"""
Safe Remover

Applies removal candidates to a live working tree one at a time, each on
its own branch, guarded by the test gate and the removal validator:

    BRANCHED -> BASELINE_CAPTURED -> SAFETY_NET_CREATED -> BASELINE_TESTS_OK
    -> BACKED_UP -> CODE_REMOVED -> POST_TESTS_RUN -> VALIDATED
    -> COMMITTED | ROLLED_BACK

A validation failure restores the file backup. Any unexpected error
discards every uncommitted change. A candidate whose branch already
exists, or whose action leaves every file unchanged, fails without a
commit. Whatever happens, the working tree is returned to the base
branch before the next candidate starts.
"""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from ..config import ToolCommands, config, fill_command
from ..extractors.extract_blocks import BlockExtractor
from ..gates.coverage_gate import CoverageGate
from ..models.metrics import CodeMetrics, MetricsSnapshot
from ..models.removal import (
    DeadCodeCandidate,
    DuplicateCandidate,
    LineRange,
    RemovalCandidate,
    RemovalResult,
    UnusedComponentCandidate,
    UnusedImportCandidate,
    parse_candidate,
)
from ..monitoring.performance_monitor import PerformanceMonitor
from ..scanners.dead_code import find_companion_files, module_name
from ..utils.git import GitRepository
from ..utils.process import CommandFailedError, ProcessRunner
from .backup import BackupStore
from .validator import RemovalValidator

ISSUE_BASELINE_FAILING = 'Baseline tests failing; removal skipped'
ISSUE_NO_CHANGES = 'Removal made no changes'
ISSUE_STOPPED = 'Not attempted: stop requested'


class RemovalState(str, Enum):
    PENDING = "pending"
    BRANCHED = "branched"
    BASELINE_CAPTURED = "baseline_captured"
    SAFETY_NET_CREATED = "safety_net_created"
    BASELINE_TESTS_OK = "baseline_tests_ok"
    BACKED_UP = "backed_up"
    CODE_REMOVED = "code_removed"
    POST_TESTS_RUN = "post_tests_run"
    VALIDATED = "validated"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class RemovalError(Exception):
    """A removal action could not be applied to the working tree."""


def delete_line_ranges(path: Path, ranges: Sequence[LineRange], replacement: str = '') -> None:
    """
    Delete 1-indexed inclusive line ranges from a file.

    Ranges are applied in descending start order so earlier deletions
    never shift later ones. Each deleted range is replaced with
    `replacement` (a single line, or nothing).
    """
    lines = path.read_text(encoding='utf-8').splitlines(keepends=True)
    for start, end in sorted(ranges, reverse=True):
        if end > len(lines):
            raise RemovalError(f"{path.name}: line range {start}-{end} is past end of file ({len(lines)} lines)")
        lines[start - 1:end] = [replacement] if replacement else []
    path.write_text(''.join(lines), encoding='utf-8')


def review_body(candidate: RemovalCandidate, revision: str) -> str:
    """Markdown body of the review request for a committed candidate."""
    savings = candidate.estimated_savings
    return '\n'.join([
        '## Automated Code Cleanup',
        '',
        f"**Type:** {candidate.kind}",
        f"**Risk:** {candidate.risk.value}",
        f"**Files affected:** {len(candidate.files)}",
        '',
        '### Estimated Savings',
        f"- Lines: {savings.lines}",
        f"- Bytes: {savings.bytes}",
        f"- Complexity reduction: {savings.complexity:g}",
        '',
        '### Validation',
        '- [x] Tests passing',
        '- [x] Coverage maintained',
        '- [x] Performance validated',
        '- [x] Bundle size checked',
        '',
        '### Rollback',
        '```bash',
        f"git revert {revision}",
        '```',
        '',
    ])


def commit_message(candidate: RemovalCandidate) -> str:
    return f"cleanup: Remove {candidate.kind} ({candidate.estimated_savings.lines} lines saved)"


def sort_by_risk(candidates: Iterable[RemovalCandidate]) -> List[RemovalCandidate]:
    """Ascending risk (low, medium, high); ties keep their input order."""
    return sorted(candidates, key=lambda c: c.risk.rank)


class SafeRemover:
    """
    The only component allowed to mutate the working tree.

    Args:
        project_root: Project under cleanup (a git working tree)
        runner: ProcessRunner for git, lint autofix and review commands
        commands: External commands and locations
        backups: Explicit backup directory handle
        gate: Test & coverage gate, already past its baseline check
        monitor: Performance monitor for before/after metrics
        validator: Removal validator (built from commands when omitted)
        base_branch: Branch every candidate starts from and returns to
        code_metrics: Callable returning the current source-tree size
    """

    def __init__(
        self,
        project_root: Path,
        runner: ProcessRunner,
        commands: ToolCommands,
        backups: BackupStore,
        gate: CoverageGate,
        monitor: PerformanceMonitor,
        validator: Optional[RemovalValidator] = None,
        base_branch: Optional[str] = None,
        code_metrics: Optional[Callable[[], CodeMetrics]] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.runner = runner
        self.commands = commands
        self.backups = backups
        self.gate = gate
        self.monitor = monitor
        self.validator = validator or RemovalValidator(self.project_root, runner, commands)
        self.base_branch = base_branch or config.MAIN_BRANCH
        self.code_metrics = code_metrics or BlockExtractor(self.project_root).code_metrics
        self.git = GitRepository(self.project_root, runner)

        self.state = RemovalState.PENDING
        self.history: List[RemovalResult] = []
        self.halted_reason: Optional[str] = None
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def request_stop(self) -> None:
        """Finish the current candidate, then start no further ones."""
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested or self.halted_reason is not None

    def _preserved_paths(self) -> List[str]:
        """Working directories that an emergency rollback must not clean."""
        preserved = [config.REPORTS_DIR, config.COVERAGE_DIR]
        try:
            preserved.insert(0, self.backups.backup_dir.resolve().relative_to(self.project_root.resolve()).as_posix())
        except ValueError:
            pass
        return preserved

    def _advance(self, state: RemovalState) -> None:
        self.state = state
        if config.DEBUG:
            print(f"DEBUG: removal state -> {state.value}", file=sys.stderr)

    # ------------------------------------------------------------------
    # Removal actions
    # ------------------------------------------------------------------

    def touched_files(self, candidate: RemovalCandidate) -> List[str]:
        """Every file the action may modify or delete (the backup set)."""
        files = list(candidate.files)
        if isinstance(candidate, UnusedComponentCandidate):
            for file in candidate.files:
                for companion in find_companion_files(self.project_root, file):
                    if companion not in files:
                        files.append(companion)
        return files

    def _safety_net_targets(self, candidate: RemovalCandidate) -> List[str]:
        # Deleted modules cannot be import-checked.
        if isinstance(candidate, UnusedComponentCandidate):
            return []
        return list(candidate.files)

    def _remove_duplicate(self, candidate: DuplicateCandidate) -> None:
        reexport = f"from {module_name(candidate.canonical_file)} import {candidate.symbol}\n"
        for file, line_range in candidate.ranges_by_file().items():
            if file == candidate.canonical_file:
                continue
            delete_line_ranges(self.project_root / file, [line_range], replacement=reexport)

    def _remove_dead_code(self, candidate: DeadCodeCandidate) -> None:
        for file, line_range in candidate.ranges_by_file().items():
            delete_line_ranges(self.project_root / file, [line_range])

    def _remove_unused_imports(self, candidate: UnusedImportCandidate) -> None:
        if not self.commands.lint_fix:
            raise RemovalError('No lint autofix command configured for unused imports')
        for file in candidate.files:
            self.runner.run(
                fill_command(self.commands.lint_fix, {'file': file}),
                cwd=self.project_root,
                check=True,
            )

    def _remove_component(self, files: Sequence[str]) -> None:
        for file in files:
            path = self.project_root / file
            if path.exists():
                path.unlink()

    def remove(self, candidate: RemovalCandidate, touched: Sequence[str]) -> None:
        """Apply the candidate's action to the working tree."""
        if isinstance(candidate, DuplicateCandidate):
            self._remove_duplicate(candidate)
        elif isinstance(candidate, DeadCodeCandidate):
            self._remove_dead_code(candidate)
        elif isinstance(candidate, UnusedImportCandidate):
            self._remove_unused_imports(candidate)
        elif isinstance(candidate, UnusedComponentCandidate):
            self._remove_component(touched)
        else:
            raise RemovalError(f"Unsupported candidate kind: {candidate.kind}")

    # ------------------------------------------------------------------
    # Commit / review / rollback
    # ------------------------------------------------------------------

    def _request_review(self, candidate: RemovalCandidate, revision: str) -> None:
        """Best-effort review request; failure only warns."""
        if not self.commands.review:
            return
        args = fill_command(self.commands.review, {
            'title': f"Cleanup: Remove {candidate.kind}",
            'body': review_body(candidate, revision),
            'base': self.base_branch,
            'head': candidate.branch_name,
        })
        try:
            ok = self.runner.run(args, cwd=self.project_root).ok
        except CommandFailedError:
            ok = False
        if ok:
            print(f"Opened review request for {candidate.branch_name}", file=sys.stderr)
        else:
            print(
                f"Warning: Could not open a review request for {candidate.branch_name}; create it manually",
                file=sys.stderr,
            )

    def _emergency_rollback(self) -> Optional[str]:
        """Discard all uncommitted changes; returns an issue if that failed too."""
        print('Warning: Unexpected error, discarding uncommitted changes', file=sys.stderr)
        try:
            self.git.revert_working_tree(exclude=self._preserved_paths())
        except CommandFailedError as e:
            return f"Emergency rollback failed: {e}"
        self._advance(RemovalState.ROLLED_BACK)
        return None

    def _return_to_base(self, branch: Optional[str], keep_branch: bool) -> None:
        try:
            self.git.checkout(self.base_branch)
        except CommandFailedError as e:
            self.halted_reason = f"Could not return to {self.base_branch}: {e}"
            print(f"Warning: {self.halted_reason}", file=sys.stderr)
            return
        if branch and not keep_branch:
            try:
                self.git.delete_branch(branch)
            except CommandFailedError as e:
                print(f"Warning: Could not delete branch {branch}: {e}", file=sys.stderr)

    # ------------------------------------------------------------------
    # Candidate lifecycle
    # ------------------------------------------------------------------

    def _failed(self, candidate, issues, before=None, after=None, branch=None, backup_id=None) -> RemovalResult:
        return RemovalResult(
            candidate=candidate,
            success=False,
            issues=issues,
            metrics_before=before,
            metrics_after=after,
            branch=branch,
            backup_id=backup_id,
        )

    def process(self, candidate: RemovalCandidate) -> RemovalResult:
        """
        Take one candidate from branch creation to commit or rollback.

        Never raises for a candidate-level problem: every outcome,
        including unexpected errors, is returned as a RemovalResult.
        """
        candidate = parse_candidate(candidate)
        self._advance(RemovalState.PENDING)

        branch = None
        nets: List[str] = []
        backup_id = None
        before = after = None
        committed = False
        result = None

        try:
            if self.git.branch_exists(candidate.branch_name):
                issue = f"Already proposed on branch {candidate.branch_name}; not attempted"
                print(f"Warning: {issue}", file=sys.stderr)
                result = self._failed(candidate, [issue])
                return result

            self.git.create_branch(candidate.branch_name)
            branch = candidate.branch_name
            self._advance(RemovalState.BRANCHED)

            performance = self.monitor.measure()
            code = self.code_metrics()
            self._advance(RemovalState.BASELINE_CAPTURED)

            nets = self.gate.create_safety_nets(self._safety_net_targets(candidate))
            self._advance(RemovalState.SAFETY_NET_CREATED)

            baseline = self.gate.run_tests()
            before = MetricsSnapshot(
                tests=baseline,
                performance=performance.model_copy(update={'test_duration_ms': baseline.duration_ms}),
                code=code,
            )
            if not baseline.passed:
                self.gate.remove_safety_nets(nets)
                print(f"Warning: {ISSUE_BASELINE_FAILING} ({candidate.id})", file=sys.stderr)
                result = self._failed(
                    candidate, [ISSUE_BASELINE_FAILING] + baseline.failure_messages[-1:], before, branch=branch,
                )
                return result
            self._advance(RemovalState.BASELINE_TESTS_OK)

            touched = self.touched_files(candidate)
            backup_id = self.backups.create(candidate, touched)
            self._advance(RemovalState.BACKED_UP)

            self.remove(candidate, touched)
            if not self.backups.changed_files(backup_id):
                self.gate.remove_safety_nets(nets)
                self._advance(RemovalState.ROLLED_BACK)
                print(f"Warning: {ISSUE_NO_CHANGES} ({candidate.id})", file=sys.stderr)
                result = self._failed(candidate, [ISSUE_NO_CHANGES], before, branch=branch, backup_id=backup_id)
                return result
            self._advance(RemovalState.CODE_REMOVED)

            post = self.gate.verify_post_removal()
            after = MetricsSnapshot(tests=post, performance=self.monitor.measure(post), code=self.code_metrics())
            self._advance(RemovalState.POST_TESTS_RUN)

            outcome = self.validator.validate_removal(before, after, post)
            self._advance(RemovalState.VALIDATED)

            if outcome.safe:
                revision = self.git.commit(commit_message(candidate), touched + nets)
                committed = True
                self._advance(RemovalState.COMMITTED)
                print(f"Committed {candidate.kind} {candidate.id} as {revision[:12]}", file=sys.stderr)
                result = RemovalResult(
                    candidate=candidate,
                    success=True,
                    metrics_before=before,
                    metrics_after=after,
                    rollback_reference=revision,
                    branch=branch,
                    backup_id=backup_id,
                )
                self._request_review(candidate, revision)
                return result

            self.backups.restore(backup_id)
            self.gate.remove_safety_nets(nets)
            self._advance(RemovalState.ROLLED_BACK)
            print(f"Rolled back {candidate.id}: {'; '.join(outcome.issues)}", file=sys.stderr)
            result = self._failed(candidate, outcome.issues, before, after, branch, backup_id)
            return result

        except Exception as e:
            if committed and result is not None:
                print(f"Warning: Post-commit step failed for {candidate.id}: {e}", file=sys.stderr)
                return result
            issues = [f"Unexpected error: {e}"]
            rollback_issue = self._emergency_rollback()
            if rollback_issue:
                issues.append(rollback_issue)
            result = self._failed(candidate, issues, before, after, branch, backup_id)
            return result

        finally:
            if branch is not None:
                self._return_to_base(branch, keep_branch=committed)
            if result is not None:
                self.history.append(result)

    def run(self, candidates: Iterable[RemovalCandidate]) -> List[RemovalResult]:
        """
        Process candidates strictly serially in ascending risk order.

        Returns:
            Exactly one RemovalResult per candidate
        """
        ordered = sort_by_risk(parse_candidate(c) for c in candidates)
        results = []
        for index, candidate in enumerate(ordered, start=1):
            if self.stop_requested:
                reason = f"Not attempted: {self.halted_reason}" if self.halted_reason else ISSUE_STOPPED
                results.append(self._failed(candidate, [reason]))
                continue
            print(
                f"[{index}/{len(ordered)}] {candidate.kind} {candidate.id} ({candidate.risk.value} risk)",
                file=sys.stderr,
            )
            results.append(self.process(candidate))
        return results
