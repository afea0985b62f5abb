"""
External process execution.

Every external tool the pipeline drives (test runner, build, type check,
lint autofix, git, review requests) goes through a ProcessRunner so the
control flow can be exercised with a scripted runner in tests. Calls are
blocking and no timeout is enforced: a hung tool hangs the pipeline.
"""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import psutil

from ..config import config
from ..constants import ProcessDefaults
from .timing import Stopwatch


class CommandFailedError(Exception):
    """An external command was missing or exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = '') -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else 'no output'
        super().__init__(f"{' '.join(self.command)} exited with {returncode}: {detail}")


@dataclass
class ProcessResult:
    """Captured outcome of one external command."""

    args: List[str]
    returncode: int
    stdout: str = ''
    stderr: str = ''
    duration_ms: float = 0.0
    peak_memory_bytes: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self) -> ProcessResult:
        """Raise CommandFailedError unless the command succeeded."""
        if not self.ok:
            raise CommandFailedError(self.args, self.returncode, self.stderr)
        return self


class ProcessRunner(Protocol):
    """Capability for running one external command to completion."""

    def run(
        self,
        args: Sequence[str],
        cwd: Path,
        check: bool = False,
        track_memory: bool = False,
    ) -> ProcessResult:
        ...


def _tree_rss(proc: psutil.Process) -> int:
    """Resident memory of a process and all of its children."""
    total = 0
    try:
        total += proc.memory_info().rss
        for child in proc.children(recursive=True):
            try:
                total += child.memory_info().rss
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        pass
    return total


class SubprocessRunner:
    """ProcessRunner backed by psutil.Popen.

    When track_memory is set, resident memory of the child process tree is
    sampled while waiting and the peak is reported in the result.
    """

    def __init__(self, sample_interval: float = ProcessDefaults.MEMORY_SAMPLE_INTERVAL_S) -> None:
        self.sample_interval = sample_interval

    def run(
        self,
        args: Sequence[str],
        cwd: Path,
        check: bool = False,
        track_memory: bool = False,
    ) -> ProcessResult:
        args = [str(a) for a in args]
        if config.DEBUG:
            print(f"DEBUG: running {' '.join(args)} (cwd={cwd})", file=sys.stderr)

        peak = 0
        stdout, stderr = '', ''
        with Stopwatch() as stopwatch:
            try:
                proc = psutil.Popen(
                    args,
                    cwd=str(cwd),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                )
            except FileNotFoundError as e:
                raise CommandFailedError(args, ProcessDefaults.MISSING_EXECUTABLE_RETURNCODE, str(e)) from e

            while True:
                try:
                    stdout, stderr = proc.communicate(timeout=self.sample_interval if track_memory else None)
                    break
                except subprocess.TimeoutExpired:
                    peak = max(peak, _tree_rss(proc))

        result = ProcessResult(
            args=args,
            returncode=proc.returncode,
            stdout=stdout or '',
            stderr=stderr or '',
            duration_ms=stopwatch.elapsed_ms,
            peak_memory_bytes=peak,
        )

        if config.DEBUG:
            print(
                f"DEBUG: {args[0]} exited {result.returncode} in {result.duration_ms:.0f}ms",
                file=sys.stderr,
            )

        if check:
            result.check()
        return result


def tail(text: str, lines: int = 20) -> List[str]:
    """Last non-empty lines of captured output, for failure messages."""
    kept = [line for line in text.splitlines() if line.strip()]
    return kept[-lines:]


def describe(args: Optional[Sequence[str]]) -> str:
    return ' '.join(args) if args else '(not configured)'
