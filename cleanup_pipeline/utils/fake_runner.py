"""
Scripted ProcessRunner for tests.

Lets the gate, remover and orchestrator be exercised without invoking
git, a real test suite or any other external tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .process import CommandFailedError, ProcessResult

Effect = Callable[[List[str], Path], Optional[ProcessResult]]


@dataclass
class _Handler:
    prefix: Tuple[str, ...]
    returncode: int = 0
    stdout: str = ''
    stderr: str = ''
    duration_ms: float = 0.0
    peak_memory_bytes: int = 0
    effect: Optional[Effect] = None


@dataclass
class FakeRunner:
    """Records every command and answers from registered handlers.

    The most recently registered handler whose prefix matches the start of
    the command wins; unmatched commands succeed with empty output. An
    effect callback may touch files (e.g. write a coverage summary) and may
    return a ProcessResult to override the scripted one.
    """

    handlers: List[_Handler] = field(default_factory=list)
    calls: List[List[str]] = field(default_factory=list)

    def on(self, *prefix: str, **kwargs) -> FakeRunner:
        self.handlers.append(_Handler(prefix=tuple(prefix), **kwargs))
        return self

    def run(
        self,
        args: Sequence[str],
        cwd: Path,
        check: bool = False,
        track_memory: bool = False,
    ) -> ProcessResult:
        args = [str(a) for a in args]
        self.calls.append(args)

        result = ProcessResult(args=args, returncode=0)
        for handler in reversed(self.handlers):
            if tuple(args[:len(handler.prefix)]) == handler.prefix:
                result = ProcessResult(
                    args=args,
                    returncode=handler.returncode,
                    stdout=handler.stdout,
                    stderr=handler.stderr,
                    duration_ms=handler.duration_ms,
                    peak_memory_bytes=handler.peak_memory_bytes,
                )
                if handler.effect is not None:
                    override = handler.effect(args, Path(cwd))
                    if override is not None:
                        result = override
                break

        if check and not result.ok:
            raise CommandFailedError(args, result.returncode, result.stderr)
        return result

    def calls_to(self, *prefix: str) -> List[List[str]]:
        return [call for call in self.calls if tuple(call[:len(prefix)]) == prefix]
