"""
Timing utilities for pipeline phases and external commands.

Phase durations are collected per run and printed when PIPELINE_DEBUG=1
is set; the Stopwatch is also what external-process and build timings
are measured with.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class PhaseTiming:
    """Accumulated durations for one named phase or command.

    Attributes:
        name: Phase or command label
        total_ms: Cumulative time in milliseconds
        count: Number of recorded durations
        max_ms: Longest recorded duration
    """

    name: str
    total_ms: float = 0.0
    count: int = 0
    max_ms: float = 0.0

    def record(self, duration_ms: float) -> None:
        self.total_ms += duration_ms
        self.count += 1
        self.max_ms = max(self.max_ms, duration_ms)

    @property
    def avg_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'name': self.name,
            'total_ms': round(self.total_ms, 2),
            'count': self.count,
            'avg_ms': round(self.avg_ms, 2),
            'max_ms': round(self.max_ms, 2),
        }


@dataclass
class TimingLog:
    """Ordered collection of PhaseTiming entries for one pipeline run."""

    phases: Dict[str, PhaseTiming] = field(default_factory=dict)

    def get(self, name: str) -> PhaseTiming:
        if name not in self.phases:
            self.phases[name] = PhaseTiming(name)
        return self.phases[name]

    def to_dict(self) -> dict:
        return {name: timing.to_dict() for name, timing in self.phases.items()}


class Stopwatch:
    """Context manager measuring wall-clock time in milliseconds.

    Usage:
        log = TimingLog()
        with Stopwatch(log.get('analysis')):
            run_analysis()

        with Stopwatch() as sw:
            run_build()
        print(f"Build took {sw.elapsed_ms}ms")
    """

    def __init__(self, timing: PhaseTiming | None = None) -> None:
        self._timing = timing
        self._start_time: float = 0.0
        self._elapsed_ms: float = 0.0

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds (final once the block has exited)."""
        return self._elapsed_ms

    def __enter__(self) -> Stopwatch:
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self._elapsed_ms = (time.perf_counter() - self._start_time) * 1000
        if self._timing is not None:
            self._timing.record(self._elapsed_ms)
