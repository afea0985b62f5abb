"""
Utility modules for the cleanup pipeline.

Provides timing helpers, external process execution and the git wrapper.
"""

from .git import GitRepository
from .process import CommandFailedError, ProcessResult, ProcessRunner, SubprocessRunner
from .timing import PhaseTiming, Stopwatch, TimingLog

__all__ = [
    'CommandFailedError',
    'GitRepository',
    'PhaseTiming',
    'ProcessResult',
    'ProcessRunner',
    'Stopwatch',
    'SubprocessRunner',
    'TimingLog',
]
