"""
Code Cleanup Pipeline

Scans a Python source tree for duplicate and dead code, classifies the
risk of removing each finding, and removes it one candidate at a time
behind the project's own tests, with file backups and automatic
rollback.

    from cleanup_pipeline import CleanupOrchestrator, PipelineOptions

    run = CleanupOrchestrator('path/to/project').run(PipelineOptions(dry_run=True))
"""

from .models import PipelineOptions, PipelineRunResult, RiskLevel
from .pipeline import CleanupOrchestrator, PipelineAbortedError

__version__ = '1.0.0'

__all__ = [
    'CleanupOrchestrator',
    'PipelineAbortedError',
    'PipelineOptions',
    'PipelineRunResult',
    'RiskLevel',
]
