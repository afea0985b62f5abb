"""
Seven-phase cleanup pipeline: analysis, candidate building, selection and
orchestration.
"""

from .analysis import analyze_project
from .candidates import build_candidates, filter_candidates
from .orchestrator import CleanupOrchestrator, PipelineAbortedError
from .selection import CandidateSelector, PromptSelector, SelectAll

__all__ = [
    'CandidateSelector',
    'CleanupOrchestrator',
    'PipelineAbortedError',
    'PromptSelector',
    'SelectAll',
    'analyze_project',
    'build_candidates',
    'filter_candidates',
]
