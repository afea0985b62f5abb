"""
Transactional, test-gated removal of cleanup candidates.
"""

from .backup import BackupError, BackupStore
from .safe_remover import RemovalError, RemovalState, SafeRemover, sort_by_risk
from .validator import RemovalValidator, ValidationOutcome

__all__ = [
    'BackupError',
    'BackupStore',
    'RemovalError',
    'RemovalState',
    'RemovalValidator',
    'SafeRemover',
    'ValidationOutcome',
    'sort_by_risk',
]
