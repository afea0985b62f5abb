"""
Project-wide reference scanning for dead code and unused imports/modules.
"""

from .dead_code import (
    ReferenceReport,
    find_companion_files,
    find_dead_code,
    find_redundant_imports,
    find_unused_components,
    module_name,
    scan_references,
)

__all__ = [
    'ReferenceReport',
    'find_companion_files',
    'find_dead_code',
    'find_redundant_imports',
    'find_unused_components',
    'module_name',
    'scan_references',
]
