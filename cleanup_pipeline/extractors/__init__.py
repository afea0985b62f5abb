"""
Block extraction from parsed source files
"""

from .extract_blocks import (
    BlockExtractor,
    ExtractionResult,
    PythonAstProvider,
    SyntaxTreeProvider,
    calculate_complexity,
    extract_blocks,
    hash_content,
    normalize_content,
)

__all__ = [
    'BlockExtractor',
    'ExtractionResult',
    'PythonAstProvider',
    'SyntaxTreeProvider',
    'calculate_complexity',
    'extract_blocks',
    'hash_content',
    'normalize_content',
]
