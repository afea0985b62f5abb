"""
Similarity calculation and grouping for duplicate detection
"""

from .grouping import calculate_savings, find_exact_duplicates, find_near_duplicates, group_by_similarity
from .structural import calculate_token_similarity, pair_key, tokenize

__all__ = [
    'calculate_savings',
    'calculate_token_similarity',
    'find_exact_duplicates',
    'find_near_duplicates',
    'group_by_similarity',
    'pair_key',
    'tokenize',
]
