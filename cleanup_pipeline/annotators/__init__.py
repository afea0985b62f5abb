"""
Risk annotation for duplicate groups and removal candidates.
"""

from .risk_classifier import RiskClassifier, is_test_file, near_duplicate_recommendation

__all__ = ['RiskClassifier', 'is_test_file', 'near_duplicate_recommendation']
