"""
Performance measurement for before/after comparison.
"""

from .performance_monitor import PerformanceMonitor

__all__ = ['PerformanceMonitor']
