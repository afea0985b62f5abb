"""
Test & coverage gate guarding every removal.
"""

from .coverage import CoverageReport, parse_coverage_data, read_coverage_report
from .coverage_gate import BaselineTestsFailedError, CoverageGate, GateState, GateStateError

__all__ = [
    'BaselineTestsFailedError',
    'CoverageGate',
    'CoverageReport',
    'GateState',
    'GateStateError',
    'parse_coverage_data',
    'read_coverage_report',
]
