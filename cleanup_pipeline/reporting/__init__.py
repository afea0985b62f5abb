"""
Run report rendering (Markdown + JSON).
"""

from .report_generator import ReportGenerator, format_bytes, format_change

__all__ = ['ReportGenerator', 'format_bytes', 'format_change']
