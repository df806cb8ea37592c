"""
Markdown rendering of the change report.
"""

from .markdown import Report, ReportOptions, ReportSection, build_report  # noqa: F401
