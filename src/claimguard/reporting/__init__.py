"""
Reporting modules for audit results.
"""

from .report import (
    AuditReport,
    AuditReportFormatter,
    FinancialBreakdown,
    ReportDigest,
    digest,
    encode,
    read_excel,
    report_filename,
    to_excel,
)

__all__ = [
    "AuditReport",
    "AuditReportFormatter",
    "FinancialBreakdown",
    "ReportDigest",
    "digest",
    "encode",
    "read_excel",
    "report_filename",
    "to_excel",
]
