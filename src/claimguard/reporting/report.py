"""
Audit Report Encoding.
Projects an AuditResult into a two-sheet tabular report and text/JSON renderings.
"""

import io
import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from ..core.models import AnomalyCategory, AuditResult, Decision, ItemStatus

SUMMARY_SHEET = "Audit Summary"
LINE_ITEM_SHEET = "Line Item Analysis"

SUMMARY_COLUMNS = ["Field", "Value"]
LINE_ITEM_COLUMNS = ["Service Name", "Billed Amount", "Standard Amount", "Status", "Reasoning"]

COLUMN_WIDTHS = {
    SUMMARY_SHEET: [25, 60],
    LINE_ITEM_SHEET: [30, 15, 15, 15, 60],
}

EXCEL_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class FinancialBreakdown:
    """Approved vs deducted split of the billed amount."""

    total_billed: Decimal
    approved: Decimal
    deducted: Decimal

    @classmethod
    def from_result(cls, result: AuditResult) -> "FinancialBreakdown":
        return cls(
            total_billed=result.total_billed_amount,
            approved=result.final_approved_amount,
            deducted=result.total_billed_amount - result.final_approved_amount,
        )

    @property
    def approval_rate(self) -> float:
        """Approved share of the billed amount, in percent."""
        if not self.total_billed:
            return 0.0
        return float(self.approved / self.total_billed * 100)


@dataclass
class AuditReport:
    """Tabular report: one summary sheet and one line-item sheet."""

    summary: pd.DataFrame
    line_items: pd.DataFrame

    def sheets(self) -> dict[str, pd.DataFrame]:
        return {SUMMARY_SHEET: self.summary, LINE_ITEM_SHEET: self.line_items}

    def summary_value(self, label: str) -> Any:
        matches = self.summary.loc[self.summary["Field"] == label, "Value"]
        if matches.empty:
            raise KeyError(label)
        return matches.iloc[0]


@dataclass(frozen=True)
class ReportDigest:
    """Key figures recovered from an encoded report."""

    decision: Decision
    total_billed: Decimal
    final_approved: Decimal
    item_count: int


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def encode(result: AuditResult) -> AuditReport:
    """
    Encode an AuditResult as a tabular report.

    Row order follows the result; nothing is re-sorted.
    """
    breakdown = FinancialBreakdown.from_result(result)
    checks = result.policy_check
    summary_rows = [
        ("Claim ID", result.claim_id),
        ("Audit Date", result.audit_timestamp.date().isoformat()),
        ("Overall Decision", result.decision.value),
        ("Confidence Score", result.confidence_score),
        ("Total Billed Amount", float(breakdown.total_billed)),
        ("Final Approved Amount", float(breakdown.approved)),
        ("Deducted Amount", float(breakdown.deducted)),
        ("Summary", result.summary),
        ("Limit Met", _yes_no(checks.limit_met)),
        ("Exclusions Found", _yes_no(checks.exclusions_found)),
        ("Waiting Period Served", _yes_no(checks.waiting_period_met)),
        ("Pre-Auth Valid", _yes_no(checks.pre_auth_valid)),
    ]
    item_rows = [
        (
            item.item_name,
            float(item.billed_amount),
            float(item.standard_amount),
            item.status.value,
            item.reasoning,
        )
        for item in result.item_analysis
    ]
    return AuditReport(
        summary=pd.DataFrame(summary_rows, columns=SUMMARY_COLUMNS),
        line_items=pd.DataFrame(item_rows, columns=LINE_ITEM_COLUMNS),
    )


def report_filename(result: AuditResult) -> str:
    return f"Audit_Report_{result.audit_timestamp.date().isoformat()}.xlsx"


def to_excel(report: AuditReport) -> bytes:
    """Write the report as an xlsx workbook."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, frame in report.sheets().items():
            frame.to_excel(writer, sheet_name=name, index=False)
            worksheet = writer.sheets[name]
            for col_num, width in enumerate(COLUMN_WIDTHS[name], 1):
                worksheet.column_dimensions[get_column_letter(col_num)].width = width
    return buffer.getvalue()


def read_excel(data: bytes) -> AuditReport:
    """Read back a workbook written by :func:`to_excel`."""
    sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, engine="openpyxl")
    return AuditReport(summary=sheets[SUMMARY_SHEET], line_items=sheets[LINE_ITEM_SHEET])


def digest(report: AuditReport) -> ReportDigest:
    return ReportDigest(
        decision=Decision(report.summary_value("Overall Decision")),
        total_billed=Decimal(str(report.summary_value("Total Billed Amount"))),
        final_approved=Decimal(str(report.summary_value("Final Approved Amount"))),
        item_count=len(report.line_items),
    )


class AuditReportFormatter:
    """
    Formats audit results for text and JSON output.
    """

    STATUS_ICONS = {
        ItemStatus.OK: "✓",
        ItemStatus.OVERPRICED: "▲",
        ItemStatus.DENIED: "✗",
        ItemStatus.PARTIAL: "◐",
    }

    def __init__(self, result: AuditResult) -> None:
        self.result = result
        self.breakdown = FinancialBreakdown.from_result(result)

    def to_text(self, include_details: bool = True) -> str:
        """
        Format the result as a plain text report.

        Args:
            include_details: Whether to include per-item analysis

        Returns:
            Formatted text report
        """
        result = self.result
        lines: list[str] = []

        lines.append("=" * 70)
        lines.append("MEDICAL CLAIM AUDIT REPORT")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Claim ID: {result.claim_id}")
        lines.append(f"Audit Date: {result.audit_timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"Decision: {result.decision.value}")
        lines.append(f"Confidence: {result.confidence_score:.0f}%")
        lines.append("")

        lines.append("-" * 70)
        lines.append("FINANCIAL SUMMARY")
        lines.append("-" * 70)
        lines.append(f"Total Billed: {self.breakdown.total_billed:,.2f}")
        lines.append(f"Final Approved: {self.breakdown.approved:,.2f}")
        lines.append(f"Deducted: {self.breakdown.deducted:,.2f}")
        lines.append(f"Approval Rate: {self.breakdown.approval_rate:.1f}%")
        lines.append("")
        lines.append(result.summary)
        lines.append("")

        checks = result.policy_check
        lines.append("-" * 70)
        lines.append("POLICY CHECKS")
        lines.append("-" * 70)
        lines.append(f"Room Rent Limit Met: {_yes_no(checks.limit_met)}")
        lines.append(f"Exclusions Found: {_yes_no(checks.exclusions_found)}")
        lines.append(f"Waiting Period Served: {_yes_no(checks.waiting_period_met)}")
        lines.append(f"Pre-Auth Valid: {_yes_no(checks.pre_auth_valid)}")
        lines.append("")

        if result.rejection_reasons:
            lines.append("Rejection Reasons:")
            lines.extend(f"  - {reason}" for reason in result.rejection_reasons)
            lines.append("")
        if result.correction_steps:
            lines.append("Correction Steps:")
            lines.extend(f"  {i}. {step}" for i, step in enumerate(result.correction_steps, 1))
            lines.append("")

        if include_details and result.item_analysis:
            lines.append("-" * 70)
            lines.append("LINE ITEM ANALYSIS")
            lines.append("-" * 70)
            for item in result.item_analysis:
                lines.append(
                    f"{self.STATUS_ICONS.get(item.status, '•')} [{item.status.value}] "
                    f"{item.item_name}: billed {item.billed_amount:,.2f}, "
                    f"standard {item.standard_amount:,.2f}"
                )
                if item.flagged_anomaly not in (None, AnomalyCategory.NONE):
                    lines.append(f"   Anomaly: {item.flagged_anomaly.value}")
                if item.reasoning:
                    lines.append(f"   {item.reasoning}")
            lines.append("")

        lines.append("=" * 70)
        lines.append("END OF REPORT")
        lines.append("=" * 70)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        data = self.result.model_dump(mode="json")
        data["financial_breakdown"] = {
            "total_billed": float(self.breakdown.total_billed),
            "approved": float(self.breakdown.approved),
            "deducted": float(self.breakdown.deducted),
            "approval_rate": self.breakdown.approval_rate,
        }
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
