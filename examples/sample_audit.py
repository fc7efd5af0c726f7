#!/usr/bin/env python3
"""
Sample Audit Script.
Runs the demo claim through ClaimGuard with an offline adjudicator that
prices every line at its reference rate.
"""

import asyncio
import tempfile
from pathlib import Path
from typing import Any

from claimguard import (
    AdjudicationGateway,
    AuditLedger,
    AuditReportFormatter,
    AuditSession,
    ClaimForm,
    JsonFileSlot,
    configure_logging,
    encode,
    to_excel,
)
from claimguard.reporting.report import report_filename


class ReferencePriceAdjudicator:
    """Approves each line up to its reference price; denies non-medical lines."""

    async def adjudicate(self, request: dict[str, Any]) -> dict[str, Any]:
        items = []
        for item in request["bill_items"]:
            billed = item["total_price"]
            if "non-medical" in item["service_name"].lower():
                standard, status, anomaly = 0.0, "DENIED", "NME_Exclusion"
                reasoning = "Non-medical expense excluded by policy"
            elif item["reference_price"] is not None and billed > item["reference_price"] * item["quantity"]:
                standard = item["reference_price"] * item["quantity"]
                status, anomaly = "OVERPRICED", "Price_Variance"
                reasoning = f"Reference rate is {item['reference_price']:,.2f} per unit"
            else:
                standard, status, anomaly = billed, "OK", "None"
                reasoning = "Within reference rates"
            items.append(
                {
                    "item_id": item["id"],
                    "item_name": item["service_name"],
                    "billed_amount": billed,
                    "standard_amount": standard,
                    "status": status,
                    "reasoning": reasoning,
                    "flagged_anomaly": anomaly,
                }
            )

        billed_total = request["bill_items_total"]
        approved = sum(item["standard_amount"] for item in items)
        reasons = [f"{item['item_name']}: {item['reasoning']}" for item in items if item["status"] != "OK"]
        if not reasons:
            decision = "APPROVED"
        elif approved == 0:
            decision = "REJECTED"
        else:
            decision = "PARTIAL_APPROVAL"

        return {
            "claim_id": request["claim_id"],
            "decision": decision,
            "confidence_score": 75,
            "total_billed_amount": billed_total,
            "final_approved_amount": approved,
            "summary": f"{len(reasons)} of {len(items)} line(s) adjusted to reference rates.",
            "rejection_reasons": reasons,
            "correction_steps": ["Resubmit adjusted lines with supporting invoices"] if reasons else [],
            "policy_check": {
                "limit_met": all(
                    item["unit_price"] <= (request["policy"]["room_rent_limit"] or item["unit_price"])
                    for item in request["bill_items"]
                    if "room" in item["service_name"].lower()
                ),
                "exclusions_found": any(item["status"] == "DENIED" for item in items),
                "waiting_period_met": True,
                "pre_auth_valid": request["policy"]["pre_auth_status"] == "APPROVED",
            },
            "item_analysis": items,
        }


async def run(output_dir: Path) -> None:
    ledger = AuditLedger(JsonFileSlot(output_dir / "audit_history.json"))
    await ledger.load()
    session = AuditSession(
        AdjudicationGateway(ReferencePriceAdjudicator()),
        ledger,
        form=ClaimForm.sample(),
    )

    print(f"Auditing Claim: {session.form.claim_id}")
    print(f"Claim Total: {session.form.displayed_total:,.2f}")
    print(f"Line Items: {len(session.form.bill_items)}")
    print()

    result = await session.submit()
    print(AuditReportFormatter(result).to_text())

    report_path = output_dir / report_filename(result)
    report_path.write_bytes(to_excel(encode(result)))
    print()
    print(f"Excel report written to {report_path}")
    print(f"History now holds {len(ledger)} audit(s)")


def main() -> None:
    """Run sample audit demonstration."""
    configure_logging("WARNING")
    print("=" * 70)
    print("CLAIMGUARD - SAMPLE AUDIT")
    print("=" * 70)
    print()
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(run(Path(tmp)))


if __name__ == "__main__":
    main()
