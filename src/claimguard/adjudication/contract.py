"""
Adjudication request/response contract.

The request is a field-for-field serialization of a Claim. The response is
validated against every AuditResult invariant before it is accepted.
"""

import logging
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..core.errors import AdjudicationContractError, ValidationError, Violation
from ..core.models import AuditResult, BillItem, Claim

logger = logging.getLogger(__name__)


def _amount(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _serialize_item(item: BillItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "service_name": item.service_name,
        "quantity": item.quantity,
        "unit_price": _amount(item.unit_price),
        "total_price": _amount(item.total_price),
        "reference_price": _amount(item.reference_price),
        "category": item.category,
    }


def build_request(claim: Claim) -> dict[str, Any]:
    """
    Serialize a Claim into the adjudication request.

    Both the declared total and the item total are sent so the adjudicator
    can reconcile them.
    """
    patient = claim.patient
    policy = claim.policy
    return {
        "claim_id": claim.claim_id,
        "auditor_name": claim.auditor_name,
        "created_at": claim.created_at.isoformat(),
        "total_claim_amount": _amount(claim.total_claim_amount),
        "bill_items_total": _amount(claim.items_total),
        "patient": {
            "name": patient.name,
            "age": patient.age,
            "gender": patient.gender.value,
            "diagnosis_code": patient.diagnosis_code,
            "procedure_code": patient.procedure_code,
            "admission_type": patient.admission_type.value,
            "length_of_stay": patient.length_of_stay,
        },
        "policy": {
            "policy_number": policy.policy_number,
            "provider_name": policy.provider_name,
            "sum_insured": _amount(policy.sum_insured),
            "remaining_sum_insured": _amount(policy.remaining_sum_insured),
            "copay_percentage": _amount(policy.copay_percentage),
            "waiting_period_served": policy.waiting_period_served,
            "pre_auth_status": policy.pre_auth_status.value,
            "room_rent_limit": _amount(policy.room_rent_limit),
            "exclusions": policy.exclusions,
        },
        "bill_items": [_serialize_item(item) for item in claim.bill_items],
    }


def _coverage_violations(claim: Claim, result: AuditResult) -> list[Violation]:
    submitted = Counter(claim.item_ids)
    analysed = Counter(result.item_ids)
    violations = []
    for item_id in sorted(submitted - analysed):
        violations.append(Violation("item_analysis", f"missing analysis for item '{item_id}'"))
    for item_id in sorted(analysed - submitted):
        count = analysed[item_id]
        if item_id in submitted:
            violations.append(
                Violation("item_analysis", f"item '{item_id}' analysed {count} times")
            )
        else:
            violations.append(Violation("item_analysis", f"unknown item '{item_id}'"))
    return violations


def parse_response(payload: Any, claim: Claim, received_at: datetime) -> AuditResult:
    """
    Validate an adjudication response and map it into an AuditResult.

    The claim id and audit timestamp are stamped when the collaborator did
    not supply them.

    Raises:
        AdjudicationContractError: If the payload is malformed or violates
            an AuditResult invariant.
    """
    if not isinstance(payload, dict):
        raise AdjudicationContractError(
            f"Adjudication response must be an object, got {type(payload).__name__}",
            payload=payload,
        )

    returned_id = payload.get("claim_id")
    if returned_id not in (None, "") and returned_id != claim.claim_id:
        raise AdjudicationContractError(
            "Adjudication response does not match the submitted claim",
            [Violation("claim_id", f"expected '{claim.claim_id}', got '{returned_id}'")],
            payload=payload,
        )

    data = {**payload, "claim_id": claim.claim_id}
    if not data.get("audit_timestamp"):
        data["audit_timestamp"] = received_at

    try:
        result = AuditResult.create(data)
    except ValidationError as exc:
        raise AdjudicationContractError(
            "Adjudication response violates the audit result contract",
            exc.violations,
            payload=payload,
        ) from exc

    violations = _coverage_violations(claim, result)
    if violations:
        raise AdjudicationContractError(
            "Adjudication response does not cover the submitted bill items",
            violations,
            payload=payload,
        )

    if result.total_billed_amount not in (claim.total_claim_amount, claim.items_total):
        logger.warning(
            "Claim %s: adjudicated billed total %s matches neither declared %s nor item total %s",
            claim.claim_id,
            result.total_billed_amount,
            claim.total_claim_amount,
            claim.items_total,
        )
    return result
