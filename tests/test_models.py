"""
Tests for core data models.
"""

from decimal import Decimal

import pytest

from claimguard.core.errors import ValidationError
from claimguard.core.models import (
    AnomalyCategory,
    AuditResult,
    BillItem,
    Claim,
    Decision,
    ItemAnalysis,
    Patient,
    Policy,
)
from claimguard.core.presets import sample_patient, sample_policy


def _result(**overrides) -> dict:
    data = {
        "claim_id": "CLM-1",
        "decision": "PARTIAL_APPROVAL",
        "confidence_score": 90,
        "total_billed_amount": 35500,
        "final_approved_amount": 28000,
        "summary": "Partially payable",
        "policy_check": {
            "limit_met": False,
            "exclusions_found": False,
            "waiting_period_met": True,
            "pre_auth_valid": True,
        },
    }
    data.update(overrides)
    return data


class TestBillItem:
    """Tests for BillItem model."""

    def test_total_calculation(self) -> None:
        item = BillItem.create(id="1", service_name="Room Rent", quantity=3, unit_price=Decimal("7500"))
        assert item.total_price == Decimal("22500")

    def test_explicit_total(self) -> None:
        """Import paths may supply the total directly."""
        item = BillItem.create(
            id="1", service_name="Package", quantity=2, unit_price=Decimal("100"), total_price=Decimal("150")
        )
        assert item.total_price == Decimal("150")

    def test_quantity_below_one_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            BillItem.create(id="1", service_name="Room Rent", quantity=0, unit_price=Decimal("10"))
        assert "quantity" in exc_info.value.fields

    def test_items_are_immutable(self) -> None:
        item = BillItem.create(id="1", service_name="Room Rent", quantity=1, unit_price=Decimal("10"))
        with pytest.raises(Exception):
            item.quantity = 5


class TestPatientAndPolicy:
    """Tests for Patient and Policy models."""

    def test_negative_age_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Patient.create(sample_patient(), age=-1)
        assert exc_info.value.fields == ["age"]

    def test_blank_text_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Patient.create(sample_patient(), name="   ")
        assert "name" in exc_info.value.fields

    def test_remaining_cannot_exceed_sum_insured(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Policy.create(sample_policy(), remaining_sum_insured=Decimal("600000"))
        assert exc_info.value.fields == ["remaining_sum_insured"]

    def test_copay_range(self) -> None:
        with pytest.raises(ValidationError):
            Policy.create(sample_policy(), copay_percentage=Decimal("101"))


class TestClaim:
    """Tests for Claim model."""

    def test_items_total_independent_of_declared_total(self) -> None:
        claim = Claim.create(
            claim_id="CLM-1",
            auditor_name="System Admin",
            total_claim_amount=Decimal("40000"),
            patient=sample_patient(),
            policy=sample_policy(),
            bill_items=[
                {"id": "1", "service_name": "Room Rent", "quantity": 3, "unit_price": 7500},
                {"id": "2", "service_name": "Consultation", "quantity": 1, "unit_price": 2000},
            ],
        )
        assert claim.total_claim_amount == Decimal("40000")
        assert claim.items_total == Decimal("24500")

    def test_duplicate_item_ids_rejected(self) -> None:
        row = {"id": "1", "service_name": "Room Rent", "quantity": 1, "unit_price": 100}
        with pytest.raises(ValidationError) as exc_info:
            Claim.create(
                claim_id="CLM-1",
                auditor_name="System Admin",
                total_claim_amount=Decimal("200"),
                patient=sample_patient(),
                policy=sample_policy(),
                bill_items=[row, row],
            )
        assert exc_info.value.fields == ["bill_items.1.id"]


class TestItemAnalysis:
    def test_remarks_alias(self) -> None:
        analysis = ItemAnalysis.create(
            item_id="1",
            item_name="Masks",
            billed_amount=2000,
            standard_amount=0,
            status="DENIED",
            remarks="Non-medical expense",
            flagged_anomaly="NME_Exclusion",
        )
        assert analysis.reasoning == "Non-medical expense"
        assert analysis.flagged_anomaly is AnomalyCategory.NME_EXCLUSION


class TestAuditResult:
    """Decision/amount invariants."""

    def test_partial_approval_valid(self) -> None:
        result = AuditResult.create(_result())
        assert result.decision is Decision.PARTIAL_APPROVAL
        assert result.final_approved_amount == Decimal("28000")

    def test_approved_with_partial_amount_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            AuditResult.create(_result(decision="APPROVED"))
        assert exc_info.value.fields == ["final_approved_amount"]

    def test_approved_requires_no_rejection_reasons(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            AuditResult.create(
                _result(decision="APPROVED", final_approved_amount=35500, rejection_reasons=["x"])
            )
        assert exc_info.value.fields == ["rejection_reasons"]

    def test_rejected_requires_zero(self) -> None:
        with pytest.raises(ValidationError):
            AuditResult.create(_result(decision="REJECTED", final_approved_amount=150))

    @pytest.mark.parametrize("approved", [0, 35500])
    def test_partial_requires_strictly_between(self, approved: int) -> None:
        with pytest.raises(ValidationError):
            AuditResult.create(_result(final_approved_amount=approved))

    def test_approved_cannot_exceed_billed(self) -> None:
        with pytest.raises(ValidationError):
            AuditResult.create(_result(final_approved_amount=40000))

    def test_negative_approved_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AuditResult.create(_result(decision="REJECTED", final_approved_amount=-1))

    def test_confidence_range(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            AuditResult.create(_result(confidence_score=120))
        assert exc_info.value.fields == ["confidence_score"]
