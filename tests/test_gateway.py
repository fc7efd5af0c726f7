"""
Tests for the adjudication contract and gateway.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from claimguard.adjudication.contract import build_request, parse_response
from claimguard.adjudication.gateway import AdjudicationGateway
from claimguard.core.errors import (
    AdjudicationContractError,
    SubmissionInProgressError,
    TransportError,
)
from claimguard.core.models import Claim, Decision
from conftest import FakeAdjudicator, make_response

RECEIVED_AT = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


class TestBuildRequest:
    """Tests for request serialization."""

    def test_carries_both_totals(self, sample_claim: Claim) -> None:
        request = build_request(sample_claim.model_copy(update={"total_claim_amount": Decimal("40000")}))
        assert request["total_claim_amount"] == 40000.0
        assert request["bill_items_total"] == 35500.0

    def test_field_for_field_mapping(self, sample_claim: Claim) -> None:
        request = build_request(sample_claim)
        assert request["claim_id"] == "CLM-TEST0001"
        assert request["patient"]["diagnosis_code"] == "J18.9"
        assert request["patient"]["gender"] == "Male"
        assert request["policy"]["pre_auth_status"] == "APPROVED"
        assert [item["id"] for item in request["bill_items"]] == ["1", "2", "3", "4"]
        assert request["bill_items"][0]["total_price"] == 22500.0


class TestParseResponse:
    """Every AuditResult invariant is enforced at the boundary."""

    def _parse(self, claim: Claim, **overrides):
        payload = make_response(build_request(claim), **overrides)
        return parse_response(payload, claim, received_at=RECEIVED_AT)

    def test_valid_response_is_stamped(self, sample_claim: Claim) -> None:
        result = self._parse(sample_claim)
        assert result.claim_id == sample_claim.claim_id
        assert result.audit_timestamp == RECEIVED_AT
        assert result.decision is Decision.PARTIAL_APPROVAL
        assert result.item_ids == sample_claim.item_ids

    def test_supplied_timestamp_kept(self, sample_claim: Claim) -> None:
        result = self._parse(sample_claim, audit_timestamp="2026-01-02T03:04:05+00:00")
        assert result.audit_timestamp == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_approved_with_partial_amount_rejected(self, sample_claim: Claim) -> None:
        """35,500 billed with 28,000 approved can only be PARTIAL_APPROVAL."""
        with pytest.raises(AdjudicationContractError) as exc_info:
            self._parse(sample_claim, decision="APPROVED", rejection_reasons=[])
        assert exc_info.value.violations[0].field == "final_approved_amount"

    def test_rejected_with_nonzero_amount_rejected(self, sample_claim: Claim) -> None:
        with pytest.raises(AdjudicationContractError):
            self._parse(sample_claim, decision="REJECTED", final_approved_amount=150)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"decision": "APPROVED", "final_approved_amount": 35500, "rejection_reasons": ["x"]},
            {"decision": "APPROVED", "final_approved_amount": 35000, "rejection_reasons": []},
            {"decision": "REJECTED", "final_approved_amount": 1},
            {"final_approved_amount": 0},
            {"final_approved_amount": 35500},
            {"final_approved_amount": 36000},
            {"final_approved_amount": -5},
            {"confidence_score": 101},
            {"decision": "MAYBE"},
            {"policy_check": {"limit_met": True}},
            {"summary": None},
        ],
    )
    def test_each_invariant_violation_rejected(self, sample_claim: Claim, overrides: dict) -> None:
        with pytest.raises(AdjudicationContractError):
            self._parse(sample_claim, **overrides)

    def test_valid_approved_and_rejected(self, sample_claim: Claim) -> None:
        approved = self._parse(
            sample_claim, decision="APPROVED", final_approved_amount=35500, rejection_reasons=[]
        )
        rejected = self._parse(sample_claim, decision="REJECTED", final_approved_amount=0)
        assert approved.final_approved_amount == approved.total_billed_amount
        assert rejected.final_approved_amount == 0

    def test_dropped_item_rejected(self, sample_claim: Claim) -> None:
        request = build_request(sample_claim)
        payload = make_response(request)
        payload["item_analysis"] = payload["item_analysis"][:-1]
        with pytest.raises(AdjudicationContractError) as exc_info:
            parse_response(payload, sample_claim, received_at=RECEIVED_AT)
        assert "missing analysis for item '4'" in str(exc_info.value)

    def test_unknown_and_duplicate_items_rejected(self, sample_claim: Claim) -> None:
        payload = make_response(build_request(sample_claim))
        payload["item_analysis"][1] = {**payload["item_analysis"][0]}
        payload["item_analysis"][2] = {**payload["item_analysis"][2], "item_id": "zzz"}
        with pytest.raises(AdjudicationContractError) as exc_info:
            parse_response(payload, sample_claim, received_at=RECEIVED_AT)
        message = str(exc_info.value)
        assert "item '1' analysed 2 times" in message
        assert "unknown item 'zzz'" in message

    def test_foreign_claim_id_rejected(self, sample_claim: Claim) -> None:
        with pytest.raises(AdjudicationContractError):
            self._parse(sample_claim, claim_id="CLM-OTHER")

    def test_non_object_payload_rejected(self, sample_claim: Claim) -> None:
        with pytest.raises(AdjudicationContractError):
            parse_response(["not", "an", "object"], sample_claim, received_at=RECEIVED_AT)


class TestAdjudicationGateway:
    """Tests for AdjudicationGateway.submit."""

    @pytest.mark.asyncio
    async def test_submit_returns_validated_result(
        self, sample_claim: Claim, fake_adjudicator: FakeAdjudicator
    ) -> None:
        gateway = AdjudicationGateway(fake_adjudicator, clock=lambda: RECEIVED_AT)
        result = await gateway.submit(sample_claim)

        assert result.claim_id == sample_claim.claim_id
        assert result.audit_timestamp == RECEIVED_AT
        assert len(fake_adjudicator.requests) == 1
        assert not gateway.in_flight

    @pytest.mark.asyncio
    async def test_resubmission_is_independent(
        self, sample_claim: Claim, fake_adjudicator: FakeAdjudicator
    ) -> None:
        gateway = AdjudicationGateway(fake_adjudicator)
        snapshot = sample_claim.model_dump()

        first = await gateway.submit(sample_claim)
        second = await gateway.submit(sample_claim)

        assert first == second.model_copy(update={"audit_timestamp": first.audit_timestamp})
        assert fake_adjudicator.requests[0] == fake_adjudicator.requests[1]
        assert fake_adjudicator.requests[0] is not fake_adjudicator.requests[1]
        assert sample_claim.model_dump() == snapshot

    @pytest.mark.asyncio
    async def test_concurrent_submission_rejected(self, sample_claim: Claim) -> None:
        adjudicator = FakeAdjudicator(respond=make_response)
        adjudicator.release.clear()
        gateway = AdjudicationGateway(adjudicator)

        pending = asyncio.create_task(gateway.submit(sample_claim))
        await asyncio.sleep(0)
        assert gateway.in_flight

        with pytest.raises(SubmissionInProgressError):
            await gateway.submit(sample_claim)

        adjudicator.release.set()
        result = await pending
        assert result.claim_id == sample_claim.claim_id
        assert len(adjudicator.requests) == 1
        assert not gateway.in_flight

    @pytest.mark.asyncio
    async def test_service_failure_is_transport_error(self, sample_claim: Claim) -> None:
        gateway = AdjudicationGateway(FakeAdjudicator(error=ConnectionError("503")))
        with pytest.raises(TransportError) as exc_info:
            await gateway.submit(sample_claim)
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert not gateway.in_flight

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self, sample_claim: Claim) -> None:
        adjudicator = FakeAdjudicator(respond=make_response)
        adjudicator.release.clear()
        gateway = AdjudicationGateway(adjudicator, timeout=0.01)
        with pytest.raises(TransportError, match="timed out"):
            await gateway.submit(sample_claim)
        assert not gateway.in_flight

    @pytest.mark.asyncio
    async def test_contract_error_surfaced(self, sample_claim: Claim) -> None:
        adjudicator = FakeAdjudicator(
            respond=lambda request: make_response(request, decision="REJECTED", final_approved_amount=150)
        )
        gateway = AdjudicationGateway(adjudicator)
        with pytest.raises(AdjudicationContractError):
            await gateway.submit(sample_claim)
        assert not gateway.in_flight
