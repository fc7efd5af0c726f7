"""
Shared fixtures for claimguard tests.
"""

import asyncio
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest

from claimguard.core.assembler import ClaimAssembler, ClaimForm
from claimguard.core.models import BillItem, Claim


class FakeAdjudicator:
    """In-process adjudicator returning a canned or computed payload."""

    def __init__(
        self,
        respond: Callable[[dict[str, Any]], Any] | dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.respond = respond
        self.error = error
        self.requests: list[dict[str, Any]] = []
        self.release = asyncio.Event()
        self.release.set()

    async def adjudicate(self, request: dict[str, Any]) -> Any:
        self.requests.append(request)
        await self.release.wait()
        if self.error is not None:
            raise self.error
        if callable(self.respond):
            return self.respond(request)
        return self.respond


class FakeExtractor:
    """Bill extractor returning fixed items."""

    def __init__(self, items: list[BillItem] | None = None, error: Exception | None = None) -> None:
        self.items = items or []
        self.error = error
        self.calls: list[tuple[str, Any]] = []

    async def extract_from_image(self, data: bytes, mime_type: str) -> list[BillItem]:
        self.calls.append(("image", mime_type))
        if self.error is not None:
            raise self.error
        return list(self.items)

    async def extract_from_text(self, text: str) -> list[BillItem]:
        self.calls.append(("text", text))
        if self.error is not None:
            raise self.error
        return list(self.items)


def make_response(request: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    """A contract-valid PARTIAL_APPROVAL response for a serialized claim."""
    items = [
        {
            "item_id": item["id"],
            "item_name": item["service_name"],
            "billed_amount": item["total_price"],
            "standard_amount": item["reference_price"] or item["total_price"],
            "status": "OK",
            "remarks": "Within standard rates",
            "flagged_anomaly": "None",
        }
        for item in request["bill_items"]
    ]
    response = {
        "decision": "PARTIAL_APPROVAL",
        "confidence_score": 87,
        "total_billed_amount": 35500,
        "final_approved_amount": 28000,
        "summary": "Room rent exceeds the policy limit; non-medical items deducted.",
        "rejection_reasons": ["Room rent above daily limit"],
        "correction_steps": ["Bill room rent at the eligible category"],
        "policy_check": {
            "limit_met": False,
            "exclusions_found": True,
            "waiting_period_met": True,
            "pre_auth_valid": True,
        },
        "item_analysis": items,
    }
    response.update(overrides)
    return response


@pytest.fixture
def sample_form() -> ClaimForm:
    form = ClaimForm.sample()
    form.claim_id = "CLM-TEST0001"
    return form


@pytest.fixture
def sample_claim(sample_form: ClaimForm) -> Claim:
    return ClaimAssembler().assemble(sample_form)


@pytest.fixture
def fake_adjudicator() -> FakeAdjudicator:
    return FakeAdjudicator(respond=make_response)


@pytest.fixture
def extracted_items() -> list[BillItem]:
    return [
        BillItem.create(id="x1", service_name="X-Ray Chest", quantity=1, unit_price=Decimal("1200")),
        BillItem.create(id="x2", service_name="CBC Test", quantity=2, unit_price=Decimal("350")),
    ]
