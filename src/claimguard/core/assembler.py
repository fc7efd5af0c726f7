"""
Claim Assembler.
Turns editable form state into a validated, immutable Claim.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

from . import presets
from .errors import ValidationError, Violation
from .models import BillItem, Claim, utcnow

logger = logging.getLogger(__name__)


def generate_claim_id(prefix: str = "CLM") -> str:
    """Short human-legible claim id. Not guaranteed unique."""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def generate_item_id() -> str:
    return uuid.uuid4().hex[:9]


def _to_decimal(value: Any, field_name: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        number = None
    if number is None or not number.is_finite():
        raise ValidationError(
            "BillItem", [Violation(field_name, f"must be a number, got {value!r}")]
        )
    return number


@dataclass
class BillItemDraft:
    """Editable bill line as held by the form.

    Editing quantity or unit price recomputes the total. A total supplied by
    an import path is kept as-is until one of those fields is edited.
    """

    EDITABLE: ClassVar[tuple[str, ...]] = (
        "service_name",
        "quantity",
        "unit_price",
        "total_price",
        "reference_price",
        "category",
    )

    NUMERIC: ClassVar[tuple[str, ...]] = ("quantity", "unit_price", "total_price", "reference_price")

    id: str = field(default_factory=generate_item_id)
    service_name: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    reference_price: Decimal | None = None
    category: str | None = None

    @classmethod
    def from_item(cls, item: BillItem, item_id: str | None = None) -> "BillItemDraft":
        return cls(
            id=item_id or item.id,
            service_name=item.service_name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            reference_price=item.reference_price,
            category=item.category,
        )

    @classmethod
    def priced(cls, **fields: Any) -> "BillItemDraft":
        """Create a draft whose total is derived from quantity and unit price."""
        draft = cls(**fields)
        draft.recompute_total()
        return draft

    def update(self, field_name: str, value: Any) -> None:
        if field_name not in self.EDITABLE:
            raise ValidationError(
                "BillItem", [Violation(field_name, "is not an editable field")]
            )
        if field_name in self.NUMERIC and value is not None:
            value = self._coerce_number(field_name, value)
        setattr(self, field_name, value)
        if field_name in ("quantity", "unit_price"):
            self.recompute_total()

    @staticmethod
    def _coerce_number(field_name: str, value: Any) -> Decimal | int:
        number = _to_decimal(value, field_name)
        if field_name != "quantity":
            return number
        if number != number.to_integral_value():
            raise ValidationError(
                "BillItem", [Violation(field_name, f"must be a whole number, got {value!r}")]
            )
        return int(number)

    def recompute_total(self) -> Decimal:
        quantity = _to_decimal(self.quantity, "quantity")
        unit_price = _to_decimal(self.unit_price, "unit_price")
        self.total_price = quantity * unit_price
        return self.total_price

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ClaimForm:
    """Raw, mutable claim state edited by the operator."""

    auditor_name: str = ""
    claim_id: str | None = None
    patient: dict[str, Any] = field(default_factory=presets.blank_patient)
    policy: dict[str, Any] = field(default_factory=dict)
    bill_items: list[BillItemDraft] = field(default_factory=list)
    manual_total: Decimal | None = None

    @classmethod
    def sample(cls) -> "ClaimForm":
        """Form pre-filled with demo data."""
        return cls(
            auditor_name=presets.AUDITOR_PROFILES[0],
            claim_id=generate_claim_id(),
            patient=presets.sample_patient(),
            policy=presets.sample_policy(),
            bill_items=[BillItemDraft.priced(**row) for row in presets.sample_bill_items()],
        )

    # Totals

    @property
    def default_total(self) -> Decimal:
        """Sum of the current item totals."""
        return sum(
            (_to_decimal(item.total_price, "total_price") for item in self.bill_items),
            Decimal("0"),
        )

    @property
    def has_manual_total(self) -> bool:
        return self.manual_total is not None

    @property
    def displayed_total(self) -> Decimal:
        if self.manual_total is not None:
            return self.manual_total
        return self.default_total

    def pin_total(self, amount: Any) -> None:
        self.manual_total = _to_decimal(amount, "total_claim_amount")

    def clear_total_override(self) -> None:
        self.manual_total = None

    # Bill items

    def find_item(self, item_id: str) -> BillItemDraft | None:
        for item in self.bill_items:
            if item.id == item_id:
                return item
        return None

    def add_item(self) -> BillItemDraft:
        draft = BillItemDraft(reference_price=Decimal("0"))
        self.bill_items.append(draft)
        return draft

    def remove_item(self, item_id: str) -> bool:
        before = len(self.bill_items)
        self.bill_items = [item for item in self.bill_items if item.id != item_id]
        return len(self.bill_items) != before

    def update_item(self, item_id: str, field_name: str, value: Any) -> BillItemDraft:
        draft = self.find_item(item_id)
        if draft is None:
            raise KeyError(item_id)
        draft.update(field_name, value)
        return draft

    # Presets

    def apply_insurance_preset(self, provider: str) -> None:
        self.policy = {
            **self.policy,
            "provider_name": provider,
            **presets.INSURANCE_PRESETS.get(provider, {}),
        }

    def apply_disease_preset(self, disease: str) -> None:
        preset = presets.DISEASE_PRESETS.get(disease)
        if preset:
            self.patient = {**self.patient, **preset}

    def apply_patient_profile(self, profile: str | int) -> None:
        if profile == presets.MANUAL_PROFILE:
            self.patient = presets.blank_patient()
            return
        try:
            chosen = presets.PATIENT_PROFILES[int(profile)]
        except (IndexError, ValueError):
            return
        self.patient = {
            **self.patient,
            "name": chosen["name"],
            "age": chosen["age"],
            "gender": chosen["gender"],
        }


class ClaimAssembler:
    """
    Builds validated Claims from form state.

    The total claim amount is captured at assembly time: the pinned manual
    total when present, otherwise the sum of item totals.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = generate_claim_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory

    def assemble(self, form: ClaimForm) -> Claim:
        """
        Assemble a Claim from the form.

        Args:
            form: The current form state

        Returns:
            The validated, immutable Claim

        Raises:
            ValidationError: If any field violates a data-model invariant
        """
        claim = Claim.create(
            claim_id=form.claim_id or self._id_factory(),
            auditor_name=form.auditor_name,
            created_at=self._clock(),
            total_claim_amount=form.displayed_total,
            patient=dict(form.patient),
            policy=dict(form.policy),
            bill_items=[item.as_dict() for item in form.bill_items],
        )
        # Resubmissions of the same form keep the same claim identity.
        form.claim_id = claim.claim_id

        if claim.total_claim_amount != claim.items_total:
            logger.info(
                "Claim %s declared total %s differs from item total %s",
                claim.claim_id,
                claim.total_claim_amount,
                claim.items_total,
            )
        logger.debug("Assembled claim %s with %d items", claim.claim_id, len(claim.bill_items))
        return claim
