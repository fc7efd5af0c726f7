"""
Core data models for the claim audit core.
Uses Pydantic for validation and serialization.

Every model is frozen once built. Use ``create()`` to construct a model from
raw data; it raises :class:`~claimguard.core.errors.ValidationError` naming the
violated field instead of returning a malformed instance.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from .errors import ValidationError

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Money = Annotated[Decimal, Field(ge=0)]


def _invariant(field: str, rule: str) -> PydanticCustomError:
    return PydanticCustomError("invariant", "{field}: {rule}", {"field": field, "rule": rule})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class AdmissionType(str, Enum):
    EMERGENCY = "Emergency"
    PLANNED = "Planned"


class PreAuthStatus(str, Enum):
    """Insurer's advance approval status for a planned procedure."""

    APPROVED = "APPROVED"
    PENDING = "PENDING"
    REJECTED = "REJECTED"
    NOT_REQUESTED = "NOT_REQUESTED"


class Decision(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PARTIAL_APPROVAL = "PARTIAL_APPROVAL"


class ItemStatus(str, Enum):
    OK = "OK"
    OVERPRICED = "OVERPRICED"
    DENIED = "DENIED"
    PARTIAL = "PARTIAL"


class AnomalyCategory(str, Enum):
    """Categories of billing anomalies flagged by the adjudicator."""

    UNBUNDLING = "Unbundling"
    UPCODING = "Upcoding"
    NME_EXCLUSION = "NME_Exclusion"  # Non-medical expense
    PRICE_VARIANCE = "Price_Variance"
    NONE = "None"


class DomainModel(BaseModel):
    """Immutable base model with a validating constructor."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def create(cls, data: dict[str, Any] | None = None, **fields: Any) -> Any:
        """Build a validated instance or raise ``ValidationError``."""
        try:
            return cls.model_validate({**(data or {}), **fields})
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(cls.__name__, exc) from exc


class Patient(DomainModel):
    """Patient details for the billed episode."""

    name: NonEmptyStr
    age: int = Field(ge=0)
    gender: Gender
    diagnosis_code: NonEmptyStr = Field(description="ICD-10 diagnosis code")
    procedure_code: NonEmptyStr = Field(description="CPT procedure code(s)")
    admission_type: AdmissionType
    length_of_stay: int = Field(ge=0, description="Length of stay in days")


class Policy(DomainModel):
    """Insurance policy details."""

    policy_number: NonEmptyStr
    provider_name: NonEmptyStr
    sum_insured: Money
    remaining_sum_insured: Money
    copay_percentage: Decimal = Field(ge=0, le=100)
    waiting_period_served: bool
    pre_auth_status: PreAuthStatus
    room_rent_limit: Money = Field(description="Daily room-rent limit")
    exclusions: str = ""

    @model_validator(mode="after")
    def _check_remaining(self) -> "Policy":
        if self.remaining_sum_insured > self.sum_insured:
            raise _invariant(
                "remaining_sum_insured",
                f"must not exceed sum_insured ({self.sum_insured})",
            )
        return self


class BillItem(DomainModel):
    """Individual billed line.

    ``total_price`` is calculated from quantity and unit price when not
    provided. Import paths may supply it directly, in which case quantity and
    unit price are informational only.
    """

    id: NonEmptyStr
    service_name: NonEmptyStr
    quantity: int = Field(ge=1)
    unit_price: Money
    total_price: Money
    reference_price: Money | None = None
    category: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_total(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("total_price") is None:
            try:
                total = Decimal(str(data["quantity"])) * Decimal(str(data["unit_price"]))
            except (KeyError, ArithmeticError, ValueError):
                # Left to field validation to report.
                return data
            data = {**data, "total_price": total}
        return data


class Claim(DomainModel):
    """One patient's billed medical episode submitted for audit.

    ``total_claim_amount`` may diverge from ``items_total`` when the operator
    pinned a manual override; both travel to the adjudicator unchanged.
    """

    claim_id: NonEmptyStr
    auditor_name: NonEmptyStr
    created_at: datetime = Field(default_factory=utcnow)
    total_claim_amount: Money
    patient: Patient
    policy: Policy
    bill_items: tuple[BillItem, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_unique_items(self) -> "Claim":
        seen: set[str] = set()
        for index, item in enumerate(self.bill_items):
            if item.id in seen:
                raise _invariant(f"bill_items.{index}.id", f"duplicate item id '{item.id}'")
            seen.add(item.id)
        return self

    @property
    def items_total(self) -> Decimal:
        """Sum of the bill item totals."""
        return sum((item.total_price for item in self.bill_items), Decimal("0"))

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.bill_items]


class ItemAnalysis(DomainModel):
    """Adjudicator verdict for a single bill item."""

    item_id: NonEmptyStr
    item_name: str
    billed_amount: Money
    standard_amount: Money
    status: ItemStatus
    reasoning: str = Field(default="", validation_alias=AliasChoices("reasoning", "remarks"))
    flagged_anomaly: AnomalyCategory | None = None


class PolicyCheckResult(DomainModel):
    limit_met: bool
    exclusions_found: bool
    waiting_period_met: bool
    pre_auth_valid: bool


class AuditResult(DomainModel):
    """Structured verdict for one claim."""

    claim_id: NonEmptyStr
    audit_timestamp: datetime = Field(default_factory=utcnow)
    decision: Decision
    confidence_score: float = Field(ge=0, le=100)
    total_billed_amount: Money
    final_approved_amount: Money
    summary: str
    policy_check: PolicyCheckResult
    rejection_reasons: tuple[str, ...] = ()
    correction_steps: tuple[str, ...] = ()
    item_analysis: tuple[ItemAnalysis, ...] = ()

    @model_validator(mode="after")
    def _check_decision(self) -> "AuditResult":
        billed = self.total_billed_amount
        approved = self.final_approved_amount

        if approved > billed:
            raise _invariant(
                "final_approved_amount",
                f"must not exceed total_billed_amount ({billed})",
            )

        if self.decision == Decision.APPROVED:
            if approved != billed:
                raise _invariant(
                    "final_approved_amount",
                    "must equal total_billed_amount when decision is APPROVED",
                )
            if self.rejection_reasons:
                raise _invariant(
                    "rejection_reasons", "must be empty when decision is APPROVED"
                )
        elif self.decision == Decision.REJECTED:
            if approved != 0:
                raise _invariant(
                    "final_approved_amount", "must be 0 when decision is REJECTED"
                )
        elif not 0 < approved < billed:
            raise _invariant(
                "final_approved_amount",
                "must be strictly between 0 and total_billed_amount "
                "when decision is PARTIAL_APPROVAL",
            )
        return self

    @property
    def item_ids(self) -> list[str]:
        return [item.item_id for item in self.item_analysis]
