"""
Core components for claim auditing.
"""

from .assembler import (
    BillItemDraft,
    ClaimAssembler,
    ClaimForm,
    generate_claim_id,
    generate_item_id,
)
from .errors import (
    AdjudicationContractError,
    ClaimGuardError,
    PersistenceError,
    SubmissionInProgressError,
    TransportError,
    ValidationError,
    Violation,
)
from .ledger import AuditLedger, HistorySlot, JsonFileSlot
from .models import (
    AdmissionType,
    AnomalyCategory,
    AuditResult,
    BillItem,
    Claim,
    Decision,
    Gender,
    ItemAnalysis,
    ItemStatus,
    Patient,
    Policy,
    PolicyCheckResult,
    PreAuthStatus,
)

__all__ = [
    # Models
    "AdmissionType",
    "AnomalyCategory",
    "AuditResult",
    "BillItem",
    "Claim",
    "Decision",
    "Gender",
    "ItemAnalysis",
    "ItemStatus",
    "Patient",
    "Policy",
    "PolicyCheckResult",
    "PreAuthStatus",
    # Errors
    "AdjudicationContractError",
    "ClaimGuardError",
    "PersistenceError",
    "SubmissionInProgressError",
    "TransportError",
    "ValidationError",
    "Violation",
    # Assembly
    "BillItemDraft",
    "ClaimAssembler",
    "ClaimForm",
    "generate_claim_id",
    "generate_item_id",
    # Ledger
    "AuditLedger",
    "HistorySlot",
    "JsonFileSlot",
]
