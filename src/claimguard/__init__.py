"""
ClaimGuard: medical claim audit orchestration.

Assembles and validates hospital claims, submits them to an external
adjudicator, records verdicts in a local history and exports reports.
"""

from .adjudication import AdjudicationGateway, GeminiAdjudicator, GeminiBillExtractor
from .config import ClaimGuardSettings, configure_logging, get_settings
from .core import (
    AdjudicationContractError,
    AuditLedger,
    AuditResult,
    BillItem,
    BillItemDraft,
    Claim,
    ClaimAssembler,
    ClaimForm,
    ClaimGuardError,
    Decision,
    ItemAnalysis,
    JsonFileSlot,
    Patient,
    PersistenceError,
    Policy,
    PolicyCheckResult,
    SubmissionInProgressError,
    TransportError,
    ValidationError,
)
from .ingestion import BillIngestionNormalizer
from .reporting import AuditReportFormatter, FinancialBreakdown, encode, to_excel
from .session import AuditSession

__version__ = "0.1.0"

__all__ = [
    # Session
    "AuditSession",
    # Models
    "AuditResult",
    "BillItem",
    "Claim",
    "Decision",
    "ItemAnalysis",
    "Patient",
    "Policy",
    "PolicyCheckResult",
    # Errors
    "AdjudicationContractError",
    "ClaimGuardError",
    "PersistenceError",
    "SubmissionInProgressError",
    "TransportError",
    "ValidationError",
    # Components
    "AdjudicationGateway",
    "AuditLedger",
    "BillIngestionNormalizer",
    "BillItemDraft",
    "ClaimAssembler",
    "ClaimForm",
    "GeminiAdjudicator",
    "GeminiBillExtractor",
    "JsonFileSlot",
    # Reporting
    "AuditReportFormatter",
    "FinancialBreakdown",
    "encode",
    "to_excel",
    # Config
    "ClaimGuardSettings",
    "configure_logging",
    "get_settings",
]
