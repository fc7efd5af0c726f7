"""
Audit session.
Scoped state for one audit attempt: the editable form, the pending call and
its outcome.
"""

import logging

from .adjudication.gateway import AdjudicationGateway
from .core.assembler import ClaimAssembler, ClaimForm
from .core.errors import ClaimGuardError, PersistenceError
from .core.ledger import AuditLedger
from .core.models import AuditResult, BillItem
from .ingestion.normalizer import BillIngestionNormalizer

logger = logging.getLogger(__name__)


class AuditSession:
    """
    Orchestrates assemble -> adjudicate -> record for one operator session.

    Resetting the session while a call is pending does not abort the call;
    its result is discarded when it arrives and nothing is recorded.
    """

    def __init__(
        self,
        gateway: AdjudicationGateway,
        ledger: AuditLedger,
        normalizer: BillIngestionNormalizer | None = None,
        assembler: ClaimAssembler | None = None,
        form: ClaimForm | None = None,
    ) -> None:
        self.gateway = gateway
        self.ledger = ledger
        self.normalizer = normalizer or BillIngestionNormalizer()
        self.assembler = assembler or ClaimAssembler()
        self.form = form if form is not None else ClaimForm.sample()
        self.result: AuditResult | None = None
        self.error: ClaimGuardError | None = None
        self.persistence_warning: str | None = None
        self._generation = 0

    @property
    def is_analyzing(self) -> bool:
        return self.gateway.in_flight

    async def submit(self) -> AuditResult | None:
        """
        Assemble the form into a Claim, adjudicate it and record the result.

        Returns:
            The AuditResult, or None if the session was reset meanwhile

        Raises:
            ValidationError, TransportError, AdjudicationContractError,
            SubmissionInProgressError: The submission failed. The error is
                also kept on ``self.error``.
        """
        generation = self._generation
        self.result = None
        self.error = None
        self.persistence_warning = None

        try:
            claim = self.assembler.assemble(self.form)
            result = await self.gateway.submit(claim)
        except ClaimGuardError as exc:
            if generation == self._generation:
                self.error = exc
            raise

        if generation != self._generation:
            logger.info("Discarding audit of claim %s: session was reset", result.claim_id)
            return None

        self.result = result
        try:
            await self.ledger.append(result)
        except PersistenceError as exc:
            self.persistence_warning = str(exc)
        return result

    async def ingest_file(self, filename: str, data: bytes, mime_type: str = "") -> list[BillItem]:
        """Extract bill lines from an uploaded file and merge them into the form."""
        return await self.normalizer.ingest_file(self.form, filename, data, mime_type)

    def open_past(self, claim_id: str) -> AuditResult | None:
        """Show the most recent recorded audit for a claim."""
        result = self.ledger.find_by_claim_id(claim_id)
        if result is not None:
            self.result = result
            self.error = None
            self.persistence_warning = None
        return result

    def reset(self, new_form: bool = False) -> None:
        """Clear the outcome; optionally start over with a fresh form."""
        self._generation += 1
        self.result = None
        self.error = None
        self.persistence_warning = None
        if new_form:
            self.form = ClaimForm.sample()
