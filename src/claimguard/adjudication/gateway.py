"""
Adjudication Gateway.
The single point where assembled Claims reach the external adjudicator.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from ..core.errors import ClaimGuardError, SubmissionInProgressError, TransportError
from ..core.models import AuditResult, Claim, utcnow
from .contract import build_request, parse_response

logger = logging.getLogger(__name__)


class Adjudicator(Protocol):
    """External capability that decides how much of a claim is payable."""

    async def adjudicate(self, request: dict[str, Any]) -> Any: ...


class AdjudicationGateway:
    """
    Sends Claims to the adjudicator and validates what comes back.

    At most one call is in flight per gateway; a second submission while one
    is pending is rejected. Failed calls are not retried.
    """

    def __init__(
        self,
        adjudicator: Adjudicator,
        timeout: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.adjudicator = adjudicator
        self.timeout = timeout
        self._clock = clock
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self, claim: Claim) -> AuditResult:
        """
        Adjudicate a claim.

        Args:
            claim: A fully assembled and validated Claim

        Returns:
            The validated AuditResult

        Raises:
            SubmissionInProgressError: If another submission is still pending
            TransportError: If the adjudicator call fails or times out
            AdjudicationContractError: If the response violates the contract
        """
        if self._in_flight:
            raise SubmissionInProgressError(
                f"Claim {claim.claim_id}: an adjudication is already in progress"
            )
        self._in_flight = True
        try:
            request = build_request(claim)
            logger.info(
                "Submitting claim %s (%d items, declared %s)",
                claim.claim_id,
                len(claim.bill_items),
                claim.total_claim_amount,
            )
            payload = await self._call(request)
            result = parse_response(payload, claim, received_at=self._clock())
        except ClaimGuardError as exc:
            logger.warning("Adjudication of claim %s failed: %s", claim.claim_id, exc)
            raise
        finally:
            self._in_flight = False

        logger.info(
            "Claim %s adjudicated: %s, approved %s of %s",
            claim.claim_id,
            result.decision.value,
            result.final_approved_amount,
            result.total_billed_amount,
        )
        return result

    async def _call(self, request: dict[str, Any]) -> Any:
        try:
            if self.timeout is None:
                return await self.adjudicator.adjudicate(request)
            return await asyncio.wait_for(
                self.adjudicator.adjudicate(request), timeout=self.timeout
            )
        except ClaimGuardError:
            raise
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"Adjudication timed out after {self.timeout}s"
            ) from exc
        except Exception as exc:
            raise TransportError(f"Adjudication service error: {exc}") from exc
