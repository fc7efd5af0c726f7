"""
Error taxonomy for the claim audit core.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError


class ClaimGuardError(Exception):
    """Base class for all claimguard errors."""


@dataclass(frozen=True)
class Violation:
    """A single violated field/rule pair."""

    field: str
    rule: str

    def __str__(self) -> str:
        return f"{self.field}: {self.rule}"


class ValidationError(ClaimGuardError, ValueError):
    """A claim or one of its parts violates a data-model invariant."""

    def __init__(self, model: str, violations: list[Violation]) -> None:
        self.model = model
        self.violations = list(violations)
        details = "; ".join(str(v) for v in self.violations) or "invalid input"
        super().__init__(f"Invalid {model}: {details}")

    @property
    def fields(self) -> list[str]:
        return [v.field for v in self.violations]

    @classmethod
    def from_pydantic(cls, model: str, exc: PydanticValidationError) -> "ValidationError":
        """Translate a pydantic error into field/rule violations."""
        violations = []
        for error in exc.errors():
            ctx = error.get("ctx") or {}
            field = ctx.get("field") or ".".join(str(part) for part in error["loc"])
            rule = ctx.get("rule") or error["msg"]
            violations.append(Violation(field=field or model, rule=rule))
        return cls(model, violations)


class AdjudicationContractError(ClaimGuardError):
    """The adjudication response is malformed or breaks AuditResult invariants."""

    def __init__(
        self,
        message: str,
        violations: list[Violation] | None = None,
        payload: Any = None,
    ) -> None:
        self.violations = list(violations or [])
        self.payload = payload
        if self.violations:
            message = f"{message}: " + "; ".join(str(v) for v in self.violations)
        super().__init__(message)


class TransportError(ClaimGuardError):
    """An adjudication or extraction call failed to complete."""


class SubmissionInProgressError(ClaimGuardError):
    """A submission was attempted while another one is still pending."""


class PersistenceError(ClaimGuardError):
    """Audit history could not be loaded or saved.

    On save failures ``result`` holds the audit that was kept in memory but
    not durably recorded.
    """

    def __init__(self, message: str, result: Any = None) -> None:
        self.result = result
        super().__init__(message)
