"""
Audit Ledger.
Append-only, most-recent-first history of completed audits, persisted as a
single JSON document.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import PersistenceError
from .models import AuditResult

logger = logging.getLogger(__name__)

_HISTORY = TypeAdapter(list[AuditResult])


class HistorySlot(Protocol):
    """A single named storage slot holding the serialized history."""

    def read(self) -> str | None: ...

    def write(self, text: str) -> None: ...


class JsonFileSlot:
    """History slot backed by one JSON file, replaced atomically on write."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, self.path)


class AuditLedger:
    """
    Ordered history of AuditResults.

    Entries are only ever added to the front; nothing here edits or removes
    them. A newer audit of the same claim supersedes older ones for lookup.
    """

    def __init__(self, slot: HistorySlot) -> None:
        self._slot = slot
        self._entries: list[AuditResult] = []
        self._write_lock = asyncio.Lock()

    @property
    def entries(self) -> tuple[AuditResult, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self) -> list[AuditResult]:
        """
        Reconstruct history from storage.

        Missing, unreadable or corrupt state yields an empty history.
        """
        try:
            raw = await asyncio.to_thread(self._slot.read)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read audit history, starting empty: %s", exc)
            raw = None

        self._entries = self._parse(raw)
        logger.info("Loaded %d audit(s) from history", len(self._entries))
        return list(self._entries)

    @staticmethod
    def _parse(raw: str | None) -> list[AuditResult]:
        if not raw or not raw.strip():
            return []
        try:
            return _HISTORY.validate_json(raw)
        except PydanticValidationError as exc:
            logger.warning(
                "Audit history is corrupt (%d error(s)), starting empty",
                exc.error_count(),
            )
            return []

    async def append(self, result: AuditResult) -> None:
        """
        Add a result to the front of the history and persist the whole sequence.

        Raises:
            PersistenceError: If the history could not be written. The result
                stays in the in-memory history.
        """
        async with self._write_lock:
            self._entries.insert(0, result)
            payload = _HISTORY.dump_json(self._entries, indent=2).decode("utf-8")
            try:
                await asyncio.to_thread(self._slot.write, payload)
            except OSError as exc:
                logger.error("Failed to persist audit %s: %s", result.claim_id, exc)
                raise PersistenceError(
                    f"Audit {result.claim_id} completed but was not saved to history: {exc}",
                    result=result,
                ) from exc
        logger.info("Recorded audit %s (%d in history)", result.claim_id, len(self._entries))

    def find_by_claim_id(self, claim_id: str) -> AuditResult | None:
        """Most recent audit for a claim, if any."""
        for entry in self._entries:
            if entry.claim_id == claim_id:
                return entry
        return None
