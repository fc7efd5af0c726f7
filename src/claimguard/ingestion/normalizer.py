"""
Bill Ingestion Normalizer.
Merges externally extracted bill lines into the form's item list.
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from ..core.assembler import BillItemDraft, ClaimForm, generate_item_id
from ..core.errors import ClaimGuardError, TransportError, ValidationError
from ..core.models import BillItem
from .readers import pdf_to_text, spreadsheet_to_text

logger = logging.getLogger(__name__)

# Accepted spellings for extracted row fields
ROW_ALIASES: dict[str, tuple[str, ...]] = {
    "service_name": ("service_name", "serviceName", "name", "description", "item"),
    "quantity": ("quantity", "qty"),
    "unit_price": ("unit_price", "unitPrice", "rate", "price"),
    "total_price": ("total_price", "totalPrice", "total", "amount"),
    "reference_price": ("reference_price", "referencePrice", "standard_price"),
    "category": ("category",),
}


class BillExtractor(Protocol):
    """Best-effort collaborator turning an image or text into bill lines."""

    async def extract_from_image(self, data: bytes, mime_type: str) -> list[BillItem]: ...

    async def extract_from_text(self, text: str) -> list[BillItem]: ...


def _pick(row: Mapping[str, Any], field: str) -> Any:
    for key in ROW_ALIASES[field]:
        if row.get(key) not in (None, ""):
            return row[key]
    return None


def _quantity(value: Any) -> int:
    if value is None:
        return 1
    try:
        return max(1, int(Decimal(str(value)).to_integral_value()))
    except (InvalidOperation, ValueError):
        return 1


def items_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[BillItem]:
    """
    Convert loosely structured extracted rows into BillItems.

    Rows that cannot form a valid item are skipped. A row's total, when
    present, is taken as authoritative.
    """
    items: list[BillItem] = []
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            logger.warning("Skipping extracted row %d: not an object", index)
            continue
        unit_price = _pick(row, "unit_price")
        total_price = _pick(row, "total_price")
        if unit_price is None and total_price is not None:
            unit_price = total_price
        try:
            items.append(
                BillItem.create(
                    id=generate_item_id(),
                    service_name=_pick(row, "service_name") or "",
                    quantity=_quantity(_pick(row, "quantity")),
                    unit_price=unit_price if unit_price is not None else 0,
                    total_price=total_price,
                    reference_price=_pick(row, "reference_price"),
                    category=_pick(row, "category"),
                )
            )
        except ValidationError as exc:
            logger.warning("Skipping extracted row %d: %s", index, exc)
    return items


class BillIngestionNormalizer:
    """
    Appends extracted items to a form.

    No de-duplication is attempted; repeated uploads of the same bill add the
    same lines again.
    """

    def __init__(self, extractor: BillExtractor | None = None) -> None:
        self.extractor = extractor

    def merge(self, form: ClaimForm, incoming: Sequence[BillItem]) -> Decimal:
        """
        Concatenate incoming items onto the form under fresh ids.

        Returns:
            The total now displayed: the pinned manual total if any,
            otherwise the recomputed sum of all item totals.
        """
        taken = {item.id for item in form.bill_items}
        for item in incoming:
            new_id = generate_item_id()
            while new_id in taken:
                new_id = generate_item_id()
            taken.add(new_id)
            form.bill_items.append(BillItemDraft.from_item(item, item_id=new_id))

        logger.info(
            "Merged %d extracted item(s); form now has %d (default total %s%s)",
            len(incoming),
            len(form.bill_items),
            form.default_total,
            ", manual total pinned" if form.has_manual_total else "",
        )
        return form.displayed_total

    def _require_extractor(self) -> BillExtractor:
        if self.extractor is None:
            raise TransportError("No bill extraction service is configured")
        return self.extractor

    async def _extract(self, call: Any, *args: Any) -> list[BillItem]:
        try:
            return list(await call(*args))
        except ClaimGuardError:
            raise
        except Exception as exc:
            raise TransportError(f"Bill extraction failed: {exc}") from exc

    async def ingest_image(self, form: ClaimForm, data: bytes, mime_type: str) -> list[BillItem]:
        extractor = self._require_extractor()
        items = await self._extract(extractor.extract_from_image, data, mime_type)
        self.merge(form, items)
        return items

    async def ingest_text(self, form: ClaimForm, text: str) -> list[BillItem]:
        extractor = self._require_extractor()
        items = await self._extract(extractor.extract_from_text, text)
        self.merge(form, items)
        return items

    async def ingest_file(
        self, form: ClaimForm, filename: str, data: bytes, mime_type: str = ""
    ) -> list[BillItem]:
        """Route an uploaded file to image or text extraction."""
        if mime_type.startswith("image/"):
            return await self.ingest_image(form, data, mime_type)
        if mime_type == "application/pdf" or filename.lower().endswith(".pdf"):
            text = await asyncio.to_thread(pdf_to_text, data, filename)
        else:
            text = await asyncio.to_thread(spreadsheet_to_text, data, filename)
        return await self.ingest_text(form, text)
