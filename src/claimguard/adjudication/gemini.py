"""
Gemini-backed collaborators.
Claim adjudication and bill extraction through the Google GenAI SDK.
"""

import json
import logging
import re
from typing import Any

from google import genai
from google.genai import types

from ..config import ClaimGuardSettings
from ..core.errors import AdjudicationContractError, TransportError
from ..core.models import BillItem
from ..ingestion.normalizer import items_from_rows

logger = logging.getLogger(__name__)

ADJUDICATION_SYSTEM_MESSAGE = """You are a senior health insurance claims auditor working under IRDAI guidelines.
You receive one hospitalisation claim as JSON: patient, policy, the declared total
claim amount, the sum of bill item totals, and the itemised bill.

Audit the claim:
- Validate the ICD-10 diagnosis against the CPT procedure and length of stay
- Compare every bill item against its reference price and market rates
- Check room rent against the policy's daily room-rent limit
- Flag non-medical expenses, policy exclusions, unbundling and upcoding
- Check the waiting period and pre-authorisation status
- Reconcile the declared total with the item total

Return ONLY a JSON object with exactly these fields:
{
  "claim_id": "<the submitted claim_id>",
  "decision": "APPROVED" | "REJECTED" | "PARTIAL_APPROVAL",
  "confidence_score": <number 0-100>,
  "total_billed_amount": <number>,
  "final_approved_amount": <number>,
  "summary": "<two or three sentences>",
  "rejection_reasons": ["..."],
  "correction_steps": ["..."],
  "policy_check": {
    "limit_met": <bool>, "exclusions_found": <bool>,
    "waiting_period_met": <bool>, "pre_auth_valid": <bool>
  },
  "item_analysis": [
    {
      "item_id": "<id of the submitted bill item>",
      "item_name": "<service name>",
      "billed_amount": <number>,
      "standard_amount": <number>,
      "status": "OK" | "OVERPRICED" | "DENIED" | "PARTIAL",
      "reasoning": "<short explanation>",
      "flagged_anomaly": "Unbundling" | "Upcoding" | "NME_Exclusion" | "Price_Variance" | "None"
    }
  ]
}

Rules:
- Exactly one item_analysis entry per submitted bill item, using its id
- APPROVED means final_approved_amount equals total_billed_amount and no rejection reasons
- REJECTED means final_approved_amount is 0
- PARTIAL_APPROVAL means 0 < final_approved_amount < total_billed_amount
- Return ONLY the JSON object, no markdown formatting or explanation"""

EXTRACTION_SYSTEM_MESSAGE = """You extract itemised hospital bill lines.
Return ONLY a JSON object: {"items": [{"service_name": "<text>", "quantity": <integer>,
"unit_price": <number>, "total_price": <number>}]}.
Use quantity 1 when it is not shown. Skip subtotals, taxes summaries and grand totals.
Return {"items": []} if no bill lines can be read."""


def parse_json_response(text: str | None) -> Any | None:
    """
    Parse a JSON payload from model output.

    Handles raw JSON, markdown code blocks and JSON embedded in prose.

    Returns:
        Parsed JSON value or None if nothing could be parsed
    """
    if not text:
        return None

    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    candidates = [fenced.group(1)] if fenced else []
    candidates.append(text)
    embedded = re.search(r"[\{\[][\s\S]*[\}\]]", text)
    if embedded:
        candidates.append(embedded.group(0))

    for candidate in candidates:
        try:
            return json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
    return None


class GeminiService:
    """
    Shared Gemini client plumbing.

    Without an injected ``client``, a fresh ``genai.Client`` is built for
    every call so its async connection pool belongs to the running event
    loop. Callers may drive each call from a separate ``asyncio.run``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.2,
        client: Any = None,
    ) -> None:
        if client is None and not api_key:
            raise TransportError("A Gemini API key is required")
        self.api_key = api_key
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: ClaimGuardSettings) -> "GeminiService":
        api_key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None
        return cls(api_key=api_key, model=settings.model, temperature=settings.temperature)

    async def _generate(self, parts: list[Any], system_instruction: str) -> str:
        client = self.client if self.client is not None else genai.Client(api_key=self.api_key)
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=types.Content(role="user", parts=parts),
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=self.temperature,
                response_mime_type="application/json",
            ),
        )
        return (response.text or "").strip()


class GeminiAdjudicator(GeminiService):
    """Adjudicator backed by a Gemini model."""

    async def adjudicate(self, request: dict[str, Any]) -> Any:
        prompt = (
            "---\nCLAIM TO AUDIT:\n---\n"
            f"{json.dumps(request, indent=2)}\n---\n\n"
            "Audit the above claim and return the JSON audit result."
        )
        text = await self._generate([types.Part(text=prompt)], ADJUDICATION_SYSTEM_MESSAGE)
        payload = parse_json_response(text)
        if payload is None:
            raise AdjudicationContractError(
                "Adjudication response is not valid JSON", payload=text[:1000]
            )
        return payload


class GeminiBillExtractor(GeminiService):
    """Bill extractor backed by a Gemini model. Best effort."""

    async def extract_from_image(self, data: bytes, mime_type: str) -> list[BillItem]:
        parts = [
            types.Part.from_bytes(data=data, mime_type=mime_type),
            types.Part(text="Extract every billed line from this hospital bill."),
        ]
        return self._to_items(await self._generate(parts, EXTRACTION_SYSTEM_MESSAGE))

    async def extract_from_text(self, text: str) -> list[BillItem]:
        prompt = (
            "---\nBILL DATA:\n---\n"
            f"{text}\n---\n\n"
            "Extract every billed line from the above data."
        )
        return self._to_items(
            await self._generate([types.Part(text=prompt)], EXTRACTION_SYSTEM_MESSAGE)
        )

    @staticmethod
    def _to_items(text: str) -> list[BillItem]:
        payload = parse_json_response(text)
        if isinstance(payload, dict):
            payload = payload.get("items")
        if not isinstance(payload, list):
            logger.warning("Bill extraction returned no readable items")
            return []
        items = items_from_rows(payload)
        logger.info("Extracted %d of %d bill row(s)", len(items), len(payload))
        return items
