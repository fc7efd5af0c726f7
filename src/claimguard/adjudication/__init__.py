"""
Adjudication contract, gateway and Gemini-backed collaborators.
"""

from .contract import build_request, parse_response
from .gateway import AdjudicationGateway, Adjudicator
from .gemini import GeminiAdjudicator, GeminiBillExtractor, parse_json_response

__all__ = [
    "AdjudicationGateway",
    "Adjudicator",
    "GeminiAdjudicator",
    "GeminiBillExtractor",
    "build_request",
    "parse_json_response",
    "parse_response",
]
