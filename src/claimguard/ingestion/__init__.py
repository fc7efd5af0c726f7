"""
Bill ingestion: file readers and the merge normalizer.
"""

from .normalizer import BillExtractor, BillIngestionNormalizer, items_from_rows
from .readers import pdf_to_text, spreadsheet_to_text

__all__ = [
    "BillExtractor",
    "BillIngestionNormalizer",
    "items_from_rows",
    "pdf_to_text",
    "spreadsheet_to_text",
]
