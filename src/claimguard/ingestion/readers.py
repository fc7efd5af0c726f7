"""
Bill file readers.
Flatten uploaded spreadsheets and PDFs into text for bill extraction.
"""

import io

import pandas as pd
import pdfplumber

from ..core.errors import ValidationError, Violation

SPREADSHEET_SUFFIXES = (".xlsx",)


def _upload_error(filename: str, rule: str) -> ValidationError:
    return ValidationError("BillUpload", [Violation(filename or "file", rule)])


def _require_text(text: str, filename: str) -> str:
    if not text.strip():
        raise _upload_error(filename, "Empty file")
    return text


def spreadsheet_to_text(data: bytes, filename: str) -> str:
    """
    Convert an uploaded spreadsheet or delimited text file to CSV text.

    Workbooks contribute their first sheet only; anything else is decoded
    as UTF-8 text.

    Args:
        data: Raw file contents
        filename: Original file name, used to detect workbooks

    Returns:
        Delimited text ready for extraction
    """
    if filename.lower().endswith(".xls"):
        raise _upload_error(filename, "Legacy .xls workbooks are not supported, save as .xlsx")
    if filename.lower().endswith(SPREADSHEET_SUFFIXES):
        try:
            frame = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, engine="openpyxl")
        except Exception as exc:
            raise _upload_error(filename, f"Unreadable workbook: {exc}") from exc
        text = frame.dropna(how="all").to_csv(index=False, header=False)
    else:
        text = data.decode("utf-8-sig", errors="replace")
    return _require_text(text, filename)


def _pdf_sections(data: bytes) -> list[str]:
    text_content = []

    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page_num, page in enumerate(pdf.pages, 1):
            page_text = page.extract_text()
            if page_text:
                text_content.append(f"--- Page {page_num} ---\n{page_text}")

            for table_num, table in enumerate(page.extract_tables(), 1):
                if table:
                    table_text = "\n".join(
                        "\t".join(str(cell) if cell else "" for cell in row) for row in table
                    )
                    text_content.append(f"--- Table {table_num} (Page {page_num}) ---\n{table_text}")

    return text_content


def pdf_to_text(data: bytes, filename: str = "bill.pdf") -> str:
    """
    Extract text from a PDF bill using pdfplumber.

    Page text and any detected tables are both included.
    """
    try:
        text_content = _pdf_sections(data)
    except Exception as exc:
        raise _upload_error(filename, f"Unreadable PDF: {exc}") from exc
    return _require_text("\n\n".join(text_content), filename)

