"""File-to-text extraction for spec sheets attached to a request.

Readers: plain text, PDF, Word (.docx), spreadsheets and images (OCR).
Failures never propagate: the caller gets an inline placeholder string that
goes into the conversation instead of the file content.
"""

import io
from pathlib import PurePath

import docx
import pandas as pd
import pdfplumber
import pytesseract
import structlog
from PIL import Image

logger = structlog.get_logger(__name__)

TEXT_EXTENSIONS = frozenset({".txt", ".md", ".csv", ".json"})
SPREADSHEET_EXTENSIONS = frozenset({".xlsx", ".xls"})
IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".webp"})
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Extensions the upload widgets should accept
SUPPORTED_EXTENSIONS = sorted(
    {ext.lstrip(".") for ext in TEXT_EXTENSIONS | SPREADSHEET_EXTENSIONS | IMAGE_EXTENSIONS}
    | {"pdf", "docx"}
)


class ExtractionError(Exception):
    pass


def _extract_plain(content: bytes) -> str:
    return content.decode("utf-8", errors="replace").strip()


def _extract_pdf(content: bytes) -> str:
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(pages).strip()


def _extract_docx(content: bytes) -> str:
    document = docx.Document(io.BytesIO(content))
    return "\n".join(paragraph.text for paragraph in document.paragraphs).strip()


def _extract_image(content: bytes) -> str:
    with Image.open(io.BytesIO(content)) as image:
        return pytesseract.image_to_string(image, lang="eng").strip()


def _extract_spreadsheet(content: bytes) -> str:
    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, dtype=str)
    parts = []
    for sheet_name, frame in sheets.items():
        sheet_text = frame.fillna("").to_csv(sep="\t", index=False, header=False)
        parts.append(f"[Sheet: {sheet_name}]\n{sheet_text}")
    return "\n".join(parts).strip()


def _extract(filename: str, content: bytes, content_type: str) -> str:
    suffix = PurePath(filename.lower()).suffix

    if content_type.startswith("image/") or suffix in IMAGE_EXTENSIONS:
        return _extract_image(content)

    if content_type == "application/pdf" or suffix == ".pdf":
        return _extract_pdf(content)

    if content_type == DOCX_MIME or suffix == ".docx":
        return _extract_docx(content)

    if suffix in SPREADSHEET_EXTENSIONS:
        return _extract_spreadsheet(content)

    # Some browsers report .csv uploads as application/vnd.ms-excel
    if suffix in TEXT_EXTENSIONS or content_type.startswith("text/"):
        return _extract_plain(content)

    if "spreadsheet" in content_type or "excel" in content_type:
        return _extract_spreadsheet(content)

    raise ExtractionError(f"Unsupported file format: {filename}")


def extract_text(filename: str, content: bytes, content_type: str = "") -> str:
    """Extract readable text from an uploaded file.

    Args:
        filename: Original file name (the extension picks the reader).
        content: Raw file bytes.
        content_type: MIME type reported by the client, if any.

    Returns:
        Extracted text, or a bracketed placeholder on failure.
    """
    try:
        text = _extract(filename, content, content_type or "")
    except ExtractionError as e:
        logger.warning("extract.unsupported", filename=filename, content_type=content_type)
        return f"[{e}]"
    except Exception as e:
        logger.error("extract.failed", filename=filename, error=str(e))
        return f"[Error extracting text from {filename}: {e}]"

    logger.info("extract.ok", filename=filename, chars=len(text))
    return text


def attachment_label(filename: str, text: str) -> str:
    """Block appended to the user's input to carry an attachment's text."""
    return f"\n\n[Attached File: {filename}]\nContent:\n{text}\n\n"
