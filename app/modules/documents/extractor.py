"""Plain-text extraction from uploaded Word (.docx) and PDF documents.

Type and size are checked before any parsing. A PDF without recoverable text
(scanned pages, encryption, damage) is not an error: the caller gets an
explanatory placeholder instead so the later steps keep working.
"""

from __future__ import annotations

import io
import re
from typing import Optional

import docx
from pydantic import BaseModel
from pypdf import PdfReader
from pypdf.errors import FileNotDecryptedError, PdfReadError

from app.core.config import settings
from app.core.errors import (
    DocumentExtractionError,
    DocumentTooLargeError,
    UnsupportedDocumentError,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

DOCX_LABEL = "Word Document (.docx)"
PDF_LABEL = "PDF Document (.pdf)"
MIN_PDF_TEXT = 10

NO_TEXT_PLACEHOLDER = (
    "[PDF contains no readable text. This happens with scanned documents or "
    "images. Try another file or copy the text manually.]"
)
ENCRYPTED_PLACEHOLDER = "[PDF is password protected. Upload an unprotected file.]"
INVALID_PLACEHOLDER = "[PDF file is damaged or invalid. Try another file.]"
UNREADABLE_PLACEHOLDER = (
    "[PDF could not be read. Try another file or copy the text manually.]"
)


class ExtractedDocument(BaseModel):
    filename: str
    size: int
    file_type: str
    content: str
    word_count: int
    character_count: int


def check_upload(filename: str, size: int, max_bytes: Optional[int] = None) -> str:
    """Validate type and size; returns the lower-cased extension."""
    name = (filename or "").lower()
    if name.endswith(".docx"):
        ext = ".docx"
    elif name.endswith(".pdf"):
        ext = ".pdf"
    else:
        raise UnsupportedDocumentError()
    limit = max_bytes if max_bytes is not None else settings.uploads.max_bytes
    if size > limit:
        raise DocumentTooLargeError(limit)
    return ext


def normalize_pdf_text(text: str) -> str:
    text = text.replace("\r\n", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()


def extract_docx_text(data: bytes) -> str:
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Error extracting DOCX: {e}")
        raise DocumentExtractionError(
            "Failed to extract text from Word document"
        ) from e
    return "\n".join(p.text for p in document.paragraphs)


def extract_pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            return ENCRYPTED_PLACEHOLDER
        text = "\n".join((page.extract_text() or "") for page in reader.pages)
    except FileNotDecryptedError:
        return ENCRYPTED_PLACEHOLDER
    except PdfReadError as e:
        logger.warning(f"Invalid PDF: {e}")
        return INVALID_PLACEHOLDER
    except Exception as e:  # noqa: BLE001
        logger.warning(f"PDF extraction failed: {e}")
        return UNREADABLE_PLACEHOLDER

    text = normalize_pdf_text(text)
    if len(text) < MIN_PDF_TEXT:
        logger.warning("PDF has very little or no text content")
        return NO_TEXT_PLACEHOLDER
    return text


def extract_document(
    filename: str, data: bytes, *, max_bytes: Optional[int] = None
) -> ExtractedDocument:
    ext = check_upload(filename, len(data), max_bytes)
    if ext == ".docx":
        content, label = extract_docx_text(data), DOCX_LABEL
    else:
        content, label = extract_pdf_text(data), PDF_LABEL
    logger.info(f"Extracted {len(content)} characters from {filename}")
    return ExtractedDocument(
        filename=filename,
        size=len(data),
        file_type=label,
        content=content,
        word_count=len(content.split()),
        character_count=len(content),
    )
