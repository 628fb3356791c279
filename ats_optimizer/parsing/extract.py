from __future__ import annotations

import io
import logging
from pathlib import PurePath

from docx import Document
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .models import ExtractedDocument

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = {
    ".pdf": "pdf",
    ".docx": "docx",
    ".txt": "txt",
}

_CONTENT_TYPES = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
}


class DocumentExtractionError(ValueError):
    pass


def detect_file_type(file_name: str, content_type: str | None = None) -> str:
    extension = PurePath(file_name or "").suffix.lower()
    if extension in SUPPORTED_TYPES:
        return SUPPORTED_TYPES[extension]
    if content_type:
        detected = _CONTENT_TYPES.get(content_type.split(";")[0].strip().lower())
        if detected:
            return detected
    raise DocumentExtractionError("Invalid file type. Only PDF, DOCX, and TXT files are allowed.")


def _extract_txt(data: bytes) -> tuple[str, list[str]]:
    return data.decode("utf-8", errors="replace"), []


def _extract_pdf(data: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        reader = PdfReader(io.BytesIO(data))
        text_parts = [(page.extract_text() or "").strip() for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as exc:
        raise DocumentExtractionError(f"PDF parsing failed: {exc}") from exc
    text_parts = [part for part in text_parts if part]
    if not text_parts:
        warnings.append("No extractable text found in PDF.")
    return "\n".join(text_parts), warnings


def _extract_docx(data: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        document = Document(io.BytesIO(data))
    except Exception as exc:  # python-docx surfaces zip and xml errors of several types
        raise DocumentExtractionError(f"DOCX parsing failed: {exc}") from exc
    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    if not paragraphs:
        warnings.append("No extractable text found in DOCX.")
    return "\n".join(paragraphs), warnings


_EXTRACTORS = {
    "pdf": _extract_pdf,
    "docx": _extract_docx,
    "txt": _extract_txt,
}


def extract_text(data: bytes, file_name: str, content_type: str | None = None) -> ExtractedDocument:
    """Extract plain text from an uploaded PDF, DOCX or TXT payload."""
    file_type = detect_file_type(file_name, content_type)
    text, warnings = _EXTRACTORS[file_type](data)
    if not text.strip():
        logger.info("document_extraction_empty file_type=%s", file_type)
        raise DocumentExtractionError("Could not extract text from file")
    return ExtractedDocument(
        file_name=PurePath(file_name or f"upload.{file_type}").name,
        file_type=file_type,
        text=text,
        warnings=warnings,
    )
