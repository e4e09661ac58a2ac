# resume_assistant/memory/loader.py

"""
Text extraction for uploaded documents.

Architecture contract:
loader → chunker → embedder → chunk store

Supports:
- PDF files (pypdf)
- Markdown and plain-text files

Every parse failure surfaces as ExtractionFailed so ingestion aborts
before anything is written.
"""

import io
import logging

from pypdf import PdfReader

from resume_assistant.config import MAX_DOCUMENT_CHARACTERS
from resume_assistant.errors import ExtractionFailed

logger = logging.getLogger(__name__)


TEXT_EXTENSIONS = (".md", ".txt")


# ============================================================
# SAFETY: CHARACTER LIMIT
# ============================================================

def enforce_character_limit(text: str) -> str:

    if not text:
        return ""

    if len(text) > MAX_DOCUMENT_CHARACTERS:

        logger.warning(
            "Text exceeds max character limit, truncating",
            extra={
                "original_length": len(text),
                "max_allowed": MAX_DOCUMENT_CHARACTERS,
            },
        )

        return text[:MAX_DOCUMENT_CHARACTERS]

    return text


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_text(data: bytes) -> str:

    try:

        reader = PdfReader(io.BytesIO(data))

        parts = []

        for page in reader.pages:

            text = page.extract_text()

            if text:
                parts.append(text)

    except Exception as e:
        raise ExtractionFailed(
            "Could not parse PDF",
            details=str(e),
        ) from e

    return "\n".join(parts)


# ============================================================
# MARKDOWN / PLAIN TEXT LOADER
# ============================================================

def load_plain_text(data: bytes) -> str:

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExtractionFailed(
            "Document is not valid UTF-8 text",
            details=str(e),
        ) from e


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def load_text_from_bytes(data: bytes, file_name: str) -> str:

    if not data:
        raise ExtractionFailed("Document is empty", details=file_name)

    name = file_name.lower()

    if name.endswith(".pdf"):
        text = load_pdf_text(data)

    elif name.endswith(TEXT_EXTENSIONS):
        text = load_plain_text(data)

    else:
        raise ExtractionFailed(
            "Unsupported document type",
            details=file_name,
        )

    if not text.strip():
        raise ExtractionFailed("No text extracted", details=file_name)

    return enforce_character_limit(text)
