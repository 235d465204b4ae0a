# app/services/pdf_service.py
# PDF helpers -- the page count of a submission is its grading cost in credits

import io
import logging

logger = logging.getLogger("aigrader.pdf")


class InvalidPdf(ValueError):
    """The uploaded bytes are not a readable PDF."""


def count_pages(file_bytes: bytes) -> int:
    """Number of pages in a PDF. Raises InvalidPdf for unreadable or empty files."""
    if not file_bytes:
        raise InvalidPdf("The PDF file is empty.")
    try:
        import pypdf
        reader = pypdf.PdfReader(io.BytesIO(file_bytes))
        pages = len(reader.pages)
    except Exception as e:
        logger.warning(f"PDF page count failed: {e}")
        raise InvalidPdf(f"Could not read PDF: {e}") from e

    if pages < 1:
        raise InvalidPdf("The PDF has no pages.")
    return pages


def looks_like_pdf(file_bytes: bytes) -> bool:
    return file_bytes[:5] == b"%PDF-"
