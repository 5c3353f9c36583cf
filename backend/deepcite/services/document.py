"""Document extraction for PDF and DOCX, from uploaded bytes or from a URL.

Both entry points resolve the document kind from the file extension and
funnel into the same per-kind parser. Raw library output is normalized into
the ParsedDocument union right here and never leaves this module untyped.
"""

import io
import logging

import fitz  # PyMuPDF
import httpx
from docx import Document

from deepcite.core.exceptions import FetchError
from deepcite.core.metrics import document_parse_total
from deepcite.schemas.document import (
    DocxDocument,
    LegacyDocDocument,
    ParsedDocument,
    PdfDocument,
    UnrecognizedDocument,
)
from deepcite.services.fetcher import fetch_page
from deepcite.services.text_utils import cap_content, clean_text

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

EMPTY_BUFFER_ERROR = "Invalid buffer: buffer is empty"
INVALID_PDF_ERROR = "Invalid PDF: buffer does not start with PDF header"
SCANNED_PDF_ERROR = (
    "PDF appears to be empty or contains no extractable text "
    "(may be image-based/scanned PDF)"
)
EMPTY_DOCX_ERROR = "DOCX contains no extractable text"
LEGACY_DOC_ERROR = "Legacy .doc format not supported. Please convert to .docx"

# Checked in order; ".docx" must not be shadowed by ".doc".
_EXTENSIONS = [(".pdf", "pdf"), (".docx", "docx"), (".doc", "doc")]


def get_document_type(name: str) -> str | None:
    """Map a URL or filename to "pdf", "docx", "doc", or None."""
    path = name.lower().split("?")[0].split("#")[0]
    for ext, kind in _EXTENSIONS:
        if path.endswith(ext):
            return kind
    return None


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def _validate_pdf_buffer(data: bytes) -> str | None:
    if not data:
        return EMPTY_BUFFER_ERROR
    if data[:4] != PDF_MAGIC:
        return INVALID_PDF_ERROR
    return None


def _extract_pdf_text(data: bytes) -> tuple[str, int]:
    with fitz.open(stream=data, filetype="pdf") as doc:
        page_count = doc.page_count
        pages = [page.get_text("text") for page in doc]
    return "\n".join(pages), page_count


async def parse_pdf(data: bytes) -> PdfDocument:
    error = _validate_pdf_buffer(data)
    if error:
        return PdfDocument(error=error)

    try:
        text, page_count = _extract_pdf_text(data)
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        return PdfDocument(error=f"PDF extraction failed: {e}")

    trimmed = text.strip()
    if not trimmed:
        return PdfDocument(error=SCANNED_PDF_ERROR, page_count=page_count or None)

    return PdfDocument(
        content=cap_content(clean_text(trimmed)),
        page_count=page_count or None,
    )


# ---------------------------------------------------------------------------
# DOCX
# ---------------------------------------------------------------------------


def _extract_docx_text(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    parts = [para.text for para in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    return "\n".join(parts)


async def parse_docx(data: bytes) -> DocxDocument:
    # No header pre-check: a bad archive fails inside python-docx
    try:
        text = _extract_docx_text(data)
    except Exception as e:
        logger.error(f"DOCX extraction failed: {e}")
        return DocxDocument(error=str(e) or "Failed to parse DOCX")

    content = clean_text(text)
    if not content:
        return DocxDocument(error=EMPTY_DOCX_ERROR)
    return DocxDocument(content=cap_content(content))


async def parse_legacy_doc(data: bytes) -> LegacyDocDocument:
    return LegacyDocDocument(error=LEGACY_DOC_ERROR)


_PARSERS = {
    "pdf": parse_pdf,
    "docx": parse_docx,
    "doc": parse_legacy_doc,
}


async def _parse_kind(kind: str, data: bytes) -> ParsedDocument:
    doc = await _PARSERS[kind](data)
    document_parse_total.labels(kind=kind, status="error" if doc.error else "success").inc()
    return doc


def _fetch_failure(kind: str, reason: str) -> ParsedDocument:
    error = f"Failed to fetch document: {reason}"
    if kind == "pdf":
        return PdfDocument(error=error)
    return DocxDocument(error=error)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def parse_document(
    data: bytes, filename: str
) -> ParsedDocument | UnrecognizedDocument:
    """Parse an in-memory document (e.g. an upload) by its filename."""
    kind = get_document_type(filename)
    if kind is None:
        return UnrecognizedDocument(filename=filename)
    return await _parse_kind(kind, data)


async def parse_document_from_url(
    url: str, client: httpx.AsyncClient | None = None
) -> ParsedDocument | UnrecognizedDocument:
    """Fetch a document URL and parse it with the same per-kind logic."""
    kind = get_document_type(url)
    if kind is None:
        return UnrecognizedDocument(filename=url)
    if kind == "doc":
        return await _parse_kind(kind, b"")

    try:
        response = await fetch_page(url, client=client)
    except FetchError as e:
        logger.warning(f"Document fetch failed for {url}: {e.reason}")
        document_parse_total.labels(kind=kind, status="error").inc()
        return _fetch_failure(kind, e.reason)

    return await _parse_kind(kind, response.content)
