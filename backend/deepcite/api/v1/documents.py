import logging

from fastapi import APIRouter, File, UploadFile

from deepcite.config import settings
from deepcite.core.exceptions import BadRequestError
from deepcite.schemas.document import UnrecognizedDocument
from deepcite.services.document import parse_document

router = APIRouter()
logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


@router.post(
    "",
    summary="Parse an uploaded document",
    description="Extract text from an uploaded PDF or DOCX (max 10MB). Returns the parsed content with its document kind and, for PDFs, the page count.",
)
async def upload_document(file: UploadFile = File(...)) -> dict:
    filename = file.filename or ""
    logger.info(f"Document upload: {filename} ({file.content_type}, {file.size} bytes)")

    if file.content_type not in ALLOWED_TYPES:
        raise BadRequestError(
            f"Invalid file type: {file.content_type}. Only PDF and DOCX files are supported."
        )

    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise BadRequestError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
        )
    if not data:
        raise BadRequestError("File is empty")

    doc = await parse_document(data, filename)

    if isinstance(doc, UnrecognizedDocument):
        raise BadRequestError("Could not determine document type from filename")

    if doc.error:
        logger.warning(f"Document parsing failed for {filename}: {doc.error}")
        raise BadRequestError(
            doc.error,
            detail={"scraperUsed": getattr(doc, "scraper_used", None)},
        )

    logger.info(f"Parsed {filename}: {doc.kind}, {len(doc.content)} chars")
    return {**doc.model_dump(by_alias=True, exclude_none=True), "filename": filename}
