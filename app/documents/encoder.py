"""Turns uploaded billing documents into base64 payloads for the evaluation call."""

import asyncio
import base64
import logging
from typing import List, Optional, Sequence

from fastapi import UploadFile

from app.core.errors import ValidationError
from app.rules.filing_rules import check_document_capacity
from app.schemas.claim import UploadedFile

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"


def is_supported_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and (mime_type.startswith("image/") or mime_type == PDF_MIME)


async def _encode_one(upload: UploadFile) -> Optional[UploadedFile]:
    try:
        content = await upload.read()
    except Exception as e:
        logger.warning(f"Could not read upload '{upload.filename}': {e}")
        return None

    return UploadedFile(
        data=base64.b64encode(content).decode("ascii"),
        mime_type=upload.content_type,
        name=upload.filename or "document",
    )


async def encode_files(uploads: Sequence[UploadFile], pending_count: int) -> List[UploadedFile]:
    """
    Encode uploads for a filing that already holds `pending_count` documents.

    Capacity and MIME type are checked before anything is read. A file whose
    read fails is dropped from the result; the others are still returned.
    """
    check_document_capacity(pending_count, len(uploads))

    for upload in uploads:
        if not is_supported_mime(upload.content_type):
            raise ValidationError(
                f"Unsupported document type '{upload.content_type}' for '{upload.filename}'. "
                "Upload an image or a PDF.",
                details={"filename": upload.filename},
            )

    results = await asyncio.gather(*(_encode_one(u) for u in uploads))
    encoded = [r for r in results if r is not None]
    logger.info(f"Encoded {len(encoded)} of {len(uploads)} uploaded documents")
    return encoded
