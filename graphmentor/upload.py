# upload.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from graphmentor.agents.document import extract_text, file_extension, summarize_document
from graphmentor.config import DOCUMENT_RAW_TEXT_LIMIT
from graphmentor.errors import DocumentProcessingError, TutorError, ValidationError
from graphmentor.models.request_models import UploadResponse
from graphmentor.services.llm_client import ModelClient, get_model_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])


@router.post("/api/upload", response_model=UploadResponse)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    client: ModelClient = Depends(get_model_client),
):
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    content = await file.read()
    try:
        text = extract_text(file.filename, content)
    except TutorError:
        raise
    except Exception as e:
        logger.error(f"Document upload error for {file.filename}: {e}")
        raise DocumentProcessingError(str(e))

    summary = await summarize_document(client, text)

    return UploadResponse(
        file_name=file.filename,
        file_type=file_extension(file.filename),
        summary=summary,
        raw_text=text[:DOCUMENT_RAW_TEXT_LIMIT],
    )
