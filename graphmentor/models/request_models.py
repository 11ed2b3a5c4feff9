# models/request_models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from graphmentor.models.chat import McqData


class HistoryTurn(BaseModel):
    role: str
    content: str = ""


class AttachmentData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(..., alias="mimeType")
    base64_data: str = Field(..., alias="base64Data")
    file_name: str = Field("attachment", alias="fileName")
    file_type: Optional[str] = Field(None, alias="fileType")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    history: List[HistoryTurn] = Field(default_factory=list)
    canvas_data_url: Optional[str] = Field(None, alias="canvasDataUrl")
    attachment_data: Optional[AttachmentData] = Field(None, alias="attachmentData")
    id: Optional[str] = None  # conversation id, persisted when the caller is authenticated


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    desmos_expressions: Optional[List[str]] = Field(None, alias="desmosExpressions")
    mcq_data: Optional[List[McqData]] = Field(None, alias="mcqData")


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    file_type: str = Field(..., alias="fileType")
    summary: str
    raw_text: str = Field(..., alias="rawText")


class ChatSummary(BaseModel):
    id: str
    title: str
