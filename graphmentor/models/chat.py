# models/chat.py
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, model_validator


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Attachment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    mime_type: str = Field(..., alias="mimeType")
    encoded_data: str = Field(..., alias="encodedData")  # base64, no data-URL prefix

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class McqData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    options: List[str]
    correct_answer: str = Field(..., alias="correctAnswer")
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def _answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError("correctAnswer must be one of the options")
        return self


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_id)
    role: Literal["user", "model"]
    content: str
    attachments: Optional[List[Attachment]] = None
    mcqs: Optional[List[McqData]] = None
    graph_expressions: Optional[List[str]] = Field(default=None, alias="graphExpressions")
    is_error: bool = Field(default=False, alias="isError")
    timestamp: datetime = Field(default_factory=_now)


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = Field(default=None, alias="userId")
    title: str = "New Chat"
    messages: List[Message] = []
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_now, alias="updatedAt")

    def append(self, message: Message) -> None:
        if self.title == "New Chat" and message.role == "user" and message.content:
            self.title = message.content[:40]
        self.messages.append(message)
        self.updated_at = _now()
