# client/session.py
"""
Client-side chat flow.

Holds the visible message list of one conversation, talks to ``/api/chat``
over httpx, and drives the canvas and graph panels. The user message is
appended before the request goes out and the reply after it resolves.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from graphmentor.agents.prompt_composer import wants_canvas
from graphmentor.client.panels import CanvasPanel, GraphPanel
from graphmentor.errors import (
    CanvasNotReady,
    ChatNotFound,
    ChatRequestError,
    FileReadError,
    FileTooLarge,
    LibraryLoadTimeout,
    UnsupportedType,
)
from graphmentor.models.chat import Attachment, Conversation, McqData, Message
from graphmentor.services.attachments import encode_file
from graphmentor.services.chat_store import ChatStore, InMemoryChatStore

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "👋 Hi! I'm GraphMentor, your AI tutor for math, physics, and computer science. "
    "How can I help you today?\n\n"
    "- Ask me questions about any topic\n"
    "- Use @canvas to analyze your handwritten notes\n"
    "- Use @graph to visualize mathematical concepts\n"
    "- Use @mcq to quiz yourself\n"
    "- Upload images for me to analyze"
)

FALLBACK_REPLY = "Sorry, I couldn't generate a response."


@dataclass
class Notice:
    title: str
    description: str = ""
    variant: str = "default"  # or "destructive"


@dataclass
class McqOutcome:
    correct: bool
    selected: str
    correct_answer: str
    explanation: Optional[str] = None


def _response_json(resp: httpx.Response) -> Dict[str, Any]:
    content_type = resp.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise ChatRequestError(f"Received non-JSON response: {content_type or 'none'}")
    data = resp.json()
    if not resp.is_success:
        message = data.get("error") or data.get("details") or f"HTTP error! status: {resp.status_code}"
        raise ChatRequestError(message, status_code=resp.status_code, details=data.get("details"))
    return data


def _parse_mcqs(raw: Any) -> Optional[List[McqData]]:
    if not isinstance(raw, list):
        return None
    mcqs = []
    for item in raw:
        try:
            mcqs.append(McqData.model_validate(item))
        except ValidationError:
            logger.warning("Dropping MCQ that failed validation on the client")
    return mcqs or None


def _parse_expressions(raw: Any) -> Optional[List[str]]:
    if not isinstance(raw, list):
        return None
    exprs = []
    for expr in raw:
        if isinstance(expr, dict) and "latex" in expr:
            expr = expr["latex"]
        if isinstance(expr, str):
            exprs.append(expr)
    return exprs


class ChatSession:
    def __init__(
        self,
        http: httpx.AsyncClient,
        canvas: Optional[CanvasPanel] = None,
        graph: Optional[GraphPanel] = None,
        store: Optional[ChatStore] = None,
        snapshot_timeout: float = 0.15,
        graph_timeout: Optional[float] = None,
    ):
        self.http = http
        self.canvas = canvas or CanvasPanel()
        self.graph = graph or GraphPanel()
        self.store = store or InMemoryChatStore()
        self.snapshot_timeout = snapshot_timeout
        self.graph_timeout = graph_timeout
        self.notices: List[Notice] = []
        self.attachment: Optional[Attachment] = None
        self.is_processing_file = False
        self.is_loading = False
        self.selections: Dict[str, Dict[int, str]] = {}
        self.conversation = self._fresh_conversation()

    @staticmethod
    def _fresh_conversation() -> Conversation:
        conversation = Conversation()
        conversation.append(Message(role="model", content=WELCOME_MESSAGE))
        return conversation

    @property
    def messages(self) -> List[Message]:
        return self.conversation.messages

    def _notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.notices.append(Notice(title, description, variant))

    # ---------- attachments ----------
    async def select_attachment(self, name: str, data, mime_type: str) -> bool:
        self.is_processing_file = True
        try:
            self.attachment = await asyncio.to_thread(encode_file, name, data, mime_type, True)
            return True
        except (FileTooLarge, UnsupportedType, FileReadError) as e:
            logger.warning(f"Rejected attachment {name}: {e.message}")
            self._notify(e.message, e.details or "", "destructive")
            self.attachment = None
            return False
        finally:
            self.is_processing_file = False

    def remove_attachment(self) -> None:
        self.attachment = None

    # ---------- history ----------
    def build_history(self) -> List[Dict[str, str]]:
        """Completed user/model exchanges only, so roles always alternate from user."""
        history = []
        msgs = self.messages
        i = 0
        while i < len(msgs) - 1:
            user, model = msgs[i], msgs[i + 1]
            if user.role == "user" and model.role == "model" and not model.is_error:
                history.append({"role": "user", "content": user.content})
                history.append({"role": "model", "content": model.content})
                i += 2
            else:
                i += 1
        return history

    # ---------- submit ----------
    async def _canvas_snapshot(self) -> Optional[str]:
        self.canvas.open()
        try:
            return await self.canvas.request_snapshot(self.snapshot_timeout)
        except CanvasNotReady:
            raise
        except Exception as e:
            logger.error(f"Error getting canvas data: {e}")
            self._notify("Canvas Error", "Failed to get canvas data.", "destructive")
            return None

    async def submit(self, text: str) -> Optional[Message]:
        """Send one user turn; returns the reply (or error) message appended."""
        content = (text or "").strip()
        attachment = self.attachment
        if not content and attachment is None:
            return None

        canvas_data_url = None
        if wants_canvas(content):
            try:
                canvas_data_url = await self._canvas_snapshot()
            except CanvasNotReady as e:
                self._notify(e.message, e.details or "", "destructive")
                return None

        if "@graph" in content.lower():
            self.graph.open()

        history = self.build_history()
        user_message = Message(
            role="user",
            content=content or f"Analyze this image: {attachment.name}",
            attachments=[attachment] if attachment else None,
        )
        self.conversation.append(user_message)
        self.is_loading = True
        self.graph.clear()

        payload = {
            "id": self.conversation.id,
            "message": user_message.content,
            "history": history,
            "canvasDataUrl": canvas_data_url,
            "attachmentData": None,
        }
        if attachment:
            payload["attachmentData"] = {
                "mimeType": attachment.mime_type,
                "base64Data": attachment.encoded_data,
                "fileType": "Image" if attachment.is_image else "Document",
                "fileName": attachment.name,
            }

        try:
            try:
                resp = await self.http.post("/api/chat", json=payload)
                data = _response_json(resp)
            except (httpx.HTTPError, ChatRequestError, ValueError) as e:
                logger.error(f"API call failed: {e}")
                message = getattr(e, "message", None) or str(e) or "Could not connect to AI."
                self._notify("Error", message, "destructive")
                reply = Message(role="model", content=f"Error: {message}", is_error=True)
                self.conversation.append(reply)
                await self.store.save(self.conversation)
                return reply

            expressions = _parse_expressions(data.get("desmosExpressions"))
            reply = Message(
                role="model",
                content=data.get("reply") or FALLBACK_REPLY,
                mcqs=_parse_mcqs(data.get("mcqData")),
                graph_expressions=expressions,
            )
            self.conversation.append(reply)
            self.remove_attachment()

            if expressions:
                try:
                    await self.graph.plot(expressions, timeout=self.graph_timeout)
                except LibraryLoadTimeout as e:
                    self._notify("Graph Error", f"{e.message}: {e.details}", "destructive")
        finally:
            self.is_loading = False

        await self.store.save(self.conversation)
        return reply

    # ---------- quiz ----------
    def select_mcq_option(self, message_id: str, mcq_index: int, option: str) -> Optional[McqOutcome]:
        message = next((m for m in self.messages if m.id == message_id), None)
        if message is None or not message.mcqs or not 0 <= mcq_index < len(message.mcqs):
            return None
        mcq = message.mcqs[mcq_index]
        self.selections.setdefault(message_id, {})[mcq_index] = option

        outcome = McqOutcome(
            correct=option == mcq.correct_answer,
            selected=option,
            correct_answer=mcq.correct_answer,
            explanation=mcq.explanation,
        )
        if outcome.correct:
            self._notify("Correct!", f'Answer "{option}" is right.')
        else:
            self._notify("Incorrect", f'Correct answer: "{mcq.correct_answer}".', "destructive")
        return outcome

    # ---------- conversations ----------
    async def new_chat(self) -> None:
        await self.store.save(self.conversation)
        self.conversation = self._fresh_conversation()
        self.selections = {}
        self.remove_attachment()
        self.graph.clear()

    async def open_chat(self, chat_id: str) -> None:
        conversation = await self.store.get(chat_id)
        if conversation is None:
            raise ChatNotFound("Not Found", details=chat_id)
        self.conversation = conversation
        self.selections = {}

    async def delete_chat(self, chat_id: str) -> None:
        await self.store.delete(chat_id)
        if chat_id == self.conversation.id:
            self.conversation = self._fresh_conversation()
            self.selections = {}

    async def list_chats(self) -> List[Conversation]:
        return await self.store.list_for_user(None)
