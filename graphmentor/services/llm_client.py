# services/llm_client.py
import re
import base64
import binascii
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import google.generativeai as genai

from graphmentor.config import (
    GEMINI_API_KEY,
    GEMINI_MODEL,
    GEMINI_TEMPERATURE,
    GEMINI_MAX_OUTPUT_TOKENS,
)
from graphmentor.errors import InvalidSequence, ModelError
from graphmentor.models.request_models import HistoryTurn

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")

ROLES = ("user", "model")

InlinePart = Dict[str, Any]
Turn = Union[HistoryTurn, Dict[str, str]]


def _role_and_content(turn: Turn):
    if isinstance(turn, dict):
        return turn.get("role"), turn.get("content", "")
    return turn.role, turn.content


def validate_history(history: Sequence[Turn], next_role: Optional[str] = None) -> None:
    """
    Raise InvalidSequence unless roles alternate user, model, user, ...
    With ``next_role`` the turn about to be sent must continue the alternation too.
    """
    for i, turn in enumerate(history):
        expected = ROLES[i % 2]
        role, _ = _role_and_content(turn)
        if role != expected:
            raise InvalidSequence(i, expected, str(role))
    if next_role is not None:
        expected = ROLES[len(history) % 2]
        if next_role != expected:
            raise InvalidSequence(len(history), expected, next_role)


def history_to_contents(history: Sequence[Turn]) -> List[Dict[str, Any]]:
    contents = []
    for turn in history:
        role, content = _role_and_content(turn)
        contents.append({"role": role, "parts": [content]})
    return contents


def image_part(mime_type: str, base64_data: str) -> Optional[InlinePart]:
    try:
        data = base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Dropping undecodable {mime_type} payload: {e}")
        return None
    if not data:
        return None
    return {"mime_type": mime_type, "data": data}


def image_part_from_data_url(data_url: Optional[str]) -> Optional[InlinePart]:
    """Inline image part for a canvas data URL; malformed URLs are dropped."""
    if not data_url:
        return None
    match = DATA_URL_RE.match(data_url)
    if not match:
        logger.warning("Invalid canvasDataUrl format, ignoring canvas image")
        return None
    subtype = match.group(1)
    mime_type = "image/jpeg" if subtype == "jpg" else f"image/{subtype}"
    return image_part(mime_type, data_url[match.end():])


class ModelClient:
    """
    Thin async wrapper over a Gemini GenerativeModel.

    ``model`` may be any object exposing ``generate_content_async`` and
    ``start_chat``; when omitted a real model is configured from the API key.
    """

    def __init__(self, model=None, api_key: Optional[str] = None, model_name: str = GEMINI_MODEL):
        if model is None:
            if not api_key:
                raise ModelError("GEMINI_API_KEY not set in environment")
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(
                model_name,
                generation_config={
                    "temperature": GEMINI_TEMPERATURE,
                    "max_output_tokens": GEMINI_MAX_OUTPUT_TOKENS,
                },
            )
        self.model = model
        self.model_name = model_name

    @staticmethod
    def _parts(prompt: str, images: Iterable[Optional[InlinePart]]) -> List[Any]:
        return [prompt, *[img for img in images if img]]

    @staticmethod
    def _text(response) -> str:
        try:
            text = response.text
        except ValueError as e:
            # raised by the SDK when the candidate was blocked or empty
            raise ModelError(f"Empty or blocked response: {e}")
        if not text:
            raise ModelError("No candidates in Gemini response")
        return text

    async def generate(self, prompt: str, images: Iterable[Optional[InlinePart]] = ()) -> str:
        """Stateless one-shot call."""
        parts = self._parts(prompt, images)
        try:
            response = await self.model.generate_content_async(parts)
        except Exception as e:
            logger.error(f"Gemini API request failed: {e}")
            raise ModelError(str(e))
        text = self._text(response)
        logger.info(f"Gemini call successful: {len(text)} chars generated ({len(parts) - 1} inline part(s))")
        return text

    async def chat(self, history: Sequence[Turn], prompt: str, images: Iterable[Optional[InlinePart]] = ()) -> str:
        """Send one turn on a chat session seeded with ``history``."""
        validate_history(history, next_role="user")
        parts = self._parts(prompt, images)
        try:
            session = self.model.start_chat(history=history_to_contents(history))
            response = await session.send_message_async(parts)
        except Exception as e:
            logger.error(f"Gemini chat request failed: {e}")
            raise ModelError(str(e))
        text = self._text(response)
        logger.info(f"Gemini chat turn successful: {len(text)} chars after {len(history)} history turn(s)")
        return text

    async def reply(self, history: Sequence[Turn], prompt: str, images: Iterable[Optional[InlinePart]] = ()) -> str:
        if history:
            return await self.chat(history, prompt, images)
        return await self.generate(prompt, images)


_client: Optional[ModelClient] = None


def get_model_client() -> ModelClient:
    global _client
    if _client is None:
        _client = ModelClient(api_key=GEMINI_API_KEY)
    return _client
