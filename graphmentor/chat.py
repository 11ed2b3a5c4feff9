# chat.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from graphmentor.agents.extractor import StructuredReply, extract_structured
from graphmentor.agents.prompt_composer import compose_prompt
from graphmentor.auth import optional_user, verify_token
from graphmentor.errors import ChatNotFound, Unauthorized, ValidationError
from graphmentor.models.chat import Attachment, Conversation, Message
from graphmentor.models.request_models import ChatRequest, ChatResponse, ChatSummary
from graphmentor.services.attachments import decode_attachment
from graphmentor.services.chat_store import ChatStore, get_chat_store
from graphmentor.services.llm_client import (
    ModelClient,
    get_model_client,
    image_part,
    image_part_from_data_url,
    validate_history,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


async def _writable_chat(store: ChatStore, chat_id: str, user_id: str) -> Conversation:
    conversation = await store.get(chat_id)
    if conversation is None:
        return Conversation(id=chat_id, user_id=user_id)
    if conversation.user_id != user_id:
        raise Unauthorized("Unauthorized")
    return conversation


async def _persist_turn(
    store: ChatStore,
    conversation: Conversation,
    request: ChatRequest,
    structured: StructuredReply,
) -> None:
    attachments = None
    if request.attachment_data:
        attachments = [Attachment(
            name=request.attachment_data.file_name,
            mime_type=request.attachment_data.mime_type,
            encoded_data=request.attachment_data.base64_data,
        )]
    conversation.append(Message(role="user", content=request.message, attachments=attachments))
    conversation.append(Message(
        role="model",
        content=structured.reply,
        mcqs=structured.mcqs,
        graph_expressions=structured.desmos_expressions,
    ))
    await store.save(conversation)
    logger.info(f"Saved chat {conversation.id} for {conversation.user_id} ({len(conversation.messages)} messages)")


@router.post("/api/chat", response_model=ChatResponse)
async def chat_endpoint(
    request: ChatRequest,
    client: ModelClient = Depends(get_model_client),
    store: ChatStore = Depends(get_chat_store),
    user_id: Optional[str] = Depends(optional_user),
):
    if not request.message or not request.message.strip():
        raise ValidationError("Message is required")

    validate_history(request.history, next_role="user")

    conversation = None
    if request.id and user_id:
        conversation = await _writable_chat(store, request.id, user_id)

    images = []
    attachment = request.attachment_data
    if attachment:
        decode_attachment(attachment.file_name, attachment.base64_data, attachment.mime_type, strict=False)
        if attachment.mime_type.startswith("image/"):
            images.append(image_part(attachment.mime_type, attachment.base64_data))
    images.append(image_part_from_data_url(request.canvas_data_url))

    composed = compose_prompt(
        request.message,
        canvas_data_url=request.canvas_data_url,
        attachment=attachment,
        history=request.history,
    )

    text = await client.reply(request.history, composed.combined_prompt(), images)
    structured = extract_structured(text)

    if conversation is not None:
        await _persist_turn(store, conversation, request, structured)

    return ChatResponse(
        reply=structured.reply,
        desmos_expressions=structured.desmos_expressions,
        mcq_data=structured.mcqs,
    )


async def _owned_chat(store: ChatStore, chat_id: Optional[str], user_id: Optional[str]) -> Conversation:
    if not chat_id:
        raise ChatNotFound("Not Found")
    if not user_id:
        raise Unauthorized("Unauthorized")
    chat = await store.get(chat_id)
    if chat is None:
        raise ChatNotFound("Not Found")
    if chat.user_id != user_id:
        raise Unauthorized("Unauthorized")
    return chat


@router.get("/api/chat", response_model=Conversation)
async def get_chat(
    id: Optional[str] = Query(None),
    store: ChatStore = Depends(get_chat_store),
    user_id: Optional[str] = Depends(optional_user),
):
    return await _owned_chat(store, id, user_id)


@router.delete("/api/chat")
async def delete_chat(
    id: Optional[str] = Query(None),
    store: ChatStore = Depends(get_chat_store),
    user_id: Optional[str] = Depends(optional_user),
):
    chat = await _owned_chat(store, id, user_id)
    await store.delete(chat.id)
    logger.info(f"Deleted chat {chat.id} for {user_id}")
    return {"message": "Chat deleted"}


@router.get("/api/history", response_model=List[ChatSummary])
async def chat_history(
    store: ChatStore = Depends(get_chat_store),
    user_id: str = Depends(verify_token),
):
    chats = await store.list_for_user(user_id)
    return [ChatSummary(id=c.id, title=c.title) for c in chats]
