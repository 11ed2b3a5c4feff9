# services/chat_store.py
"""
Conversation store keyed by conversation id.

Persistence is injected: InMemoryChatStore for tests and single-process
runs, MongoChatStore (motor) when MONGODB_URI is configured.
"""
import logging
from typing import Dict, List, Optional

import motor.motor_asyncio

from graphmentor.config import MONGODB_URI, DB_NAME
from graphmentor.models.chat import Conversation

logger = logging.getLogger(__name__)


class ChatStore:
    async def get(self, chat_id: str) -> Optional[Conversation]:
        raise NotImplementedError

    async def save(self, conversation: Conversation) -> None:
        raise NotImplementedError

    async def delete(self, chat_id: str) -> bool:
        raise NotImplementedError

    async def list_for_user(self, user_id: Optional[str]) -> List[Conversation]:
        raise NotImplementedError


class InMemoryChatStore(ChatStore):
    def __init__(self):
        self._chats: Dict[str, Conversation] = {}

    async def get(self, chat_id: str) -> Optional[Conversation]:
        chat = self._chats.get(chat_id)
        return chat.model_copy(deep=True) if chat else None

    async def save(self, conversation: Conversation) -> None:
        self._chats[conversation.id] = conversation.model_copy(deep=True)

    async def delete(self, chat_id: str) -> bool:
        return self._chats.pop(chat_id, None) is not None

    async def list_for_user(self, user_id: Optional[str]) -> List[Conversation]:
        chats = [c for c in self._chats.values() if c.user_id == user_id]
        return sorted(chats, key=lambda c: c.updated_at, reverse=True)


class MongoChatStore(ChatStore):
    def __init__(self, db):
        self.collection = db.chats

    @staticmethod
    def _to_doc(conversation: Conversation) -> dict:
        doc = conversation.model_dump(mode="json", by_alias=True)
        doc["_id"] = doc.pop("id")
        return doc

    @staticmethod
    def _from_doc(doc: dict) -> Conversation:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return Conversation.model_validate(doc)

    async def get(self, chat_id: str) -> Optional[Conversation]:
        doc = await self.collection.find_one({"_id": chat_id})
        return self._from_doc(doc) if doc else None

    async def save(self, conversation: Conversation) -> None:
        doc = self._to_doc(conversation)
        await self.collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)

    async def delete(self, chat_id: str) -> bool:
        res = await self.collection.delete_one({"_id": chat_id})
        return res.deleted_count > 0

    async def list_for_user(self, user_id: Optional[str]) -> List[Conversation]:
        cursor = self.collection.find({"userId": user_id}).sort("updatedAt", -1)
        docs = await cursor.to_list(length=100)
        return [self._from_doc(d) for d in docs]


_store: Optional[ChatStore] = None


def get_chat_store() -> ChatStore:
    global _store
    if _store is None:
        if MONGODB_URI:
            client = motor.motor_asyncio.AsyncIOMotorClient(MONGODB_URI)
            _store = MongoChatStore(client[DB_NAME])
            logger.info(f"Using MongoDB chat store ({DB_NAME})")
        else:
            _store = InMemoryChatStore()
            logger.info("MONGODB_URI not set, using in-memory chat store")
    return _store
