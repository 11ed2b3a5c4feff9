import pytest

from graphmentor.models.chat import Conversation, McqData, Message
from graphmentor.services.chat_store import InMemoryChatStore, MongoChatStore


@pytest.mark.asyncio
async def test_in_memory_round_trip_is_isolated():
    store = InMemoryChatStore()
    chat = Conversation(id="c1", user_id="ada@example.com")
    chat.append(Message(role="user", content="What is a vector?"))
    await store.save(chat)

    chat.append(Message(role="model", content="An arrow."))
    loaded = await store.get("c1")
    assert len(loaded.messages) == 1
    assert loaded.title == "What is a vector?"


@pytest.mark.asyncio
async def test_list_for_user_newest_first():
    store = InMemoryChatStore()
    older = Conversation(id="old", user_id="u")
    newer = Conversation(id="new", user_id="u")
    newer.append(Message(role="user", content="later"))
    await store.save(older)
    await store.save(newer)
    await store.save(Conversation(id="other", user_id="someone-else"))

    assert [c.id for c in await store.list_for_user("u")] == ["new", "old"]


@pytest.mark.asyncio
async def test_delete_reports_missing():
    store = InMemoryChatStore()
    await store.save(Conversation(id="c1"))
    assert await store.delete("c1")
    assert not await store.delete("c1")


def test_mongo_document_mapping():
    chat = Conversation(id="c9", user_id="u")
    chat.append(Message(
        role="model",
        content="quiz",
        mcqs=[McqData(question="q", options=["a", "b"], correct_answer="a")],
        graph_expressions=["y=x"],
    ))
    doc = MongoChatStore._to_doc(chat)
    assert doc["_id"] == "c9"
    assert "id" not in doc
    assert doc["userId"] == "u"
    assert doc["messages"][0]["graphExpressions"] == ["y=x"]
    assert doc["messages"][0]["mcqs"][0]["correctAnswer"] == "a"

    restored = MongoChatStore._from_doc(doc)
    assert restored.id == "c9"
    assert restored.messages[0].mcqs[0].correct_answer == "a"


def test_mcq_answer_must_be_an_option():
    with pytest.raises(ValueError):
        McqData(question="q", options=["a", "b"], correct_answer="c")


def test_messages_are_immutable():
    msg = Message(role="user", content="hi")
    with pytest.raises(ValueError):
        msg.content = "changed"
