"""Test suite for history hydration and write-through."""

import asyncio
from uuid import uuid4

import pytest

from docqa_chat.domain.models import Message, Role
from docqa_chat.domain.session import ConversationSession
from docqa_chat.services.dispatcher import ReplyDispatcher
from docqa_chat.services.history import HistoryWriter, open_session


@pytest.mark.asyncio
async def test_open_new_session_stores_welcome(repository):
    """Test a new session's seed messages are stored straight away."""
    session = await open_session(repository)

    assert session.id in await repository.list_sessions()
    stored = await repository.load_history(session.id)
    assert stored == list(session.messages)


@pytest.mark.asyncio
async def test_unknown_session_loads_empty(repository):
    """Test loading a session that was never stored."""
    assert await repository.load_history(uuid4()) == []


@pytest.mark.asyncio
async def test_writer_mirrors_log_order(repository, echo_backend):
    """Test user messages and replies are stored in log order."""
    session = await open_session(repository)
    writer = HistoryWriter(session, repository)
    dispatcher = ReplyDispatcher(session, echo_backend(delay=0.005))

    for i in range(3):
        session.submit(f"question {i}")
    await dispatcher.wait_idle()
    await writer.flush()

    stored = await repository.load_history(session.id)
    assert [m.id for m in stored] == [m.id for m in session.messages]
    assert stored[-1].content == "answer to question 2"

    await dispatcher.close()
    await writer.close()


@pytest.mark.asyncio
async def test_hydrated_session_continues_numbering(repository):
    """Test a reopened session resumes after the stored tail."""
    first = await open_session(repository)
    writer = HistoryWriter(first, repository)
    first.submit("remember this")
    await writer.close()

    reopened = await open_session(repository, first.id)

    assert reopened.id == first.id
    assert list(reopened.messages) == list(first.messages)
    assert reopened.submit("and this").message.id == 4


@pytest.mark.asyncio
async def test_closed_writer_stops_following(repository):
    """Test messages appended after close are not stored."""
    session = await open_session(repository)
    writer = HistoryWriter(session, repository)
    await writer.close()

    session.submit("not persisted")

    assert len(await repository.load_history(session.id)) == 2


@pytest.mark.asyncio
async def test_repository_rejects_out_of_order_append(repository):
    """Test the repository refuses ids that do not follow the stored tail."""
    session_id = uuid4()
    await repository.append_message(session_id, Message(id=5, role=Role.USER, content="five"))

    with pytest.raises(ValueError):
        await repository.append_message(session_id, Message(id=5, role=Role.USER, content="again"))
    with pytest.raises(ValueError):
        await repository.append_message(session_id, Message(id=2, role=Role.USER, content="two"))

    assert [m.id for m in await repository.load_history(session_id)] == [5]


def test_writer_skips_appends_outside_event_loop(repository):
    """Test an append with no running loop is skipped instead of stranded."""
    session = ConversationSession()
    writer = HistoryWriter(session, repository)

    result = session.submit("offline question")

    assert result.accepted
    assert session.messages[-1].content == "offline question"
    asyncio.run(asyncio.wait_for(writer.flush(), timeout=1.0))
    assert asyncio.run(repository.load_history(session.id)) == []
