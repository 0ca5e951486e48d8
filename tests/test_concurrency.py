"""Test suite for concurrent submissions."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from docqa_chat.api.app import create_app


@pytest.mark.asyncio
async def test_concurrent_submissions_get_unique_ids(settings):
    """Test many simultaneous submissions never collide on ids."""
    app = create_app(settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        responses = await asyncio.gather(
            *[client.post("/messages", json={"content": f"Message {i}"}) for i in range(20)]
        )
        assert all(r.status_code == 200 for r in responses)

        ids = [r.json()["message"]["id"] for r in responses]
        assert len(set(ids)) == 20

        messages = (await client.get("/messages")).json()
        assert [m["id"] for m in messages] == list(range(1, 23))


@pytest.mark.asyncio
async def test_concurrent_questions_are_answered_in_order(settings, echo_backend):
    """Test replies always follow their own question under concurrent load."""
    app = create_app(settings, backend=echo_backend(delay=0.005))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        responses = await asyncio.gather(
            *[
                client.post("/messages", params={"wait": "true"}, json={"content": f"What's on page {i}?"})
                for i in range(5)
            ]
        )
        assert all(r.status_code == 200 for r in responses)
        outcomes = [r.json()["outcome"] for r in responses]
        assert "accepted" in outcomes
        assert set(outcomes) <= {"accepted", "queued"}

        messages = (await client.get("/messages")).json()

    assert len(messages) == 2 + 5 * 2
    assert [m["id"] for m in messages] == list(range(1, 13))

    exchanges = messages[2:]
    for question, answer in zip(exchanges[::2], exchanges[1::2]):
        assert question["role"] == "user"
        assert answer["role"] == "assistant"
        assert answer["content"] == f"answer to {question['content']}"

    await app.state.runtime.close()
