"""
Unit tests for the task relay.

Tests cover:
- Fail-fast without an executor
- Reply passthrough, invalid replies and the optimistic timeout
- Heartbeat and stale reply handling
- Per-connection serialization of submissions
- Verbatim forwarding of caller bodies; closed connections refuse traffic
"""

import asyncio
import json

import pytest

from conftest import FakeExecutorSocket, echo_reply
from flowbridge.modules.api.models import Task
from flowbridge.modules.relay import (
    INVALID_RESPONSE,
    TIMEOUT_NOTE,
    NoPeerAvailable,
    is_heartbeat,
)


def make_task(task_id=None):
    data = {"ops": [{"op": "TEST_CONNECTION"}, {"op": "CREATE_PAGE", "name": "About"}]}
    if task_id:
        data["taskId"] = task_id
    return Task.model_validate(data)


@pytest.mark.asyncio
async def test_submit_without_executor(relay):
    """Test submission fails fast when no executor is registered"""
    with pytest.raises(NoPeerAvailable):
        await relay.submit(make_task())


@pytest.mark.asyncio
async def test_reply_returned_as_received(relay, fake_socket_factory):
    """Test the executor's reply reaches the caller unchanged"""
    replies = {}

    def responder(task):
        reply = {
            "ok": True,
            "taskId": task["taskId"],
            "result": [
                {"op": "TEST_CONNECTION", "success": True, "result": {"timestamp": 1}},
                {"op": "CREATE_PAGE", "success": False, "error": "Designer unavailable"},
            ],
            "extension": {"version": "2.1"},
        }
        replies["sent"] = reply
        return [json.dumps(reply)]

    fake_socket_factory(responder)

    result = await relay.submit(make_task())

    assert result == replies["sent"]


@pytest.mark.asyncio
async def test_task_sent_in_wire_form(relay, fake_socket_factory):
    """Test the task is forwarded with its ops and a stamped taskId"""
    socket = fake_socket_factory(echo_reply)

    await relay.submit(make_task())

    assert len(socket.sent) == 1
    sent = socket.sent[0]
    assert sent["ops"] == [
        {"op": "TEST_CONNECTION"},
        {"op": "CREATE_PAGE", "name": "About"},
    ]
    assert sent["taskId"]


@pytest.mark.asyncio
async def test_caller_task_id_preserved(relay, fake_socket_factory):
    """Test a caller-supplied taskId is kept"""
    socket = fake_socket_factory(echo_reply)

    result = await relay.submit(make_task("caller-1"))

    assert socket.sent[0]["taskId"] == "caller-1"
    assert result["taskId"] == "caller-1"


@pytest.mark.asyncio
async def test_plain_dict_task(relay, fake_socket_factory):
    """Test wire dicts are accepted as well as Task models"""
    socket = fake_socket_factory(echo_reply)

    result = await relay.submit({"ops": [{"op": "TEST_CONNECTION"}]})

    assert result["ok"] is True
    assert socket.sent[0]["ops"] == [{"op": "TEST_CONNECTION"}]


@pytest.mark.asyncio
async def test_caller_body_forwarded_verbatim(relay, fake_socket_factory):
    """Test list-form refs, pageRoot and unknown keys reach the executor untouched"""
    socket = fake_socket_factory(echo_reply)
    body = {
        "ops": [
            {
                "op": "APPLY_STYLE",
                "style": {"name": "Hero", "properties": {"color": "red"}},
                "oids": [["hero", "div > span"], ["intro"]],
            },
            {"op": "ADD_IMAGE", "parentOid": ["hero"], "alt": "x"},
            {"op": "BUILD_TREE", "parent": "pageRoot", "tree": {"tag": "div"}, "extra": 1},
        ],
        "source": "mcp",
    }

    await relay.submit(body)

    sent = socket.sent[0]
    assert sent["ops"] == body["ops"]
    assert sent["source"] == "mcp"
    assert sent["taskId"]
    assert "taskId" not in body


@pytest.mark.asyncio
async def test_reply_without_task_id_accepted(relay, fake_socket_factory):
    """Test replies from executors that do not echo the taskId"""
    fake_socket_factory(lambda task: [json.dumps({"ok": True, "result": []})])

    result = await relay.submit(make_task())

    assert result == {"ok": True, "result": []}


@pytest.mark.asyncio
@pytest.mark.parametrize("frame", ["not json at all", "[1, 2, 3]", '"ok"'])
async def test_invalid_reply(relay, fake_socket_factory, frame):
    """Test unparseable replies become a structured failure"""
    socket = fake_socket_factory(lambda task: [frame])

    result = await relay.submit(make_task())

    assert result == {"ok": False, "error": INVALID_RESPONSE}
    assert socket.connection.awaiting_reply is False


@pytest.mark.slow
@pytest.mark.asyncio
async def test_timeout_returns_optimistic_result(relay, fake_socket_factory, monotonic):
    """Test the relay answers optimistically after the full timeout"""
    socket = fake_socket_factory()

    started = monotonic()
    result = await relay.submit(make_task())
    elapsed = monotonic() - started

    assert result == {"ok": True, "note": TIMEOUT_NOTE}
    assert elapsed >= relay.timeout * 0.9
    assert socket.connection.awaiting_reply is False


@pytest.mark.slow
@pytest.mark.asyncio
async def test_reply_after_timeout_is_ignored(relay, fake_socket_factory):
    """Test a late reply neither raises nor leaks into the next task"""
    socket = fake_socket_factory()

    first = await relay.submit(make_task("slow-1"))
    assert first["note"] == TIMEOUT_NOTE

    assert socket.connection.deliver(json.dumps({"ok": True, "taskId": "slow-1"})) is False


@pytest.mark.asyncio
async def test_heartbeat_does_not_satisfy_waiter(relay, fake_socket_factory):
    """Test heartbeats arriving mid-task are skipped"""
    heartbeat = json.dumps({"ops": [{"op": "TEST_CONNECTION"}]})

    def responder(task):
        return [heartbeat, *echo_reply(task)]

    socket = fake_socket_factory(responder)

    result = await relay.submit(make_task())

    assert result["ok"] is True
    assert result["taskId"] == socket.sent[0]["taskId"]
    assert socket.connection.last_heartbeat_at is not None


def test_is_heartbeat():
    """Test heartbeat detection by envelope shape"""
    assert is_heartbeat('{"ops": [{"op": "TEST_CONNECTION"}]}')
    assert not is_heartbeat('{"ok": true, "ops": []}')
    assert not is_heartbeat('{"ok": true}')
    assert not is_heartbeat("garbage")


@pytest.mark.asyncio
async def test_stale_reply_discarded(relay, fake_socket_factory):
    """Test a reply stamped with another task's id is dropped"""

    def responder(task):
        stale = json.dumps({"ok": False, "taskId": "earlier-task", "error": "late"})
        return [stale, *echo_reply(task)]

    socket = fake_socket_factory(responder)

    result = await relay.submit(make_task())

    assert result["ok"] is True
    assert result["taskId"] == socket.sent[0]["taskId"]


@pytest.mark.asyncio
async def test_concurrent_submissions_serialized(relay, fake_socket_factory):
    """Test only one task is in flight per connection"""
    socket = fake_socket_factory(echo_reply, delay=0.05)

    first, second = await asyncio.gather(
        relay.submit(make_task("task-a")),
        relay.submit(make_task("task-b")),
    )

    assert first["taskId"] == "task-a"
    assert second["taskId"] == "task-b"
    assert socket.events == ["send:task-a", "reply:task-a", "send:task-b", "reply:task-b"]


@pytest.mark.asyncio
async def test_send_failure_clears_registry(relay, registry, fake_socket_factory):
    """Test a dead socket is dropped and reported as no peer"""
    socket = fake_socket_factory(echo_reply)
    socket.fail_sends = True

    with pytest.raises(NoPeerAvailable):
        await relay.submit(make_task())

    assert registry.current() is None
    assert socket.connection.awaiting_reply is False


@pytest.mark.slow
@pytest.mark.asyncio
async def test_queued_submission_after_replacement(relay, registry, fake_socket_factory):
    """Test a task queued behind the lock is not sent to a replaced connection"""
    old = fake_socket_factory()

    first = asyncio.create_task(relay.submit(make_task("first")))
    await asyncio.sleep(0.01)
    second = asyncio.create_task(relay.submit(make_task("second")))
    await asyncio.sleep(0.01)

    replacement = FakeExecutorSocket(echo_reply)
    registry.register(replacement.connection)

    assert (await first)["note"] == TIMEOUT_NOTE
    with pytest.raises(NoPeerAvailable):
        await second

    assert [task["taskId"] for task in old.sent] == ["first"]
    assert replacement.sent == []


@pytest.mark.asyncio
async def test_create_page_reply_scenario(relay, fake_socket_factory):
    """Test the landing page round trip returns the executor's exact result"""
    reply = {
        "ok": True,
        "result": [{"op": "CREATE_PAGE", "success": True, "result": {"pageId": "p1"}}],
    }
    fake_socket_factory(lambda task: [json.dumps(reply)])
    task = Task.model_validate(
        {"ops": [{"op": "CREATE_PAGE", "name": "Landing", "slug": "landing"}]}
    )

    result = await relay.submit(task)

    assert result == reply


@pytest.mark.asyncio
async def test_closed_connection_refuses_send(relay, registry, fake_socket_factory):
    """Test a superseded connection is never written to"""
    socket = fake_socket_factory(echo_reply)
    await socket.connection.close(code=4000)

    with pytest.raises(NoPeerAvailable):
        await relay.submit(make_task())

    assert socket.sent == []
    assert socket.closed_with == 4000
    assert registry.current() is None


@pytest.mark.asyncio
async def test_closed_connection_drops_frames():
    """Test frames arriving after close neither resolve the waiter nor count as heartbeats"""
    socket = FakeExecutorSocket()
    waiter = socket.connection.expect_reply()
    await socket.connection.close()

    assert socket.connection.deliver(json.dumps({"ok": True})) is False
    assert socket.connection.deliver(json.dumps({"ops": [{"op": "TEST_CONNECTION"}]})) is False
    assert not waiter.done()
    assert socket.connection.last_heartbeat_at is None
