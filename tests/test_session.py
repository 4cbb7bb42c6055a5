"""Tests for session models and the in-memory session store."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest
from pydantic import ValidationError

from acp_bridge.errors import SessionNotFoundError
from acp_bridge.session.models import Message, Role, Session
from acp_bridge.session.store import ReadWriteLock, SessionStore

# ------------------------------------------------------------------ #
# Models
# ------------------------------------------------------------------ #


class TestRole:
    def test_parse_case_insensitive(self) -> None:
        assert Role.parse("User") is Role.USER
        assert Role.parse("ASSISTANT") is Role.ASSISTANT
        assert Role.parse("system") is Role.SYSTEM

    def test_parse_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown role: tool"):
            Role.parse("tool")

    def test_str_and_prefix(self) -> None:
        assert str(Role.USER) == "user"
        assert Role.ASSISTANT.prefix == "Assistant"


class TestMessage:
    def test_constructors(self) -> None:
        assert Message.system("s").role is Role.SYSTEM
        assert Message.user("u").role is Role.USER
        assert Message.assistant("a").role is Role.ASSISTANT

    def test_with_name_returns_copy(self) -> None:
        msg = Message.user("hi")
        named = msg.with_name("alice")
        assert named.name == "alice"
        assert msg.name is None
        assert named.timestamp == msg.timestamp

    def test_frozen(self) -> None:
        msg = Message.user("hi")
        with pytest.raises(ValidationError):
            msg.content = "changed"  # type: ignore[misc]

    def test_role_from_string(self) -> None:
        msg = Message.model_validate({"role": "assistant", "content": "x"})
        assert msg.role is Role.ASSISTANT


class TestSession:
    def test_new_without_system_prompt(self) -> None:
        s = Session.new()
        assert s.is_empty()
        assert s.system_prompt is None
        assert s.updated_at >= s.created_at

    def test_new_with_system_prompt(self) -> None:
        s = Session.new("Be concise")
        assert s.system_prompt == "Be concise"
        assert s.message_count == 1
        assert s.messages[0].role is Role.SYSTEM
        assert s.messages[0].content == "Be concise"

    def test_ids_are_unique(self) -> None:
        assert Session.new().id != Session.new().id

    def test_add_message_bumps_updated_at(self) -> None:
        s = Session.new()
        before = s.updated_at
        s.add_user_message("hello")
        assert s.updated_at >= before
        assert s.message_count == 1

    def test_updated_at_never_behind_created_at(self) -> None:
        s = Session.new()
        s.created_at = s.created_at + timedelta(hours=1)
        s.add_user_message("clock skew")
        assert s.updated_at >= s.created_at

    def test_last_messages(self) -> None:
        s = Session.new()
        for i in range(5):
            s.add_user_message(str(i))
        assert [m.content for m in s.last_messages(2)] == ["3", "4"]
        assert len(s.last_messages(10)) == 5
        assert s.last_messages(0) == []

    def test_metadata(self) -> None:
        s = Session.new()
        s.set_metadata("source", "api")
        assert s.get_metadata("source") == "api"
        assert s.get_metadata("missing") is None

    def test_build_prompt(self) -> None:
        s = Session.new("Be concise")
        s.add_user_message("2+2?")
        s.add_assistant_message("4")
        assert s.build_prompt() == "System: Be concise\n\nUser: 2+2?\n\nAssistant: 4"

    def test_build_prompt_empty(self) -> None:
        assert Session.new().build_prompt() == ""

    def test_with_title(self) -> None:
        s = Session.new()
        titled = s.with_title("Math")
        assert titled.title == "Math"
        assert titled.id == s.id
        assert s.title is None

    def test_copy_deep_is_independent(self) -> None:
        s = Session.new()
        copy = s.copy_deep()
        copy.add_user_message("only in copy")
        assert s.is_empty()


# ------------------------------------------------------------------ #
# ReadWriteLock
# ------------------------------------------------------------------ #


class TestReadWriteLock:
    async def test_readers_share(self) -> None:
        lock = ReadWriteLock()
        inside = 0
        peak = 0

        async def reader() -> None:
            nonlocal inside, peak
            async with lock.read():
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(reader() for _ in range(5)))
        assert peak == 5

    async def test_writer_is_exclusive(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []

        async def writer(name: str) -> None:
            async with lock.write():
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        async def reader() -> None:
            async with lock.read():
                events.append("r-in")
                await asyncio.sleep(0.01)
                events.append("r-out")

        await asyncio.gather(writer("a"), reader(), writer("b"))

        # No section ever starts while another is open.
        depth = 0
        for event in events:
            depth += 1 if event.endswith("-in") else -1
            assert depth in (0, 1)

    async def test_waiting_writer_blocks_new_readers(self) -> None:
        lock = ReadWriteLock()
        order: list[str] = []
        first_reader_in = asyncio.Event()

        async def first_reader() -> None:
            async with lock.read():
                first_reader_in.set()
                await asyncio.sleep(0.02)
                order.append("r1")

        async def writer() -> None:
            await first_reader_in.wait()
            async with lock.write():
                order.append("w")

        async def late_reader() -> None:
            await first_reader_in.wait()
            await asyncio.sleep(0.005)
            async with lock.read():
                order.append("r2")

        await asyncio.gather(first_reader(), writer(), late_reader())
        assert order == ["r1", "w", "r2"]

    async def test_released_on_error(self) -> None:
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            async with lock.write():
                raise RuntimeError("boom")
        async with asyncio.timeout(1):
            async with lock.write():
                pass


# ------------------------------------------------------------------ #
# SessionStore
# ------------------------------------------------------------------ #


class TestSessionStore:
    async def test_create_and_get(self) -> None:
        store = SessionStore()
        session = await store.create("Be concise")
        fetched = await store.get(session.id)
        assert fetched.id == session.id
        assert fetched.system_prompt == "Be concise"
        assert fetched.message_count == 1

    async def test_create_with_title(self) -> None:
        store = SessionStore()
        session = await store.create_with_title("Math", "Be concise")
        assert (await store.get(session.id)).title == "Math"

    async def test_get_missing(self) -> None:
        store = SessionStore()
        with pytest.raises(SessionNotFoundError) as exc_info:
            await store.get("nope")
        assert exc_info.value.session_id == "nope"

    async def test_returned_sessions_are_copies(self) -> None:
        store = SessionStore()
        session = await store.create()
        session.add_user_message("not persisted")
        assert (await store.get(session.id)).is_empty()

    async def test_update_replaces(self) -> None:
        store = SessionStore()
        session = await store.create()
        session.add_user_message("hello")
        await store.update(session)
        assert (await store.get(session.id)).message_count == 1

    async def test_update_is_not_upsert(self) -> None:
        store = SessionStore()
        with pytest.raises(SessionNotFoundError):
            await store.update(Session.new())
        assert await store.count() == 0

    async def test_delete_returns_prior_value(self) -> None:
        store = SessionStore()
        session = await store.create("sys")
        deleted = await store.delete(session.id)
        assert deleted.id == session.id
        assert not await store.exists(session.id)
        with pytest.raises(SessionNotFoundError):
            await store.delete(session.id)

    async def test_list_and_count(self) -> None:
        store = SessionStore()
        ids = {(await store.create()).id for _ in range(3)}
        assert {s.id for s in await store.list()} == ids
        assert await store.count() == 3

    async def test_add_message(self) -> None:
        store = SessionStore()
        session = await store.create()
        await store.add_message(session.id, Message.user("hi"))
        stored = await store.get(session.id)
        assert [m.content for m in stored.messages] == ["hi"]
        assert stored.updated_at >= stored.created_at

    async def test_add_message_missing(self) -> None:
        store = SessionStore()
        with pytest.raises(SessionNotFoundError):
            await store.add_message("nope", Message.user("hi"))

    async def test_get_or_create_existing(self) -> None:
        store = SessionStore()
        session = await store.create()
        assert (await store.get_or_create(session.id)).id == session.id
        assert await store.count() == 1

    async def test_get_or_create_missing_makes_unrelated_session(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        store = SessionStore()
        with caplog.at_level(logging.WARNING):
            session = await store.get_or_create("requested-id")
        assert session.id != "requested-id"
        assert await store.exists(session.id)
        assert not await store.exists("requested-id")
        assert "requested-id" in caplog.text

    async def test_clear(self) -> None:
        store = SessionStore()
        await store.create()
        await store.clear()
        assert await store.count() == 0

    async def test_concurrent_creates_are_unique(self) -> None:
        store = SessionStore()
        sessions = await asyncio.gather(*(store.create() for _ in range(50)))
        assert len({s.id for s in sessions}) == 50
        assert await store.count() == 50

    async def test_concurrent_add_message_loses_nothing(self) -> None:
        store = SessionStore()
        session = await store.create()
        await asyncio.gather(
            *(store.add_message(session.id, Message.user(str(i))) for i in range(20))
        )
        assert (await store.get(session.id)).message_count == 20
