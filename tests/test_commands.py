"""Tests for the /start, /status, /stop handlers and membership tracking.

Updates are SimpleNamespace stand-ins carrying only the attributes the
handlers read; the subscriber directory is real.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from telegram.constants import ChatMemberStatus

from catwatch.database.db import Database
from catwatch.notifier.commands import (
    ACTIVATED_TEXT,
    NOT_SUBSCRIBED_TEXT,
    STOPPED_TEXT,
    SUBSCRIBED_TEXT,
    CommandHandler,
)
from catwatch.notifier.subscribers import SubscriberDirectory


def _chat(chat_id: int = 42, **names) -> SimpleNamespace:
    return SimpleNamespace(
        id=chat_id,
        title=names.get("title"),
        username=names.get("username"),
        first_name=names.get("first_name"),
        type=names.get("type", "private"),
    )


def _command(chat: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(
        effective_chat=chat,
        effective_message=SimpleNamespace(reply_text=AsyncMock()),
    )


def _membership(chat: SimpleNamespace, status: str) -> SimpleNamespace:
    return SimpleNamespace(
        my_chat_member=SimpleNamespace(
            chat=chat,
            new_chat_member=SimpleNamespace(status=status),
        )
    )


def _context() -> SimpleNamespace:
    return SimpleNamespace(bot=SimpleNamespace(send_message=AsyncMock()))


def _run(scenario):
    async def _main():
        async with Database(":memory:") as db:
            directory = SubscriberDirectory(db)
            return await scenario(CommandHandler(directory), directory)
    return asyncio.run(_main())


class TestCommands:
    def test_start_subscribes(self) -> None:
        update = _command(_chat(42, username="alice"))

        async def scenario(handler, directory):
            await handler._cmd_start(update, _context())
            return await directory.list_subscribers()

        [sub] = _run(scenario)
        assert (sub.chat_id, sub.name) == ("42", "alice")
        update.effective_message.reply_text.assert_awaited_once()

    def test_status_reflects_subscription(self) -> None:
        before = _command(_chat(42))
        after = _command(_chat(42))

        async def scenario(handler, directory):
            await handler._cmd_status(before, _context())
            await directory.add(42, "alice")
            await handler._cmd_status(after, _context())

        _run(scenario)
        before.effective_message.reply_text.assert_awaited_once_with(NOT_SUBSCRIBED_TEXT)
        after.effective_message.reply_text.assert_awaited_once_with(SUBSCRIBED_TEXT)

    def test_stop_unsubscribes(self) -> None:
        update = _command(_chat(42))

        async def scenario(handler, directory):
            await directory.add(42, "alice")
            await handler._cmd_stop(update, _context())
            return await directory.is_subscribed(42)

        assert _run(scenario) is False
        update.effective_message.reply_text.assert_awaited_once_with(STOPPED_TEXT)

    def test_update_without_chat_is_ignored(self) -> None:
        update = SimpleNamespace(effective_chat=None, effective_message=None)

        async def scenario(handler, directory):
            await handler._cmd_start(update, _context())
            return await directory.list_subscribers()

        assert _run(scenario) == []


class TestMembershipTracking:
    def test_added_to_group(self) -> None:
        group = _chat(-500, title="Cat lovers", type="group")
        context = _context()

        async def scenario(handler, directory):
            await handler._on_my_chat_member(_membership(group, ChatMemberStatus.MEMBER), context)
            return await directory.list_subscribers()

        [sub] = _run(scenario)
        assert (sub.chat_id, sub.name) == ("-500", "Cat lovers")
        context.bot.send_message.assert_awaited_once_with(chat_id=-500, text=ACTIVATED_TEXT)

    def test_removed_or_kicked(self) -> None:
        group = _chat(-500, title="Cat lovers", type="group")

        async def scenario(handler, directory):
            await directory.add(-500, "Cat lovers")
            await handler._on_my_chat_member(_membership(group, ChatMemberStatus.LEFT), _context())
            left = await directory.is_subscribed(-500)
            await directory.add(-500, "Cat lovers")
            await handler._on_my_chat_member(_membership(group, ChatMemberStatus.BANNED), _context())
            return left, await directory.is_subscribed(-500)

        assert _run(scenario) == (False, False)

    def test_register_adds_handlers(self) -> None:
        tg_app = MagicMock()

        async def scenario(handler, directory):
            handler.register(tg_app)

        _run(scenario)
        assert tg_app.add_handler.call_count == 4
