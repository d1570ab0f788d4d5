"""Catwatch — Telegram Command Handlers.

Subscriber self-service via the bot:
  /start  — subscribe this chat
  /status — am I subscribed?
  /stop   — unsubscribe this chat

Adding the bot to a group subscribes the group; removing or kicking it
unsubscribes. Uses python-telegram-bot v22+ Application with polling.
"""

from __future__ import annotations

from telegram import Chat, Update
from telegram.constants import ChatMemberStatus, ParseMode
from telegram.ext import (
    Application,
    ChatMemberHandler,
    CommandHandler as TgCmdHandler,
    ContextTypes,
)

from catwatch.notifier.subscribers import SubscriberDirectory
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

WELCOME_TEXT = (
    "🐱 <b>Welcome to Cat Searcher!</b>\n"
    "You will receive notifications about new adoptable cats.\n"
    "\n"
    "<b>Commands:</b>\n"
    "/status — check if you're subscribed\n"
    "/stop — unsubscribe from notifications"
)
ACTIVATED_TEXT = (
    "🐱 Cat Searcher bot has been activated! "
    "You will now receive notifications about new adoptable cats."
)
SUBSCRIBED_TEXT = "✅ You are subscribed to cat notifications!"
NOT_SUBSCRIBED_TEXT = "❌ You are not subscribed. Send /start to subscribe."
STOPPED_TEXT = "👋 You have been unsubscribed from cat notifications. Send /start to subscribe again."

_JOINED = {ChatMemberStatus.MEMBER, ChatMemberStatus.ADMINISTRATOR}
_LEFT = {ChatMemberStatus.LEFT, ChatMemberStatus.BANNED}


def _chat_name(chat: Chat) -> str:
    return chat.title or chat.username or chat.first_name or chat.type


class CommandHandler:
    """Registers the subscription commands with a Telegram Application.

    Attributes:
        directory: Where subscriptions are stored.
    """

    def __init__(self, directory: SubscriberDirectory) -> None:
        self.directory = directory

    def register(self, tg_app: Application) -> None:
        tg_app.add_handler(TgCmdHandler("start", self._cmd_start))
        tg_app.add_handler(TgCmdHandler("status", self._cmd_status))
        tg_app.add_handler(TgCmdHandler("stop", self._cmd_stop))
        tg_app.add_handler(
            ChatMemberHandler(self._on_my_chat_member, ChatMemberHandler.MY_CHAT_MEMBER)
        )
        logger.info("Registered 3 Telegram commands and membership tracking")

    async def _cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat = update.effective_chat
        if chat is None or update.effective_message is None:
            return
        await self.directory.add(chat.id, _chat_name(chat))
        await update.effective_message.reply_text(WELCOME_TEXT, parse_mode=ParseMode.HTML)

    async def _cmd_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat = update.effective_chat
        if chat is None or update.effective_message is None:
            return
        subscribed = await self.directory.is_subscribed(chat.id)
        await update.effective_message.reply_text(
            SUBSCRIBED_TEXT if subscribed else NOT_SUBSCRIBED_TEXT
        )

    async def _cmd_stop(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat = update.effective_chat
        if chat is None or update.effective_message is None:
            return
        await self.directory.remove(chat.id)
        await update.effective_message.reply_text(STOPPED_TEXT)

    async def _on_my_chat_member(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Track the bot being added to or removed from a chat."""
        member_update = update.my_chat_member
        if member_update is None:
            return

        chat = member_update.chat
        status = member_update.new_chat_member.status
        logger.info("Bot status changed in chat %s (%s): %s", chat.id, _chat_name(chat), status)

        if status in _JOINED:
            await self.directory.add(chat.id, _chat_name(chat))
            await context.bot.send_message(chat_id=chat.id, text=ACTIVATED_TEXT)
        elif status in _LEFT:
            await self.directory.remove(chat.id)
