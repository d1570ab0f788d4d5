"""Catwatch — Telegram Bot Client.

Messaging transport built on python-telegram-bot v22+. Sends one
message (text, or photo with caption) to one chat:
  - Timeouts and network errors: one retry after a fixed backoff
  - Rate limiting (429): waits retry_after, then counts as transient
  - HTML parse errors: resent once as plain text
  - Rejected photo: resent once as a text message
  - Anything else: NotifyError without retry
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Optional

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import BadRequest, NetworkError, RetryAfter, TelegramError
from telegram.request import HTTPXRequest

from catwatch.config import TelegramConfig
from catwatch.errors import NotifyError
from catwatch.utils.logger import get_logger
from catwatch.utils.resilience import call_with_retry

logger = get_logger(__name__)

_SEND_RETRIES = 1
_MAX_RETRY_AFTER = 30.0


@dataclass
class OutgoingMessage:
    """Content of a single outbound message.

    Attributes:
        text: HTML text, used as caption when photo_url is set.
        photo_url: Optional image to send with text as caption.
        disable_preview: Disable link previews for text messages.
    """

    text: str
    photo_url: Optional[str] = None
    disable_preview: bool = True


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, NotifyError) and error.transient


class TelegramNotifier:
    """Async Telegram bot used as the notification transport.

    Attributes:
        config: TelegramConfig with bot token and retry settings.
    """

    def __init__(self, config: TelegramConfig, bot: Optional[Bot] = None) -> None:
        self.config = config
        self._bot = bot or Bot(
            token=config.bot_token,
            request=HTTPXRequest(
                connect_timeout=config.timeout_seconds,
                read_timeout=config.timeout_seconds,
                write_timeout=config.timeout_seconds,
            ),
        )

    @property
    def bot(self) -> Bot:
        return self._bot

    async def initialize(self) -> bool:
        """Verify the token with getMe.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            await self._bot.initialize()
            me = await self._bot.get_me()
            logger.info("Telegram bot connected: @%s", me.username)
            return True
        except TelegramError as e:
            logger.error("Telegram bot connection failed: %s", e)
            return False

    async def close(self) -> None:
        try:
            await self._bot.shutdown()
        except TelegramError as e:
            logger.debug("Telegram bot shutdown error: %s", e)

    async def send(self, chat_id: str, message: OutgoingMessage) -> str:
        """Deliver a message to one chat.

        Args:
            chat_id: Destination chat id.
            message: Text or photo-with-caption content.

        Returns:
            The Telegram message id as a string.

        Raises:
            NotifyError: When delivery failed, after the single retry for
                transient failures.
        """
        return await call_with_retry(
            self._send_once,
            chat_id,
            message,
            retries=_SEND_RETRIES,
            backoff_seconds=self.config.retry_backoff_seconds,
            should_retry=_is_transient,
            label=f"Telegram send to {chat_id}",
        )

    async def _send_once(self, chat_id: str, message: OutgoingMessage) -> str:
        try:
            if message.photo_url:
                return await self._send_photo(chat_id, message)
            return await self._send_text(chat_id, message.text, message.disable_preview)

        except BadRequest as e:
            error_msg = str(e)
            if "parse" in error_msg.lower():
                logger.warning("Parse error, retrying as plain text: %s", error_msg[:200])
                return await self._send_plain(chat_id, message.text)
            if message.photo_url:
                logger.warning(
                    "Photo rejected for %s (%s), sending as text", chat_id, error_msg[:200],
                )
                return await self._send_plain_or_html(chat_id, message.text)
            raise NotifyError(chat_id, f"Bad request: {error_msg}") from e

        except RetryAfter as e:
            wait = e.retry_after
            seconds = wait.total_seconds() if hasattr(wait, "total_seconds") else float(wait)
            logger.warning("Telegram rate limited. Waiting %.0f seconds...", seconds)
            await asyncio.sleep(min(seconds, _MAX_RETRY_AFTER))
            raise NotifyError(chat_id, "rate limited", transient=True) from e

        except NetworkError as e:
            raise NotifyError(chat_id, f"{type(e).__name__}: {e}", transient=True) from e

        except TelegramError as e:
            raise NotifyError(chat_id, f"{type(e).__name__}: {e}") from e

    async def _send_text(self, chat_id: str, text: str, disable_preview: bool) -> str:
        msg = await self._bot.send_message(
            chat_id=chat_id,
            text=text,
            parse_mode=ParseMode.HTML,
            link_preview_options=LinkPreviewOptions(is_disabled=disable_preview),
        )
        return str(msg.message_id)

    async def _send_photo(self, chat_id: str, message: OutgoingMessage) -> str:
        msg = await self._bot.send_photo(
            chat_id=chat_id,
            photo=message.photo_url,
            caption=message.text,
            parse_mode=ParseMode.HTML,
        )
        return str(msg.message_id)

    async def _send_plain(self, chat_id: str, text: str) -> str:
        try:
            msg = await self._bot.send_message(chat_id=chat_id, text=self._strip_formatting(text))
        except TelegramError as e:
            raise NotifyError(chat_id, f"Plain text fallback failed: {e}") from e
        return str(msg.message_id)

    async def _send_plain_or_html(self, chat_id: str, text: str) -> str:
        try:
            return await self._send_text(chat_id, text, disable_preview=False)
        except BadRequest:
            return await self._send_plain(chat_id, text)
        except TelegramError as e:
            raise NotifyError(chat_id, f"Text fallback failed: {e}") from e

    @staticmethod
    def _strip_formatting(text: str) -> str:
        """Remove HTML formatting for the plain-text fallback."""
        text = re.sub(r'<a href="([^"]+)">([^<]+)</a>', r"\2 (\1)", text)
        text = re.sub(r"<[^>]+>", "", text)
        text = text.replace("&quot;", '"').replace("&lt;", "<").replace("&gt;", ">")
        return text.replace("&amp;", "&")
