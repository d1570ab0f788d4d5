"""Catwatch — Notification Dispatcher.

Sends one notification round: for every subscriber, a header, one
message per new record (up to the configured cap) and an overflow note.
Every (message, chat) delivery stands alone: a failure is logged and
counted, and the round carries on with the next message and chat.
"""

from __future__ import annotations

import asyncio

from catwatch.config import TelegramConfig
from catwatch.database.models import DispatchReport, Record, Subscriber
from catwatch.errors import NotifyError
from catwatch.notifier.formatters import format_header, format_overflow, format_record
from catwatch.notifier.telegram_bot import OutgoingMessage, TelegramNotifier
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """Fans new records out to all subscribers.

    Attributes:
        config: TelegramConfig (cap and pacing).
        telegram: Transport used for every send.
        listing_url: Linked from the overflow note.
    """

    def __init__(
        self,
        config: TelegramConfig,
        telegram: TelegramNotifier,
        listing_url: str,
    ) -> None:
        self.config = config
        self.telegram = telegram
        self.listing_url = listing_url

    def build_messages(self, records: list[Record]) -> tuple[list[OutgoingMessage], int]:
        """Messages for one chat, and how many records overflowed the cap."""
        cap = max(0, self.config.max_notifications)
        shown = records[:cap]
        overflow = len(records) - len(shown)

        messages = [OutgoingMessage(text=format_header(len(records)))]
        for record in shown:
            messages.append(
                OutgoingMessage(
                    text=format_record(record),
                    photo_url=record.image_url,
                    disable_preview=False,
                )
            )
        if overflow > 0:
            messages.append(OutgoingMessage(text=format_overflow(overflow, self.listing_url)))
        return messages, overflow

    async def dispatch(
        self,
        records: list[Record],
        subscribers: list[Subscriber],
    ) -> DispatchReport:
        """Deliver a notification round.

        Args:
            records: New, eligible records in listing order.
            subscribers: Destination chats.

        Returns:
            DispatchReport with per-send success and failure counts.
        """
        report = DispatchReport()
        if not records:
            return report
        if not subscribers:
            logger.warning("%d new records but nobody to notify", len(records))
            return report

        messages, overflow = self.build_messages(records)
        report.overflow = overflow
        report.records_attempted = len(records) - overflow

        for subscriber in subscribers:
            sent_here = 0
            for i, message in enumerate(messages):
                if i > 0 and self.config.message_delay_seconds > 0:
                    await asyncio.sleep(self.config.message_delay_seconds)
                try:
                    await self.telegram.send(subscriber.chat_id, message)
                    report.delivered += 1
                    sent_here += 1
                except NotifyError as e:
                    report.failed += 1
                    report.failures.append(str(e))
                    logger.warning("Notification to %s skipped: %s", subscriber.chat_id, e)

            logger.info(
                "Chat %s (%s): %d/%d messages delivered",
                subscriber.chat_id, subscriber.name or "?", sent_here, len(messages),
            )

        logger.info(
            "Dispatch complete: %d records to %d chats — %d sent, %d failed, %d overflow",
            report.records_attempted, len(subscribers),
            report.delivered, report.failed, overflow,
        )
        return report
