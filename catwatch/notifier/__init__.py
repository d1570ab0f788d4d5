"""Catwatch — Notifier Package.

Telegram notification system. Components:
  - formatters: HTML message builders (header, record, overflow)
  - telegram_bot: Async Telegram bot client with retry/fallback
  - dispatcher: Per-subscriber notification rounds
  - subscribers: Registered chat directory
"""

from catwatch.notifier.dispatcher import NotificationDispatcher
from catwatch.notifier.formatters import format_header, format_overflow, format_record
from catwatch.notifier.subscribers import SubscriberDirectory
from catwatch.notifier.telegram_bot import OutgoingMessage, TelegramNotifier

__all__ = [
    "format_header",
    "format_record",
    "format_overflow",
    "OutgoingMessage",
    "TelegramNotifier",
    "NotificationDispatcher",
    "SubscriberDirectory",
]
