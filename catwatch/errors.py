"""Catwatch — Error Types.

Errors raised by the ingestion pipeline's components. The orchestrator
decides which of them end a run and which only degrade it:

  FetchError  → retried once; fatal on page 1, a warning on later pages
  StoreError  → always fatal, novelty tracking cannot be trusted
  NotifyError → retried once, then logged and skipped
"""

from __future__ import annotations

from typing import Optional


class CatwatchError(Exception):
    """Base class for all catwatch errors."""


class FetchError(CatwatchError):
    """A listing page could not be retrieved.

    Attributes:
        kind: One of TIMEOUT, HTTP_STATUS or NETWORK.
        url: The URL that was requested.
        status_code: HTTP status for HTTP_STATUS failures, else None.
    """

    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    NETWORK = "network"

    def __init__(
        self,
        kind: str,
        url: str,
        message: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.url = url
        self.status_code = status_code
        detail = message or kind
        if status_code is not None:
            detail = f"HTTP {status_code}" + (f": {message}" if message else "")
        super().__init__(f"Fetch failed for {url} ({detail})")

    @property
    def is_transient(self) -> bool:
        """Whether a retry has a chance of succeeding."""
        return self.kind in (self.TIMEOUT, self.NETWORK)


class StoreError(CatwatchError):
    """The novelty/subscriber store could not be read or written."""


class NotifyError(CatwatchError):
    """A single message could not be delivered to a single chat.

    Attributes:
        chat_id: Destination chat.
        transient: Whether the failure looked like a network hiccup.
    """

    def __init__(self, chat_id: str, message: str, transient: bool = False) -> None:
        self.chat_id = chat_id
        self.transient = transient
        super().__init__(f"Delivery to {chat_id} failed: {message}")
