"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for dispatch adapters so that the core
can hand transactions to a host app, Telegram or anything else.
"""

from __future__ import annotations

from typing import Protocol

from paynotify.core.models import ExtractedTransaction


class NotifierPort(Protocol):
    """Dispatch operations required by the core pipeline."""

    async def send(self, transaction: ExtractedTransaction) -> None:
        ...
