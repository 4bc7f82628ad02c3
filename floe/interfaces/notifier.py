"""Notifier protocol — where feeder alerts and update logs are sent."""
from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    """Abstract interface for a notification channel."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
