from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, Sequence

from src.logger.console_logger import Logger
from src.models.results import ChannelResult, DispatchResult


class NotificationChannel(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    def send(self, message: str, subject: str = "") -> bool: ...


@dataclass
class NotificationDispatcher:
    """Fans one alert out to every configured channel.

    Channels are attempted concurrently and independently: an unconfigured
    channel is skipped silently, and a channel that errors or reports
    failure does not stop the others. ``dispatch`` itself only raises for
    problems outside any single channel.
    """

    channels: Sequence[NotificationChannel]
    logger: Logger

    async def dispatch(self, message: str, subject: str = "") -> DispatchResult:
        configured = [c for c in self.channels if c.configured]
        skipped = [ChannelResult(channel=c.name, outcome="skipped") for c in self.channels if not c.configured]

        if not configured:
            self.logger.log_debug("No notification channels configured; alert logged only")
            self.logger.log_info(message)

        outcomes = await asyncio.gather(*(self._send_one(c, message, subject) for c in configured))

        return DispatchResult(channels=list(outcomes) + skipped)

    async def _send_one(self, channel: NotificationChannel, message: str, subject: str) -> ChannelResult:
        try:
            ok = await asyncio.to_thread(channel.send, message, subject)
        except Exception as e:
            self.logger.log_error(f"{channel.name} notification failed: {e}")
            return ChannelResult(channel=channel.name, outcome="failed", error=str(e))

        if not ok:
            self.logger.log_warning(f"{channel.name} notification was not accepted")
            return ChannelResult(channel=channel.name, outcome="failed", error="rejected")

        self.logger.log_debug(f"{channel.name} notification delivered")
        return ChannelResult(channel=channel.name, outcome="delivered")
