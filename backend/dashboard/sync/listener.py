"""
Relay of the server's /ws broadcast stream into a NotificationChannel.

listen() keeps one connection open, hands every frame to the channel and
reconnects with capped exponential backoff (1s, 2s, 4s, ... up to 30s) when
the connection drops. The attempt counter resets once a connection opens.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit, urlunsplit

import websockets
from websockets.exceptions import WebSocketException

from dashboard.config import settings
from dashboard.sync.channel import NotificationChannel

logger = logging.getLogger(__name__)


def notifications_url(base_url: Optional[str] = None) -> str:
    """ws(s)://host/ws for an http(s) API base URL."""
    parts = urlsplit(base_url or settings.API_BASE_URL)
    scheme = "wss" if parts.scheme == "https" else "ws"
    return urlunsplit((scheme, parts.netloc, "/ws", "", ""))


def reconnect_delay(attempt: int, base: float = 1.0, cap: float = 30.0) -> float:
    return min(base * (2 ** attempt), cap)


async def listen(
    channel: NotificationChannel,
    url: Optional[str] = None,
    max_attempts: Optional[int] = None,
    base_delay: float = 1.0,
    max_delay: Optional[float] = None,
    connect: Callable = websockets.connect,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Feed frames from url into channel until cancelled or reconnects run out."""
    url = url or notifications_url()
    max_attempts = settings.NOTIFICATION_RECONNECT_ATTEMPTS if max_attempts is None else max_attempts
    max_delay = settings.NOTIFICATION_RECONNECT_MAX_DELAY if max_delay is None else max_delay
    attempts = 0

    while True:
        try:
            async with connect(url) as websocket:
                logger.info("Notification stream connected", extra={"event": "ws_connected"})
                attempts = 0
                async for frame in websocket:
                    await channel.publish(frame)
            logger.info("Notification stream closed by server", extra={"event": "ws_closed"})
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning(f"Notification stream error: {e}", extra={"event": "ws_error"})

        if attempts >= max_attempts:
            logger.error(
                "Notification stream closed permanently after max retries",
                extra={"event": "ws_gave_up"},
            )
            return

        delay = reconnect_delay(attempts, base_delay, max_delay)
        attempts += 1
        logger.info(f"Reconnecting to notification stream in {delay:g}s")
        await sleep(delay)
