"""
Stale-question detection.

A conversation is stalled when the assistant asked a question and nobody has
said anything since for longer than the inactivity window.
"""
from datetime import datetime, timedelta
from typing import Optional, Sequence

from dashboard.models import Sender
from dashboard.schemas import MessageResponse
from dashboard.utils.clock import as_naive_utc

FOLLOW_UP_TEXT = (
    "I noticed there's been no response for a while. "
    "I'll proceed with the most reasonable approach based on our previous discussions."
)


def latest_message(messages: Sequence[MessageResponse]) -> Optional[MessageResponse]:
    if not messages:
        return None
    return max(messages, key=lambda m: (as_naive_utc(m.timestamp), m.id))


def needs_follow_up(messages: Sequence[MessageResponse], now: datetime, window: timedelta) -> bool:
    last = latest_message(messages)
    if last is None:
        return False
    if last.sender != Sender.ASSISTANT:
        return False
    if not last.content.endswith("?"):
        return False
    return as_naive_utc(now) - as_naive_utc(last.timestamp) > window
