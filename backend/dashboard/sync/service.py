"""
Client-side synchronization of one project's messages and logs.

SyncService keeps a local copy of the project's conversation and execution
logs, refetches through the read-through cache whenever a change notification
for its project arrives, and posts a single automated follow-up when the
assistant's last question has gone unanswered past the inactivity window.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from dashboard.config import settings
from dashboard.models import LogType, Sender
from dashboard.schemas import (
    CodeBlock,
    CodeMetadata,
    LogResponse,
    MessageResponse,
    Screenshot,
    ScreenshotMetadata,
)
from dashboard.sync.cache import ReadThroughCache
from dashboard.sync.channel import NotificationChannel
from dashboard.sync.client import ProjectApi, ProjectApiError
from dashboard.sync.follow_up import FOLLOW_UP_TEXT, latest_message, needs_follow_up
from dashboard.utils.clock import utcnow
from dashboard.websocket.events import EventType

logger = logging.getLogger(__name__)

MESSAGES = "messages"
LOGS = "logs"

NotifyCallback = Callable[[str, str], None]


class SendFailure(Exception):
    """A message or log could not be created. Nothing is retried."""


@dataclass
class SyncSnapshot:
    messages: List[MessageResponse] = field(default_factory=list)
    logs: List[LogResponse] = field(default_factory=list)
    is_loading: bool = False
    active_task_message: Optional[str] = None


def _log_notification(title: str, description: str) -> None:
    logger.warning(f"{title}: {description}")


class SyncService:
    def __init__(
        self,
        project_id: Optional[int],
        api: ProjectApi,
        channel: NotificationChannel,
        cache: Optional[ReadThroughCache] = None,
        notify: Optional[NotifyCallback] = None,
        inactivity: Optional[timedelta] = None,
        follow_up_delay: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.project_id = project_id
        self._api = api
        self._channel = channel
        self._cache = cache if cache is not None else ReadThroughCache()
        self._notify = notify or _log_notification
        self._inactivity = inactivity or timedelta(hours=settings.FOLLOW_UP_INACTIVITY_HOURS)
        self._delay = settings.FOLLOW_UP_DELAY_SECONDS if follow_up_delay is None else follow_up_delay
        self._clock = clock

        self._messages: List[MessageResponse] = []
        self._logs: List[LogResponse] = []
        self._loading = False
        self._active_task_message: Optional[str] = None
        self._unsubscribers: List[Callable[[], None]] = []
        self._follow_up_task: Optional[asyncio.Task] = None
        self._follow_up_for: Optional[int] = None
        self._follow_up_sending = False
        # Per-resource refetch counters: issued and last applied
        self._requested = {MESSAGES: 0, LOGS: 0}
        self._applied = {MESSAGES: 0, LOGS: 0}
        self._closed = False

    @property
    def snapshot(self) -> SyncSnapshot:
        return SyncSnapshot(
            messages=list(self._messages),
            logs=list(self._logs),
            is_loading=self._loading,
            active_task_message=self._active_task_message,
        )

    @property
    def follow_up_task(self) -> Optional[asyncio.Task]:
        return self._follow_up_task

    async def observe(self) -> SyncSnapshot:
        """Subscribe to change notifications and load the current messages and logs."""
        if self.project_id is None or self._closed:
            return SyncSnapshot()

        if not self._unsubscribers:
            self._unsubscribers = [
                self._channel.add_listener(EventType.MESSAGE_CREATED.value, self.on_remote_message_created),
                self._channel.add_listener(EventType.LOG_CREATED.value, self.on_remote_log_created),
            ]

        self._loading = True
        try:
            await self._refresh_messages()
            await self._refresh_logs()
        finally:
            self._loading = False
        return self.snapshot

    # ============= Notification handlers =============

    async def on_remote_message_created(self, event: Dict[str, Any]) -> None:
        message = event.get("message") or {}
        if self.project_id is None or message.get("project_id") != self.project_id:
            return

        self._cache.invalidate((self.project_id, MESSAGES))
        await self._refresh_messages()

        metadata = message.get("metadata") or {}
        if message.get("sender") == Sender.ASSISTANT.value and metadata.get("type") == "task_status":
            self._active_task_message = message.get("content")

    async def on_remote_log_created(self, event: Dict[str, Any]) -> None:
        log = event.get("log") or {}
        if self.project_id is None or log.get("project_id") != self.project_id:
            return

        self._cache.invalidate((self.project_id, LOGS))
        await self._refresh_logs()

    # ============= Writes =============

    async def add_user_message(self, content: str) -> Optional[MessageResponse]:
        if self.project_id is None:
            return None
        return await self._send_message(content, Sender.USER)

    async def add_assistant_message(
        self,
        content: str,
        metadata: Union[BaseModel, Dict[str, Any], None] = None,
    ) -> Optional[MessageResponse]:
        if self.project_id is None:
            return None
        if isinstance(metadata, BaseModel):
            metadata = metadata.model_dump(mode="json")
        return await self._send_message(content, Sender.ASSISTANT, metadata)

    async def send_code_block(self, content: str, code: str, language: str, filename: str):
        metadata = CodeMetadata(data=CodeBlock(language=language, filename=filename, code=code))
        return await self.add_assistant_message(content, metadata)

    async def send_screenshot(self, content: str, url: str, caption: str = ""):
        metadata = ScreenshotMetadata(data=Screenshot(url=url, caption=caption))
        return await self.add_assistant_message(content, metadata)

    async def add_execution_log(self, title: str, details: Optional[str] = None) -> Optional[LogResponse]:
        if self.project_id is None:
            return None
        try:
            log = await self._api.create_log(self.project_id, LogType.EXECUTION.value, title, details)
        except ProjectApiError as e:
            self._notify("Failed to create log", e.message)
            raise SendFailure(e.message) from e

        self._cache.invalidate((self.project_id, LOGS))
        await self._refresh_logs()
        return log

    async def _send_message(
        self,
        content: str,
        sender: Sender,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MessageResponse:
        try:
            message = await self._api.create_message(self.project_id, content, sender, metadata)
        except ProjectApiError as e:
            self._notify("Failed to send message", e.message)
            raise SendFailure(e.message) from e

        self._cache.invalidate((self.project_id, MESSAGES))
        await self._refresh_messages()
        return message

    # ============= Reads =============

    async def _load(self, resource: str, loader: Callable[[], Awaitable[List[Any]]]) -> Optional[List[Any]]:
        """Fetch a list through the cache.

        Returns None when the fetch failed or when a refetch issued later has
        already been applied, so state only ever moves forward.
        """
        self._requested[resource] += 1
        request = self._requested[resource]
        try:
            rows = await self._cache.get_or_load((self.project_id, resource), loader)
        except ProjectApiError as e:
            logger.warning(f"Failed to load {resource}: {e.message}", extra={"project_id": self.project_id})
            return None
        if request < self._applied[resource]:
            logger.debug(f"Dropping superseded {resource} refetch", extra={"project_id": self.project_id})
            return None
        self._applied[resource] = request
        return list(rows)

    async def _refresh_messages(self) -> None:
        project_id = self.project_id
        messages = await self._load(MESSAGES, lambda: self._api.list_messages(project_id))
        if messages is None:
            return
        self._messages = messages
        self._evaluate_follow_up()

    async def _refresh_logs(self) -> None:
        project_id = self.project_id
        logs = await self._load(LOGS, lambda: self._api.list_logs(project_id))
        if logs is not None:
            self._logs = logs

    # ============= Stale-question follow-up =============

    def _evaluate_follow_up(self) -> None:
        if self._closed or self.project_id is None:
            return

        last = latest_message(self._messages)
        pending = self._follow_up_task is not None and not self._follow_up_task.done()

        # The question was answered (or superseded) before the delay elapsed
        if pending and not self._follow_up_sending and (last is None or last.id != self._follow_up_for):
            self._follow_up_task.cancel()
            pending = False

        if last is None or pending or last.id == self._follow_up_for:
            return
        if not needs_follow_up(self._messages, self._clock(), self._inactivity):
            return

        self._follow_up_for = last.id
        logger.info(
            "Scheduling follow-up for unanswered question",
            extra={"project_id": self.project_id, "message_id": last.id, "event": "follow_up_scheduled"},
        )
        self._follow_up_task = asyncio.create_task(self._send_follow_up())

    async def _send_follow_up(self) -> None:
        await asyncio.sleep(self._delay)
        # Once sending, the refetch this task triggers must not cancel it
        self._follow_up_sending = True
        try:
            await self._api.create_message(self.project_id, FOLLOW_UP_TEXT, Sender.ASSISTANT)
            self._cache.invalidate((self.project_id, MESSAGES))
            await self._refresh_messages()
        except Exception as e:
            logger.error(
                f"Failed to send follow-up message: {e}",
                extra={"project_id": self.project_id, "event": "follow_up_failed"},
                exc_info=not isinstance(e, ProjectApiError),
            )
        finally:
            self._follow_up_sending = False

    async def close(self) -> None:
        """Stop listening. A follow-up still waiting is cancelled; one already sending is awaited."""
        self._closed = True
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

        task = self._follow_up_task
        if task is None or task.done():
            return
        if not self._follow_up_sending:
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
