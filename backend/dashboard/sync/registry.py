"""
One SyncService per active project, handed to views explicitly.
"""
import asyncio
import logging
from typing import Callable, Dict, Optional

from dashboard.sync.cache import ReadThroughCache
from dashboard.sync.channel import NotificationChannel
from dashboard.sync.client import ProjectApi
from dashboard.sync.listener import listen
from dashboard.sync.service import NotifyCallback, SyncService

logger = logging.getLogger(__name__)


class MissingContextError(RuntimeError):
    """A view asked for a project's sync service before the project was activated."""


class SyncRegistry:
    def __init__(
        self,
        api: ProjectApi,
        channel: NotificationChannel,
        cache: Optional[ReadThroughCache] = None,
        notify: Optional[NotifyCallback] = None,
        service_factory: Callable[..., SyncService] = SyncService,
    ):
        self._api = api
        self._channel = channel
        # Shared across services so invalidations by key reach every view
        self._cache = cache if cache is not None else ReadThroughCache()
        self._notify = notify
        self._factory = service_factory
        self._services: Dict[int, SyncService] = {}
        self._listener: Optional[asyncio.Task] = None

    def __contains__(self, project_id: int) -> bool:
        return project_id in self._services

    def activate(self, project_id: int) -> SyncService:
        service = self._services.get(project_id)
        if service is None:
            service = self._factory(
                project_id,
                api=self._api,
                channel=self._channel,
                cache=self._cache,
                notify=self._notify,
            )
            self._services[project_id] = service
            logger.info("Sync activated", extra={"project_id": project_id})
        return service

    def get(self, project_id: int) -> SyncService:
        try:
            return self._services[project_id]
        except KeyError:
            raise MissingContextError(
                f"No sync service for project {project_id}; activate the project first"
            ) from None

    async def deactivate(self, project_id: int) -> None:
        service = self._services.pop(project_id, None)
        if service is not None:
            await service.close()
            self._cache.invalidate_project(project_id)

    def start_listening(self, url: Optional[str] = None, **options) -> asyncio.Task:
        """Relay the server's /ws stream into the shared channel until close()."""
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(listen(self._channel, url, **options))
        return self._listener

    async def close(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None and not listener.done():
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
        for project_id in list(self._services):
            await self.deactivate(project_id)
