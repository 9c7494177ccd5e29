"""
Project API used by the sync component, and its HTTP implementation.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from dashboard.config import settings
from dashboard.models import LogType, Sender
from dashboard.schemas import LogResponse, MessageResponse

logger = logging.getLogger(__name__)


class ProjectApiError(Exception):
    """A request to the project API failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ProjectApi(Protocol):
    async def create_message(
        self,
        project_id: int,
        content: str,
        sender: Sender,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MessageResponse: ...

    async def create_log(
        self,
        project_id: int,
        log_type: str,
        title: str,
        details: Optional[str] = None,
    ) -> LogResponse: ...

    async def list_messages(self, project_id: int) -> List[MessageResponse]: ...

    async def list_logs(self, project_id: int) -> List[LogResponse]: ...


class HttpProjectApi:
    """ProjectApi over the dashboard's HTTP routes."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpProjectApi":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ProjectApiError(f"Request failed: {e}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = body.get("message") if isinstance(body, dict) and body.get("message") else response.text
            logger.warning(f"{method} {path} returned {response.status_code}", extra={"status": response.status_code})
            raise ProjectApiError(
                message or f"HTTP {response.status_code}",
                status_code=response.status_code,
                details=body,
            )
        return response.json()

    async def create_message(
        self,
        project_id: int,
        content: str,
        sender: Sender,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MessageResponse:
        payload = {"project_id": project_id, "content": content, "sender": Sender(sender).value}
        if metadata is not None:
            payload["metadata"] = metadata
        data = await self._request("POST", "/api/messages/create", json=payload)
        return MessageResponse.model_validate(data)

    async def create_log(
        self,
        project_id: int,
        log_type: str = LogType.EXECUTION.value,
        title: str = "",
        details: Optional[str] = None,
    ) -> LogResponse:
        payload = {"project_id": project_id, "type": log_type, "title": title, "details": details}
        data = await self._request("POST", "/api/logs/create", json=payload)
        return LogResponse.model_validate(data)

    async def list_messages(self, project_id: int) -> List[MessageResponse]:
        data = await self._request("GET", f"/api/projects/{project_id}/messages")
        return [MessageResponse.model_validate(item) for item in data]

    async def list_logs(self, project_id: int) -> List[LogResponse]:
        data = await self._request("GET", f"/api/projects/{project_id}/logs")
        return [LogResponse.model_validate(item) for item in data]
