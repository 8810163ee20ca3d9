"""HTTP client for the claude-mem background worker.

The worker owns the authoritative settings and renders context previews.
This client implements both collaborator ports the editor needs:
``PreviewService.fetch_preview`` and ``SaveHandler.save``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse, urlunparse

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import PreviewFetchError, SaveFailure, WorkerUnavailableError
from ..ports import PreviewResult, SaveResult

logger = logging.getLogger(__name__)

DEFAULT_WORKER_URL = "http://127.0.0.1:37777"


def _normalize_worker_url(url: str) -> str:
    """Normalize the worker base URL.

    Users often paste the viewer URL with an ``/api`` suffix; the client
    expects the server root.
    """
    raw = (url or "").strip()
    if not raw:
        return raw

    parsed = urlparse(raw)
    path = (parsed.path or "").rstrip("/")
    if path == "/api":
        parsed = parsed._replace(path="")

    return urlunparse(parsed).rstrip("/")


@dataclass
class WorkerConfig:
    """Configuration for the worker connection."""

    url: str = DEFAULT_WORKER_URL
    timeout: float = 30.0
    preview_timeout: float = 60.0

    def __post_init__(self) -> None:
        self.url = _normalize_worker_url(self.url)

    @classmethod
    def from_settings(cls, settings) -> "WorkerConfig":
        """Create config from the application settings."""
        return cls(
            url=settings.worker.url,
            timeout=settings.worker.timeout_seconds,
            preview_timeout=settings.worker.preview_timeout_seconds,
        )


class WorkerError(Exception):
    """Error from the worker API."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class RetryableWorkerError(WorkerError):
    """Worker error that should be retried."""


# Reads of authoritative state are retried; preview and save never are.
_retry_config = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type((RetryableWorkerError, httpx.TransportError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class WorkerClient:
    """Client for the claude-mem worker HTTP API.

    Provides methods for:
    - Loading and saving the flat settings map
    - Listing known projects
    - Rendering a context preview for an unsaved configuration
    """

    def __init__(self, config: WorkerConfig):
        self.config = config
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.url,
                timeout=self.config.timeout,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =========================================================================
    # Health
    # =========================================================================

    async def health(self) -> bool:
        """Check if the worker is reachable."""
        try:
            response = await self.client.get("/api/health")
            return response.status_code == 200
        except httpx.RequestError as e:
            logger.warning(f"Worker health check request error: {e}")
            return False

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_settings(self) -> Dict[str, str]:
        """Load the authoritative settings map.

        Raises:
            WorkerUnavailableError: If the worker cannot be reached.
            WorkerError: If the worker rejects the request.
        """
        try:
            data = await self._get_json("/api/settings")
        except httpx.TransportError as e:
            raise WorkerUnavailableError(self.config.url, str(e)) from e
        if not isinstance(data, dict):
            raise WorkerError("Worker returned malformed settings")
        return {str(k): "" if v is None else str(v) for k, v in data.items()}

    async def save(self, configuration: Mapping[str, str]) -> SaveResult:
        """Persist a configuration through the worker.

        Never raises: failures are reported in the returned SaveResult.
        """
        payload = {str(k): str(v) for k, v in configuration.items()}
        try:
            response = await self.client.post("/api/settings", json=payload)
            self._check_response(response)
            data = self._json_or_empty(response)
            if not isinstance(data, dict):
                data = {}
            if data.get("success") is False:
                raise SaveFailure(data.get("error") or "Worker rejected settings")
        except SaveFailure as e:
            return SaveResult(success=False, message=e.reason)
        except WorkerError as e:
            return SaveResult(success=False, message=str(e))
        except httpx.RequestError as e:
            logger.warning(f"Worker save request error: {e}")
            return SaveResult(success=False, message=f"Worker unavailable: {e}")

        saved = data.get("settings")
        saved_config = (
            {str(k): str(v) for k, v in saved.items()} if isinstance(saved, dict) else None
        )
        return SaveResult(success=True, message="Settings saved", configuration=saved_config)

    # =========================================================================
    # Projects & preview
    # =========================================================================

    @_retry_config
    async def list_projects(self) -> List[str]:
        """List the projects the worker has observations for."""
        return await self._fetch_projects()

    async def fetch_preview(
        self, configuration: Mapping[str, str], project: Optional[str] = None
    ) -> PreviewResult:
        """Render the context ``configuration`` would inject for ``project``.

        Unknown or missing projects resolve to the first known project.

        Raises:
            PreviewFetchError: If the projects or the preview cannot be fetched.
        """
        try:
            projects = await self._fetch_projects()
        except (WorkerError, httpx.RequestError) as e:
            raise PreviewFetchError(f"could not list projects: {e}", project) from e

        if project is None or project not in projects:
            project = projects[0] if projects else None

        payload: Dict[str, Any] = {"settings": {str(k): str(v) for k, v in configuration.items()}}
        if project is not None:
            payload["project"] = project

        try:
            response = await self.client.post(
                "/api/context/preview",
                json=payload,
                timeout=self.config.preview_timeout,
            )
            self._check_response(response)
        except WorkerError as e:
            raise PreviewFetchError(str(e), project, e.status_code) from e
        except httpx.RequestError as e:
            raise PreviewFetchError(f"worker unavailable: {e}", project) from e

        text = response.text
        if response.headers.get("content-type", "").startswith("application/json"):
            data = self._json_or_empty(response)
            if not isinstance(data, dict):
                data = {}
            text = data.get("preview") or data.get("context") or ""
        return PreviewResult(text=text, projects=projects, project=project)

    # =========================================================================
    # Helpers
    # =========================================================================

    @_retry_config
    async def _get_json(self, path: str, **params) -> Any:
        response = await self.client.get(path, params=params or None)
        self._check_response(response)
        return response.json()

    async def _fetch_projects(self) -> List[str]:
        response = await self.client.get("/api/projects")
        self._check_response(response)
        data = self._json_or_empty(response)
        projects = data.get("projects", []) if isinstance(data, dict) else data
        return [str(p) for p in projects or []]

    @staticmethod
    def _json_or_empty(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {}

    def _check_response(self, response: httpx.Response):
        """Check response for errors and raise WorkerError if needed.

        Raises RetryableWorkerError for 5xx errors (server errors).
        Raises WorkerError for 4xx errors (client errors).
        """
        if response.status_code < 400:
            return
        try:
            body = response.json()
            detail = body.get("error") or body.get("detail") or response.text
        except Exception:
            detail = response.text
        if response.status_code >= 500:
            raise RetryableWorkerError(f"Worker server error: {detail}", response.status_code)
        raise WorkerError(f"Worker API error: {detail}", response.status_code)
