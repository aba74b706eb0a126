"""GitHub contents API client holding the Markdown bookmark document."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from osmosync.domain.exceptions import (
    RemoteAuthError,
    RemoteConflictError,
    RemoteNetworkError,
    RemoteNotFoundError,
    RemoteStoreError,
)
from osmosync.utils.retry_utils import DEFAULT_MAX_RETRIES, retry_with_backoff

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Self

    from osmosync.config.integrations import GitHubConfig

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
# 409: sha no longer matches; 422: file appeared while we thought it was missing
CONFLICT_STATUS_CODES = frozenset({409, 422})
DEFAULT_MAX_CONFLICT_RETRIES = 2


class GitHubContentClient:
    """Async client for one file in a GitHub repository.

    ``update_content`` is a read-modify-write keyed on the blob sha: when the
    file changes between our read and our write, GitHub rejects the write and
    the cycle starts over from a fresh read.
    """

    def __init__(
        self,
        config: GitHubConfig,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            config: Repository coordinates and credentials
            max_retries: Retry attempts for transient read failures
            max_conflict_retries: Extra read-modify-write cycles on sha conflicts
            transport: Optional httpx transport (used to plug in mock transports)
        """
        self.config = config
        self.max_retries = max_retries
        self.max_conflict_retries = max_conflict_retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        """Enter async context."""
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                "Authorization": f"Bearer {self.config.access_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=self.config.timeout_sec,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RemoteStoreError("Client not initialized. Use async context manager.")
        return self._client

    @property
    def contents_path(self) -> str:
        owner = quote(self.config.username, safe="")
        repo = quote(self.config.repo, safe="")
        return f"/repos/{owner}/{repo}/contents/{quote(self.config.filename)}"

    async def get_content(self) -> str:
        """Fetch the current document text.

        Raises:
            RemoteNotFoundError: The repository or file does not exist.
            RemoteAuthError: The token was rejected.
            RemoteNetworkError: Transport failure or server error after retries.
        """
        text, _sha = await retry_with_backoff(
            self._read,
            max_retries=self.max_retries,
            operation_name="github_get_content",
        )
        if text is None:
            raise RemoteNotFoundError(
                f"{self.config.filename} not found in {self.config.username}/{self.config.repo}"
            )
        return text

    async def update_content(
        self,
        transform: Callable[[str | None], str],
        *,
        message: str,
    ) -> str:
        """Apply ``transform`` to the latest document text and commit the result.

        ``transform`` receives ``None`` when the file does not exist yet. When
        it returns the text unchanged nothing is committed. Returns the text
        as committed.
        """
        for attempt in range(self.max_conflict_retries + 1):
            existing, sha = await retry_with_backoff(
                self._read,
                max_retries=self.max_retries,
                operation_name="github_read_for_update",
            )
            new_text = transform(existing)
            if existing is not None and new_text == existing:
                logger.debug("github_update_noop", extra={"path": self.config.filename})
                return existing

            try:
                await self._write(new_text, sha=sha, message=message)
            except RemoteConflictError as exc:
                logger.warning(
                    "github_update_conflict",
                    extra={
                        "path": self.config.filename,
                        "attempt": attempt + 1,
                        "error": str(exc),
                    },
                )
                continue
            logger.info(
                "github_content_updated",
                extra={
                    "path": self.config.filename,
                    "repo": f"{self.config.username}/{self.config.repo}",
                    "new_file": sha is None,
                },
            )
            return new_text

        raise RemoteConflictError(
            f"{self.config.filename} kept changing during update; "
            f"gave up after {self.max_conflict_retries + 1} attempts"
        )

    async def _read(self) -> tuple[str | None, str | None]:
        params = {"ref": self.config.branch} if self.config.branch else None
        response = await self._send("GET", self.contents_path, params=params)
        if response.status_code == 404:
            return None, None
        self._raise_for_status(response, operation="read")

        data = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            raise RemoteStoreError(f"{self.config.filename} is not a file")
        if data.get("encoding") != "base64":
            raise RemoteStoreError(
                f"{self.config.filename} is too large for the contents API "
                f"(encoding={data.get('encoding')!r})"
            )
        try:
            text = base64.b64decode(data.get("content") or "").decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise RemoteStoreError(f"{self.config.filename} is not valid UTF-8 text") from exc
        return text, data.get("sha")

    async def _write(self, text: str, *, sha: str | None, message: str) -> None:
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        }
        if sha:
            payload["sha"] = sha
        if self.config.branch:
            payload["branch"] = self.config.branch

        response = await self._send("PUT", self.contents_path, json=payload)
        if response.status_code in CONFLICT_STATUS_CODES:
            raise RemoteConflictError(
                f"{self.config.filename} changed during update (HTTP {response.status_code})"
            )
        self._raise_for_status(response, operation="write")

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise RemoteNetworkError(f"GitHub request failed: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response, *, operation: str) -> None:
        status = response.status_code
        if status < 400:
            return

        detail = _error_detail(response)
        details = {"status_code": status, "operation": operation}
        if status == 401:
            raise RemoteAuthError(f"GitHub rejected the access token: {detail}", details)
        if status == 403:
            if response.headers.get("x-ratelimit-remaining") == "0":
                raise RemoteNetworkError(f"GitHub rate limit exceeded: {detail}", details)
            raise RemoteAuthError(f"GitHub denied access: {detail}", details)
        if status == 404:
            raise RemoteNotFoundError(
                f"{self.config.username}/{self.config.repo} not found: {detail}", details
            )
        if status in (408, 429) or status >= 500:
            raise RemoteNetworkError(f"GitHub unavailable (HTTP {status}): {detail}", details)
        raise RemoteStoreError(f"GitHub {operation} failed (HTTP {status}): {detail}", details)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase
