"""Remote hosting API probe (GitHub-compatible REST)."""

import logging
from typing import Any, List, Optional

import httpx

from .base import NETWORK_ERROR, NOT_FOUND, PARSE_ERROR, TIMEOUT, ProbeError, ProbeResult, capture

logger = logging.getLogger(__name__)


class HostingClient:
    """Read-only queries against a repository hosting API."""

    def __init__(
        self,
        *,
        base_url: str = "https://api.github.com",
        token: str = "",
        timeout_s: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_s,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HostingClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get(self, path: str) -> Any:
        try:
            response = self._client.get(path)
        except httpx.TimeoutException as e:
            raise ProbeError(TIMEOUT, f"GET {path}") from e
        except httpx.HTTPError as e:
            raise ProbeError(NETWORK_ERROR, f"GET {path}: {e}") from e
        logger.debug("GET %s -> %s", path, response.status_code)
        if response.status_code == 404:
            raise ProbeError(NOT_FOUND, f"GET {path} returned 404")
        if response.status_code >= 400:
            raise ProbeError(NETWORK_ERROR, f"GET {path} returned status_{response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise ProbeError(PARSE_ERROR, f"GET {path}: {e}") from e

    def repository_exists(self, slug: str) -> ProbeResult[bool]:
        """True when the repository is visible, False on 404."""

        def query() -> bool:
            try:
                self._get(f"/repos/{slug}")
            except ProbeError as e:
                if e.cause == NOT_FOUND:
                    return False
                raise
            return True

        return capture(query)

    def list_files(self, slug: str, directory: str = "") -> ProbeResult[List[str]]:
        """Names of the entries in one directory of the default branch."""

        def query() -> List[str]:
            payload = self._get(f"/repos/{slug}/contents/{directory}")
            if not isinstance(payload, list):
                raise ProbeError(PARSE_ERROR, f"contents of {slug}/{directory} is not a listing")
            return [str(entry.get("name", "")) for entry in payload if isinstance(entry, dict)]

        return capture(query)
