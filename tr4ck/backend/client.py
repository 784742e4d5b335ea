"""HTTP client for the state backend."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """A transient failure talking to the state backend."""


class StateClient:
    """GET/PUT the whole document. Any transport error or non-2xx raises `SyncError`."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise SyncError(f"{method} {path} failed: {exc}") from exc
        if not resp.is_success:
            raise SyncError(f"{method} {path} returned {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise SyncError(f"{method} {path} returned invalid JSON") from exc

    def load(self) -> Any | None:
        """Return the stored document, or None when nothing was saved yet."""
        payload = self._request("GET", "/api/state")
        return payload.get("state") if isinstance(payload, dict) else None

    def save(self, document: dict[str, Any]) -> None:
        self._request("PUT", "/api/state", json={"state": document})

    def health(self) -> bool:
        try:
            payload = self._request("GET", "/health")
        except SyncError:
            return False
        return bool(isinstance(payload, dict) and payload.get("ok"))

    def close(self) -> None:
        self._http.close()
