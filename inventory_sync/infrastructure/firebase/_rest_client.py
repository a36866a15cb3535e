"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
All HTTP calls use httpx.AsyncClient so they do not block the event loop.
HTTP failures are mapped to the domain's remote store exceptions:
401/403 -> RemotePermissionException, other errors -> RemoteStoreException.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
from google.auth import exceptions as google_auth_exceptions

from inventory_sync.domain.exceptions import (
    RemotePermissionException,
    RemoteStoreException,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except (json.JSONDecodeError, ValueError):
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        return body.get("error", {}).get("message") or resp.reason_phrase
    return resp.reason_phrase


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
    path: str | None = None,
) -> Any:
    """Perform async HTTP request to Firestore REST API. 404 returns None."""
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    try:
        if method == "GET":
            resp = await client.get(url, headers=headers)
        elif method == "POST":
            resp = await client.post(url, headers=headers, json=body)
        else:
            raise ValueError(f"Unsupported method: {method!r}")
    except httpx.HTTPError as e:
        raise RemoteStoreException(f"Firestore request failed: {e}", path=path) from e
    if resp.status_code == 404:
        return None
    if resp.status_code in (401, 403):
        raise RemotePermissionException(
            _error_message(resp), status_code=resp.status_code, path=path
        )
    if resp.status_code not in (200, 204):
        raise RemoteStoreException(
            f"Firestore returned {resp.status_code}: {_error_message(resp)}",
            status_code=resp.status_code,
            path=path,
        )
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin).

    ``credentials`` may be None for the emulator or tests; requests are then
    sent without an Authorization header.
    """

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        base_url: str = _BASE,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._base = base_url.rstrip("/")
        self.database = f"projects/{project_id}/databases/(default)"
        self.prefix = f"{self.database}/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self._project_id

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str | None:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        if self._credentials is None:
            return None
        try:
            return await asyncio.to_thread(_get_access_token, self._credentials)
        except google_auth_exceptions.RefreshError as e:
            raise RemotePermissionException(f"Could not refresh credentials: {e}") from e
        except google_auth_exceptions.TransportError as e:
            raise RemoteStoreException(f"Token refresh failed: {e}") from e

    def document_name(self, path: str) -> str:
        """Full resource name for a document path (projects/.../documents/<path>)."""
        return f"{self.prefix}/{path.strip('/')}"

    def relative_path(self, name: str) -> str:
        """Inverse of document_name()."""
        return name.removeprefix(f"{self.prefix}/")

    async def get_document(self, path: str) -> dict | None:
        """Return the raw REST Document, or None if it does not exist."""
        return await _request_async(
            self._http,
            f"{self._base}/{self.document_name(path)}",
            access_token=await self.get_token(),
            path=path,
        )

    async def run_query(self, parent_path: str, structured_query: dict) -> list[dict]:
        """Run a structured query under parent_path ("" for root collections)."""
        parent = self.document_name(parent_path) if parent_path else self.prefix
        resp = await _request_async(
            self._http,
            f"{self._base}/{parent}:runQuery",
            method="POST",
            body={"structuredQuery": structured_query},
            access_token=await self.get_token(),
            path=parent_path or None,
        )
        if resp is None:
            return []
        return resp if isinstance(resp, list) else [resp]

    async def commit(self, writes: list[dict]) -> dict:
        """Apply writes atomically (documents:commit)."""
        resp = await _request_async(
            self._http,
            f"{self._base}/{self.database}/documents:commit",
            method="POST",
            body={"writes": writes},
            access_token=await self.get_token(),
        )
        if resp is None:
            raise RemoteStoreException("Firestore commit endpoint not found", status_code=404)
        return resp
