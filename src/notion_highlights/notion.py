"""Minimal Notion API client covering the calls the sync needs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
BOOKMARK_ICON = "\U0001f516"


class NotionApiError(RuntimeError):
    """Raised when a Notion request fails or returns an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class CreatePageParams:
    """Everything needed to create a book page inside the highlights database."""

    parent_database_id: str
    title: str
    author: str
    book_name: str
    children: List[Dict[str, Any]] = field(default_factory=list)
    icon: str = BOOKMARK_ICON

    def to_payload(self) -> Dict[str, Any]:
        return {
            "parent": {"database_id": self.parent_database_id},
            "icon": {"type": "emoji", "emoji": self.icon},
            "properties": {
                "Title": {"title": [_rich_text(self.title)]},
                "Author": {"rich_text": [_rich_text(self.author)]},
                "Book Name": {"rich_text": [_rich_text(self.book_name)]},
            },
            "children": self.children,
        }


def _rich_text(content: str) -> Dict[str, Any]:
    return {"type": "text", "text": {"content": content}}


def title_filter(book_name: str) -> Dict[str, Any]:
    """Database filter matching pages whose ``Book Name`` equals ``book_name``."""

    return {"property": "Book Name", "rich_text": {"equals": book_name}}


class NotionClient:
    """Thin wrapper around the Notion REST endpoints.

    Parameters
    ----------
    token:
        Integration token used as the bearer credential.
    version:
        Value of the ``Notion-Version`` header.
    session:
        Optional ``requests.Session`` instance. Primarily intended for tests so
        that HTTP requests can be mocked.
    timeout:
        Seconds to wait for each request.
    """

    def __init__(
        self,
        token: str,
        *,
        version: str = NOTION_VERSION,
        session: Optional[requests.Session] = None,
        base_url: str = NOTION_API_URL,
        timeout: float = 60.0,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._token = token
        self.version = version
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def query_database(self, database_id: str, filter: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if filter:
            payload["filter"] = filter
        return self._request("POST", f"/databases/{database_id}/query", payload)

    def create_page(self, params: CreatePageParams) -> Dict[str, Any]:
        return self._request("POST", "/pages", params.to_payload())

    def append_block_children(self, block_id: str, children: List[Dict[str, Any]]) -> None:
        self._request("PATCH", f"/blocks/{block_id}/children", {"children": children})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self.version,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method, url, json=payload, headers=self._headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise NotionApiError(f"Notion request to {path} failed: {exc}") from exc

        self._ensure_success(response, path)
        try:
            data = response.json()
        except ValueError as exc:
            raise NotionApiError(f"Received invalid JSON from Notion for {path}", response.status_code) from exc
        if not isinstance(data, dict):
            raise NotionApiError(f"Unexpected response format from Notion for {path}", response.status_code)
        return data

    def _ensure_success(self, response: Any, path: str) -> None:
        status = getattr(response, "status_code", None)
        if status is not None and status < 400:
            return
        message = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("code") or "")
        detail = f": {message}" if message else ""
        raise NotionApiError(f"Notion request to {path} failed with status code {status}{detail}", status)
