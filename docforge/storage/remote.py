"""
Remote document store for DocForge.

This module talks to a PostgREST-style HTTP API exposing a `documents`
table with snake_case columns. Only documents travel to the remote side;
assets stay in a local blob store.
"""

import httpx
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..config import config
from ..exceptions import StorageError
from ..models import Document
from .base import DocumentStore


class RestDocumentStore(DocumentStore):
    """
    Document store backed by a remote REST table.
    """

    TABLE_PATH = "/rest/v1/documents"

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the remote store.

        Args:
            base_url: Root URL of the REST service (defaults to config value)
            api_key: API key sent with every request (defaults to config value)
            client: Pre-built HTTP client, mainly for tests
        """
        self.base_url = (base_url or config.remote_store_url or "").rstrip("/")
        self.api_key = api_key or config.remote_store_key
        self.client = client or httpx.AsyncClient(timeout=config.remote_timeout)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _to_row(document: Document) -> Dict[str, Any]:
        return {
            "id": document.id,
            "user_id": document.owner_id,
            "title": document.title,
            "description": document.description,
            "content": document.content.to_record(),
            "last_modified": document.last_modified,
            "created_at": document.created_at
        }

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> Document:
        try:
            return Document(
                id=row["id"],
                owner_id=row["user_id"],
                title=row.get("title") or "Untitled Document",
                description=row.get("description") or "",
                content=row.get("content") or {"sections": []},
                last_modified=row.get("last_modified") or "",
                created_at=row.get("created_at") or ""
            )
        except (KeyError, ValidationError) as e:
            raise StorageError(f"Remote document row is malformed: {e}") from e

    async def _request(self, method: str, params: Dict[str, str], **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(
                method,
                f"{self.base_url}{self.TABLE_PATH}",
                params=params,
                headers={**self._headers(), **kwargs.pop("headers", {})},
                **kwargs
            )
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            raise StorageError(f"Failed to reach document service: {e}") from e
        except httpx.HTTPStatusError as e:
            raise StorageError(f"Document service request failed: {e}") from e

    async def get(self, document_id: str) -> Optional[Document]:
        response = await self._request("GET", {"id": f"eq.{document_id}", "select": "*"})
        rows = response.json()
        return self._from_row(rows[0]) if rows else None

    async def save(self, document: Document) -> None:
        await self._request(
            "POST",
            {"on_conflict": "id"},
            json=self._to_row(document),
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"}
        )
        logging.debug(f"Saved document {document.id} to remote store")

    async def delete(self, document_id: str) -> None:
        await self._request("DELETE", {"id": f"eq.{document_id}"})

    async def list_by_owner(self, owner_id: str) -> List[Document]:
        response = await self._request("GET", {
            "user_id": f"eq.{owner_id}",
            "select": "*",
            "order": "last_modified.desc"
        })
        return [self._from_row(row) for row in response.json()]

    async def list_all(self) -> List[Document]:
        response = await self._request("GET", {"select": "*", "order": "created_at.asc"})
        return [self._from_row(row) for row in response.json()]
