"""Client for the OpenAI vector store and file endpoints."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from cruxlens.core.config import Settings
from cruxlens.core.exceptions import APIClientError, ConfigurationError, RemoteNotFoundError
from cruxlens.core.http_client import OpenAIHTTPClient
from cruxlens.schemas.retrieval import VectorSearchHit
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

BETA_HEADERS = {"OpenAI-Beta": "assistants=v2"}
MAX_SEARCH_RESULTS = 50


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _require_id(data: Optional[Dict[str, Any]], operation: str) -> str:
    remote_id = data.get("id") if isinstance(data, dict) else None
    if not remote_id:
        raise APIClientError(f"OpenAI {operation} returned no id")
    return remote_id


class VectorIndexClient:
    """Semantic index operations: stores, files, attachments and search.

    Deletion methods treat a 404 as already done.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key or not api_key.strip():
            raise ConfigurationError("OPENAI_API_KEY is not set")
        self.client = OpenAIHTTPClient(
            api_key=api_key.strip(),
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "VectorIndexClient":
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_api_base_url,
            timeout=settings.openai.timeout,
            transport=transport,
        )

    async def _beta(self, path: str, method: str = "GET", payload: Optional[Dict[str, Any]] = None):
        return await self.client.call_api(path, method=method, payload=payload, headers=BETA_HEADERS)

    async def create_store(self, name: str, metadata: Optional[Dict[str, str]] = None) -> str:
        data = await self._beta(
            "/vector_stores", method="POST", payload={"name": name, "metadata": metadata or None}
        )
        store_id = _require_id(data, "vector store create")
        LOGGER.info(f"Created vector store {store_id}", extra={"store_name": name})
        return store_id

    async def delete_store(self, store_id: str) -> None:
        try:
            await self._beta(f"/vector_stores/{_segment(store_id)}", method="DELETE")
        except RemoteNotFoundError:
            LOGGER.debug(f"Vector store {store_id} already deleted")

    async def upload_document(self, filename: str, text: str) -> str:
        data = await self.client.call_api(
            "/files",
            method="POST",
            files={"file": (filename, text.encode("utf-8"), "text/plain; charset=utf-8")},
            data={"purpose": "assistants"},
        )
        return _require_id(data, "file upload")

    async def attach_to_store(self, store_id: str, file_id: str) -> str:
        data = await self._beta(
            f"/vector_stores/{_segment(store_id)}/files",
            method="POST",
            payload={"file_id": file_id},
        )
        return _require_id(data, "vector store attach")

    async def set_attributes(
        self, store_id: str, vector_store_file_id: str, attributes: Dict[str, Any]
    ) -> None:
        await self._beta(
            f"/vector_stores/{_segment(store_id)}/files/{_segment(vector_store_file_id)}",
            method="POST",
            payload={"attributes": attributes or None},
        )

    async def search(self, store_id: str, query: str, max_results: int = 8) -> List[VectorSearchHit]:
        """Ranked semantic search; snippets are the hit's text chunks joined by blank lines."""
        payload = {
            "query": query,
            "max_num_results": max(1, min(MAX_SEARCH_RESULTS, max_results)),
            "rewrite_query": True,
            "ranking_options": {"ranker": "auto"},
        }
        data = await self._beta(
            f"/vector_stores/{_segment(store_id)}/search", method="POST", payload=payload
        )
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []

        hits = []
        for item in items:
            if not isinstance(item, dict) or not item.get("file_id"):
                continue
            chunks = item.get("content") if isinstance(item.get("content"), list) else []
            snippet = "\n\n".join(
                chunk["text"] for chunk in chunks
                if isinstance(chunk, dict) and chunk.get("text")
            )
            score = item.get("score")
            hits.append(
                VectorSearchHit(
                    file_id=item["file_id"],
                    score=score if isinstance(score, (int, float)) else 0.0,
                    snippet=snippet,
                    attributes=item.get("attributes") or None,
                )
            )
        return hits

    async def detach_from_store(self, store_id: str, vector_store_file_id: str) -> None:
        try:
            await self._beta(
                f"/vector_stores/{_segment(store_id)}/files/{_segment(vector_store_file_id)}",
                method="DELETE",
            )
        except RemoteNotFoundError:
            LOGGER.debug(f"Vector store file {vector_store_file_id} already detached")

    async def delete_document(self, file_id: str) -> None:
        try:
            await self.client.call_api(f"/files/{_segment(file_id)}", method="DELETE")
        except RemoteNotFoundError:
            LOGGER.debug(f"File {file_id} already deleted")
