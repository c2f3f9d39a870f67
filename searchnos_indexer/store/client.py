from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

import httpx


class StoreError(RuntimeError):
    def __init__(self, operation: str, status: Optional[int], body: str):
        self.operation = operation
        self.status = status
        self.body = body
        super().__init__(f"{operation} failed: received {status}, {body}")


class StoreClient(Protocol):
    """The document store calls issued by the indexer."""

    def index_document(self, index: str, doc_id: str, body: Dict[str, Any]) -> None: ...

    def delete_by_query(self, index: str, query: Dict[str, Any]) -> int: ...

    def search(self, index: str, query: Dict[str, Any], size: int) -> List[Dict[str, Any]]: ...

    def delete_document(self, index: str, doc_id: str) -> None: ...

    def put_pipeline(self, name: str, body: Dict[str, Any]) -> None: ...

    def put_index_template(self, name: str, body: Dict[str, Any]) -> None: ...

    def ping(self) -> None: ...


class ElasticsearchStore:
    """
    StoreClient over the Elasticsearch REST API.

    Every call is a blocking request with a bounded deadline (timeout_s); an
    unresponsive store surfaces as StoreError instead of stalling the consumer.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_s,
            transport=transport,
            trust_env=False,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ElasticsearchStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: Dict[str, Any] | None = None,
        params: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        try:
            r = self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise StoreError(operation, None, f"{type(e).__name__}: {e}") from e

        if r.status_code >= 300:
            raise StoreError(operation, r.status_code, r.text)
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise StoreError(operation, r.status_code, f"invalid JSON response: {r.text}") from e

    def index_document(self, index: str, doc_id: str, body: Dict[str, Any]) -> None:
        self._request("index", "PUT", f"/{index}/_doc/{doc_id}", json=body)

    def delete_by_query(self, index: str, query: Dict[str, Any]) -> int:
        res = self._request(
            "delete_by_query",
            "POST",
            f"/{index}/_delete_by_query",
            json={"query": query},
            params={"conflicts": "proceed"},
        )
        return int(res.get("deleted", 0))

    def search(self, index: str, query: Dict[str, Any], size: int) -> List[Dict[str, Any]]:
        res = self._request(
            "search",
            "POST",
            f"/{index}/_search",
            json={"query": query, "size": size},
        )
        hits = (res.get("hits") or {}).get("hits")
        if not isinstance(hits, list):
            raise StoreError("search", 200, "failed to retrieve hits from response")
        return hits

    def delete_document(self, index: str, doc_id: str) -> None:
        self._request("delete", "DELETE", f"/{index}/_doc/{doc_id}")

    def put_pipeline(self, name: str, body: Dict[str, Any]) -> None:
        self._request("put_pipeline", "PUT", f"/_ingest/pipeline/{name}", json=body)

    def put_index_template(self, name: str, body: Dict[str, Any]) -> None:
        self._request("put_index_template", "PUT", f"/_index_template/{name}", json=body)

    def ping(self) -> None:
        self._request("ping", "GET", "/")
