from __future__ import annotations

import copy
import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from searchnos_indexer.config.indexer_config import IndexerConfig
from searchnos_indexer.models.event import Event
from searchnos_indexer.store.client import StoreError

NOW = datetime(2023, 3, 20, 12, 0, 0, tzinfo=timezone.utc)
NOW_TS = int(NOW.timestamp())

ALICE = "a" * 64
BOB = "b" * 64


class FakeStore:
    """
    In-memory StoreClient.

    - indices: {index_name: {doc_id: source}}
    - the alias spans every index
    - fail_ops: operation name -> exception raised on that call
    - fail_search_ids: ids whose lookup raises StoreError
    """

    def __init__(self, alias: str = "nostr"):
        self.alias = alias
        self.indices: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_ops: Dict[str, Exception] = {}
        self.fail_search_ids: set[str] = set()
        self.calls: List[tuple] = []
        self.pipelines: Dict[str, Dict[str, Any]] = {}
        self.templates: Dict[str, Dict[str, Any]] = {}

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_ops:
            raise self.fail_ops[op]

    def _resolve(self, index: str) -> List[str]:
        if index == self.alias:
            return list(self.indices.keys())
        return [index] if index in self.indices else []

    def index_document(self, index: str, doc_id: str, body: Dict[str, Any]) -> None:
        self.calls.append(("index", index, doc_id))
        self._maybe_fail("index")
        self.indices.setdefault(index, {})[doc_id] = copy.deepcopy(body)

    def _matches(self, source: Dict[str, Any], query: Dict[str, Any]) -> bool:
        ev = source["event"]
        for clause in query["bool"]["must"]:
            if "term" in clause:
                (field, value), = clause["term"].items()
                if ev[field.split(".", 1)[1]] != value:
                    return False
            elif "range" in clause:
                (field, cond), = clause["range"].items()
                if not ev[field.split(".", 1)[1]] < int(cond["lt"]):
                    return False
        return True

    def delete_by_query(self, index: str, query: Dict[str, Any]) -> int:
        self.calls.append(("delete_by_query", index))
        self._maybe_fail("delete_by_query")
        deleted = 0
        for name in self._resolve(index):
            docs = self.indices[name]
            for doc_id in [d for d, src in docs.items() if self._matches(src, query)]:
                del docs[doc_id]
                deleted += 1
        return deleted

    def search(self, index: str, query: Dict[str, Any], size: int) -> List[Dict[str, Any]]:
        self.calls.append(("search", index))
        self._maybe_fail("search")
        target = query["term"]["_id"]
        if target in self.fail_search_ids:
            raise StoreError("search", 503, "unavailable")
        hits = []
        for name in self._resolve(index):
            if target in self.indices[name]:
                hits.append({"_index": name, "_id": target, "_source": copy.deepcopy(self.indices[name][target])})
        return hits[:size]

    def delete_document(self, index: str, doc_id: str) -> None:
        self.calls.append(("delete", index, doc_id))
        self._maybe_fail("delete")
        if doc_id not in self.indices.get(index, {}):
            raise StoreError("delete", 404, "not_found")
        del self.indices[index][doc_id]

    def put_pipeline(self, name: str, body: Dict[str, Any]) -> None:
        self._maybe_fail("put_pipeline")
        self.pipelines[name] = body

    def put_index_template(self, name: str, body: Dict[str, Any]) -> None:
        self._maybe_fail("put_index_template")
        self.templates[name] = body

    def ping(self) -> None:
        self._maybe_fail("ping")

    # helpers for assertions

    def all_docs(self) -> List[Dict[str, Any]]:
        return [src for docs in self.indices.values() for src in docs.values()]

    def find(self, doc_id: str) -> Optional[str]:
        for name, docs in self.indices.items():
            if doc_id in docs:
                return name
        return None


def make_event(
    kind: int = 1,
    content: str = "hello",
    tags: Optional[List[List[str]]] = None,
    created_at: int = NOW_TS,
    pubkey: str = ALICE,
) -> Event:
    draft = Event(
        id="0" * 64,
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        content=content,
        tags=tags or [],
        sig="f" * 128,
    )
    # Unique per content; not signed. Signature checks live at the relay source.
    return draft.model_copy(update={"id": hashlib.sha256(draft.to_json().encode("utf-8")).hexdigest()})


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "ES_URL",
        "NOSTR_RELAYS",
        "SEARCHNOS_TTL_DAYS",
        "SEARCHNOS_ALLOW_FUTURE_DAYS",
        "SEARCHNOS_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def cfg() -> IndexerConfig:
    return IndexerConfig(raw={"retention": {"ttl_days": 7, "allow_future_days": 1}})
