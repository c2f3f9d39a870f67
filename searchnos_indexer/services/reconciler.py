from __future__ import annotations

from typing import Any, Dict

from searchnos_indexer.models.event import Event
from searchnos_indexer.services.log import log_event
from searchnos_indexer.store.client import StoreClient


def build_supersede_query(event: Event) -> Dict[str, Any]:
    """
    Documents superseded by `event`: same author, same kind, strictly older.

    Strict `lt`: two replaceable events with the same created_at both survive.
    """
    return {
        "bool": {
            "must": [
                {"term": {"event.pubkey": event.pubkey}},
                {"term": {"event.kind": event.kind}},
                {"range": {"event.created_at": {"lt": str(event.created_at)}}},
            ]
        }
    }


def reconcile_replaceable(store: StoreClient, alias_name: str, event: Event) -> int:
    """
    Latest-wins cleanup after a replaceable upsert.

    Runs against the alias (all partitions). Not atomic with the write; a concurrent
    writer can leave a transient duplicate that the next replaceable event removes.
    """
    deleted = store.delete_by_query(alias_name, build_supersede_query(event))
    log_event(
        level="INFO",
        event="replaceable_reconciled",
        msg=f"replaceable event (kind {event.kind}): deleted {deleted} event(s)",
        kind=event.kind,
        pubkey=event.pubkey,
        deleted=deleted,
    )
    return deleted
