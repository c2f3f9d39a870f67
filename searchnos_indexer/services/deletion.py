from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, List

from pydantic import ValidationError

from searchnos_indexer.models.event import Event
from searchnos_indexer.services.log import error_fields, log_event
from searchnos_indexer.store.client import StoreClient, StoreError

_EVENT_ID_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class DeletionError(Exception):
    pass


class EventNotFound(DeletionError):
    pass


class Unauthorized(DeletionError):
    pass


@dataclass
class DeletionReport:
    deleted: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    unauthorized: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.deleted) + len(self.not_found) + len(self.unauthorized) + len(self.failed)


def referenced_event_ids(event: Event) -> Iterator[str]:
    """Target ids of a deletion request (NIP-09 "e" tags), in tag order, without repeats."""
    seen = set()
    for t in event.tags:
        if len(t) < 2 or t[0] != "e":
            continue
        eid = t[1].lower()
        if not _EVENT_ID_RE.match(eid) or eid in seen:
            continue
        seen.add(eid)
        yield eid


def delete_event(store: StoreClient, alias_name: str, claimed_author: str, target_id: str) -> str:
    """
    Delete `target_id` if and only if it was authored by `claimed_author`.

    Returns the physical index the document was removed from.
    Raises EventNotFound, Unauthorized or StoreError.
    """
    log_event(level="INFO", event="delete_attempt", msg="try to delete", id=target_id)

    hits = store.search(alias_name, {"term": {"_id": target_id}}, size=1)
    if not hits:
        raise EventNotFound(f"event with ID {target_id} not found in search results")
    hit = hits[0]

    try:
        stored = Event.model_validate((hit.get("_source") or {}).get("event"))
    except ValidationError as e:
        raise StoreError("search", None, f"stored event {target_id} is malformed: {e}") from e

    ok_to_delete = stored.pubkey == claimed_author.lower()
    log_event(
        level="INFO",
        event="delete_authorization",
        msg=f"can event {stored.id} be deleted? {ok_to_delete}",
        id=stored.id,
        allowed=ok_to_delete,
    )
    if not ok_to_delete:
        raise Unauthorized(
            f"pubkey mismatch: pub key was {claimed_author}, "
            f"but that of the event {target_id} was {stored.pubkey}"
        )

    # The alias spans partitions; delete from the one that holds the hit.
    index_name = hit.get("_index")
    if not isinstance(index_name, str) or not index_name:
        raise StoreError("search", None, "failed to get index name")

    store.delete_document(index_name, target_id)
    log_event(level="INFO", event="deleted", msg="deleted", id=target_id, index=index_name)
    return index_name


def handle_deletion_event(store: StoreClient, alias_name: str, deletion_event: Event) -> DeletionReport:
    """
    Process every reference of a deletion request with the request's author as claimant.
    One failing reference never blocks the others.
    """
    report = DeletionReport()
    log_event(
        level="INFO",
        event="deletion_request",
        msg="deletion event",
        id=deletion_event.id,
        pubkey=deletion_event.pubkey,
    )

    for target_id in referenced_event_ids(deletion_event):
        try:
            delete_event(store, alias_name, deletion_event.pubkey, target_id)
            report.deleted.append(target_id)
        except EventNotFound as e:
            report.not_found.append(target_id)
            log_event(level="WARN", event="delete_not_found", msg=str(e), id=target_id)
        except Unauthorized as e:
            report.unauthorized.append(target_id)
            log_event(level="WARN", event="delete_unauthorized", msg=str(e), id=target_id)
        except Exception as e:
            report.failed.append(target_id)
            log_event(
                level="ERROR",
                event="delete_error",
                msg="failed to delete event",
                id=target_id,
                error=error_fields(e),
            )

    return report
