from __future__ import annotations

import enum
from datetime import datetime
from typing import Callable, Dict, Optional

from searchnos_indexer.config.indexer_config import IndexerConfig
from searchnos_indexer.models.event import Event
from searchnos_indexer.models.kinds import Route, is_replaceable
from searchnos_indexer.services.classifier import classify
from searchnos_indexer.services.deletion import handle_deletion_event
from searchnos_indexer.services.document_mapper import build_document
from searchnos_indexer.services.index_partitioner import (
    InvalidTimestamp,
    MalformedIndexName,
    can_exist,
    index_name_for_event,
)
from searchnos_indexer.services.log import error_fields, log_event
from searchnos_indexer.services.reconciler import reconcile_replaceable
from searchnos_indexer.store.client import StoreClient
from searchnos_indexer.util.time import utcnow


class Outcome(str, enum.Enum):
    INDEXED = "INDEXED"
    SKIPPED = "SKIPPED"
    IGNORED = "IGNORED"
    DELETED = "DELETED"
    FAILED = "FAILED"


class EventPipeline:
    """
    Event -> document projection for one consumer.

    handle_event() is the per-event error boundary: whatever happens to one event,
    it returns an Outcome and the consumer loop moves on.
    """

    def __init__(
        self,
        store: StoreClient,
        cfg: IndexerConfig,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.cfg = cfg
        self.now_fn = now_fn or utcnow
        self.stats: Dict[str, int] = {o.value: 0 for o in Outcome}

    def handle_event(self, event: Event) -> Outcome:
        try:
            route = classify(event.kind)
            if route == Route.UPSERT:
                outcome = self.handle_upsert(event)
            elif route == Route.DELETE:
                outcome = self.handle_deletion(event)
            else:
                log_event(
                    level="DEBUG",
                    event="event_ignored",
                    msg="kind not indexed",
                    id=event.id,
                    kind=event.kind,
                )
                outcome = Outcome.IGNORED
        except Exception as e:
            log_event(
                level="ERROR",
                event="event_error",
                msg="event pipeline failed",
                id=event.id,
                kind=event.kind,
                error=error_fields(e),
            )
            outcome = Outcome.FAILED

        self.stats[outcome.value] += 1
        return outcome

    def handle_upsert(self, event: Event) -> Outcome:
        try:
            index_name = index_name_for_event(self.cfg.index_prefix(), event)
        except InvalidTimestamp as e:
            log_event(
                level="ERROR",
                event="invalid_timestamp",
                msg=str(e),
                id=event.id,
                created_at=event.created_at,
            )
            return Outcome.FAILED

        try:
            ok = can_exist(
                index_name,
                self.now_fn(),
                self.cfg.ttl_days(),
                self.cfg.allow_future_days(),
            )
        except MalformedIndexName as e:
            log_event(level="ERROR", event="malformed_index_name", msg=str(e), index=index_name)
            return Outcome.FAILED

        if not ok:
            log_event(
                level="WARN",
                event="index_out_of_range",
                msg=f"index {index_name} is out of range; skipping",
                index=index_name,
                id=event.id,
            )
            return Outcome.SKIPPED

        log_event(
            level="INFO",
            event="index_document",
            msg=index_name,
            index=index_name,
            id=event.id,
            kind=event.kind,
            event_json=event.to_json(),
        )

        doc = build_document(event)
        try:
            self.store.index_document(index_name, doc.doc_id, doc.to_source())
        except Exception as e:
            log_event(
                level="ERROR",
                event="index_error",
                msg="failed to index",
                index=index_name,
                id=event.id,
                error=error_fields(e),
            )
            return Outcome.FAILED

        if is_replaceable(event.kind):
            # The write stands even if cleanup fails; the next replaceable event retries it.
            try:
                reconcile_replaceable(self.store, self.cfg.alias_name(), event)
            except Exception as e:
                log_event(
                    level="ERROR",
                    event="reconcile_error",
                    msg="failed to delete superseded replaceable events",
                    id=event.id,
                    kind=event.kind,
                    pubkey=event.pubkey,
                    error=error_fields(e),
                )

        return Outcome.INDEXED

    def handle_deletion(self, event: Event) -> Outcome:
        report = handle_deletion_event(self.store, self.cfg.alias_name(), event)
        log_event(
            level="INFO",
            event="deletion_result",
            msg="deletion request processed",
            id=event.id,
            counts={
                "referenced": report.total,
                "deleted": len(report.deleted),
                "not_found": len(report.not_found),
                "unauthorized": len(report.unauthorized),
                "failed": len(report.failed),
            },
        )
        if report.deleted:
            return Outcome.DELETED
        if report.total == 0:
            return Outcome.SKIPPED
        return Outcome.FAILED
