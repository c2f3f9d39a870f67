#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path

from searchnos_indexer.config.indexer_config import load_indexer_config
from searchnos_indexer.services.log import log_event
from searchnos_indexer.services.pipeline import EventPipeline
from searchnos_indexer.services.relay_source import EventSource, relay_pool_from_config
from searchnos_indexer.store.bootstrap import bootstrap_store
from searchnos_indexer.store.client import ElasticsearchStore


def consume(source: EventSource, pipeline: EventPipeline) -> None:
    """Sequential consume loop: the next event is taken only after the current one is done."""
    for event in source.events():
        pipeline.handle_event(event)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Index nostr events into Elasticsearch")
    ap.add_argument("--config", type=Path, default=None, help="path to indexer YAML config")
    ap.add_argument(
        "--skip-bootstrap",
        action="store_true",
        help="do not put the ingest pipeline and index template on startup",
    )
    args = ap.parse_args(argv)

    cfg = load_indexer_config(args.config)
    cfg.validate()

    store = ElasticsearchStore(cfg.store_url(), timeout_s=cfg.store_timeout_seconds())
    with store:
        if not args.skip_bootstrap:
            bootstrap_store(store, cfg)

        pipeline = EventPipeline(store, cfg)
        source = relay_pool_from_config(cfg)
        log_event(
            level="INFO",
            event="indexer_ready",
            msg="ready to receive messages",
            relays=cfg.relay_urls(),
            kinds=cfg.relay_kinds(),
            ttl_days=cfg.ttl_days(),
            allow_future_days=cfg.allow_future_days(),
        )
        try:
            consume(source, pipeline)
        except KeyboardInterrupt:
            pass
        finally:
            source.close()
            log_event(level="INFO", event="indexer_stopped", msg="indexer stopped", counts=pipeline.stats)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
