from __future__ import annotations

from typing import Any, Dict

from searchnos_indexer.config.indexer_config import IndexerConfig
from searchnos_indexer.services.log import log_event
from searchnos_indexer.store.client import StoreClient, StoreError


class BootstrapError(RuntimeError):
    pass


def pipeline_body() -> Dict[str, Any]:
    """Ingest pipeline: language identification + ingest timestamp."""
    return {
        "description": "nostr pipeline",
        "processors": [
            {
                "inference": {
                    "model_id": "lang_ident_model_1",
                    "inference_config": {"classification": {"num_top_classes": 3}},
                    "field_mappings": {},
                    "target_field": "_ml.lang_ident",
                }
            },
            {
                "rename": {
                    "field": "_ml.lang_ident.predicted_value",
                    "target_field": "language",
                }
            },
            {"remove": {"field": "_ml"}},
            {"set": {"field": "timestamp", "value": "{{{_ingest.timestamp}}}"}},
        ],
    }


def index_template_body(index_prefix: str, alias_name: str, pipeline_name: str) -> Dict[str, Any]:
    id_field = {
        "type": "text",
        "index_prefixes": {"min_chars": 1, "max_chars": 19},
    }
    return {
        "index_patterns": [f"{index_prefix}-*"],
        "template": {
            "settings": {
                "index": {
                    "number_of_shards": 1,
                    "number_of_replicas": 0,
                    "analysis": {
                        "analyzer": {
                            "ngram_analyzer": {
                                "type": "custom",
                                "tokenizer": "ngram_tokenizer",
                                "filter": ["icu_normalizer", "lowercase"],
                            }
                        },
                        "tokenizer": {
                            "ngram_tokenizer": {
                                "type": "ngram",
                                "min_gram": "1",
                                "max_gram": "2",
                            }
                        },
                    },
                    "default_pipeline": pipeline_name,
                }
            },
            "mappings": {
                "dynamic": False,
                "properties": {
                    "event": {
                        "dynamic": False,
                        "properties": {
                            "content": {"type": "text", "index": False},
                            "created_at": {"type": "date", "format": "epoch_second"},
                            "kind": {"type": "integer"},
                            "id": id_field,
                            "pubkey": id_field,
                            "sig": {"type": "keyword", "index": False},
                            "tags": {"type": "keyword"},
                        },
                    },
                    "text": {"type": "text", "analyzer": "ngram_analyzer", "index": True},
                    "language": {"type": "keyword"},
                    "timestamp": {"type": "date"},
                    "tags": {
                        "dynamic": True,
                        "properties": {"*": {"type": "keyword"}},
                    },
                },
            },
            "aliases": {alias_name: {}},
        },
    }


def bootstrap_store(store: StoreClient, cfg: IndexerConfig) -> None:
    """
    Prepare the store for writes. Any failure here is fatal to startup.
    """
    pipeline_name = cfg.pipeline_name()
    template_name = cfg.template_name()
    try:
        store.ping()

        log_event(level="INFO", event="bootstrap_pipeline", msg="putting pipeline", pipeline=pipeline_name)
        store.put_pipeline(pipeline_name, pipeline_body())

        log_event(
            level="INFO",
            event="bootstrap_template",
            msg="putting index template",
            template=template_name,
        )
        store.put_index_template(
            template_name,
            index_template_body(cfg.index_prefix(), cfg.alias_name(), pipeline_name),
        )
    except StoreError as e:
        raise BootstrapError(f"store bootstrap failed: {e}") from e

    log_event(level="INFO", event="bootstrap_done", msg="elasticsearch index ready", alias=cfg.alias_name())
