import pytest

from searchnos_indexer.config.indexer_config import IndexerConfig
from searchnos_indexer.store.bootstrap import BootstrapError, bootstrap_store
from searchnos_indexer.store.client import StoreError


def test_bootstrap_puts_pipeline_and_template(store):
    cfg = IndexerConfig(raw={"store": {"index_prefix": "nostr", "alias": "nostr", "pipeline": "nostr-pipeline"}})

    bootstrap_store(store, cfg)

    assert "nostr-pipeline" in store.pipelines
    tpl = store.templates["nostr"]
    assert tpl["index_patterns"] == ["nostr-*"]
    assert tpl["template"]["aliases"] == {"nostr": {}}
    assert tpl["template"]["settings"]["index"]["default_pipeline"] == "nostr-pipeline"
    assert tpl["template"]["mappings"]["properties"]["event"]["properties"]["created_at"] == {
        "type": "date",
        "format": "epoch_second",
    }


def test_bootstrap_failure_is_fatal(store):
    store.fail_ops["put_index_template"] = StoreError("put_index_template", 400, "bad template")

    with pytest.raises(BootstrapError):
        bootstrap_store(store, IndexerConfig(raw={}))
