from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "indexer.yaml"


class ConfigError(RuntimeError):
    pass


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class IndexerConfig:
    raw: Dict[str, Any]

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.raw.get(name, {}) if isinstance(self.raw, dict) else {}
        return dict(section or {})

    # store

    def store_url(self) -> Optional[str]:
        env = os.getenv("ES_URL", "").strip()
        if env:
            return env
        url = self._section("store").get("url")
        return str(url) if url else None

    def store_timeout_seconds(self) -> float:
        return float(self._section("store").get("timeout_seconds", 10))

    def index_prefix(self) -> str:
        return str(self._section("store").get("index_prefix", "nostr"))

    def alias_name(self) -> str:
        return str(self._section("store").get("alias", "nostr"))

    def template_name(self) -> str:
        return str(self._section("store").get("template", "nostr"))

    def pipeline_name(self) -> str:
        return str(self._section("store").get("pipeline", "nostr-pipeline"))

    # retention

    def ttl_days(self) -> int:
        # Semantikk: env SEARCHNOS_TTL_DAYS -> retention.ttl_days -> 7
        env = _env_int("SEARCHNOS_TTL_DAYS")
        if env is not None:
            return env
        return int(self._section("retention").get("ttl_days", 7))

    def allow_future_days(self) -> int:
        env = _env_int("SEARCHNOS_ALLOW_FUTURE_DAYS")
        if env is not None:
            return env
        return int(self._section("retention").get("allow_future_days", 1))

    # relays

    def relay_urls(self) -> List[str]:
        env = os.getenv("NOSTR_RELAYS", "").strip()
        if env:
            return [u.strip() for u in env.split(",") if u.strip()]
        return [str(u) for u in self._section("relays").get("urls", []) or []]

    def relay_kinds(self) -> List[int]:
        return [int(k) for k in self._section("relays").get("kinds", [0, 1, 5, 30023])]

    def reconnect_delay_seconds(self) -> float:
        return float(self._section("relays").get("reconnect_delay_seconds", 5))

    def queue_size(self) -> int:
        return int(self._section("relays").get("queue_size", 1000))

    def validate(self) -> None:
        """Fail fast on configuration the indexer cannot start with."""
        if not self.store_url():
            raise ConfigError("ES_URL is not set; set it to the URL of elasticsearch")
        if not self.relay_urls():
            raise ConfigError("NOSTR_RELAYS is not set; set it to the comma-separated URLs of relays")
        if self.ttl_days() < 0 or self.allow_future_days() < 0:
            raise ConfigError("retention.ttl_days and retention.allow_future_days must be >= 0")


_cached: Optional[IndexerConfig] = None


def load_indexer_config(path: Path | None = None) -> IndexerConfig:
    global _cached
    if path is None and _cached is not None:
        return _cached

    env_path = os.getenv("SEARCHNOS_CONFIG", "").strip()
    p = path or (Path(env_path) if env_path else DEFAULT_CONFIG_PATH)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {p} must contain a mapping")
    cfg = IndexerConfig(raw=data)
    if path is None:
        _cached = cfg
    return cfg
