from __future__ import annotations

import json
import queue
import threading
import uuid
from typing import Callable, Iterator, List, Optional, Protocol

from pydantic import ValidationError
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

from searchnos_indexer.config.indexer_config import IndexerConfig
from searchnos_indexer.models.event import Event
from searchnos_indexer.services.log import error_fields, log_event


class EventSource(Protocol):
    def events(self) -> Iterator[Event]: ...

    def close(self) -> None: ...


def build_req(sub_id: str, kinds: List[int]) -> str:
    # limit 0: only new events, no stored backlog.
    return json.dumps(["REQ", sub_id, {"kinds": kinds, "limit": 0}], separators=(",", ":"))


def parse_relay_message(raw: str | bytes, sub_id: str) -> Optional[Event]:
    """
    Returns the Event carried by an ["EVENT", sub_id, {...}] message, otherwise None
    (NOTICE, EOSE, OK, other subscriptions, malformed frames).
    """
    try:
        msg = json.loads(raw)
    except (ValueError, RecursionError):
        return None

    if not isinstance(msg, list) or len(msg) < 3 or msg[0] != "EVENT" or msg[1] != sub_id:
        return None

    try:
        return Event.model_validate(msg[2])
    except ValidationError:
        return None


class RelayPool:
    """
    Subscribes to every configured relay and merges their events into one ordered stream.

    One reader thread per relay; events are handed to the single consumer through a
    bounded queue, so a slow store slows the readers down.
    """

    def __init__(
        self,
        urls: List[str],
        kinds: List[int],
        *,
        queue_size: int = 1000,
        reconnect_delay_s: float = 5.0,
        recv_timeout_s: float = 1.0,
        verify: Callable[[Event], bool] = Event.verify,
    ):
        self.urls = list(urls)
        self.kinds = list(kinds)
        self.reconnect_delay_s = reconnect_delay_s
        self.recv_timeout_s = recv_timeout_s
        self.verify = verify
        self.sub_id = uuid.uuid4().hex[:16]
        self._queue: "queue.Queue[Event]" = queue.Queue(maxsize=queue_size)
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        for url in self.urls:
            log_event(level="INFO", event="relay_add", msg=f"adding relay: {url}", relay=url)
            t = threading.Thread(target=self._run_relay, args=(url,), name=f"relay:{url}", daemon=True)
            t.start()
            self._threads.append(t)

    def close(self) -> None:
        self._stop.set()
        for t in self._threads:
            t.join(timeout=self.recv_timeout_s + 1)

    def events(self) -> Iterator[Event]:
        if not self._threads:
            self.start()
        while not self._stop.is_set():
            try:
                yield self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

    def _offer(self, event: Event) -> None:
        while not self._stop.is_set():
            try:
                self._queue.put(event, timeout=0.5)
                return
            except queue.Full:
                continue

    def _handle_message(self, url: str, raw: str | bytes) -> None:
        event = parse_relay_message(raw, self.sub_id)
        if event is None:
            return
        if not self.verify(event):
            log_event(
                level="WARN",
                event="invalid_event",
                msg="event id or signature does not verify; dropped",
                relay=url,
                id=event.id,
            )
            return
        self._offer(event)

    def _run_relay(self, url: str) -> None:
        while not self._stop.is_set():
            try:
                with connect(url, open_timeout=10) as ws:
                    ws.send(build_req(self.sub_id, self.kinds))
                    log_event(level="INFO", event="relay_connected", msg="connected to relay", relay=url)
                    while not self._stop.is_set():
                        try:
                            raw = ws.recv(timeout=self.recv_timeout_s)
                        except TimeoutError:
                            continue
                        self._handle_message(url, raw)
            except (OSError, TimeoutError, WebSocketException) as e:
                log_event(
                    level="WARN",
                    event="relay_disconnected",
                    msg=f"relay connection lost; reconnecting in {self.reconnect_delay_s}s",
                    relay=url,
                    error=error_fields(e),
                )
            except Exception as e:
                log_event(
                    level="ERROR",
                    event="relay_reader_error",
                    msg=f"relay reader failed; reconnecting in {self.reconnect_delay_s}s",
                    relay=url,
                    error=error_fields(e),
                )
            self._stop.wait(self.reconnect_delay_s)


def relay_pool_from_config(cfg: IndexerConfig) -> RelayPool:
    return RelayPool(
        cfg.relay_urls(),
        cfg.relay_kinds(),
        queue_size=cfg.queue_size(),
        reconnect_delay_s=cfg.reconnect_delay_seconds(),
    )
