from __future__ import annotations

import json
from typing import Dict, List, Set

from searchnos_indexer.models.document import Document
from searchnos_indexer.models.event import Event
from searchnos_indexer.models.kinds import PLAIN_TEXT_KINDS


def extract_text(event: Event) -> str:
    """
    Searchable text for an event.

    - text notes / long-form: content verbatim
    - everything else (profile metadata): values of the flat JSON object in content,
      joined by a single space. Malformed content yields "" so the rest of the event
      is still indexed.
    """
    if event.kind in PLAIN_TEXT_KINDS:
        return event.content

    try:
        content = json.loads(event.content)
    except (ValueError, RecursionError):
        # RecursionError: nesting deeper than the parser allows.
        return ""

    if not isinstance(content, dict):
        return ""
    # Only a flat mapping of strings counts as well-formed metadata.
    if not all(isinstance(v, str) for v in content.values()):
        return ""

    return " ".join(content.values())


def convert_tags(tags: List[List[str]]) -> Dict[str, Set[str]]:
    out: Dict[str, Set[str]] = {}

    for t in tags:
        if len(t) < 2:
            continue
        key, first_value = t[0], t[1]
        if len(key) != 1:
            continue  # index only 1-char tags; See NIP-12
        out.setdefault(key, set()).add(first_value)

    return out


def build_document(event: Event) -> Document:
    return Document(
        event=event,
        text=extract_text(event),
        tags=convert_tags(event.tags),
    )
