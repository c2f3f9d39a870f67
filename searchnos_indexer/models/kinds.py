# models/kinds.py
import enum


class Kind(enum.IntEnum):
    METADATA = 0
    TEXT_NOTE = 1
    CONTACT_LIST = 3
    EVENT_DELETION = 5
    CHANNEL_METADATA = 41
    LONG_FORM_TEXT_NOTE = 30023


class Route(str, enum.Enum):
    UPSERT = "UPSERT"
    DELETE = "DELETE"
    IGNORE = "IGNORE"


# NIP-16: kinds in [10000, 20000) are replaceable.
REPLACEABLE_RANGE = range(10000, 20000)

REPLACEABLE_KINDS = frozenset({Kind.METADATA, Kind.CONTACT_LIST, Kind.CHANNEL_METADATA})

# Kinds whose content is indexed verbatim; other upserted kinds carry a JSON object.
PLAIN_TEXT_KINDS = frozenset({Kind.TEXT_NOTE, Kind.LONG_FORM_TEXT_NOTE})


def is_replaceable(kind: int) -> bool:
    return kind in REPLACEABLE_KINDS or kind in REPLACEABLE_RANGE
