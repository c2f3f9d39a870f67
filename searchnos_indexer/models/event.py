# models/event.py
import json
from typing import List

import nostr_sdk
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Event(BaseModel):
    """
    A signed nostr event as delivered by a relay (NIP-01).

    Events are immutable once observed; only their presence in the store changes.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[0-9a-f]{64}$")
    pubkey: str = Field(pattern=r"^[0-9a-f]{64}$")
    created_at: int
    kind: int = Field(ge=0)
    content: str = ""
    tags: List[List[str]] = Field(default_factory=list)
    sig: str = Field(pattern=r"^[0-9a-f]{128}$")

    @field_validator("id", "pubkey", "sig", mode="before")
    @classmethod
    def _lowercase_hex(cls, v):
        return v.lower() if isinstance(v, str) else v

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False, separators=(",", ":"))

    def verify(self) -> bool:
        """
        True iff the id matches the content and sig is a valid BIP-340 signature
        by pubkey over that id.
        """
        try:
            signed = nostr_sdk.Event.from_json(self.to_json())
            return bool(signed.verify())
        except Exception:
            # nostr_sdk reports unparseable keys/signatures as exceptions; all mean "not verified".
            return False
