# models/document.py
from typing import Any, Dict, Set

from pydantic import BaseModel, Field

from searchnos_indexer.models.event import Event


class Document(BaseModel):
    event: Event
    text: str
    tags: Dict[str, Set[str]] = Field(default_factory=dict)

    @property
    def doc_id(self) -> str:
        return self.event.id

    def to_source(self) -> Dict[str, Any]:
        # Sets are dumped as lists; value order in the store is irrelevant.
        body = self.model_dump(mode="json")
        body["tags"] = {k: sorted(v) for k, v in self.tags.items()}
        return body
