# models package init
# Ensure data models are importable from a single place.
from searchnos_indexer.models.document import Document  # noqa: F401
from searchnos_indexer.models.event import Event  # noqa: F401
from searchnos_indexer.models.kinds import Kind, Route  # noqa: F401
