import logging
import uuid
from typing import Dict, Optional

from domainmap.pipeline.context import DiagramContext

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory diagram sessions keyed by a generated id. Graphs are not persisted."""

    def __init__(self):
        self._sessions: Dict[str, DiagramContext] = {}

    def add(self, context: DiagramContext) -> str:
        graph_id = uuid.uuid4().hex
        self._sessions[graph_id] = context
        logger.debug("[API] session %s created", graph_id)
        return graph_id

    def get(self, graph_id: str) -> Optional[DiagramContext]:
        return self._sessions.get(graph_id)

    def remove(self, graph_id: str) -> bool:
        return self._sessions.pop(graph_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore()
    return _store
