"""
Entity Registry - deduplicates domain/system/table identities during ingestion
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from domainmap.compiler.types import Node
from domainmap.ir.errors import DuplicateKeyConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyConflict:
    """Same key requested for what looks like a different entity."""
    scope: str
    key: str
    first_identity: Any
    other_identity: Any

    def to_dict(self) -> dict:
        return {
            "scope": self.scope,
            "key": self.key,
            "first_identity": self.first_identity,
            "other_identity": self.other_identity,
        }


class EntityRegistry:
    """
    Write-once, read-many map from (scope, key) to node.

    The first `get_or_create` for a key runs the factory; every later call
    returns the cached node without side effects. An optional identity
    fingerprint lets callers detect two different entities sharing a key.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._entries: Dict[Tuple[str, str], Node] = {}
        self._identities: Dict[Tuple[str, str], Any] = {}
        self.conflicts: List[KeyConflict] = []

    def get_or_create(
        self,
        key: str,
        create_fn: Callable[[], Node],
        scope: str = "default",
        identity: Any = None,
    ) -> Node:
        entry_key = (scope, key)
        node = self._entries.get(entry_key)

        if node is None:
            node = create_fn()
            self._entries[entry_key] = node
            self._identities[entry_key] = identity
            return node

        first = self._identities.get(entry_key)
        if identity is not None and first is not None and identity != first:
            if self.strict:
                raise DuplicateKeyConflict(scope, key, first, identity)
            conflict = KeyConflict(scope, key, first, identity)
            if conflict not in self.conflicts:
                self.conflicts.append(conflict)
                logger.debug(
                    "[REGISTRY] %s key '%s' bound to %r, also requested for %r",
                    scope, key, first, identity,
                )
        return node

    def check(self, claims: Iterable[Tuple[str, str, Any]]) -> None:
        """
        Raise DuplicateKeyConflict for the first conflicting (scope, key, identity)
        claim, counting earlier claims in the same sequence. Registers nothing.
        """
        pending: Dict[Tuple[str, str], Any] = {}
        for scope, key, identity in claims:
            entry_key = (scope, key)
            if entry_key in self._entries:
                first = self._identities.get(entry_key)
            elif entry_key in pending:
                first = pending[entry_key]
            else:
                pending[entry_key] = identity
                continue
            if identity is not None and first is not None and identity != first:
                raise DuplicateKeyConflict(scope, key, first, identity)

    def get(self, scope: str, key: str) -> Optional[Node]:
        return self._entries.get((scope, key))

    def nodes(self, scope: Optional[str] = None) -> List[Node]:
        return [
            node for (entry_scope, _), node in self._entries.items()
            if scope is None or entry_scope == scope
        ]

    def __contains__(self, item: Tuple[str, str]) -> bool:
        return item in self._entries

    def __len__(self) -> int:
        return len(self._entries)
