"""Per-session parent -> child expansion memory.

Each session's relationship map is one JSON document
(``{parentId: {"childPapers": [...]}}``) stored in a session backend under
``relationships:{session_id}`` and rewritten in full on every mutation.
Lookups go to the normalized parent id first; keys written before ids were
normalized are found by a linear fallback scan and migrated on the next write.
"""

import asyncio
import json
import logging
import weakref

from pydantic import ValidationError as PydanticValidationError

from citation_network.errors import NotFoundError, ValidationError
from citation_network.models.schemas import (
    ChildRef,
    Graph,
    GraphEdge,
    GraphNode,
    RelationshipEntry,
    StoreChildrenResult,
)
from citation_network.services.identifiers import normalize_paper_id

logger = logging.getLogger(__name__)

RELATIONSHIP_KEY_PREFIX = "relationships:"
MAX_CHILDREN_PER_PARENT = 3
RESTORED_EDGE_WEIGHT = 1.0

# session_id -> lock; entries live as long as some store holds the lock
_session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _lock_for(session_id: str) -> asyncio.Lock:
    lock = _session_locks.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _session_locks[session_id] = lock
    return lock


def relationships_key(session_id: str) -> str:
    return f"{RELATIONSHIP_KEY_PREFIX}{session_id}"


def _parse_entries(raw: str | bytes | None, session_id: str) -> dict[str, RelationshipEntry]:
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        logger.warning("Relationship map for session %s is not an object, ignoring", session_id)
        return {}
    entries: dict[str, RelationshipEntry] = {}
    for parent_id, value in data.items():
        try:
            entries[str(parent_id)] = RelationshipEntry.model_validate(value or {})
        except PydanticValidationError:
            logger.warning(
                "Skipping malformed relationship entry %s in session %s", parent_id, session_id
            )
    return entries


def find_parent_key(relationships: dict[str, RelationshipEntry], parent_id: str) -> str | None:
    """Return the stored key for ``parent_id``.

    The normalized id is tried first. The fallback scan over every key is a
    compatibility shim for maps written with prefixed parent ids.
    """
    normalized = normalize_paper_id(parent_id)
    if not normalized:
        return None
    if normalized in relationships:
        return normalized
    for key in relationships:
        if normalize_paper_id(key) == normalized:
            return key
    return None


class RelationshipStore:
    """Relationship map of one session.

    Args:
        backend: Object with async ``get``/``set(key, value, ex)``/``delete``,
            e.g. a ``redis.asyncio`` client or ``InMemorySessionBackend``.
        session_id: Session (chat) the map belongs to.
        ttl_seconds: Expiry applied on every write; None keeps keys forever.
    """

    def __init__(self, backend, session_id: str, ttl_seconds: int | None = None):
        if not session_id or not session_id.strip():
            raise ValidationError("session_id is required")
        self.backend = backend
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds
        self._lock = _lock_for(session_id)

    @property
    def key(self) -> str:
        return relationships_key(self.session_id)

    async def load(self) -> dict[str, RelationshipEntry]:
        raw = await self.backend.get(self.key)
        return _parse_entries(raw, self.session_id)

    async def get_all(self) -> dict[str, RelationshipEntry]:
        """The whole map, keyed as stored."""
        return await self.load()

    async def _save(self, relationships: dict[str, RelationshipEntry]) -> None:
        payload = {
            parent_id: entry.model_dump(by_alias=True, mode="json", exclude_none=True)
            for parent_id, entry in relationships.items()
        }
        await self.backend.set(self.key, json.dumps(payload), ex=self.ttl_seconds)

    async def store_children(
        self, parent_id: str, children: list[ChildRef | dict]
    ) -> StoreChildrenResult:
        """Merge children into the parent's entry and persist the map.

        Child ids are normalized and deduplicated against the stored children
        and each other; additions stop once the parent holds three children, and
        an oversized entry written elsewhere is cut back to its first three.
        Repeating a call with the same children adds nothing. An unseen parent
        gets a new entry.

        Raises:
            ValidationError: ``parent_id`` is empty after normalization.
        """
        normalized_parent = normalize_paper_id(parent_id)
        if not normalized_parent:
            raise ValidationError("parent_id is required")

        offered = [
            c if isinstance(c, ChildRef) else ChildRef.model_validate(c) for c in children
        ]

        async with self._lock:
            relationships = await self.load()
            stored_key = find_parent_key(relationships, parent_id)
            migrated = stored_key is not None and stored_key != normalized_parent

            existing: list[ChildRef] = []
            if stored_key is not None:
                entry = relationships.pop(stored_key)
                for child in entry.child_papers:
                    child_id = normalize_paper_id(child.id)
                    if child_id and all(c.id != child_id for c in existing):
                        existing.append(child.model_copy(update={"id": child_id}))

            seen = {c.id for c in existing}
            added: list[ChildRef] = []
            for child in offered:
                if len(existing) + len(added) >= MAX_CHILDREN_PER_PARENT:
                    break
                child_id = normalize_paper_id(child.id)
                if not child_id or child_id in seen or child_id == normalized_parent:
                    continue
                seen.add(child_id)
                added.append(
                    child.model_copy(
                        update={
                            "id": child_id,
                            "source_parent_id": child.source_parent_id or normalized_parent,
                        }
                    )
                )

            merged = (existing + added)[:MAX_CHILDREN_PER_PARENT]
            trimmed = len(existing) > MAX_CHILDREN_PER_PARENT
            relationships[normalized_parent] = RelationshipEntry(child_papers=merged)
            if added or migrated or trimmed or stored_key is None:
                await self._save(relationships)

        if migrated:
            logger.info(
                "Migrated legacy relationship key %s to %s in session %s",
                stored_key,
                normalized_parent,
                self.session_id,
            )
        logger.info(
            "Stored %d of %d offered children under %s (session %s, total %d)",
            len(added),
            len(offered),
            normalized_parent,
            self.session_id,
            len(merged),
        )
        return StoreChildrenResult(
            added_count=len(added),
            total_children=len(merged),
            stored_key=normalized_parent,
        )

    async def get_children(self, parent_id: str) -> list[ChildRef]:
        """Children of a parent, or an empty list when none are stored."""
        relationships = await self.load()
        key = find_parent_key(relationships, parent_id)
        if key is None:
            return []
        return relationships[key].child_papers[:MAX_CHILDREN_PER_PARENT]

    async def get_entry(self, parent_id: str) -> RelationshipEntry:
        relationships = await self.load()
        key = find_parent_key(relationships, parent_id)
        if key is None:
            raise NotFoundError(
                f"No relationships stored for paper {normalize_paper_id(parent_id)!r}"
            )
        entry = relationships[key]
        return RelationshipEntry(child_papers=entry.child_papers[:MAX_CHILDREN_PER_PARENT])

    async def clear(self) -> None:
        await self.backend.delete(self.key)
        logger.info("Cleared relationships for session %s", self.session_id)


def restore_into_graph(graph: Graph, relationships: dict[str, RelationshipEntry]) -> int:
    """Re-attach stored children to a graph in place.

    For each parent present as a node, missing children among its first three
    become stub nodes (id and title only) and a parent -> child edge of weight
    1.0 is added unless one already links them.

    Returns:
        Number of stub nodes added.
    """
    node_ids = graph.node_ids()
    edge_pairs = {
        (normalize_paper_id(s), normalize_paper_id(t)) for s, t in graph.edge_pairs()
    }
    restored = 0

    for parent_key, entry in relationships.items():
        parent_id = normalize_paper_id(parent_key)
        if parent_id not in node_ids:
            continue
        for child in entry.child_papers[:MAX_CHILDREN_PER_PARENT]:
            child_id = normalize_paper_id(child.id)
            if not child_id or child_id == parent_id:
                continue
            if child_id not in node_ids:
                graph.nodes.append(
                    GraphNode(id=child_id, title=child.title, role="candidate", is_stub=True)
                )
                node_ids.add(child_id)
                restored += 1
            if (parent_id, child_id) not in edge_pairs:
                graph.edges.append(
                    GraphEdge(
                        source=parent_id,
                        target=child_id,
                        type="root-link",
                        weight=RESTORED_EDGE_WEIGHT,
                    )
                )
                edge_pairs.add((parent_id, child_id))

    graph.refresh_stats(restored_node_count=graph.stats.restored_node_count + restored)
    return restored
