"""
Batch commit control for bulk loading.

``BatchCommitController`` wraps a ``GraphStore`` for the duration of one
read. It resolves external element ids to store handles, counts element
creations and commits every ``batch_size`` creations so that arbitrarily
large inputs never build one unbounded transaction.

Stores that cannot take user-supplied ids still round-trip them: the
external id is written as a property under ``vertex_id_key`` /
``edge_id_key`` and looked up through that property.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from graphson_io.errors import GraphSONError, StoreFailure
from graphson_io.models import DecodedValue, PropertyValue
from graphson_io.storage.base import GraphStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000
DEFAULT_ID_KEY = "id"

T = TypeVar("T")


class MutationKind(Enum):
    """Kinds of mutation recorded in a pending batch."""
    CREATE_VERTEX = "create_vertex"
    SET_PROPERTY = "set_property"
    CREATE_EDGE = "create_edge"
    SET_EDGE_PROPERTY = "set_edge_property"
    SET_VARIABLE = "set_variable"


@dataclass(frozen=True)
class Mutation:
    """A mutation applied since the last commit."""
    kind: MutationKind
    element_id: DecodedValue
    key: Optional[str] = None


@dataclass
class PendingBatch:
    """Mutations applied to the store but not yet committed."""
    mutations: List[Mutation] = field(default_factory=list)

    def record(self, kind: MutationKind, element_id: DecodedValue, key: Optional[str] = None) -> None:
        self.mutations.append(Mutation(kind, element_id, key))

    def clear(self) -> None:
        self.mutations = []

    def __len__(self) -> int:
        return len(self.mutations)


@dataclass
class ReadStats:
    """Counters for one read."""
    vertices_created: int = 0
    vertices_reused: int = 0
    vertices_created_for_edges: int = 0
    edges_created: int = 0
    edges_reused: int = 0
    vertex_properties_set: int = 0
    edge_properties_set: int = 0
    variables_set: int = 0
    interim_commits: int = 0
    commits: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "vertices_created": self.vertices_created,
            "vertices_reused": self.vertices_reused,
            "vertices_created_for_edges": self.vertices_created_for_edges,
            "edges_created": self.edges_created,
            "edges_reused": self.edges_reused,
            "vertex_properties_set": self.vertex_properties_set,
            "edge_properties_set": self.edge_properties_set,
            "variables_set": self.variables_set,
            "interim_commits": self.interim_commits,
            "commits": self.commits,
        }


class BatchCommitController:
    """
    Idempotent element creation with count-based commits.

    Usage:
        controller = BatchCommitController(store, batch_size=1000)
        v1 = controller.ensure_vertex(1, "person")
        v2 = controller.ensure_vertex(2, "person")
        controller.ensure_edge(7, "knows", v1, v2)
        controller.finish()
    """

    def __init__(
        self,
        store: GraphStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        vertex_id_key: str = DEFAULT_ID_KEY,
        edge_id_key: str = DEFAULT_ID_KEY,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if not vertex_id_key or not edge_id_key:
            raise ValueError("vertex_id_key and edge_id_key must be non-empty")

        self.store = store
        self.batch_size = batch_size
        self.vertex_id_key = vertex_id_key
        self.edge_id_key = edge_id_key
        self.features = store.features

        self.pending = PendingBatch()
        self.stats = ReadStats()
        self._remaining = batch_size

        # External id -> handle for elements seen in this session
        self._vertex_cache: Dict[Tuple[type, Any], Any] = {}
        self._edge_cache: Dict[Tuple[type, Any], Any] = {}

    # ========== Elements ==========

    def ensure_vertex(self, vertex_id: DecodedValue, label: str, endpoint: bool = False) -> Any:
        """
        Existing vertex for ``vertex_id``, or a newly created one.

        ``endpoint`` marks a lookup made on behalf of an edge: a vertex
        created this way gets no properties of its own.
        """
        if vertex_id is not None:
            cache_key = _cache_key(vertex_id)
            handle = self._vertex_cache.get(cache_key)
            if handle is None:
                handle = self._call("find_vertex", self._lookup_vertex, vertex_id)
            if handle is not None:
                self._vertex_cache[cache_key] = handle
                if not endpoint:
                    self.stats.vertices_reused += 1
                return handle

        native_ids = self.features.supports_user_supplied_ids
        handle = self._call(
            "add_vertex", self.store.add_vertex, label, vertex_id if native_ids else None
        )
        if vertex_id is not None and not native_ids:
            self._call(
                "set_vertex_property",
                self.store.set_vertex_property, handle, self.vertex_id_key, vertex_id,
            )
        self.pending.record(MutationKind.CREATE_VERTEX, vertex_id)
        self.stats.vertices_created += 1
        if endpoint:
            self.stats.vertices_created_for_edges += 1
            logger.debug(f"Created vertex {vertex_id!r} ({label}) from an edge endpoint")
        if vertex_id is not None:
            self._vertex_cache[_cache_key(vertex_id)] = handle
        self._element_created()
        return handle

    def ensure_edge(self, edge_id: DecodedValue, label: str, out_vertex: Any, in_vertex: Any) -> Any:
        """Existing edge for ``edge_id``, or a newly created one."""
        if edge_id is not None:
            cache_key = _cache_key(edge_id)
            handle = self._edge_cache.get(cache_key)
            if handle is None:
                handle = self._call("find_edge", self._lookup_edge, edge_id)
            if handle is not None:
                self._edge_cache[cache_key] = handle
                self.stats.edges_reused += 1
                return handle

        native_ids = self.features.supports_edge_user_supplied_ids
        handle = self._call(
            "add_edge", self.store.add_edge,
            label, out_vertex, in_vertex, edge_id if native_ids else None,
        )
        if edge_id is not None and not native_ids:
            self._call(
                "set_edge_property",
                self.store.set_edge_property, handle, self.edge_id_key, edge_id,
            )
        self.pending.record(MutationKind.CREATE_EDGE, edge_id)
        self.stats.edges_created += 1
        if edge_id is not None:
            self._edge_cache[_cache_key(edge_id)] = handle
        self._element_created()
        return handle

    def _lookup_vertex(self, vertex_id: DecodedValue) -> Any:
        if self.features.supports_user_supplied_ids:
            return self.store.find_vertex(vertex_id)
        return self.store.find_vertex_by_property(self.vertex_id_key, vertex_id)

    def _lookup_edge(self, edge_id: DecodedValue) -> Any:
        if self.features.supports_edge_user_supplied_ids:
            return self.store.find_edge(edge_id)
        return self.store.find_edge_by_property(self.edge_id_key, edge_id)

    # ========== Properties & variables ==========

    def set_vertex_property(self, vertex: Any, key: str, prop: PropertyValue) -> None:
        """Append one property value to a vertex."""
        property_id = prop.id if self.features.supports_vertex_property_ids else None
        meta = prop.meta_properties
        if meta and not self.features.supports_meta_properties:
            logger.warning(
                f"Dropping {len(meta)} meta-properties of '{key}': store does not support them"
            )
            meta = {}
        self._call(
            "set_vertex_property",
            self.store.set_vertex_property, vertex, key, prop.value, property_id, meta or None,
        )
        self.pending.record(MutationKind.SET_PROPERTY, _handle_id(vertex), key)
        self.stats.vertex_properties_set += 1

    def set_edge_property(self, edge: Any, key: str, value: DecodedValue) -> None:
        self._call("set_edge_property", self.store.set_edge_property, edge, key, value)
        self.pending.record(MutationKind.SET_EDGE_PROPERTY, _handle_id(edge), key)
        self.stats.edge_properties_set += 1

    def set_variable(self, key: str, value: DecodedValue) -> bool:
        """Set a graph variable. Returns False when the store has no variables."""
        if not self.features.supports_variables:
            logger.debug(f"Skipping graph variable '{key}': store does not support variables")
            return False
        self._call("set_variable", self.store.set_variable, key, value)
        self.pending.record(MutationKind.SET_VARIABLE, None, key)
        self.stats.variables_set += 1
        return True

    # ========== Commit boundaries ==========

    def _element_created(self) -> None:
        self._remaining -= 1
        if self._remaining <= 0:
            self._commit()
            self.stats.interim_commits += 1
            logger.debug(
                f"Interim commit after {self.stats.vertices_created + self.stats.edges_created} elements"
            )

    def _commit(self) -> None:
        self._call("commit", self.store.commit)
        self.pending.clear()
        self._remaining = self.batch_size
        self.stats.commits += 1

    def finish(self) -> ReadStats:
        """Issue the final commit and return the read counters."""
        self._commit()
        return self.stats

    def abort(self) -> None:
        """Roll back mutations made since the last commit, if the store can."""
        if not self.features.supports_transactions:
            return
        try:
            self.store.rollback()
        except Exception as e:
            logger.warning(f"Rollback after failed read did not succeed: {e}")
        self.pending.clear()

    def _call(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except GraphSONError:
            raise
        except Exception as e:
            raise StoreFailure(operation, e) from e


def _cache_key(value: DecodedValue) -> Tuple[type, Any]:
    # Keep 1, 1.0 and True apart
    if isinstance(value, (list, dict)):
        return (type(value), repr(value))
    return (type(value), value)


def _handle_id(handle: Any) -> Any:
    return getattr(handle, "id", None)
