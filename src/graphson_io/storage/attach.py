"""
Materializers turn detached records into store-native elements.

Single-element reads hand every decoded record to an ``ElementMaterializer``
and return whatever it produces. ``StoreMaterializer`` attaches records to a
``GraphStore``; ``DetachedMaterializer`` hands the records back unchanged.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from graphson_io.formats.entities import PropertyReconstructor
from graphson_io.models import EdgeRecord, VertexRecord
from graphson_io.storage.base import GraphStore
from graphson_io.storage.batch import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_ID_KEY,
    BatchCommitController,
    ReadStats,
)


@runtime_checkable
class ElementMaterializer(Protocol):
    """Capability the reader calls back into for each decoded element."""

    def materialize_vertex(self, record: VertexRecord) -> Any:
        ...

    def materialize_edge(self, record: EdgeRecord, host: Any = None) -> Any:
        ...


class DetachedMaterializer:
    """Returns records as they were decoded."""

    def materialize_vertex(self, record: VertexRecord) -> VertexRecord:
        return record

    def materialize_edge(self, record: EdgeRecord, host: Any = None) -> EdgeRecord:
        return record


class StoreMaterializer:
    """
    Attaches records to a GraphStore.

    Vertices are created or reused by id and receive their properties.
    Edge endpoints that are not in the store yet are created from the ids
    and labels carried on the edge, without properties. Commits follow the
    batch size; call ``finish()`` for the final commit.
    """

    def __init__(
        self,
        store: GraphStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        vertex_id_key: str = DEFAULT_ID_KEY,
        edge_id_key: str = DEFAULT_ID_KEY,
    ):
        self.store = store
        self.controller = BatchCommitController(
            store,
            batch_size=batch_size,
            vertex_id_key=vertex_id_key,
            edge_id_key=edge_id_key,
        )

    @property
    def stats(self) -> ReadStats:
        return self.controller.stats

    def materialize_vertex(self, record: VertexRecord) -> Any:
        vertex = self.controller.ensure_vertex(record.id, record.label)
        for key, prop in PropertyReconstructor.expand_vertex(record):
            self.controller.set_vertex_property(vertex, key, prop)
        return vertex

    def materialize_edge(self, record: EdgeRecord, host: Any = None) -> Any:
        """
        Attach an edge. ``host`` may be the already materialized vertex the
        edge was read alongside; it is used as the matching endpoint.
        """
        out_vertex = self._endpoint(record.out_vertex_id, record.out_vertex_label, host)
        in_vertex = self._endpoint(record.in_vertex_id, record.in_vertex_label, host)
        edge = self.controller.ensure_edge(record.id, record.label, out_vertex, in_vertex)
        for key, value in PropertyReconstructor.expand_edge(record):
            self.controller.set_edge_property(edge, key, value)
        return edge

    def _endpoint(self, vertex_id: Any, label: str, host: Any) -> Any:
        native_ids = self.store.features.supports_user_supplied_ids
        if native_ids and host is not None and _same_id(getattr(host, "id", None), vertex_id):
            return host
        return self.controller.ensure_vertex(vertex_id, label, endpoint=True)

    def finish(self) -> ReadStats:
        return self.controller.finish()

    def abort(self) -> None:
        self.controller.abort()


def _same_id(left: Optional[Any], right: Optional[Any]) -> bool:
    return left is not None and type(left) is type(right) and left == right
