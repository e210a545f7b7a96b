"""
In-memory property graph store backed by Polars DataFrames.

Elements are indexed in dictionaries keyed by their canonical JSON id;
property facts live in DataFrames with JSON-encoded values so that every
value in the GraphSON type envelope round-trips unchanged.

Mutations are staged until ``commit()``:
- Lookups (``find_*``) see staged and committed elements
- Query helpers (``vertices()``, ``values()``, ...) see committed state only
- ``rollback()`` discards everything staged since the last commit
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import polars as pl

from graphson_io.models import DecodedValue, PropertyValue
from graphson_io.storage.base import GraphFeatures, GraphStore

logger = logging.getLogger(__name__)

VERTEX_PROPERTY_SCHEMA = {
    "vertex": pl.Utf8,
    "key": pl.Utf8,
    "value": pl.Utf8,
    "property_id": pl.Utf8,
    "meta": pl.Utf8,
    "seq": pl.Int64,
}

EDGE_PROPERTY_SCHEMA = {
    "edge": pl.Utf8,
    "key": pl.Utf8,
    "value": pl.Utf8,
    "seq": pl.Int64,
}


def canonical_id(value: DecodedValue) -> str:
    """
    Canonical JSON form of an id or value.

    Ids are equal only when their decoded values are equal with the same
    JSON type: 1, 1.0, "1" and true are four different ids.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=float)


@dataclass(frozen=True)
class StoredVertex:
    """Handle to a vertex in a MemoryGraph."""
    id: DecodedValue
    label: str

    @property
    def key(self) -> str:
        return canonical_id(self.id)


@dataclass(frozen=True)
class StoredEdge:
    """Handle to an edge in a MemoryGraph."""
    id: DecodedValue
    label: str
    out_vertex_id: DecodedValue
    in_vertex_id: DecodedValue

    @property
    def key(self) -> str:
        return canonical_id(self.id)


class MemoryGraph(GraphStore):
    """
    A transactional in-memory graph.

    Usage:
        graph = MemoryGraph()
        v = graph.add_vertex("person", 1)
        graph.set_vertex_property(v, "name", "marko")
        graph.commit()
        graph.values(1, "name")  # ["marko"]
    """

    def __init__(self, features: Optional[GraphFeatures] = None):
        self._features = features or GraphFeatures()

        # Committed state
        self._vertices: Dict[str, StoredVertex] = {}
        self._edges: Dict[str, StoredEdge] = {}
        self._vertex_props = pl.DataFrame(schema=VERTEX_PROPERTY_SCHEMA)
        self._edge_props = pl.DataFrame(schema=EDGE_PROPERTY_SCHEMA)
        self._variables: Dict[str, DecodedValue] = {}

        # Staged state
        self._staged_vertices: Dict[str, StoredVertex] = {}
        self._staged_edges: Dict[str, StoredEdge] = {}
        # Keyed by (vertex, property id), or (vertex, None, seq) for rows without an id
        self._staged_vertex_props: Dict[Tuple[Any, ...], Dict[str, Any]] = {}
        self._staged_edge_props: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._staged_variables: Dict[str, DecodedValue] = {}

        self._seq = 0
        self._next_id = 0
        self.commit_count = 0

    @property
    def features(self) -> GraphFeatures:
        return self._features

    # ========== Lookups ==========

    def find_vertex(self, vertex_id: DecodedValue) -> Optional[StoredVertex]:
        key = canonical_id(vertex_id)
        return self._staged_vertices.get(key) or self._vertices.get(key)

    def find_edge(self, edge_id: DecodedValue) -> Optional[StoredEdge]:
        key = canonical_id(edge_id)
        return self._staged_edges.get(key) or self._edges.get(key)

    def find_vertex_by_property(self, key: str, value: DecodedValue) -> Optional[StoredVertex]:
        encoded = canonical_id(value)
        for row in self._staged_vertex_props.values():
            if row["key"] == key and row["value"] == encoded:
                return self._vertex_by_key(row["vertex"])
        matches = self._vertex_props.filter(
            (pl.col("key") == key) & (pl.col("value") == encoded)
        )
        if matches.height == 0:
            return None
        return self._vertex_by_key(matches["vertex"][0])

    def find_edge_by_property(self, key: str, value: DecodedValue) -> Optional[StoredEdge]:
        encoded = canonical_id(value)
        for row in self._staged_edge_props.values():
            if row["key"] == key and row["value"] == encoded:
                return self._edge_by_key(row["edge"])
        matches = self._edge_props.filter(
            (pl.col("key") == key) & (pl.col("value") == encoded)
        )
        if matches.height == 0:
            return None
        return self._edge_by_key(matches["edge"][0])

    def _vertex_by_key(self, key: str) -> Optional[StoredVertex]:
        return self._staged_vertices.get(key) or self._vertices.get(key)

    def _edge_by_key(self, key: str) -> Optional[StoredEdge]:
        return self._staged_edges.get(key) or self._edges.get(key)

    # ========== Mutations ==========

    def add_vertex(self, label: str, vertex_id: DecodedValue = None) -> StoredVertex:
        if vertex_id is None:
            vertex_id = self._generate_id()
        elif not self._features.supports_user_supplied_ids:
            raise ValueError("Vertex does not support user supplied identifiers")

        key = canonical_id(vertex_id)
        if self._vertex_by_key(key) is not None:
            raise ValueError(f"Vertex with id {key} already exists")

        vertex = StoredVertex(id=vertex_id, label=label)
        self._staged_vertices[key] = vertex
        self._autocommit()
        return vertex

    def add_edge(self, label: str, out_vertex: StoredVertex, in_vertex: StoredVertex,
                 edge_id: DecodedValue = None) -> StoredEdge:
        if edge_id is None:
            edge_id = self._generate_id()
        elif not self._features.supports_edge_user_supplied_ids:
            raise ValueError("Edge does not support user supplied identifiers")

        for endpoint in (out_vertex, in_vertex):
            if self._vertex_by_key(endpoint.key) is None:
                raise ValueError(f"Vertex with id {endpoint.key} does not exist")

        key = canonical_id(edge_id)
        if self._edge_by_key(key) is not None:
            raise ValueError(f"Edge with id {key} already exists")

        edge = StoredEdge(
            id=edge_id,
            label=label,
            out_vertex_id=out_vertex.id,
            in_vertex_id=in_vertex.id,
        )
        self._staged_edges[key] = edge
        self._autocommit()
        return edge

    def set_vertex_property(
        self,
        vertex: StoredVertex,
        key: str,
        value: DecodedValue,
        property_id: DecodedValue = None,
        meta_properties: Optional[Dict[str, DecodedValue]] = None,
    ) -> None:
        if self._vertex_by_key(vertex.key) is None:
            raise ValueError(f"Vertex with id {vertex.key} does not exist")
        if property_id is not None and not self._features.supports_vertex_property_ids:
            raise ValueError("VertexProperty does not support user supplied identifiers")
        if meta_properties and not self._features.supports_meta_properties:
            raise ValueError("VertexProperty does not support meta-properties")

        encoded_id = None if property_id is None else canonical_id(property_id)
        seq = self._next_seq()
        if encoded_id is not None:
            # Same property id on the same vertex replaces the earlier value
            row_key: Tuple[Any, ...] = (vertex.key, encoded_id)
            self._staged_vertex_props.pop(row_key, None)
        else:
            row_key = (vertex.key, None, seq)

        self._staged_vertex_props[row_key] = {
            "vertex": vertex.key,
            "key": key,
            "value": canonical_id(value),
            "property_id": encoded_id,
            "meta": canonical_id(meta_properties or {}),
            "seq": seq,
        }
        self._autocommit()

    def set_edge_property(self, edge: StoredEdge, key: str, value: DecodedValue) -> None:
        if self._edge_by_key(edge.key) is None:
            raise ValueError(f"Edge with id {edge.key} does not exist")
        self._staged_edge_props[(edge.key, key)] = {
            "edge": edge.key,
            "key": key,
            "value": canonical_id(value),
            "seq": self._next_seq(),
        }
        self._autocommit()

    def set_variable(self, key: str, value: DecodedValue) -> None:
        if not self._features.supports_variables:
            raise NotImplementedError("Graph does not support variables")
        self._staged_variables[key] = value
        self._autocommit()

    # ========== Transactions ==========

    def commit(self) -> None:
        """Apply all staged mutations."""
        self._vertices.update(self._staged_vertices)
        self._edges.update(self._staged_edges)
        self._variables.update(self._staged_variables)

        if self._staged_vertex_props:
            staged = pl.DataFrame(
                list(self._staged_vertex_props.values()), schema=VERTEX_PROPERTY_SCHEMA
            )
            replaced = staged.filter(pl.col("property_id").is_not_null()).select(
                ["vertex", "property_id"]
            )
            kept = self._vertex_props.join(replaced, on=["vertex", "property_id"], how="anti")
            self._vertex_props = pl.concat([kept, staged], how="vertical")

        if self._staged_edge_props:
            staged = pl.DataFrame(
                list(self._staged_edge_props.values()), schema=EDGE_PROPERTY_SCHEMA
            )
            kept = self._edge_props.join(staged.select(["edge", "key"]), on=["edge", "key"], how="anti")
            self._edge_props = pl.concat([kept, staged], how="vertical")

        self._clear_staged()
        self.commit_count += 1

    def rollback(self) -> None:
        """Discard all staged mutations."""
        if not self._features.supports_transactions:
            raise NotImplementedError("Graph does not support transactions")
        discarded = self.pending_count()
        self._clear_staged()
        logger.debug(f"Rolled back {discarded} staged mutations")

    def pending_count(self) -> int:
        return (
            len(self._staged_vertices)
            + len(self._staged_edges)
            + len(self._staged_vertex_props)
            + len(self._staged_edge_props)
            + len(self._staged_variables)
        )

    def _clear_staged(self) -> None:
        self._staged_vertices = {}
        self._staged_edges = {}
        self._staged_vertex_props = {}
        self._staged_edge_props = {}
        self._staged_variables = {}

    def _autocommit(self) -> None:
        # Without transaction support every mutation is applied immediately
        if not self._features.supports_transactions:
            self.commit()

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def _generate_id(self) -> int:
        while True:
            candidate = self._next_id
            self._next_id += 1
            key = canonical_id(candidate)
            if key not in self._vertices and key not in self._staged_vertices \
                    and key not in self._edges and key not in self._staged_edges:
                return candidate

    # ========== Queries (committed state) ==========

    @property
    def variables(self) -> Dict[str, DecodedValue]:
        return dict(self._variables)

    def vertex_count(self) -> int:
        return len(self._vertices)

    def edge_count(self) -> int:
        return len(self._edges)

    def get_vertex(self, vertex_id: DecodedValue) -> Optional[StoredVertex]:
        return self._vertices.get(canonical_id(vertex_id))

    def get_edge(self, edge_id: DecodedValue) -> Optional[StoredEdge]:
        return self._edges.get(canonical_id(edge_id))

    def vertices(self) -> pl.DataFrame:
        """Committed vertices; ids are JSON-encoded."""
        return pl.DataFrame(
            {
                "id": [v.key for v in self._vertices.values()],
                "label": [v.label for v in self._vertices.values()],
            },
            schema={"id": pl.Utf8, "label": pl.Utf8},
        )

    def edges(self) -> pl.DataFrame:
        """Committed edges; ids are JSON-encoded."""
        return pl.DataFrame(
            {
                "id": [e.key for e in self._edges.values()],
                "label": [e.label for e in self._edges.values()],
                "out_vertex": [canonical_id(e.out_vertex_id) for e in self._edges.values()],
                "in_vertex": [canonical_id(e.in_vertex_id) for e in self._edges.values()],
            },
            schema={"id": pl.Utf8, "label": pl.Utf8, "out_vertex": pl.Utf8, "in_vertex": pl.Utf8},
        )

    def label_counts(self) -> Dict[str, int]:
        """Number of committed vertices per label."""
        counts = self.vertices().group_by("label").agg(pl.len().alias("count"))
        return {row["label"]: row["count"] for row in counts.iter_rows(named=True)}

    def vertex_properties(self, vertex_id: DecodedValue, key: Optional[str] = None) -> List[Tuple[str, PropertyValue]]:
        """(key, PropertyValue) pairs of a vertex in write order."""
        condition = pl.col("vertex") == canonical_id(vertex_id)
        if key is not None:
            condition = condition & (pl.col("key") == key)
        rows = self._vertex_props.filter(condition).sort("seq")
        return [
            (
                row["key"],
                PropertyValue(
                    value=json.loads(row["value"]),
                    id=None if row["property_id"] is None else json.loads(row["property_id"]),
                    meta_properties=json.loads(row["meta"]),
                ),
            )
            for row in rows.iter_rows(named=True)
        ]

    def values(self, vertex_id: DecodedValue, key: str) -> List[DecodedValue]:
        """All values of a vertex property in write order."""
        return [prop.value for _, prop in self.vertex_properties(vertex_id, key)]

    def edge_properties(self, edge_id: DecodedValue) -> Dict[str, DecodedValue]:
        rows = self._edge_props.filter(pl.col("edge") == canonical_id(edge_id)).sort("seq")
        return {row["key"]: json.loads(row["value"]) for row in rows.iter_rows(named=True)}

    def out_edges(self, vertex_id: DecodedValue) -> List[StoredEdge]:
        key = canonical_id(vertex_id)
        return [e for e in self._edges.values() if canonical_id(e.out_vertex_id) == key]

    def in_edges(self, vertex_id: DecodedValue) -> List[StoredEdge]:
        key = canonical_id(vertex_id)
        return [e for e in self._edges.values() if canonical_id(e.in_vertex_id) == key]

    def stats(self) -> Dict[str, Any]:
        return {
            "vertices": self.vertex_count(),
            "edges": self.edge_count(),
            "vertex_properties": self._vertex_props.height,
            "edge_properties": self._edge_props.height,
            "variables": len(self._variables),
            "commits": self.commit_count,
            "pending": self.pending_count(),
        }
