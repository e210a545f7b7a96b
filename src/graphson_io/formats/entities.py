"""
Entity record building and property reconstruction.

``EntityRecordBuilder`` turns the field map of a single vertex or edge
document into an immutable record. Each document kind has a closed set of
field names; anything else is rejected rather than silently ignored.

Vertex document:

    {"id": 1, "label": "person",
     "properties": {"name": [{"id": 0, "value": "marko", "since": 2009}]}}

Edge document:

    {"id": 7, "label": "knows", "outV": 1, "outVLabel": "person",
     "inV": 2, "inVLabel": "person", "properties": {"weight": 0.5}}

``PropertyReconstructor`` expands records back into one property write per
encoded value.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping, Tuple

from graphson_io.errors import MalformedValue, MissingRequiredField, UnexpectedField
from graphson_io.formats.values import ValueDecoder
from graphson_io.models import (
    DecodedValue,
    Direction,
    EdgeRecord,
    GraphSONTokens,
    PropertyValue,
    VertexRecord,
)

VERTEX_FIELDS = frozenset({
    GraphSONTokens.ID,
    GraphSONTokens.LABEL,
    GraphSONTokens.TYPE,
    GraphSONTokens.PROPERTIES,
    GraphSONTokens.OUT_E,
    GraphSONTokens.IN_E,
})

EDGE_FIELDS = frozenset({
    GraphSONTokens.ID,
    GraphSONTokens.LABEL,
    GraphSONTokens.TYPE,
    GraphSONTokens.OUT,
    GraphSONTokens.OUT_LABEL,
    GraphSONTokens.IN,
    GraphSONTokens.IN_LABEL,
    GraphSONTokens.PROPERTIES,
})

# Keys of a vertex property entry that are not meta-properties
PROPERTY_ENTRY_FIELDS = frozenset({
    GraphSONTokens.ID,
    GraphSONTokens.VALUE,
    GraphSONTokens.PROPERTIES,
})


class EntityRecordBuilder:
    """Builds VertexRecord / EdgeRecord instances from decoded field maps."""

    def __init__(self, decoder: ValueDecoder = None):
        self.decoder = decoder or ValueDecoder()

    def build_vertex(self, field_map: Any, direction: Direction = Direction.BOTH) -> VertexRecord:
        """
        Build a vertex record.

        ``label`` is required. ``id`` may be absent, in which case the target
        store assigns one. ``outE``/``inE`` are only present in per-vertex
        streaming documents; each is decoded only when ``direction`` includes
        it and is otherwise left unexamined.
        """
        fields = self._fields(field_map, GraphSONTokens.VERTEX, VERTEX_FIELDS)
        label = self._required_text(fields, GraphSONTokens.LABEL, "Vertex")

        properties: Dict[str, List[PropertyValue]] = {}
        raw_properties = fields.get(GraphSONTokens.PROPERTIES)
        if raw_properties is not None:
            raw_properties = self.decoder.decode_map(raw_properties, "vertex properties")
            for key, entries in raw_properties.items():
                properties[key] = self._property_values(key, entries)

        return VertexRecord(
            id=self.decoder.decode(fields.get(GraphSONTokens.ID)),
            label=label,
            properties=properties,
            out_edges=self._adjacent_edges(fields, GraphSONTokens.OUT_E) if direction.includes_out() else (),
            in_edges=self._adjacent_edges(fields, GraphSONTokens.IN_E) if direction.includes_in() else (),
        )

    def build_edge(self, field_map: Any) -> EdgeRecord:
        """Build an edge record. Label and both endpoints are required."""
        fields = self._fields(field_map, GraphSONTokens.EDGE, EDGE_FIELDS)
        label = self._required_text(fields, GraphSONTokens.LABEL, "Edge")
        out_id = self._required(fields, GraphSONTokens.OUT, "Edge")
        out_label = self._required_text(fields, GraphSONTokens.OUT_LABEL, "Edge")
        in_id = self._required(fields, GraphSONTokens.IN, "Edge")
        in_label = self._required_text(fields, GraphSONTokens.IN_LABEL, "Edge")

        raw_properties = fields.get(GraphSONTokens.PROPERTIES)
        properties = {}
        if raw_properties is not None:
            properties = self.decoder.decode_map(raw_properties, "edge properties")

        return EdgeRecord(
            id=self.decoder.decode(fields.get(GraphSONTokens.ID)),
            label=label,
            out_vertex_id=self.decoder.decode(out_id),
            out_vertex_label=out_label,
            in_vertex_id=self.decoder.decode(in_id),
            in_vertex_label=in_label,
            properties=properties,
        )

    def _fields(self, field_map: Any, kind: str, allowed: frozenset) -> Mapping[str, Any]:
        if not isinstance(field_map, dict):
            raise MalformedValue(f"Expected {kind} document to be an object")
        for name in field_map:
            if name not in allowed:
                raise UnexpectedField(name, where=f"{kind} document")
        declared = field_map.get(GraphSONTokens.TYPE)
        if declared is not None and declared != kind:
            raise MalformedValue(f"Expected {kind} document but type is '{declared}'")
        return field_map

    def _required(self, fields: Mapping[str, Any], name: str, kind: str) -> Any:
        if fields.get(name) is None:
            raise MissingRequiredField(name, kind)
        return fields[name]

    def _required_text(self, fields: Mapping[str, Any], name: str, kind: str) -> str:
        return self.decoder.decode_text(self._required(fields, name, kind), name)

    def _property_values(self, key: str, entries: DecodedValue) -> List[PropertyValue]:
        # A single entry written without its enclosing list
        if isinstance(entries, dict):
            entries = [entries]
        if not isinstance(entries, list):
            raise MalformedValue(f"Vertex property '{key}' must be a list of value entries")

        values = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise MalformedValue(f"Vertex property '{key}' has a non-object entry")
            if GraphSONTokens.VALUE not in entry:
                raise MissingRequiredField(GraphSONTokens.VALUE, f"Vertex property '{key}'")

            meta = {k: v for k, v in entry.items() if k not in PROPERTY_ENTRY_FIELDS}
            nested = entry.get(GraphSONTokens.PROPERTIES)
            if nested is not None:
                if not isinstance(nested, dict):
                    raise MalformedValue(f"Meta-properties of '{key}' must be an object")
                meta.update(nested)

            values.append(PropertyValue(
                value=entry[GraphSONTokens.VALUE],
                id=entry.get(GraphSONTokens.ID),
                meta_properties=meta,
            ))
        return values

    def _adjacent_edges(self, fields: Mapping[str, Any], name: str) -> Tuple[EdgeRecord, ...]:
        raw = fields.get(name)
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise MalformedValue(f"Field '{name}' must be an array of edges")
        return tuple(self.build_edge(edge) for edge in raw)


class PropertyReconstructor:
    """Expands records into one property write per encoded value."""

    @staticmethod
    def expand_vertex(record: VertexRecord) -> Iterator[Tuple[str, PropertyValue]]:
        for key, values in record.properties.items():
            for value in values:
                yield key, value

    @staticmethod
    def expand_edge(record: EdgeRecord) -> Iterator[Tuple[str, DecodedValue]]:
        yield from record.properties.items()
