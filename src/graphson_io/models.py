"""
Store-independent records for decoded graph entities.

Records are detached: they carry only id, label and properties and are
consumed immediately by a store or a materializer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

DecodedValue = Union[str, bool, int, float, None, List[Any], Dict[str, Any]]


class GraphSONTokens:
    """Field names used by the GraphSON document format."""
    ID = "id"
    LABEL = "label"
    TYPE = "type"
    VALUE = "value"
    PROPERTIES = "properties"
    VARIABLES = "variables"
    VERTICES = "vertices"
    EDGES = "edges"
    VERTEX = "vertex"
    EDGE = "edge"
    OUT = "outV"
    OUT_LABEL = "outVLabel"
    IN = "inV"
    IN_LABEL = "inVLabel"
    OUT_E = "outE"
    IN_E = "inE"


class Direction(Enum):
    """Which adjacent edges to read alongside a vertex."""
    OUT = "out"
    IN = "in"
    BOTH = "both"
    NONE = "none"

    @classmethod
    def parse(cls, value: Union[str, "Direction", None]) -> "Direction":
        if value is None:
            return cls.NONE
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown direction '{value}', expected one of: out, in, both, none"
            )

    def includes_out(self) -> bool:
        return self in (Direction.OUT, Direction.BOTH)

    def includes_in(self) -> bool:
        return self in (Direction.IN, Direction.BOTH)


@dataclass(frozen=True)
class PropertyValue:
    """One value of a vertex property, with its optional id and meta-properties."""
    value: DecodedValue
    id: DecodedValue = None
    meta_properties: Dict[str, DecodedValue] = field(default_factory=dict)


@dataclass(frozen=True)
class EdgeRecord:
    """A detached edge."""
    id: DecodedValue
    label: str
    out_vertex_id: DecodedValue
    out_vertex_label: str
    in_vertex_id: DecodedValue
    in_vertex_label: str
    properties: Dict[str, DecodedValue] = field(default_factory=dict)


@dataclass(frozen=True)
class VertexRecord:
    """
    A detached vertex.

    ``properties`` maps each key to its values in encounter order. The
    adjacent edge tuples are only populated when the vertex was decoded
    from a per-vertex streaming document carrying ``outE``/``inE``.
    """
    id: DecodedValue
    label: str
    properties: Dict[str, List[PropertyValue]] = field(default_factory=dict)
    out_edges: Tuple[EdgeRecord, ...] = ()
    in_edges: Tuple[EdgeRecord, ...] = ()

    def value(self, key: str) -> Optional[DecodedValue]:
        """First value under ``key``, or None."""
        values = self.properties.get(key)
        if not values:
            return None
        return values[0].value
