"""
GraphSON format support.

- values: JSON node -> decoded value
- entities: field maps -> vertex/edge records, property expansion
- graphson: streaming reader driving a target store
"""

from graphson_io.formats.values import ValueDecoder, ValueProfile, DEFAULT_PROFILE
from graphson_io.formats.entities import (
    EntityRecordBuilder,
    PropertyReconstructor,
    VERTEX_FIELDS,
    EDGE_FIELDS,
)
from graphson_io.formats.graphson import GraphSONReader, read_graphson, read_graphson_vertices

__all__ = [
    # Values
    "ValueDecoder",
    "ValueProfile",
    "DEFAULT_PROFILE",
    # Entities
    "EntityRecordBuilder",
    "PropertyReconstructor",
    "VERTEX_FIELDS",
    "EDGE_FIELDS",
    # Reader
    "GraphSONReader",
    "read_graphson",
    "read_graphson_vertices",
]
