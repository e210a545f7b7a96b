"""
graphson-io: streaming GraphSON reader for property graph stores.

Decodes vertices, edges, properties and graph variables from GraphSON and
replays them into a target graph store, committing in bounded batches.
"""

__version__ = "0.1.0"

from graphson_io.errors import (
    GraphSONError,
    GraphReadError,
    MalformedValue,
    MissingRequiredField,
    UnexpectedField,
    StoreFailure,
)
from graphson_io.models import (
    Direction,
    GraphSONTokens,
    PropertyValue,
    VertexRecord,
    EdgeRecord,
)
from graphson_io.formats import (
    GraphSONReader,
    ValueDecoder,
    ValueProfile,
    EntityRecordBuilder,
    PropertyReconstructor,
    read_graphson,
    read_graphson_vertices,
)
from graphson_io.storage import (
    GraphStore,
    GraphFeatures,
    BatchCommitController,
    ReadStats,
    ElementMaterializer,
    StoreMaterializer,
    DetachedMaterializer,
    MemoryGraph,
)
from graphson_io.config import ReaderConfig, load_config
from graphson_io.graphs import GraphRegistry, GraphInfo

__all__ = [
    # Errors
    "GraphSONError",
    "GraphReadError",
    "MalformedValue",
    "MissingRequiredField",
    "UnexpectedField",
    "StoreFailure",
    # Records
    "Direction",
    "GraphSONTokens",
    "PropertyValue",
    "VertexRecord",
    "EdgeRecord",
    # Reading
    "GraphSONReader",
    "ValueDecoder",
    "ValueProfile",
    "EntityRecordBuilder",
    "PropertyReconstructor",
    "read_graphson",
    "read_graphson_vertices",
    # Stores
    "GraphStore",
    "GraphFeatures",
    "BatchCommitController",
    "ReadStats",
    "ElementMaterializer",
    "StoreMaterializer",
    "DetachedMaterializer",
    "MemoryGraph",
    # Configuration
    "ReaderConfig",
    "load_config",
    "GraphRegistry",
    "GraphInfo",
]


# Lazy import so the HTTP stack is only loaded when the app is requested
def __getattr__(name):
    if name == "create_app":
        from graphson_io.web import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
