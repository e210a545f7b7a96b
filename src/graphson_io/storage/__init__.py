"""
Target store layer.

The abstract store interface, the batch commit controller that wraps it
during a read, materializers, and an in-memory reference store.
"""

from graphson_io.storage.base import GraphStore, GraphFeatures
from graphson_io.storage.batch import (
    BatchCommitController,
    PendingBatch,
    Mutation,
    MutationKind,
    ReadStats,
    DEFAULT_BATCH_SIZE,
    DEFAULT_ID_KEY,
)
from graphson_io.storage.attach import (
    ElementMaterializer,
    StoreMaterializer,
    DetachedMaterializer,
)
from graphson_io.storage.memory import MemoryGraph, StoredVertex, StoredEdge, canonical_id

__all__ = [
    "GraphStore",
    "GraphFeatures",
    "BatchCommitController",
    "PendingBatch",
    "Mutation",
    "MutationKind",
    "ReadStats",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_ID_KEY",
    "ElementMaterializer",
    "StoreMaterializer",
    "DetachedMaterializer",
    "MemoryGraph",
    "StoredVertex",
    "StoredEdge",
    "canonical_id",
]
