"""
Graph Registry.

Manages multiple named in-memory graphs that GraphSON documents can be
loaded into.

Usage:
    registry = GraphRegistry()
    registry.create("social", description="Imported social graph")
    graph = registry.get_graph("social")
    read_graphson(Path("social.json"), graph)
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from graphson_io.storage.base import GraphFeatures
from graphson_io.storage.memory import MemoryGraph

logger = logging.getLogger(__name__)


@dataclass
class GraphInfo:
    """Metadata about a registered graph."""
    name: str
    created_at: datetime
    description: str = ""
    features: GraphFeatures = field(default_factory=GraphFeatures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "description": self.description,
            "features": self.features.to_dict(),
        }


class GraphRegistry:
    """Named MemoryGraph instances."""

    def __init__(self):
        self._graphs: Dict[str, MemoryGraph] = {}
        self._info: Dict[str, GraphInfo] = {}
        # One import at a time per graph
        self._locks: Dict[str, threading.Lock] = {}

    def create(
        self,
        name: str,
        description: str = "",
        features: Optional[GraphFeatures] = None,
    ) -> GraphInfo:
        """
        Create a new empty graph.

        Raises:
            ValueError: If the name is invalid or already taken
        """
        if not name:
            raise ValueError("Graph name cannot be empty")
        if not all(c.isalnum() or c in "-_" for c in name):
            raise ValueError("Graph name can only contain alphanumeric characters, hyphens, and underscores")
        if name in self._info:
            raise ValueError(f"Graph '{name}' already exists")

        info = GraphInfo(
            name=name,
            created_at=datetime.now(timezone.utc),
            description=description,
            features=features or GraphFeatures(),
        )
        self._info[name] = info
        self._graphs[name] = MemoryGraph(features=info.features)
        self._locks[name] = threading.Lock()
        logger.info(f"Created graph '{name}'")
        return info

    def get_graph(self, name: str) -> MemoryGraph:
        if name not in self._graphs:
            raise ValueError(f"Graph '{name}' does not exist")
        return self._graphs[name]

    def get_info(self, name: str) -> GraphInfo:
        if name not in self._info:
            raise ValueError(f"Graph '{name}' does not exist")
        return self._info[name]

    def lock(self, name: str) -> threading.Lock:
        """Lock to hold for the whole of a read into the named graph."""
        if name not in self._locks:
            raise ValueError(f"Graph '{name}' does not exist")
        return self._locks[name]

    def exists(self, name: str) -> bool:
        return name in self._info

    def list_graphs(self) -> List[GraphInfo]:
        return [self._info[name] for name in sorted(self._info)]

    def delete(self, name: str) -> bool:
        if name not in self._info:
            raise ValueError(f"Graph '{name}' does not exist")
        self._graphs.pop(name, None)
        self._info.pop(name, None)
        self._locks.pop(name, None)
        logger.info(f"Deleted graph '{name}'")
        return True
