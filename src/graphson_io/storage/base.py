"""
Target graph store interface.

The reader never talks to a concrete database. It drives a ``GraphStore``,
which exposes just enough to replay a graph: lookups by id, element
creation, property writes, graph variables and transaction boundaries.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from graphson_io.models import DecodedValue


@dataclass(frozen=True)
class GraphFeatures:
    """What a target store supports."""
    supports_user_supplied_ids: bool = True
    supports_edge_user_supplied_ids: bool = True
    supports_vertex_property_ids: bool = True
    supports_meta_properties: bool = True
    supports_variables: bool = True
    supports_transactions: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "supports_user_supplied_ids": self.supports_user_supplied_ids,
            "supports_edge_user_supplied_ids": self.supports_edge_user_supplied_ids,
            "supports_vertex_property_ids": self.supports_vertex_property_ids,
            "supports_meta_properties": self.supports_meta_properties,
            "supports_variables": self.supports_variables,
            "supports_transactions": self.supports_transactions,
        }


class GraphStore(ABC):
    """
    Abstract target store.

    Vertex and edge handles are whatever the store returns from
    ``add_vertex``/``add_edge``; the reader only passes them back in.
    """

    @property
    @abstractmethod
    def features(self) -> GraphFeatures:
        ...

    @abstractmethod
    def find_vertex(self, vertex_id: DecodedValue) -> Optional[Any]:
        """Vertex handle for ``vertex_id``, or None."""

    @abstractmethod
    def find_edge(self, edge_id: DecodedValue) -> Optional[Any]:
        """Edge handle for ``edge_id``, or None."""

    @abstractmethod
    def find_vertex_by_property(self, key: str, value: DecodedValue) -> Optional[Any]:
        """First vertex holding ``value`` under ``key``, or None."""

    @abstractmethod
    def find_edge_by_property(self, key: str, value: DecodedValue) -> Optional[Any]:
        """First edge holding ``value`` under ``key``, or None."""

    @abstractmethod
    def add_vertex(self, label: str, vertex_id: DecodedValue = None) -> Any:
        """Create a vertex. A None id asks the store to assign one."""

    @abstractmethod
    def add_edge(self, label: str, out_vertex: Any, in_vertex: Any,
                 edge_id: DecodedValue = None) -> Any:
        """Create an edge from ``out_vertex`` to ``in_vertex``."""

    @abstractmethod
    def set_vertex_property(
        self,
        vertex: Any,
        key: str,
        value: DecodedValue,
        property_id: DecodedValue = None,
        meta_properties: Optional[Dict[str, DecodedValue]] = None,
    ) -> None:
        """Append a value under ``key`` (list cardinality)."""

    @abstractmethod
    def set_edge_property(self, edge: Any, key: str, value: DecodedValue) -> None:
        """Set a single-valued edge property."""

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    def set_variable(self, key: str, value: DecodedValue) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not support graph variables")
