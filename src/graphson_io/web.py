"""
HTTP API for loading GraphSON into named in-memory graphs.

Endpoints:
- GET    /graphs                         list graphs
- POST   /graphs                         create a graph
- GET    /graphs/{name}                  graph info and counts
- DELETE /graphs/{name}                  delete a graph
- POST   /graphs/{name}/import           load a full GraphSON document
- POST   /graphs/{name}/import/vertices  load line-delimited vertex documents
- GET    /graphs/{name}/vertices/{id}    one vertex with its properties
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, Field

from graphson_io import __version__
from graphson_io.config import ReaderConfig, load_config
from graphson_io.errors import GraphReadError, StoreFailure
from graphson_io.formats.graphson import GraphSONReader
from graphson_io.graphs import GraphInfo, GraphRegistry
from graphson_io.models import Direction
from graphson_io.storage.attach import StoreMaterializer
from graphson_io.storage.base import GraphFeatures

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================

class CreateGraphRequest(BaseModel):
    """Request to create a new graph."""
    name: str = Field(..., description="Unique graph name (alphanumeric, hyphens, underscores)")
    description: str = Field(default="", description="Human-readable description")
    supports_user_supplied_ids: bool = Field(
        default=True,
        description="Keep element ids from the document; otherwise they are stored under the id key",
    )
    supports_variables: bool = Field(default=True, description="Accept graph variables")
    supports_meta_properties: bool = Field(default=True, description="Accept meta-properties")


class GraphResponse(BaseModel):
    """Graph metadata and counts."""
    name: str
    description: str
    created_at: str
    features: Dict[str, bool]
    vertex_count: int
    edge_count: int
    commit_count: int

    @classmethod
    def from_info(cls, info: GraphInfo, stats: Dict[str, Any]) -> "GraphResponse":
        return cls(
            name=info.name,
            description=info.description,
            created_at=info.created_at.isoformat(),
            features=info.features.to_dict(),
            vertex_count=stats["vertices"],
            edge_count=stats["edges"],
            commit_count=stats["commits"],
        )


class ImportResponse(BaseModel):
    """Result of an import."""
    success: bool
    stats: Dict[str, int]
    message: str


class PropertyResponse(BaseModel):
    key: str
    value: Any
    id: Any = None
    meta_properties: Dict[str, Any] = Field(default_factory=dict)


class VertexResponse(BaseModel):
    id: Any
    label: str
    properties: List[PropertyResponse]


def _read_error(e: GraphReadError) -> HTTPException:
    cause = e.cause
    return HTTPException(
        status_code=400,
        detail={
            "error": type(cause).__name__ if cause is not None else type(e).__name__,
            "message": str(e),
            "line_number": e.line_number,
        },
    )


def _finish(materializer: StoreMaterializer) -> None:
    """Final commit of a vertex import; a failed commit is reported as a read error."""
    try:
        materializer.finish()
    except StoreFailure as e:
        materializer.abort()
        raise GraphReadError(f"Could not commit imported vertices: {e}") from e


def _parse_id(raw: str) -> Any:
    """Path ids are JSON when they parse as JSON, plain strings otherwise."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


# =============================================================================
# Router
# =============================================================================

def create_graph_router(registry: GraphRegistry, config: ReaderConfig) -> APIRouter:
    """
    Create the graph import API router.

    Args:
        registry: Graphs served by the router
        config: Default reader settings

    Returns:
        APIRouter mounted under /graphs
    """
    router = APIRouter(prefix="/graphs", tags=["Graphs"])

    def _graph_or_404(name: str):
        try:
            return registry.get_graph(name)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))

    def _reader(batch_size: Optional[int]) -> GraphSONReader:
        reader = GraphSONReader.from_config(config)
        if batch_size is not None:
            reader.batch_size = batch_size
        return reader

    @router.get("")
    async def list_graphs():
        graphs = registry.list_graphs()
        return {
            "count": len(graphs),
            "graphs": [
                GraphResponse.from_info(info, registry.get_graph(info.name).stats()).model_dump()
                for info in graphs
            ],
        }

    @router.post("")
    async def create_graph(request: CreateGraphRequest):
        features = GraphFeatures(
            supports_user_supplied_ids=request.supports_user_supplied_ids,
            supports_edge_user_supplied_ids=request.supports_user_supplied_ids,
            supports_variables=request.supports_variables,
            supports_meta_properties=request.supports_meta_properties,
        )
        try:
            info = registry.create(request.name, description=request.description, features=features)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {
            "success": True,
            "graph": GraphResponse.from_info(info, registry.get_graph(info.name).stats()).model_dump(),
        }

    @router.get("/{name}")
    async def get_graph(name: str):
        graph = _graph_or_404(name)
        return GraphResponse.from_info(registry.get_info(name), graph.stats()).model_dump()

    @router.delete("/{name}")
    async def delete_graph(name: str):
        _graph_or_404(name)
        registry.delete(name)
        return {"success": True, "message": f"Graph '{name}' deleted"}

    @router.post("/{name}/import")
    async def import_graph(
        name: str,
        request: Request,
        batch_size: Optional[int] = Query(None, ge=1, description="Element creations per commit"),
    ):
        """Load a full GraphSON graph document from the request body."""
        graph = _graph_or_404(name)
        body = await request.body()
        if not body.strip():
            raise HTTPException(status_code=400, detail="No data provided")

        reader = _reader(batch_size)
        lock = registry.lock(name)

        def _load():
            with lock:
                return reader.read_graph(body, graph)

        try:
            stats = await asyncio.to_thread(_load)
        except GraphReadError as e:
            logger.warning(f"Import into '{name}' failed: {e}")
            raise _read_error(e)

        return ImportResponse(
            success=True,
            stats=stats.to_dict(),
            message=f"Imported {stats.vertices_created} vertices and {stats.edges_created} edges",
        ).model_dump()

    @router.post("/{name}/import/vertices")
    async def import_vertices(
        name: str,
        request: Request,
        direction: str = Query("both", description="Adjacent edges to load: out, in, both, none"),
        batch_size: Optional[int] = Query(None, ge=1, description="Element creations per commit"),
    ):
        """
        Load line-delimited vertex documents from the request body.

        Vertices read before an undecodable line are committed and stay in
        the graph. A store failure rolls back everything since the last
        interim commit, since the failing line may be partly applied.
        """
        graph = _graph_or_404(name)
        try:
            parsed_direction = Direction.parse(direction)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        body = await request.body()
        reader = _reader(batch_size)
        materializer = StoreMaterializer(
            graph,
            batch_size=reader.batch_size,
            vertex_id_key=reader.vertex_id_key,
            edge_id_key=reader.edge_id_key,
        )

        lock = registry.lock(name)

        def _load() -> int:
            count = 0
            with lock:
                try:
                    for _ in reader.read_vertices(body, materializer, parsed_direction):
                        count += 1
                except GraphReadError as e:
                    if isinstance(e.cause, StoreFailure):
                        materializer.abort()
                    else:
                        _finish(materializer)
                    raise
                except Exception:
                    materializer.abort()
                    raise
                _finish(materializer)
            return count

        try:
            count = await asyncio.to_thread(_load)
        except GraphReadError as e:
            logger.warning(f"Vertex import into '{name}' stopped: {e}")
            raise _read_error(e)

        return ImportResponse(
            success=True,
            stats=materializer.stats.to_dict(),
            message=f"Imported {count} vertex documents",
        ).model_dump()

    @router.get("/{name}/vertices/{vertex_id}")
    async def get_vertex(name: str, vertex_id: str):
        graph = _graph_or_404(name)
        parsed_id = _parse_id(vertex_id)
        vertex = graph.get_vertex(parsed_id)
        if vertex is None:
            raise HTTPException(status_code=404, detail=f"Vertex {vertex_id} not found")
        properties = [
            PropertyResponse(key=key, value=prop.value, id=prop.id, meta_properties=prop.meta_properties)
            for key, prop in graph.vertex_properties(parsed_id)
        ]
        return VertexResponse(id=vertex.id, label=vertex.label, properties=properties).model_dump()

    return router


def create_app(registry: Optional[GraphRegistry] = None, config: Optional[ReaderConfig] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        registry: Optional GraphRegistry (a new one is created if omitted)
        config: Optional reader settings (loaded from the environment if omitted)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="graphson-io",
        description="Load GraphSON property graphs into in-memory graph stores",
        version=__version__,
    )
    app.state.registry = registry or GraphRegistry()
    app.state.config = config or load_config()

    app.include_router(create_graph_router(app.state.registry, app.state.config))

    @app.get("/health", tags=["Info"])
    async def health():
        return {"status": "ok", "version": __version__}

    return app
