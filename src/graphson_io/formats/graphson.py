"""
GraphSON Reader.

Reads the JSON-based GraphSON representation of a property graph and
replays it into a target graph store. GraphSON only supports JSON data
types, so reading is lossy with respect to the source types (a float
becomes a double, element ids may not come back in the type they were
written with).

Read modes:
- read_graph: a full graph document, streamed token by token
- read_vertex: one vertex document, optionally with its adjacent edges
- read_edge: one edge document
- read_vertices: line-delimited vertex documents, read lazily

Full graph document:

    {"variables": {...},
     "vertices": [{"id": 1, "label": "person", "properties": {...}}, ...],
     "edges": [{"id": 7, "label": "knows", "outV": 1, "outVLabel": "person",
                "inV": 2, "inVLabel": "person", "properties": {...}}, ...]}

Vertices must be listed before the edges that reference them. An edge
whose endpoint is not in the store yet creates that endpoint from the id
and label carried on the edge, without properties.
"""
from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Iterator, Optional, TextIO, Tuple, Union

import ijson

from graphson_io.errors import (
    GraphReadError,
    GraphSONError,
    MalformedValue,
    UnexpectedField,
)
from graphson_io.formats.entities import EntityRecordBuilder, PropertyReconstructor
from graphson_io.formats.values import DEFAULT_PROFILE, ValueDecoder, ValueProfile
from graphson_io.models import DecodedValue, Direction, EdgeRecord, GraphSONTokens, VertexRecord
from graphson_io.storage.base import GraphStore
from graphson_io.storage.batch import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_ID_KEY,
    BatchCommitController,
    ReadStats,
)

if TYPE_CHECKING:
    from graphson_io.config import ReaderConfig
    from graphson_io.storage.attach import ElementMaterializer

logger = logging.getLogger(__name__)

Source = Union[str, bytes, Path, BinaryIO, TextIO]

_START_EVENTS = ("start_map", "start_array")
_END_EVENTS = ("end_map", "end_array")


class GraphSONReader:
    """
    Reader for GraphSON documents.

    Usage:
        reader = GraphSONReader(batch_size=1000)
        stats = reader.read_graph(Path("graph.json"), store)

    Sources may be a Path (opened and closed by the reader), a str or bytes
    holding the document itself, or an open file object (left open).
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        vertex_id_key: str = DEFAULT_ID_KEY,
        edge_id_key: str = DEFAULT_ID_KEY,
        value_profile: ValueProfile = DEFAULT_PROFILE,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.batch_size = batch_size
        self.vertex_id_key = vertex_id_key
        self.edge_id_key = edge_id_key
        self.value_profile = value_profile
        self.decoder = ValueDecoder(value_profile)
        self.builder = EntityRecordBuilder(self.decoder)

    @classmethod
    def from_config(cls, config: "ReaderConfig") -> "GraphSONReader":
        return cls(
            batch_size=config.batch_size,
            vertex_id_key=config.vertex_id_key,
            edge_id_key=config.edge_id_key,
            value_profile=config.value_profile,
        )

    # ========== Full graph ==========

    def read_graph(self, source: Source, store: GraphStore) -> ReadStats:
        """
        Replay a full graph document into ``store``.

        Commits every ``batch_size`` element creations and once more at the
        end. On failure the uncommitted tail is rolled back; earlier interim
        commits stay in place.

        Raises:
            GraphReadError: with the decode or store error as its cause
        """
        controller = BatchCommitController(
            store,
            batch_size=self.batch_size,
            vertex_id_key=self.vertex_id_key,
            edge_id_key=self.edge_id_key,
        )
        try:
            with _binary_stream(source) as stream:
                self._read_graph_events(self._events(stream), controller)
            stats = controller.finish()
        except GraphSONError as e:
            controller.abort()
            raise GraphReadError(f"Could not read GraphSON graph: {e}") from e
        except (ijson.JSONError, UnicodeDecodeError) as e:
            controller.abort()
            raise GraphReadError(f"Invalid JSON in GraphSON graph: {e}") from e

        logger.info(
            f"Read graph: {stats.vertices_created} vertices and {stats.edges_created} edges "
            f"created, {stats.commits} commits"
        )
        return stats

    def _read_graph_events(self, events: Iterator[Tuple[str, Any]], controller: BatchCommitController) -> None:
        event, _ = _next_event(events)
        if event != "start_map":
            raise MalformedValue("Expected data to start with an Object")

        while True:
            event, field_name = _next_event(events)
            if event == "end_map":
                break

            if field_name == GraphSONTokens.VARIABLES:
                variables = self.decoder.decode_map(_read_node(events), "variables")
                for key, value in variables.items():
                    controller.set_variable(key, value)
            elif field_name == GraphSONTokens.VERTICES:
                for node in _iter_array(events, field_name):
                    self._apply_vertex(self.builder.build_vertex(node, Direction.NONE), controller)
            elif field_name == GraphSONTokens.EDGES:
                for node in _iter_array(events, field_name):
                    self._apply_edge(self.builder.build_edge(node), controller)
            else:
                raise UnexpectedField(field_name)

        for event, _ in events:
            raise MalformedValue(f"Unexpected {event} after the top-level object")

    def _apply_vertex(self, record: VertexRecord, controller: BatchCommitController) -> None:
        vertex = controller.ensure_vertex(record.id, record.label)
        for key, prop in PropertyReconstructor.expand_vertex(record):
            controller.set_vertex_property(vertex, key, prop)

    def _apply_edge(self, record: EdgeRecord, controller: BatchCommitController) -> None:
        out_vertex = controller.ensure_vertex(
            record.out_vertex_id, record.out_vertex_label, endpoint=True
        )
        in_vertex = controller.ensure_vertex(
            record.in_vertex_id, record.in_vertex_label, endpoint=True
        )
        edge = controller.ensure_edge(record.id, record.label, out_vertex, in_vertex)
        for key, value in PropertyReconstructor.expand_edge(record):
            controller.set_edge_property(edge, key, value)

    # ========== Single elements ==========

    def read_object(self, source: Source) -> DecodedValue:
        """Read one JSON value of any kind, decoded with the value profile."""
        with _read_errors("JSON value"):
            return self.decoder.decode(self._load_document(source))

    def read_edge(self, source: Source, materializer: "ElementMaterializer", host: Any = None) -> Any:
        """
        Read one edge document and return what ``materializer`` makes of it.

        ``host`` is passed through to the materializer as the addressing
        context. Nothing is committed.
        """
        with _read_errors("GraphSON edge"):
            record = self.builder.build_edge(self._load_document(source))
            return materializer.materialize_edge(record, host)

    def read_vertex(
        self,
        source: Source,
        materializer: "ElementMaterializer",
        direction: Union[Direction, str, None] = None,
    ) -> Any:
        """
        Read one vertex document and return what ``materializer`` makes of it.

        With a ``direction`` other than none, the adjacent edges listed in
        ``outE``/``inE`` are materialized after the vertex, with the vertex
        as their host. Nothing is committed.
        """
        direction = Direction.parse(direction)
        with _read_errors("GraphSON vertex"):
            return self._read_vertex_node(self._load_document(source), materializer, direction)

    def _read_vertex_node(self, node: Any, materializer: "ElementMaterializer", direction: Direction) -> Any:
        record = self.builder.build_vertex(node, direction)
        vertex = materializer.materialize_vertex(record)
        if direction.includes_out():
            for edge in record.out_edges:
                materializer.materialize_edge(edge, vertex)
        if direction.includes_in():
            for edge in record.in_edges:
                materializer.materialize_edge(edge, vertex)
        return vertex

    # ========== Line-delimited vertices ==========

    def read_vertices(
        self,
        source: Source,
        materializer: "ElementMaterializer",
        direction: Union[Direction, str, None] = None,
    ) -> Iterator[Any]:
        """
        Lazily read one vertex document per line.

        Each pull decodes and materializes one line. A bad line raises
        GraphReadError at the pull that reaches it; vertices already
        yielded stay materialized. Blank lines are skipped. A Path source
        is opened on the first pull and closed when the iterator is
        exhausted, fails or is closed.
        """
        return self._vertex_lines(source, materializer, Direction.parse(direction))

    def _vertex_lines(self, source: Source, materializer: "ElementMaterializer",
                      direction: Direction) -> Iterator[Any]:
        with _line_stream(source) as stream:
            lines = iter(stream)
            line_number = 0
            while True:
                line_number += 1
                try:
                    line = next(lines, None)
                    if line is None:
                        return
                    if isinstance(line, (bytes, bytearray)):
                        line = bytes(line).decode("utf-8")
                    line = line.strip()
                    if not line:
                        continue
                    node = self._load_document(line)
                    vertex = self._read_vertex_node(node, materializer, direction)
                except GraphSONError as e:
                    raise GraphReadError(f"Error reading line {line_number}: {e}", line_number) from e
                except ijson.JSONError as e:
                    raise GraphReadError(f"Invalid JSON on line {line_number}: {e}", line_number) from e
                except UnicodeDecodeError as e:
                    raise GraphReadError(f"Invalid UTF-8 on line {line_number}: {e}", line_number) from e
                yield vertex

    # ========== Tokens ==========

    def _events(self, stream: BinaryIO) -> Iterator[Tuple[str, Any]]:
        return ijson.basic_parse(stream, use_float=self.value_profile.use_float)

    def _load_document(self, source: Source) -> Any:
        """Read exactly one JSON value from ``source``."""
        with _binary_stream(source) as stream:
            events = self._events(stream)
            node = _read_node(events)
            for event, _ in events:
                raise MalformedValue(f"Unexpected {event} after the document")
        return node


def _next_event(events: Iterator[Tuple[str, Any]]) -> Tuple[str, Any]:
    try:
        return next(events)
    except StopIteration:
        raise MalformedValue("Unexpected end of GraphSON document")


def _read_node(events: Iterator[Tuple[str, Any]], first: Optional[Tuple[str, Any]] = None) -> Any:
    """Assemble one complete JSON value from the token stream."""
    event, value = first or _next_event(events)
    builder = ijson.ObjectBuilder()
    builder.event(event, value)
    depth = 1 if event in _START_EVENTS else 0
    while depth:
        event, value = _next_event(events)
        builder.event(event, value)
        if event in _START_EVENTS:
            depth += 1
        elif event in _END_EVENTS:
            depth -= 1
    return builder.value


def _iter_array(events: Iterator[Tuple[str, Any]], name: str) -> Iterator[Any]:
    """Yield the elements of an array one at a time."""
    event, _ = _next_event(events)
    if event == "null":
        return
    if event != "start_array":
        raise MalformedValue(f"Expected '{name}' to be an array")
    while True:
        first = _next_event(events)
        if first[0] == "end_array":
            return
        yield _read_node(events, first)


@contextmanager
def _binary_stream(source: Source):
    if isinstance(source, Path):
        with open(source, "rb") as f:
            yield f
    elif isinstance(source, str):
        yield io.BytesIO(source.encode("utf-8"))
    elif isinstance(source, (bytes, bytearray)):
        yield io.BytesIO(bytes(source))
    else:
        yield source


@contextmanager
def _line_stream(source: Source):
    # Lines stay undecoded until they are read so that bad bytes fail on their own line
    if isinstance(source, Path):
        with open(source, "rb") as f:
            yield f
    elif isinstance(source, str):
        yield io.StringIO(source)
    elif isinstance(source, (bytes, bytearray)):
        yield io.BytesIO(bytes(source))
    else:
        yield source


@contextmanager
def _read_errors(what: str):
    try:
        yield
    except GraphSONError as e:
        raise GraphReadError(f"Could not read {what}: {e}") from e
    except (ijson.JSONError, UnicodeDecodeError) as e:
        raise GraphReadError(f"Invalid JSON in {what}: {e}") from e


def read_graphson(source: Source, store: GraphStore, **options: Any) -> ReadStats:
    """
    Read a full GraphSON graph into ``store``.

    Args:
        source: GraphSON document (Path, str, bytes or file object)
        store: Target graph store
        **options: GraphSONReader settings

    Returns:
        ReadStats for the read
    """
    return GraphSONReader(**options).read_graph(source, store)


def read_graphson_vertices(
    source: Source,
    materializer: "ElementMaterializer",
    direction: Union[Direction, str, None] = None,
    **options: Any,
) -> Iterator[Any]:
    """
    Lazily read line-delimited GraphSON vertices.

    Args:
        source: One vertex document per line
        materializer: Receives each decoded vertex and adjacent edge
        direction: Adjacent edges to read: out, in, both or none
        **options: GraphSONReader settings

    Returns:
        Iterator over materialized vertices
    """
    return GraphSONReader(**options).read_vertices(source, materializer, direction)
