"""Tests for the batch commit controller."""
import pytest

from graphson_io.errors import StoreFailure
from graphson_io.models import PropertyValue
from graphson_io.storage.base import GraphFeatures
from graphson_io.storage.batch import BatchCommitController, MutationKind
from graphson_io.storage.memory import MemoryGraph


class FailingCommitGraph(MemoryGraph):
    def commit(self):
        raise RuntimeError("disk full")


class TestBatchCommitController:
    @pytest.fixture
    def graph(self):
        return MemoryGraph()

    def test_invalid_batch_size(self, graph):
        with pytest.raises(ValueError):
            BatchCommitController(graph, batch_size=0)

    def test_ensure_vertex_is_idempotent(self, graph):
        controller = BatchCommitController(graph)
        v1 = controller.ensure_vertex(1, "person")
        v2 = controller.ensure_vertex(1, "person")
        assert v1 == v2
        assert controller.stats.vertices_created == 1
        assert controller.stats.vertices_reused == 1

    def test_reuses_vertices_from_earlier_session(self, graph):
        first = BatchCommitController(graph)
        first.ensure_vertex(1, "person")
        first.finish()

        second = BatchCommitController(graph)
        second.ensure_vertex(1, "person")
        second.finish()
        assert graph.vertex_count() == 1
        assert second.stats.vertices_created == 0

    def test_interim_commits(self, graph):
        controller = BatchCommitController(graph, batch_size=2)
        for i in range(5):
            controller.ensure_vertex(i, "n")
        assert controller.stats.interim_commits == 2
        assert graph.vertex_count() == 4
        controller.finish()
        assert graph.vertex_count() == 5
        assert controller.stats.commits == 3

    def test_properties_do_not_count(self, graph):
        controller = BatchCommitController(graph, batch_size=2)
        v = controller.ensure_vertex(1, "person")
        for i in range(10):
            controller.set_vertex_property(v, "n", PropertyValue(value=i))
        assert controller.stats.interim_commits == 0

    def test_pending_batch_cleared_on_commit(self, graph):
        controller = BatchCommitController(graph, batch_size=2)
        v = controller.ensure_vertex(1, "person")
        controller.set_vertex_property(v, "name", PropertyValue(value="marko"))
        kinds = [m.kind for m in controller.pending.mutations]
        assert kinds == [MutationKind.CREATE_VERTEX, MutationKind.SET_PROPERTY]

        controller.ensure_vertex(2, "person")
        assert len(controller.pending) == 0

    def test_id_key_without_user_ids(self):
        graph = MemoryGraph(GraphFeatures(
            supports_user_supplied_ids=False,
            supports_edge_user_supplied_ids=False,
        ))
        controller = BatchCommitController(graph, vertex_id_key="_id", edge_id_key="_eid")
        a = controller.ensure_vertex("a", "person")
        b = controller.ensure_vertex("b", "person")
        e = controller.ensure_edge("e1", "knows", a, b)
        controller.finish()

        assert graph.values(a.id, "_id") == ["a"]
        assert graph.edge_properties(e.id) == {"_eid": "e1"}

        again = BatchCommitController(graph, vertex_id_key="_id", edge_id_key="_eid")
        assert again.ensure_vertex("a", "person") == a
        assert again.ensure_edge("e1", "knows", a, b) == e
        assert graph.vertex_count() == 2

    def test_property_ids_dropped_when_unsupported(self):
        graph = MemoryGraph(GraphFeatures(supports_vertex_property_ids=False))
        controller = BatchCommitController(graph)
        v = controller.ensure_vertex(1, "person")
        controller.set_vertex_property(v, "name", PropertyValue(value="marko", id=5))
        controller.finish()
        [(_, prop)] = graph.vertex_properties(1)
        assert prop.id is None

    def test_meta_properties_dropped_when_unsupported(self):
        graph = MemoryGraph(GraphFeatures(supports_meta_properties=False))
        controller = BatchCommitController(graph)
        v = controller.ensure_vertex(1, "person")
        controller.set_vertex_property(
            v, "location", PropertyValue(value="santa fe", meta_properties={"startTime": 2005})
        )
        controller.finish()
        assert graph.values(1, "location") == ["santa fe"]

    def test_variables_skipped_when_unsupported(self):
        graph = MemoryGraph(GraphFeatures(supports_variables=False))
        controller = BatchCommitController(graph)
        assert controller.set_variable("name", "modern") is False
        assert controller.stats.variables_set == 0

    def test_store_errors_wrapped(self, graph):
        controller = BatchCommitController(graph)
        controller.ensure_vertex(1, "person")
        other = MemoryGraph().add_vertex("person", 2)
        with pytest.raises(StoreFailure) as exc_info:
            controller.ensure_edge(10, "knows", graph.find_vertex(1), other)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_commit_failure_wrapped(self):
        controller = BatchCommitController(FailingCommitGraph())
        with pytest.raises(StoreFailure) as exc_info:
            controller.finish()
        assert exc_info.value.operation == "commit"

    def test_abort_rolls_back(self, graph):
        controller = BatchCommitController(graph)
        controller.ensure_vertex(1, "person")
        controller.abort()
        graph.commit()
        assert graph.vertex_count() == 0
