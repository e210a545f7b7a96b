"""Tests for the in-memory graph store."""
import time

import pytest

from graphson_io.storage.base import GraphFeatures
from graphson_io.storage.memory import MemoryGraph, canonical_id


class TestCanonicalId:
    def test_types_are_distinct(self):
        keys = {canonical_id(1), canonical_id(1.0), canonical_id("1"), canonical_id(True)}
        assert len(keys) == 4

    def test_maps_are_order_independent(self):
        assert canonical_id({"a": 1, "b": 2}) == canonical_id({"b": 2, "a": 1})


class TestMemoryGraph:
    @pytest.fixture
    def graph(self):
        return MemoryGraph()

    def test_staged_until_commit(self, graph):
        v = graph.add_vertex("person", 1)
        graph.set_vertex_property(v, "name", "marko")

        assert graph.find_vertex(1) == v
        assert graph.vertex_count() == 0
        assert graph.values(1, "name") == []

        graph.commit()
        assert graph.vertex_count() == 1
        assert graph.values(1, "name") == ["marko"]
        assert graph.commit_count == 1

    def test_rollback(self, graph):
        v = graph.add_vertex("person", 1)
        graph.commit()
        graph.add_vertex("person", 2)
        graph.set_vertex_property(v, "name", "marko")
        assert graph.pending_count() == 2

        graph.rollback()
        assert graph.pending_count() == 0
        assert graph.find_vertex(2) is None
        graph.commit()
        assert graph.vertex_count() == 1
        assert graph.values(1, "name") == []

    def test_duplicate_vertex_id(self, graph):
        graph.add_vertex("person", 1)
        with pytest.raises(ValueError):
            graph.add_vertex("person", 1)

    def test_string_and_int_ids_differ(self, graph):
        graph.add_vertex("person", 1)
        graph.add_vertex("person", "1")
        graph.commit()
        assert graph.vertex_count() == 2
        assert graph.get_vertex("1").id == "1"

    def test_generated_ids(self, graph):
        graph.add_vertex("person", 0)
        v = graph.add_vertex("person")
        assert v.id == 1

    def test_list_cardinality(self, graph):
        v = graph.add_vertex("person", 1)
        graph.set_vertex_property(v, "alias", "m")
        graph.set_vertex_property(v, "alias", "m")
        graph.set_vertex_property(v, "alias", "mar")
        graph.commit()
        assert graph.values(1, "alias") == ["m", "m", "mar"]

    def test_property_id_replaces(self, graph):
        v = graph.add_vertex("person", 1)
        graph.set_vertex_property(v, "name", "marko", property_id=0)
        graph.commit()
        graph.set_vertex_property(v, "name", "marko a. rodriguez", property_id=0)
        graph.set_vertex_property(v, "name", "okram")
        graph.commit()
        assert graph.values(1, "name") == ["marko a. rodriguez", "okram"]

    def test_meta_properties(self, graph):
        v = graph.add_vertex("person", 1)
        graph.set_vertex_property(v, "location", "santa fe", property_id=9,
                                  meta_properties={"startTime": 2005})
        graph.commit()
        [(key, prop)] = graph.vertex_properties(1)
        assert key == "location"
        assert prop.id == 9
        assert prop.meta_properties == {"startTime": 2005}

    def test_value_types_round_trip(self, graph):
        v = graph.add_vertex("thing", 1)
        for value in [1, 1.5, "x", True, None, [1, "a"], {"k": [1]}]:
            graph.set_vertex_property(v, "v", value)
        graph.commit()
        assert graph.values(1, "v") == [1, 1.5, "x", True, None, [1, "a"], {"k": [1]}]

    def test_edges(self, graph):
        a = graph.add_vertex("person", 1)
        b = graph.add_vertex("person", 2)
        e = graph.add_edge("knows", a, b, 10)
        graph.set_edge_property(e, "weight", 0.4)
        graph.set_edge_property(e, "weight", 0.5)
        graph.commit()

        assert graph.edge_count() == 1
        assert graph.get_edge(10).out_vertex_id == 1
        assert graph.edge_properties(10) == {"weight": 0.5}
        assert [edge.id for edge in graph.out_edges(1)] == [10]
        assert [edge.id for edge in graph.in_edges(2)] == [10]

        graph.set_edge_property(e, "weight", 0.7)
        graph.commit()
        assert graph.edge_properties(10) == {"weight": 0.7}

    def test_edge_requires_endpoints(self, graph):
        a = graph.add_vertex("person", 1)
        other = MemoryGraph().add_vertex("person", 5)
        with pytest.raises(ValueError):
            graph.add_edge("knows", a, other, 10)

    def test_find_by_property(self, graph):
        v = graph.add_vertex("person")
        graph.set_vertex_property(v, "_id", 42)
        assert graph.find_vertex_by_property("_id", 42) == v
        graph.commit()
        assert graph.find_vertex_by_property("_id", 42) == v
        assert graph.find_vertex_by_property("_id", "42") is None

    def test_user_ids_unsupported(self):
        graph = MemoryGraph(GraphFeatures(supports_user_supplied_ids=False))
        with pytest.raises(ValueError):
            graph.add_vertex("person", 1)

    def test_variables(self, graph):
        graph.set_variable("name", "modern")
        assert graph.variables == {}
        graph.commit()
        assert graph.variables == {"name": "modern"}

    def test_variables_unsupported(self):
        graph = MemoryGraph(GraphFeatures(supports_variables=False))
        with pytest.raises(NotImplementedError):
            graph.set_variable("name", "modern")

    def test_non_transactional_applies_immediately(self):
        graph = MemoryGraph(GraphFeatures(supports_transactions=False))
        graph.add_vertex("person", 1)
        assert graph.vertex_count() == 1
        with pytest.raises(NotImplementedError):
            graph.rollback()

    def test_frames_and_label_counts(self, graph):
        graph.add_vertex("person", 1)
        graph.add_vertex("person", 2)
        graph.add_vertex("software", 3)
        graph.commit()
        assert graph.vertices().height == 3
        assert graph.edges().height == 0
        assert graph.label_counts() == {"person": 2, "software": 1}

    def test_stats(self, graph):
        graph.add_vertex("person", 1)
        stats = graph.stats()
        assert stats["pending"] == 1
        assert stats["vertices"] == 0


class TestStagedPropertyWrites:
    @pytest.fixture
    def graph(self):
        return MemoryGraph()

    def test_property_id_replaced_within_batch(self, graph):
        v = graph.add_vertex("person", 1)
        graph.set_vertex_property(v, "name", "marko", property_id=0)
        graph.set_vertex_property(v, "name", "m", property_id=1)
        graph.set_vertex_property(v, "name", "marko a.", property_id=0)
        graph.set_vertex_property(v, "name", "mr")
        graph.set_vertex_property(v, "name", "mr")
        assert graph.pending_count() == 4

        graph.commit()
        assert graph.values(1, "name") == ["m", "marko a.", "mr", "mr"]

    def test_large_batch_with_property_ids(self, graph):
        start = time.time()
        for i in range(20000):
            v = graph.add_vertex("person", i)
            graph.set_vertex_property(v, "name", f"p{i}", property_id=i)
        graph.commit()
        elapsed = time.time() - start

        assert graph.vertex_count() == 20000
        assert graph.values(19999, "name") == ["p19999"]
        # Each write is constant time; rebuilding the staged rows per write takes minutes
        assert elapsed < 10.0
