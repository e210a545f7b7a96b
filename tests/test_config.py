"""Tests for reader configuration."""
import pytest

from graphson_io.config import ReaderConfig, load_config
from graphson_io.formats.graphson import GraphSONReader
from graphson_io.formats.values import ValueProfile
from graphson_io.storage.batch import DEFAULT_BATCH_SIZE


class TestReaderConfig:
    def test_defaults(self):
        config = ReaderConfig()
        assert config.batch_size == DEFAULT_BATCH_SIZE == 10000
        assert config.vertex_id_key == "id"
        assert config.edge_id_key == "id"
        assert config.value_profile == ValueProfile()

    @pytest.mark.parametrize("batch_size", [0, -5, "100", True])
    def test_invalid_batch_size(self, batch_size):
        with pytest.raises(ValueError):
            ReaderConfig(batch_size=batch_size)

    def test_empty_id_key(self):
        with pytest.raises(ValueError):
            ReaderConfig(vertex_id_key="")

    def test_dict_round_trip(self):
        config = ReaderConfig(
            batch_size=50,
            vertex_id_key="_vid",
            value_profile=ValueProfile(use_float=False, allow_non_finite=True),
        )
        assert ReaderConfig.from_dict(config.to_dict()) == config

    def test_from_dict_partial(self):
        config = ReaderConfig.from_dict({"batch_size": 3})
        assert config.batch_size == 3
        assert config.edge_id_key == "id"

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown"):
            ReaderConfig.from_dict({"batchsize": 3})

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "reader.yaml"
        config = ReaderConfig(batch_size=7, edge_id_key="_eid")
        config.save_yaml(path)
        assert ReaderConfig.from_yaml(path) == config

    def test_yaml_value_profile(self, tmp_path):
        path = tmp_path / "reader.yaml"
        path.write_text("batch_size: 5\nvalue_profile:\n  use_float: false\n")
        config = ReaderConfig.from_yaml(path)
        assert config.batch_size == 5
        assert config.value_profile.use_float is False

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "reader.yaml"
        path.write_text("")
        assert ReaderConfig.from_yaml(path) == ReaderConfig()

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / "reader.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            ReaderConfig.from_yaml(path)

    def test_reader_from_config(self):
        config = ReaderConfig(batch_size=2, vertex_id_key="_id", edge_id_key="_eid")
        reader = GraphSONReader.from_config(config)
        assert reader.batch_size == 2
        assert reader.vertex_id_key == "_id"
        assert reader.edge_id_key == "_eid"


class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("GRAPHSON_IO_CONFIG", raising=False)
        monkeypatch.delenv("GRAPHSON_IO_BATCH_SIZE", raising=False)

    def test_defaults(self):
        assert load_config() == ReaderConfig()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "reader.yaml"
        path.write_text("batch_size: 12\n")
        assert load_config(path).batch_size == 12

    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "reader.yaml"
        path.write_text("vertex_id_key: _vid\n")
        monkeypatch.setenv("GRAPHSON_IO_CONFIG", str(path))
        assert load_config().vertex_id_key == "_vid"

    def test_batch_size_override(self, tmp_path, monkeypatch):
        path = tmp_path / "reader.yaml"
        path.write_text("batch_size: 12\n")
        monkeypatch.setenv("GRAPHSON_IO_BATCH_SIZE", "40")
        assert load_config(path).batch_size == 40

    @pytest.mark.parametrize("value", ["many", "0"])
    def test_bad_batch_size_override(self, monkeypatch, value):
        monkeypatch.setenv("GRAPHSON_IO_BATCH_SIZE", value)
        with pytest.raises(ValueError):
            load_config()
