"""Tests for configuration loading and adapter wiring."""

import pytest
import yaml

from ontograph.adapters.lookups.in_memory_entities import InMemoryEntityLookup
from ontograph.adapters.stores.in_memory_graph import InMemoryGraphStore
from ontograph.adapters.stores.sqlite_graph import SQLiteGraphStore
from ontograph.config import (
    build_entity_lookup,
    build_facade,
    build_facade_from_dict,
    build_graph_store,
    build_registry,
    default_config_path,
    load_config,
)
from ontograph.domain.errors import SchemaDefinitionError
from ontograph.services.schema_registry import DEFAULT_RELATION_TYPES

from conftest import TEST_ENTITIES, TEST_RELATION_TYPES


IN_MEMORY_CONFIG = {
    "graph_store": {"adapter": "in_memory"},
    "entity_lookup": {"adapter": "in_memory", "entities": TEST_ENTITIES},
    "ontology": {"relation_types": TEST_RELATION_TYPES},
    "traversal": {"max_depth_limit": 4, "max_paths": 5, "max_results": 10},
    "facade": {"store_retries": 2},
}


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path):
        p = tmp_path / "empty.yaml"
        p.write_text("")
        assert load_config(str(p)) == {}

    def test_default_path_from_env(self, monkeypatch):
        monkeypatch.setenv("ONTOGRAPH_CONFIG", "/etc/ontograph.yaml")
        assert default_config_path() == "/etc/ontograph.yaml"
        monkeypatch.delenv("ONTOGRAPH_CONFIG")
        assert default_config_path() == "config.yaml"


class TestFactories:
    def test_graph_store_adapters(self, tmp_path):
        assert isinstance(build_graph_store({"adapter": "in_memory"}), InMemoryGraphStore)
        store = build_graph_store(
            {"adapter": "sqlite", "path": "nested/g.db"}, config_dir=str(tmp_path)
        )
        try:
            assert isinstance(store, SQLiteGraphStore)
            assert (tmp_path / "nested" / "g.db").exists()
        finally:
            store.close()

    def test_entity_lookup_in_memory(self):
        lookup = build_entity_lookup({"adapter": "in_memory", "entities": {"x": "Rhythm"}})
        assert isinstance(lookup, InMemoryEntityLookup)
        assert lookup.type_of("x") == "Rhythm"

    @pytest.mark.parametrize("factory", [build_graph_store, build_entity_lookup])
    def test_unknown_adapter(self, factory):
        with pytest.raises(ValueError, match="Unknown"):
            factory({"adapter": "neo4j"})

    def test_registry_defaults_to_builtin_ontology(self):
        assert len(build_registry({})) == len(DEFAULT_RELATION_TYPES)

    def test_registry_rejects_bad_ontology(self):
        with pytest.raises(SchemaDefinitionError):
            build_registry({"relation_types": {"r": {"from": ["A"]}}})


class TestBuildFacade:
    def test_from_dict(self):
        facade = build_facade_from_dict(IN_MEMORY_CONFIG)
        facade.create_relation("i1", "g1", "usedBy")
        facade.create_relation("i2", "g1", "usedBy")
        assert facade.statistics().total == 2
        assert len(facade.find_paths("i1", "i2", max_depth=10)) == 1

    def test_from_yaml_file(self, tmp_path):
        cfg = {
            "graph_store": {"adapter": "sqlite", "path": "data/graph.db"},
            "entity_lookup": {"adapter": "in_memory", "entities": TEST_ENTITIES},
            "ontology": {"relation_types": TEST_RELATION_TYPES},
        }
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(cfg))

        facade = build_facade(str(path))
        facade.create_relation("i1", "f1", "belongsTo")
        assert (tmp_path / "data" / "graph.db").exists()

        reopened = build_facade(str(path))
        assert [r.target_id for r in reopened.relations_of("i1")] == ["f1"]
