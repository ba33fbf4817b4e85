"""Configuration loading and adapter factory.

Reads a YAML config file and instantiates the correct adapter
for each port, then wires them into the RelationFacade.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Walk up from this file (ontograph/config.py) to the project root and load .env
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

from ontograph.ports.entity_lookup import EntityLookupPort
from ontograph.ports.graph_store import RelationGraphPort
from ontograph.services.facade import RelationFacade
from ontograph.services.graph_traversal import GraphTraversalEngine
from ontograph.services.relation_store import RelationStore
from ontograph.services.schema_registry import OntologySchemaRegistry

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


def default_config_path() -> str:
    return os.environ.get("ONTOGRAPH_CONFIG", DEFAULT_CONFIG_PATH)


def load_config(path: str = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(p) as f:
        return yaml.safe_load(f) or {}


# ── Adapter factories ──


def build_graph_store(cfg: dict[str, Any], *, config_dir: str = ".") -> RelationGraphPort:
    adapter = cfg.get("adapter", "sqlite")
    db_path = cfg.get("path", "data/ontograph.db")

    if adapter == "sqlite":
        from ontograph.adapters.stores.sqlite_graph import SQLiteGraphStore
        resolved = _resolve(db_path, config_dir)
        return SQLiteGraphStore(db_path=resolved, busy_timeout=cfg.get("busy_timeout", 5.0))

    elif adapter == "in_memory":
        from ontograph.adapters.stores.in_memory_graph import InMemoryGraphStore
        return InMemoryGraphStore()

    raise ValueError(f"Unknown graph_store adapter: {adapter}")


def build_entity_lookup(cfg: dict[str, Any], *, config_dir: str = ".") -> EntityLookupPort:
    adapter = cfg.get("adapter", "sqlite")

    if adapter == "sqlite":
        from ontograph.adapters.lookups.sqlite_entities import SQLiteEntityLookup
        resolved = _resolve(cfg.get("path", "data/ontograph.db"), config_dir)
        return SQLiteEntityLookup(db_path=resolved)

    elif adapter == "in_memory":
        from ontograph.adapters.lookups.in_memory_entities import InMemoryEntityLookup
        return InMemoryEntityLookup(cfg.get("entities") or {})

    raise ValueError(f"Unknown entity_lookup adapter: {adapter}")


def build_registry(cfg: dict[str, Any]) -> OntologySchemaRegistry:
    relation_types = cfg.get("relation_types")
    if relation_types is None:
        log.info("  → no ontology in config, using the built-in instrument ontology")
        return OntologySchemaRegistry.default()
    return OntologySchemaRegistry.from_mapping(relation_types)


def _resolve(db_path: str, config_dir: str) -> str:
    if db_path == ":memory:":
        return db_path
    return str((Path(config_dir) / db_path).resolve())


# ── Top-level builder ──


def build_facade_from_dict(cfg: dict[str, Any], *, config_dir: str = ".") -> RelationFacade:
    """Wire all adapters and services described by an already-parsed config."""
    log.info("  → loading ontology …")
    registry = build_registry(cfg.get("ontology", {}) or {})
    log.info("  ✓ ontology ready (%d relation types)", len(registry))

    log.info("  → building graph store …")
    graph = build_graph_store(cfg.get("graph_store", {}) or {}, config_dir=config_dir)
    log.info("  ✓ graph store ready")

    log.info("  → building entity lookup …")
    entities = build_entity_lookup(cfg.get("entity_lookup", {}) or {}, config_dir=config_dir)
    log.info("  ✓ entity lookup ready")

    store_cfg = cfg.get("store", {}) or {}
    traversal_cfg = cfg.get("traversal", {}) or {}
    facade_cfg = cfg.get("facade", {}) or {}

    store = RelationStore(
        graph,
        registry,
        entities,
        lock_stripes=store_cfg.get("lock_stripes", 64),
    )
    traversal = GraphTraversalEngine(
        graph,
        entities,
        max_depth_limit=traversal_cfg.get("max_depth_limit", 6),
        max_paths=traversal_cfg.get("max_paths", 10),
        max_results=traversal_cfg.get("max_results", 100),
    )
    return RelationFacade(
        registry,
        entities,
        store,
        traversal,
        store_retries=facade_cfg.get("store_retries", 1),
    )


def build_facade(config_path: str = DEFAULT_CONFIG_PATH) -> RelationFacade:
    """Load config and wire all adapters into the facade."""
    cfg = load_config(config_path)
    config_parent = str(Path(config_path).resolve().parent)
    return build_facade_from_dict(cfg, config_dir=config_parent)
