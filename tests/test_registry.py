"""Tests for candidate registries."""

import pytest

from catalog_probe.catalog.registry import CandidateRegistry, SQLITE_CANDIDATES


def test_sqlite_registry_order():
    """The SQLite registry starts with the schema tables, in a fixed order."""
    registry = CandidateRegistry.for_dialect("sqlite")

    names = registry.ordered()
    assert names == SQLITE_CANDIDATES
    assert names[0] == "sqlite_master"
    assert names.index("sqlite_sequence") < names.index("sqlite_stat1")
    assert names[-4:] == ("sqlite_stat1", "sqlite_stat2", "sqlite_stat3", "sqlite_stat4")


def test_registry_is_repeatable():
    """Repeated lookups return the same sequence."""
    first = CandidateRegistry.for_dialect("duckdb").ordered()
    second = CandidateRegistry.for_dialect("DuckDB").ordered()
    assert first == second
    assert "duckdb_tables" in first


def test_known_dialects():
    """Every probe dialect has a registry."""
    assert set(CandidateRegistry.dialects()) == {"sqlite", "duckdb", "postgresql"}
    postgres = CandidateRegistry.for_dialect("postgresql")
    assert "pg_stat_activity" in postgres
    assert "pg_stat_statements" in postgres


def test_unknown_dialect():
    """Unknown dialects are rejected."""
    with pytest.raises(ValueError, match="oracle"):
        CandidateRegistry.for_dialect("oracle")


def test_custom_registry():
    """A custom registry keeps its order and matches case-insensitively."""
    registry = CandidateRegistry(["a", "B", "c"])

    assert list(registry) == ["a", "B", "c"]
    assert len(registry) == 3
    assert "b" in registry
    assert "A" in registry
    assert "d" not in registry
    assert 1 not in registry


def test_custom_registry_rejects_duplicates():
    """Names must be unique ignoring case."""
    with pytest.raises(ValueError, match="Duplicate"):
        CandidateRegistry(["stats", "STATS"])

    with pytest.raises(ValueError):
        CandidateRegistry(["ok", " "])
