"""Unit tests for db/migrations.py and db/schema.py.

Covers:
- schema scripts run once, in declaration order
- re-running install_schema() is a no-op
- a failing script records nothing and propagates its error
"""

from __future__ import annotations

import pytest
from sqlalchemy import inspect, text

from db.migrations import MigrationRunner
from db.pool import create_pool
from db.schema import SCRIPTS, install_schema


@pytest.fixture
def bare_pool():
    p = create_pool("sqlite:///:memory:", size=1)
    yield p
    p.close()


def test_install_schema_creates_both_tables_in_order(bare_pool) -> None:
    applied = install_schema(bare_pool)

    assert applied == ["credentials init", "tokens init"]
    assert applied == [name for name, _ in SCRIPTS]
    with bare_pool.connection() as conn:
        tables = set(inspect(conn).get_table_names())
    assert {"credentials", "tokens", "schema_migrations"} <= tables


def test_install_schema_is_idempotent(bare_pool) -> None:
    install_schema(bare_pool)
    assert install_schema(bare_pool) == []

    runner = MigrationRunner(bare_pool)
    assert runner.applied() == ["credentials init", "tokens init"]


def test_apply_once_skips_known_name(bare_pool) -> None:
    runner = MigrationRunner(bare_pool)
    calls: list[str] = []

    def script(conn) -> None:
        calls.append("ran")
        conn.execute(text("CREATE TABLE widgets (id INTEGER PRIMARY KEY)"))

    assert runner.apply_once("widgets init", script) is True
    assert runner.apply_once("widgets init", script) is False
    assert calls == ["ran"]


def test_failing_script_is_not_recorded(bare_pool) -> None:
    runner = MigrationRunner(bare_pool)

    def broken(conn) -> None:
        raise RuntimeError("bad migration")

    with pytest.raises(RuntimeError, match="bad migration"):
        runner.apply_once("broken", broken)

    assert "broken" not in runner.applied()
