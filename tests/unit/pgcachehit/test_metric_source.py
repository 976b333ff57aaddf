#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import psycopg
import pytest

from pgcachehit import metric_source
from pgcachehit.metric_source import bind, PostgresCacheHitSource, TargetType
from pgcachehit.type_defs import MetricValue
from pgcachehit.utils.exceptions import (
    DataSourceConnectionError,
    MetricSourceError,
    RelationNotFoundError,
)


class _FakeCursor:
    def __init__(self, rows: list[tuple[Any, ...]]) -> None:
        self._rows = rows

    def fetchall(self) -> list[tuple[Any, ...]]:
        return self._rows


class _FakeConnection:
    def __init__(self) -> None:
        self.row: tuple[Any, ...] | None = None
        self.rows: list[tuple[Any, ...]] | None = None
        self.error: Exception | None = None
        self.queries: list[tuple[str, Sequence[object]]] = []
        self.closed = False

    def __enter__(self) -> _FakeConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True

    def execute(self, query: str, params: Sequence[object]) -> _FakeCursor:
        self.queries.append((query, params))
        if self.error is not None:
            raise self.error
        if self.rows is not None:
            return _FakeCursor(self.rows)
        return _FakeCursor([] if self.row is None else [self.row])


class _FakeConnect:
    def __init__(self) -> None:
        self.connection = _FakeConnection()
        self.error: Exception | None = None
        self.kwargs: list[dict[str, object]] = []

    def __call__(self, **kwargs: object) -> _FakeConnection:
        self.kwargs.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.connection


@pytest.fixture(name="connect")
def fixture_connect(monkeypatch: pytest.MonkeyPatch) -> _FakeConnect:
    fake = _FakeConnect()
    monkeypatch.setattr(metric_source.psycopg, "connect", fake)
    return fake


def _source() -> PostgresCacheHitSource:
    return PostgresCacheHitSource(
        host="db.example.com",
        port=5433,
        dbname="shop",
        user="monitoring",
        password="s3cret",
        timeout=7,
    )


def test_connection_parameters(connect: _FakeConnect) -> None:
    connect.connection.row = (Decimal("99.50"),)
    _source()(TargetType.DB, "shop")
    assert connect.kwargs == [
        {
            "host": "db.example.com",
            "port": 5433,
            "dbname": "shop",
            "user": "monitoring",
            "password": "s3cret",
            "connect_timeout": 7,
            "options": "-c statement_timeout=7000",
            "autocommit": True,
        }
    ]


@pytest.mark.parametrize(
    "target_type, relation, catalog, columns, label",
    [
        (TargetType.DB, "shop", "pg_stat_database", ("blks_hit", "blks_read"), "Database shop"),
        (
            TargetType.TABLE,
            "orders",
            "pg_statio_user_tables",
            ("heap_blks_hit", "heap_blks_read"),
            "Table orders",
        ),
        (
            TargetType.INDEX,
            "orders",
            "pg_statio_user_tables",
            ("idx_blks_hit", "idx_blks_read"),
            "Index of table orders",
        ),
    ],
)
def test_fetch_target(
    connect: _FakeConnect,
    target_type: TargetType,
    relation: str,
    catalog: str,
    columns: tuple[str, str],
    label: str,
) -> None:
    connect.connection.row = (Decimal("97.25"),)

    assert _source()(target_type, relation) == MetricValue(97.25, label)

    ((query, params),) = connect.connection.queries
    assert f"FROM {catalog} " in query
    assert all(column in query for column in columns)
    assert "THEN 100.00" in query
    assert params == (relation,)
    assert connect.connection.closed


@pytest.mark.parametrize(
    "target_type, message",
    [
        (TargetType.DB, "Database ghost was not found."),
        (TargetType.TABLE, "Table ghost was not found."),
        (TargetType.INDEX, "Index of table ghost was not found."),
    ],
)
def test_relation_not_found(connect: _FakeConnect, target_type: TargetType, message: str) -> None:
    connect.connection.row = None
    with pytest.raises(RelationNotFoundError) as excinfo:
        _source()(target_type, "ghost")
    assert str(excinfo.value) == message


def test_table_without_index(connect: _FakeConnect) -> None:
    connect.connection.row = (None,)
    with pytest.raises(RelationNotFoundError, match="Index of table logs was not found."):
        _source()(TargetType.INDEX, "logs")


def test_connection_failure(connect: _FakeConnect) -> None:
    connect.error = psycopg.OperationalError(
        'connection to server at "db.example.com", port 5433 failed: Connection refused\n'
        "\tIs the server running on that host and accepting TCP/IP connections?"
    )
    with pytest.raises(DataSourceConnectionError) as excinfo:
        _source()(TargetType.DB, "shop")
    assert str(excinfo.value) == (
        'connection to server at "db.example.com", port 5433 failed: Connection refused'
    )


def test_query_timeout_is_connection_error(connect: _FakeConnect) -> None:
    connect.connection.error = psycopg.errors.QueryCanceled(
        "canceling statement due to statement timeout"
    )
    with pytest.raises(DataSourceConnectionError, match="statement timeout"):
        _source()(TargetType.TABLE, "orders")
    assert connect.connection.closed


def test_other_database_error(connect: _FakeConnect) -> None:
    connect.connection.error = psycopg.errors.InsufficientPrivilege(
        "permission denied for view pg_stat_database"
    )
    with pytest.raises(MetricSourceError, match="permission denied") as excinfo:
        _source()(TargetType.DB, "shop")
    assert not isinstance(excinfo.value, (DataSourceConnectionError, RelationNotFoundError))


def test_bind_resolves_target_once() -> None:
    calls = []

    def _source_proto(target_type: TargetType, relation: str) -> MetricValue:
        calls.append((target_type, relation))
        return MetricValue(100.0, f"Table {relation}")

    fetch = bind(_source_proto, TargetType.TABLE, "orders")
    assert calls == []
    assert fetch() == MetricValue(100.0, "Table orders")
    assert calls == [(TargetType.TABLE, "orders")]


@pytest.mark.parametrize("target_type", [TargetType.TABLE, TargetType.INDEX])
def test_schema_qualified_table(connect: _FakeConnect, target_type: TargetType) -> None:
    connect.connection.row = (Decimal("98.00"),)

    assert _source()(target_type, "sales.orders").value == 98.0

    ((query, params),) = connect.connection.queries
    assert query.endswith("WHERE relname = %s AND schemaname = %s")
    assert params == ("orders", "sales")


def test_database_name_is_never_split(connect: _FakeConnect) -> None:
    connect.connection.row = (Decimal("100.00"),)

    assert _source()(TargetType.DB, "shop.eu") == MetricValue(100.0, "Database shop.eu")

    ((query, params),) = connect.connection.queries
    assert "schemaname" not in query
    assert params == ("shop.eu",)


def test_table_in_several_schemas(connect: _FakeConnect) -> None:
    connect.connection.rows = [(Decimal("99.00"),), (Decimal("12.00"),)]
    with pytest.raises(MetricSourceError) as excinfo:
        _source()(TargetType.TABLE, "orders")
    assert str(excinfo.value) == (
        "Table orders exists in 2 schemas, use <schema>.orders instead."
    )
    assert not isinstance(excinfo.value, RelationNotFoundError)
