#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Fetch cache hit ratios from the PostgreSQL statistics collector"""

from __future__ import annotations

import enum
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Final, Protocol

import psycopg

from pgcachehit.type_defs import MetricValue
from pgcachehit.utils.exceptions import (
    DataSourceConnectionError,
    MetricSourceError,
    RelationNotFoundError,
)
from pgcachehit.utils.log import logger


class TargetType(enum.Enum):
    DB = "db"
    TABLE = "table"
    INDEX = "index"


@dataclass(frozen=True)
class _Query:
    catalog: str
    name_column: str
    hits: str
    misses: str
    label: str
    schema_column: str | None = None

    def sql(self, *, qualified: bool) -> str:
        # 100.00 if nothing was ever read from disk, also for relations without any access yet
        return (
            f"SELECT CASE WHEN {self.misses} = 0 THEN 100.00"
            f" ELSE round(100.0 * {self.hits} / ({self.hits} + {self.misses}), 2) END"
            f" AS cache_hit_ratio FROM {self.catalog} WHERE {self.name_column} = %s"
            + (f" AND {self.schema_column} = %s" if qualified else "")
        )

    def parameters(self, relation: str) -> tuple[tuple[str, ...], bool]:
        """Split off the schema of a qualified table name

        >>> _QUERIES[TargetType.TABLE].parameters("sales.orders")
        (('orders', 'sales'), True)
        >>> _QUERIES[TargetType.DB].parameters("shop.eu")
        (('shop.eu',), False)
        """
        if self.schema_column is None or "." not in relation:
            return (relation,), False
        schema, name = relation.split(".", 1)
        return (name, schema), True


_QUERIES: Final = {
    TargetType.DB: _Query("pg_stat_database", "datname", "blks_hit", "blks_read", "Database"),
    TargetType.TABLE: _Query(
        "pg_statio_user_tables",
        "relname",
        "heap_blks_hit",
        "heap_blks_read",
        "Table",
        schema_column="schemaname",
    ),
    # the index blocks of all indexes of the table. They are NULL for tables without index.
    TargetType.INDEX: _Query(
        "pg_statio_user_tables",
        "relname",
        "idx_blks_hit",
        "idx_blks_read",
        "Index of table",
        schema_column="schemaname",
    ),
}


class MetricSourceProto(Protocol):
    def __call__(self, target_type: TargetType, relation: str) -> MetricValue: ...


class PostgresCacheHitSource:
    def __init__(
        self,
        *,
        host: str,
        port: int,
        dbname: str,
        user: str,
        password: str | None,
        timeout: int,
    ) -> None:
        self.host = host
        self.port = port
        self.dbname = dbname
        self.user = user
        self.password = password
        self.timeout = timeout

    @contextmanager
    def _connect(self) -> Iterator[psycopg.Connection]:
        logger.debug("Connecting to %s:%d, database %s", self.host, self.port, self.dbname)
        try:
            connection = psycopg.connect(
                host=self.host,
                port=self.port,
                dbname=self.dbname,
                user=self.user,
                password=self.password,
                connect_timeout=self.timeout,
                # also limit the query, connect_timeout only covers the connection
                options=f"-c statement_timeout={self.timeout * 1000}",
                autocommit=True,
            )
        except psycopg.OperationalError as e:
            raise DataSourceConnectionError(_first_line(e)) from e

        with connection:
            yield connection

    def __call__(self, target_type: TargetType, relation: str) -> MetricValue:
        query = _QUERIES[target_type]
        label = f"{query.label} {relation}"
        parameters, qualified = query.parameters(relation)

        with self._connect() as connection:
            try:
                rows = connection.execute(query.sql(qualified=qualified), parameters).fetchall()
            except psycopg.OperationalError as e:
                raise DataSourceConnectionError(_first_line(e)) from e
            except psycopg.Error as e:
                raise MetricSourceError(_first_line(e)) from e

        # an unqualified table name may exist in several schemas
        if len(rows) > 1:
            raise MetricSourceError(
                f"{label} exists in {len(rows)} schemas, use <schema>.{relation} instead."
            )
        if not rows or rows[0][0] is None:
            raise RelationNotFoundError(f"{label} was not found.")

        return MetricValue(float(rows[0][0]), label)


def bind(
    source: MetricSourceProto, target_type: TargetType, relation: str
) -> Callable[[], MetricValue]:
    """Resolve the target once, the result fetches the configured ratio"""
    return functools.partial(source, target_type, relation)


def _first_line(error: Exception) -> str:
    """libpq messages may span several lines, but the check output may not

    >>> _first_line(Exception('connection failed: FATAL:  no pg_hba.conf entry\\nDETAIL: x'))
    'connection failed: FATAL:  no pg_hba.conf entry'
    """
    return (str(error).strip().splitlines() or [type(error).__name__])[0].strip()
