"""Cassandra connection and schema setup."""

from linguapath.core.database.async_cassandra import (
    SCHEMA,
    AsyncCassandraConnection,
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "SCHEMA",
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
