"""Database connection modules for the course graph."""

from academy.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    shutdown_async_cassandra,
)
from academy.core.database.neo4j import Neo4jConnection, init_neo4j, shutdown_neo4j


__all__ = [
    "AsyncCassandraConnection",
    "Neo4jConnection",
    "init_async_cassandra",
    "init_neo4j",
    "shutdown_async_cassandra",
    "shutdown_neo4j",
]
