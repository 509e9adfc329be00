"""Async Neo4j driver lifecycle.

One driver per process; sessions are opened per read by the graph store.
"""

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase

from academy.config.settings import get_settings


logger = structlog.get_logger(__name__)


class Neo4jConnection:
    """Neo4j driver manager."""

    _driver: AsyncDriver | None = None

    @classmethod
    async def connect(cls) -> AsyncDriver:
        """Create the driver and check the server is reachable.

        Raises:
            ConnectionError: If the server cannot be reached
        """
        if cls._driver is not None:
            return cls._driver

        settings = get_settings()
        auth = None
        if settings.neo4j_username and settings.neo4j_password:
            auth = (settings.neo4j_username, settings.neo4j_password)

        driver = AsyncGraphDatabase.driver(
            settings.neo4j_uri,
            auth=auth,
            max_connection_pool_size=settings.neo4j_max_connection_pool_size,
        )

        try:
            await driver.verify_connectivity()
        except Exception as e:
            await driver.close()
            logger.error("neo4j_connection_failed", uri=settings.neo4j_uri, error=str(e))
            raise ConnectionError(f"Failed to connect to Neo4j: {e}") from e

        cls._driver = driver
        logger.info(
            "neo4j_connected",
            uri=settings.neo4j_uri,
            database=settings.neo4j_database,
        )
        return driver

    @classmethod
    async def disconnect(cls) -> None:
        if cls._driver is not None:
            await cls._driver.close()
            cls._driver = None
            logger.info("neo4j_driver_closed")


async def init_neo4j() -> AsyncDriver:
    return await Neo4jConnection.connect()


async def shutdown_neo4j() -> None:
    await Neo4jConnection.disconnect()
