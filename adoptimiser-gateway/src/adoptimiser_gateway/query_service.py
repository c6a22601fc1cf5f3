"""
This module provides the graph query service behind ``POST /api/neo4j``.

`GraphQueryService` owns the Neo4j driver for the lifetime of the application:
the driver is created lazily on the first query (so the gateway starts even
when the database is unreachable or unconfigured) and closed by the app on
shutdown.
"""
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from neo4j import Driver, GraphDatabase

from .config import GatewaySettings
from .records import normalize_record

LOGGER = logging.getLogger(__name__)


class QueryConfigurationError(RuntimeError):
    """The graph database is not configured or the driver cannot be created."""


DriverFactory = Callable[[str, str, str], Driver]


def _default_driver_factory(uri: str, username: str, password: str) -> Driver:
    return GraphDatabase.driver(uri, auth=(username, password))


class GraphQueryService:
    """
    Executes read queries against Neo4j and normalizes their records.

    Args:
        settings: Gateway settings carrying the database credentials.
        driver_factory: Builds the driver from ``(uri, username, password)``;
            tests pass a fake.
    """

    def __init__(self, settings: GatewaySettings, driver_factory: Optional[DriverFactory] = None):
        self.settings = settings
        self._driver_factory = driver_factory or _default_driver_factory
        self._driver: Optional[Driver] = None

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.neo4j_uri and s.neo4j_username and s.neo4j_password)

    def _get_driver(self) -> Driver:
        if not self.configured:
            LOGGER.error("Neo4j credentials are not available. Cannot create driver.")
            raise QueryConfigurationError("Neo4j credentials are not configured.")
        if self._driver is None:
            s = self.settings
            try:
                self._driver = self._driver_factory(s.neo4j_uri, s.neo4j_username, s.neo4j_password)
            except Exception as exc:
                LOGGER.error("Failed to create Neo4j driver: %s", exc)
                raise QueryConfigurationError("Could not create Neo4j driver instance.") from exc
            LOGGER.info("Neo4j driver created for %s", s.neo4j_uri)
        return self._driver

    def run(self, query: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Runs ``query`` in a fresh session and returns its normalized records.

        Raises:
            QueryConfigurationError: Credentials are missing or the driver
                could not be created.
            neo4j.exceptions.Neo4jError: The database rejected the query.
            neo4j.exceptions.DriverError: The database could not be reached.
        """
        driver = self._get_driver()
        LOGGER.info("Executing Cypher query: %s", query)
        with driver.session() as session:
            result = session.run(query, dict(params or {}))
            return [normalize_record(record) for record in result]

    def close(self) -> None:
        if self._driver is not None:
            LOGGER.info("Closing Neo4j driver")
            self._driver.close()
            self._driver = None
