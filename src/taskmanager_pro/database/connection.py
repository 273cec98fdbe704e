from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import mysql.connector

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connect_retries: int = 3
    retry_seconds: float = 5.0


class DatabaseConnection:
    """Process-wide factory handing out one short-lived MySQL connection per
    repository operation.

    A failed connect is retried ``connect_retries`` times before the error
    propagates.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        attempts = max(1, int(self._config.connect_retries))
        for attempt in range(1, attempts + 1):
            try:
                return mysql.connector.connect(
                    host=self._config.host,
                    port=int(self._config.port),
                    user=self._config.user,
                    password=self._config.password,
                    database=self._config.database,
                )
            except mysql.connector.Error as e:
                if attempt >= attempts:
                    logger.error("MySQL connection failed after %d attempt(s): %s", attempts, e)
                    raise
                logger.warning(
                    "MySQL connection error (attempt %d/%d): %s; retrying in %.1fs",
                    attempt,
                    attempts,
                    e,
                    self._config.retry_seconds,
                )
                time.sleep(self._config.retry_seconds)
