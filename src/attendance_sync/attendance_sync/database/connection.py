from __future__ import annotations

from dataclasses import dataclass

from mysql.connector import pooling

from ..core.constants import DEFAULT_POOL_SIZE


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = DEFAULT_POOL_SIZE

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
            pool_size=int(db_config.get("pool_size", DEFAULT_POOL_SIZE)),
        )


class DatabaseConnection:
    """Pooled connection factory for the direct transactional tier.

    One instance is built by the container and injected into the store;
    ``connect()`` hands out a pooled connection and ``close()`` returns it.
    """

    def __init__(self, config: DBConfig, *, pool_name: str = "attendance_sync"):
        self._config = config
        self._pool = pooling.MySQLConnectionPool(
            pool_name=pool_name,
            pool_size=int(config.pool_size),
            host=config.host,
            port=int(config.port),
            user=config.user,
            password=config.password,
            database=config.database,
            autocommit=False,
        )

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        return self._pool.get_connection()
