"""Database connection settings and DSN parsing."""

import logging
from typing import Dict, Optional
from urllib.parse import parse_qs, quote_plus, unquote, urlsplit

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.engine import URL

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_DRIVERS = ["postgresql", "mysql", "sqlite", "mongodb"]

SCHEME_DRIVERS = {
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "mysql": "mysql",
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
    "mongodb": "mongodb",
    "mongodb+srv": "mongodb",
}

DEFAULT_PORTS = {"postgresql": 5432, "mysql": 3306, "mongodb": 27017, "sqlite": 0}

# (max_open_conns, max_idle_conns)
DEFAULT_POOL_SIZES = {"postgresql": (10, 5), "mysql": (10, 5), "mongodb": (100, 100), "sqlite": (1, 1)}

DEFAULT_CONN_MAX_LIFETIME = 3600
DEFAULT_CONN_MAX_IDLE_TIME = 300


class DatabaseConfig(BaseModel):
    """Configuration model for database connections."""

    driver: str = Field(default="postgresql", description="Database driver")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=0, description="Database port")
    database: str = Field(default="", description="Database name, or file path for SQLite")
    username: str = Field(default="", description="Database username")
    password: str = Field(default="", description="Database password")
    ssl_mode: str = Field(default="disable", description="SSL mode")
    charset: str = Field(default="utf8mb4", description="Character set (MySQL)")
    max_open_conns: int = Field(default=10, description="Maximum open connections")
    max_idle_conns: int = Field(default=5, description="Maximum idle connections")
    conn_max_lifetime: int = Field(default=DEFAULT_CONN_MAX_LIFETIME, description="Seconds a connection may live")
    conn_max_idle_time: int = Field(default=DEFAULT_CONN_MAX_IDLE_TIME, description="Seconds a connection may idle")
    replica_set: Optional[str] = Field(default=None, description="MongoDB replica set")
    auth_source: Optional[str] = Field(default=None, description="MongoDB authentication database")
    srv: bool = Field(default=False, description="Use mongodb+srv discovery")
    options: Dict[str, str] = Field(default_factory=dict, description="Unrecognized query options")

    @field_validator("driver")
    @classmethod
    def validate_driver(cls, v):
        if v not in SUPPORTED_DRIVERS:
            raise ValueError(f"Unsupported driver: {v}. Supported: {SUPPORTED_DRIVERS}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        # Port 0 stands for "not applicable" (SQLite) or "use the default"
        if not 0 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    def sqlalchemy_url(self) -> URL:
        """Build the SQLAlchemy URL for relational drivers."""
        if self.driver == "sqlite":
            return URL.create("sqlite", database=self.database or None)
        if self.driver == "postgresql":
            driver_name = "postgresql+psycopg2"
        elif self.driver == "mysql":
            driver_name = "mysql+pymysql"
        else:
            raise ValueError(f"Driver {self.driver} has no SQLAlchemy URL")
        return URL.create(
            driver_name,
            username=self.username or None,
            password=self.password or None,
            host=self.host,
            port=self.port or None,
            database=self.database or None,
        )

    def mongo_uri(self, include_credentials: bool = True) -> str:
        """Build a MongoDB connection URI."""
        scheme = "mongodb+srv" if self.srv else "mongodb"
        credentials = ""
        if self.username and include_credentials:
            credentials = quote_plus(self.username)
            if self.password:
                credentials += f":{quote_plus(self.password)}"
            credentials += "@"
        host = self.host if self.srv or not self.port else f"{self.host}:{self.port}"
        return f"{scheme}://{credentials}{host}/{self.database}"


def _first(query: Dict[str, list], key: str) -> Optional[str]:
    values = query.pop(key, None)
    return values[0] if values else None


def _int_option(query: Dict[str, list], key: str, default: int) -> int:
    value = _first(query, key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Option {key} must be an integer, got '{value}'") from None


def _duration_option(query: Dict[str, list], key: str, default: int) -> int:
    """Parse durations such as ``90``, ``30s``, ``5m`` or ``1h`` into seconds."""
    value = _first(query, key)
    if value is None:
        return default
    units = {"s": 1, "m": 60, "h": 3600}
    try:
        if value[-1] in units:
            return int(float(value[:-1]) * units[value[-1]])
        return int(value)
    except (ValueError, IndexError):
        raise ConfigurationError(f"Option {key} must be a duration like 30s, 5m or 1h, got '{value}'") from None


def parse_database_url(url: str) -> DatabaseConfig:
    """Parse a DSN into a :class:`DatabaseConfig` with per-driver defaults applied."""
    if not url or "://" not in url:
        raise ConfigurationError(f"Invalid database URL: '{url}'")

    scheme = url.split("://", 1)[0].lower()
    driver = SCHEME_DRIVERS.get(scheme)
    if driver is None:
        raise ConfigurationError(
            f"Unsupported database URL scheme '{scheme}'. Supported: {sorted(SCHEME_DRIVERS)}"
        )

    max_open, max_idle = DEFAULT_POOL_SIZES[driver]

    if driver == "sqlite":
        remainder = url.split("://", 1)[1]
        path, _, raw_query = remainder.partition("?")
        query = parse_qs(raw_query)
        if not path:
            raise ConfigurationError("SQLite URL must include a file path, e.g. sqlite://./data.db")
        try:
            return DatabaseConfig(
                driver="sqlite",
                host="",
                port=0,
                database=unquote(path),
                max_open_conns=_int_option(query, "max_open_conns", max_open),
                max_idle_conns=_int_option(query, "max_idle_conns", max_idle),
                conn_max_lifetime=_duration_option(query, "conn_max_lifetime", DEFAULT_CONN_MAX_LIFETIME),
                conn_max_idle_time=_duration_option(query, "conn_max_idle_time", DEFAULT_CONN_MAX_IDLE_TIME),
                options={k: v[0] for k, v in query.items()},
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid database URL: {e}") from e

    parts = urlsplit(url)
    query = parse_qs(parts.query)
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigurationError(f"Invalid port in database URL: {e}") from e

    settings = dict(
        driver=driver,
        host=parts.hostname or "localhost",
        port=port or (0 if scheme == "mongodb+srv" else DEFAULT_PORTS[driver]),
        database=unquote(parts.path.lstrip("/")),
        username=unquote(parts.username or ""),
        password=unquote(parts.password or ""),
    )

    if driver == "mongodb":
        flags = [(_first(query, key) or "").lower() for key in ("ssl", "tls")]
        tls = "true" in flags
        settings.update(
            ssl_mode="require" if tls else "disable",
            max_open_conns=_int_option(query, "maxPoolSize", max_open),
            max_idle_conns=_int_option(query, "minPoolSize", max_idle),
            replica_set=_first(query, "replicaSet"),
            auth_source=_first(query, "authSource") or "admin",
            srv=scheme == "mongodb+srv",
        )
    else:
        settings.update(
            ssl_mode=_first(query, "sslmode") or "disable",
            max_open_conns=_int_option(query, "max_open_conns", max_open),
            max_idle_conns=_int_option(query, "max_idle_conns", max_idle),
        )
        charset = _first(query, "charset")
        if charset:
            settings["charset"] = charset

    settings["conn_max_lifetime"] = _duration_option(query, "conn_max_lifetime", DEFAULT_CONN_MAX_LIFETIME)
    settings["conn_max_idle_time"] = _duration_option(query, "conn_max_idle_time", DEFAULT_CONN_MAX_IDLE_TIME)
    settings["options"] = {k: v[0] for k, v in query.items()}

    try:
        config = DatabaseConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid database URL: {e}") from e
    logger.debug(f"Parsed {driver} URL for {config.host}:{config.port}/{config.database}")
    return config
