from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'mysql' (default) or 'memory'
    - MYSQL_HOST / MYSQL_USER / MYSQL_PASSWORD / MYSQL_DATABASE: connection target
    - MYSQL_PORT: database port. Default 3306
    - MYSQL_CONNECTION_LIMIT: size of the connection pool. Default 10
    - MYSQL_SSL: 'true' to connect over TLS (default: false)
    - MYSQL_SSL_CA: optional CA bundle used to verify the server certificate
    - MYSQL_CONNECT_TIMEOUT: seconds to wait for a connection. Default 10
    - DATABASE_URL: full SQLAlchemy URL; overrides the MYSQL_* connection target
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: level of the application logger. Default INFO
    - HOST / PORT: address the server binds to. Default 0.0.0.0:8000
    """

    persistence_backend: str
    mysql_host: str
    mysql_user: str
    mysql_password: str
    mysql_database: str
    mysql_port: int
    mysql_connection_limit: int
    mysql_ssl: bool
    mysql_ssl_ca: Optional[str]
    mysql_connect_timeout: int
    database_url: Optional[str]
    cors_allow_origins: List[str]
    log_level: str
    host: str
    port: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "mysql").strip().lower()
    if backend not in {"mysql", "memory"}:
        backend = "mysql"

    database_url = os.getenv("DATABASE_URL") or None
    ssl_ca = os.getenv("MYSQL_SSL_CA") or None

    return Settings(
        persistence_backend=backend,
        mysql_host=_get_env("MYSQL_HOST", "localhost").strip(),
        mysql_user=_get_env("MYSQL_USER", "root"),
        mysql_password=os.getenv("MYSQL_PASSWORD", ""),
        mysql_database=_get_env("MYSQL_DATABASE", "task_manager").strip(),
        mysql_port=_parse_int(_get_env("MYSQL_PORT", "3306"), 3306),
        mysql_connection_limit=_parse_int(_get_env("MYSQL_CONNECTION_LIMIT", "10"), 10),
        mysql_ssl=_parse_bool(_get_env("MYSQL_SSL", "false"), False),
        mysql_ssl_ca=ssl_ca,
        mysql_connect_timeout=_parse_int(_get_env("MYSQL_CONNECT_TIMEOUT", "10"), 10),
        database_url=database_url.strip() if database_url else None,
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "8000"), 8000),
    )
