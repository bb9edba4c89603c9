"""
Bridge configuration loader.

Reads connection settings from environment variables or from the parameter
dict a host framework hands to the bridge, into a simple value object so the
rest of the bridge consumes strongly named settings.
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

REDACTED = "***"

ARGUMENT_SCHEMA = {
    "id": "/mongodbBridge",
    "type": "object",
    "properties": {
        "tracking_code": {"type": "string"},
        "connection_options": {"type": "object"},
        "connection_string": {"type": "string"},
        "cols": {"type": "object"},
        "enabled": {"type": "boolean"},
    },
}

_SCHEMA_TYPES = {
    "string": str,
    "object": dict,
    "boolean": bool,
}


def _escape(value: str) -> str:
    if value == REDACTED:
        return value
    return quote_plus(str(value))


def build_mongodb_url(
    host: str,
    port: int,
    name: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
    auth_source: Optional[str] = None,
) -> str:
    """
    Compose a mongodb:// URL from connection parts.
    """
    auth = ""
    if username:
        auth = f"{_escape(username)}:{_escape(password or '')}@"
    url = f"mongodb://{auth}{host}:{port}/{name}"
    if auth_source:
        url += f"?authSource={auth_source}"
    return url


def validate_params(params: dict) -> None:
    """
    Check host-supplied parameters against ARGUMENT_SCHEMA.
    """
    if not isinstance(params, dict):
        raise ValueError("bridge parameters must be an object")
    for key, rule in ARGUMENT_SCHEMA["properties"].items():
        if params.get(key) is None:
            continue
        expected = _SCHEMA_TYPES[rule["type"]]
        if not isinstance(params[key], expected):
            raise ValueError(f"{key} must be of type {rule['type']}")


def default_tracking_code() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class BridgeConfig:
    host: str = "localhost"
    port: int = 27017
    name: str = "mongodb_bridge"
    username: Optional[str] = None
    password: Optional[str] = None
    auth_source: Optional[str] = None
    connection_string: Optional[str] = None
    cols: Dict[str, str] = field(default_factory=dict)
    tracking_code: Optional[str] = None
    enabled: bool = True

    @property
    def url(self) -> str:
        """Explicit connection string when set, otherwise built from parts."""
        if isinstance(self.connection_string, str) and self.connection_string:
            return self.connection_string
        return build_mongodb_url(
            self.host, self.port, self.name, self.username, self.password, self.auth_source
        )

    def redacted(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "name": self.name,
            "username": self.username,
            "password": REDACTED,
        }

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        cols = json.loads(os.getenv("MONGODB_BRIDGE_COLS", "{}"))
        if not isinstance(cols, dict):
            raise ValueError("MONGODB_BRIDGE_COLS must be a JSON object")
        enabled = os.getenv("MONGODB_BRIDGE_ENABLED", "true").strip().lower() not in {"0", "false", "no"}

        return cls(
            host=os.getenv("MONGODB_BRIDGE_HOST", "localhost"),
            port=int(os.getenv("MONGODB_BRIDGE_PORT", "27017")),
            name=os.getenv("MONGODB_BRIDGE_DB_NAME", "mongodb_bridge"),
            username=os.getenv("MONGODB_BRIDGE_USERNAME") or None,
            password=os.getenv("MONGODB_BRIDGE_PASSWORD") or None,
            auth_source=os.getenv("MONGODB_BRIDGE_AUTH_SOURCE") or None,
            connection_string=os.getenv("MONGODB_BRIDGE_URL") or None,
            cols=cols,
            tracking_code=os.getenv("MONGODB_BRIDGE_TRACKING_CODE") or None,
            enabled=enabled,
        )

    @classmethod
    def from_params(cls, params: Optional[dict] = None) -> "BridgeConfig":
        """
        Build from the host framework's parameter shape.

        Connection parts come from ``connection_options`` or, when absent,
        from the top-level params. ``connection_string`` (alias ``url``)
        overrides the built URL.
        """
        params = params or {}
        validate_params(params)
        conf = params.get("connection_options") or params
        connection_string = params.get("connection_string") or params.get("url")
        enabled = params.get("enabled")

        return cls(
            host=conf.get("host") or "localhost",
            port=int(conf.get("port") or 27017),
            name=conf.get("name") or "mongodb_bridge",
            username=conf.get("username"),
            password=conf.get("password"),
            auth_source=conf.get("authSource") or conf.get("auth_source"),
            connection_string=connection_string if isinstance(connection_string, str) else None,
            cols=dict(params.get("cols") or {}),
            tracking_code=params.get("tracking_code"),
            enabled=enabled if isinstance(enabled, bool) else True,
        )
