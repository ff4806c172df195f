"""Endpoint resolution for the geographic registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote


@dataclass(frozen=True)
class Endpoint:
    url: str
    params: dict[str, Any] = field(default_factory=dict)


def resolve_endpoint(registry_config: dict, name: str, **path_values: str) -> Endpoint:
    endpoint_cfg = registry_config[name]
    path = endpoint_cfg["path"]
    if path_values:
        path = path.format(**{key: quote(value, safe="") for key, value in path_values.items()})
    base_url = registry_config["base_url"].rstrip("/")
    return Endpoint(url=f"{base_url}/{path.lstrip('/')}", params=dict(endpoint_cfg.get("params") or {}))
