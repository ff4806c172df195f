"""Bulk listing of commune identifiers (INSEE codes)."""

from __future__ import annotations

from communes_fr.common.errors import PayloadError, StageError
from communes_fr.common.http import HttpClient, HttpRequestError
from communes_fr.harvest.registry import resolve_endpoint


def parse_identifiers(payload: object) -> tuple[str, ...]:
    if not isinstance(payload, list):
        raise PayloadError("communes listing payload must be a JSON array")

    identifiers: list[str] = []
    for idx, item in enumerate(payload):
        code = item.get("code") if isinstance(item, dict) else None
        if not isinstance(code, str) or not code:
            raise PayloadError(f"communes[{idx}] lacks a string code")
        identifiers.append(code)
    return tuple(identifiers)


def list_commune_codes(client: HttpClient, registry_config: dict) -> tuple[str, ...]:
    # One request, no pagination: the registry returns the full set.
    endpoint = resolve_endpoint(registry_config, "listing")
    try:
        payload = client.get_json(endpoint.url, params=endpoint.params)
    except HttpRequestError as exc:
        raise StageError(f"Unable to list communes: {exc}") from exc
    return parse_identifiers(payload)
