"""Per-commune detail lookup and enrichment against the reference tables."""

from __future__ import annotations

from typing import Any

from communes_fr.common.errors import PayloadError
from communes_fr.common.http import HttpClient, HttpRequestError
from communes_fr.common.models import EnrichedRecord, Failure, Location, ReferenceTables
from communes_fr.harvest.registry import resolve_endpoint


def _optional_str(properties: dict, key: str) -> str | None:
    value = properties.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise PayloadError(f"properties.{key} must be a string")
    return value


def _postal_codes(properties: dict) -> tuple[str, ...]:
    value = properties.get("codesPostaux")
    if not value:
        return ()
    if not isinstance(value, list) or not all(isinstance(code, str) for code in value):
        raise PayloadError("properties.codesPostaux must be a list of strings")
    return tuple(value)


def _location(geometry: Any) -> Location | None:
    if not geometry:
        return None
    if not isinstance(geometry, dict):
        raise PayloadError("geometry must be an object")
    coordinates = geometry.get("coordinates")
    if not coordinates:
        return None
    if not isinstance(coordinates, list) or len(coordinates) < 2:
        raise PayloadError("geometry.coordinates must hold a [lon, lat] pair")
    lon, lat = coordinates[0], coordinates[1]
    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PayloadError("geometry.coordinates must be numeric")
    # GeoJSON order is [lon, lat]; the snapshot stores [lat, lon].
    return Location(latitude=float(lat), longitude=float(lon))


def build_record(payload: Any, tables: ReferenceTables) -> EnrichedRecord:
    """Turn one GeoJSON feature from the detail endpoint into an enriched record.

    Unknown department or region codes leave the matching field empty; only a
    payload of the wrong shape raises ``PayloadError``.
    """
    if not isinstance(payload, dict):
        raise PayloadError("commune payload must be a JSON object")
    properties = payload.get("properties") or {}
    if not isinstance(properties, dict):
        raise PayloadError("properties must be an object")

    name = properties.get("nom") or ""
    if not isinstance(name, str):
        raise PayloadError("properties.nom must be a string")

    return EnrichedRecord(
        name=name,
        department_name=tables.departments.lookup(_optional_str(properties, "codeDepartement")),
        region_name=tables.regions.lookup(_optional_str(properties, "codeRegion")),
        postal_codes=_postal_codes(properties),
        location=_location(payload.get("geometry")),
    )


def enrich_commune(
    identifier: str,
    *,
    client: HttpClient,
    registry_config: dict,
    tables: ReferenceTables,
) -> EnrichedRecord | Failure:
    """Exactly one outcome per identifier; not-found, transport and decode errors are alike."""
    endpoint = resolve_endpoint(registry_config, "detail", code=identifier)
    try:
        payload = client.get_json(endpoint.url, params=endpoint.params)
        return build_record(payload, tables)
    except (HttpRequestError, PayloadError):
        return Failure(identifier=identifier)
