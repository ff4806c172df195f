"""Reference tables (departments, regions) loaded once before the fan-out."""

from __future__ import annotations

from communes_fr.common.errors import PayloadError, StageError
from communes_fr.common.http import HttpClient, HttpRequestError
from communes_fr.common.models import ReferenceEntry, ReferenceTable, ReferenceTables
from communes_fr.harvest.registry import resolve_endpoint


def parse_reference_table(payload: object, *, table: str) -> ReferenceTable:
    if not isinstance(payload, list):
        raise PayloadError(f"{table} payload must be a JSON array")

    entries: list[ReferenceEntry] = []
    for idx, item in enumerate(payload):
        if not isinstance(item, dict):
            raise PayloadError(f"{table}[{idx}] must be an object")
        code = item.get("code")
        name = item.get("nom")
        if not isinstance(code, str) or not isinstance(name, str):
            raise PayloadError(f"{table}[{idx}] lacks a string code or nom")
        entries.append(ReferenceEntry(code=code, name=name))
    return ReferenceTable(entries=tuple(entries))


def _fetch_table(client: HttpClient, registry_config: dict, table: str) -> ReferenceTable:
    endpoint = resolve_endpoint(registry_config, table)
    try:
        payload = client.get_json(endpoint.url, params=endpoint.params)
    except HttpRequestError as exc:
        raise StageError(f"Unable to load {table} reference table: {exc}") from exc
    return parse_reference_table(payload, table=table)


def fetch_departments(client: HttpClient, registry_config: dict) -> ReferenceTable:
    return _fetch_table(client, registry_config, "departments")


def fetch_regions(client: HttpClient, registry_config: dict) -> ReferenceTable:
    return _fetch_table(client, registry_config, "regions")


def load_reference_tables(client: HttpClient, registry_config: dict) -> ReferenceTables:
    """Both tables or nothing: there is no enrichment without reference data."""
    return ReferenceTables(
        departments=fetch_departments(client, registry_config),
        regions=fetch_regions(client, registry_config),
    )
