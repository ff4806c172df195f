"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ReferenceEntry:
    code: str
    name: str


@dataclass(frozen=True)
class ReferenceTable:
    """Small code -> name table. Linear lookup, tables hold about a hundred rows."""

    entries: tuple[ReferenceEntry, ...] = ()

    def lookup(self, code: str | None) -> str | None:
        if not code:
            return None
        for entry in self.entries:
            if entry.code == code:
                return entry.name
        return None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class ReferenceTables:
    departments: ReferenceTable
    regions: ReferenceTable


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    kind: str = "Point"

    @property
    def coordinates(self) -> list[float]:
        return [self.latitude, self.longitude]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "coordinates": self.coordinates}


@dataclass(frozen=True)
class EnrichedRecord:
    name: str
    department_name: str | None = None
    region_name: str | None = None
    postal_codes: tuple[str, ...] = ()
    location: Location | None = None

    def to_dict(self) -> dict[str, Any]:
        # Key order and names follow the registry's vocabulary.
        out: dict[str, Any] = {"nom": self.name}
        if self.department_name is not None:
            out["departement"] = self.department_name
        if self.region_name is not None:
            out["region"] = self.region_name
        out["codesPostaux"] = list(self.postal_codes)
        if self.location is not None:
            out["location"] = self.location.to_dict()
        return out


@dataclass(frozen=True)
class Failure:
    identifier: str


@dataclass
class Collection:
    records: list[EnrichedRecord] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def outcome_count(self) -> int:
        return len(self.records) + len(self.failures)
