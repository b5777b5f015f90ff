from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

SECTIONS: Tuple[str, ...] = ("main", "atlas", "lightning")

DEFAULT_CORE_FIELDS: FrozenSet[str] = frozenset(
    {
        "main_tempC",
        "main_tempF",
        "main_relH",
        "atlas_lightIntensity",
        "atlas_uvIndex",
        "main_windSpeedKMH",
        "main_windSpeedMPH",
        "realtimeStatus",
    }
)

DEFAULT_TIMESTAMP_FIELDS: FrozenSet[str] = frozenset(
    {
        "lastUpdated",
        "main_lastUpdated",
        "main_high_temp_recorded",
        "main_low_temp_recorded",
        "main_moon_lastFull",
        "main_moon_lastNew",
        "main_moon_nextFull",
        "main_moon_nextNew",
        "main_moonrise",
        "main_moonset",
        "main_sunrise",
        "main_sunset",
        "main_windSpeed_peak_recorded",
    }
)


@dataclass(frozen=True)
class WeatherSnapshot:
    """One dashboard response, split into its known sections.

    Each section maps a raw field key to a scalar value. Sections missing from
    the payload (or not shaped like an object) are empty.
    """

    sections: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "WeatherSnapshot":
        if not isinstance(payload, Mapping):
            return cls()
        sections: Dict[str, Dict[str, Any]] = {}
        for name in SECTIONS:
            section = payload.get(name)
            if isinstance(section, Mapping):
                sections[name] = dict(section)
        return cls(sections=sections)

    def section(self, name: str) -> Mapping[str, Any]:
        value = self.sections.get(name)
        if not isinstance(value, Mapping):
            return {}
        return value

    def get(self, section: str, key: str) -> Any:
        return self.section(section).get(key)


@dataclass(frozen=True)
class FieldPolicy:
    """Controls which discovered fields become attributes."""

    pull_all: bool = False
    core_fields: FrozenSet[str] = DEFAULT_CORE_FIELDS
    extra_fields: Tuple[str, ...] = ()
    timestamp_fields: FrozenSet[str] = DEFAULT_TIMESTAMP_FIELDS
    timezone: str = "UTC"

    @classmethod
    def build(
        cls,
        *,
        pull_all: bool = False,
        core_fields: Optional[Iterable[str]] = None,
        extra_fields: Optional[Iterable[str]] = None,
        timestamp_fields: Optional[Iterable[str]] = None,
        timezone: str = "UTC",
    ) -> "FieldPolicy":
        return cls(
            pull_all=pull_all,
            core_fields=DEFAULT_CORE_FIELDS if core_fields is None else frozenset(core_fields),
            extra_fields=tuple(extra_fields or ()),
            timestamp_fields=DEFAULT_TIMESTAMP_FIELDS if timestamp_fields is None else frozenset(timestamp_fields),
            timezone=timezone,
        )


@dataclass(frozen=True)
class AttributeUpdate:
    name: str
    value: Any

    def as_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class AttributeEvent:
    """A write that the attribute store accepted."""

    device: str
    name: str
    value: Any
    description: Optional[str] = None
    unit: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "device": self.device,
            "name": self.name,
            "value": self.value,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
        }
        if self.description:
            payload["description"] = self.description
        if self.unit:
            payload["unit"] = self.unit
        return payload


@dataclass(frozen=True)
class SyncResult:
    updates: List[AttributeUpdate]
    discovered: FrozenSet[str]
    invalid_extra_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HostStatus:
    state: str
    description: str


__all__ = [
    "SECTIONS",
    "DEFAULT_CORE_FIELDS",
    "DEFAULT_TIMESTAMP_FIELDS",
    "WeatherSnapshot",
    "FieldPolicy",
    "AttributeUpdate",
    "AttributeEvent",
    "SyncResult",
    "HostStatus",
]
