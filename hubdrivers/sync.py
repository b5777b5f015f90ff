"""Turn a dashboard snapshot into the attribute writes a poll should make."""
from __future__ import annotations

import logging
import re
from datetime import timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .entities import SECTIONS, AttributeUpdate, FieldPolicy, SyncResult, WeatherSnapshot
from .timestamps import TimestampError, expand_timestamp, resolve_timezone


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# (attribute, section, key) in emission order.
SIMPLIFIED_ATTRIBUTES: Tuple[Tuple[str, str, str], ...] = (
    ("temperatureF", "main", "tempF"),
    ("temperatureC", "main", "tempC"),
    ("humidity", "main", "relH"),
    ("pressure_inHg", "main", "pressure_inHg"),
    ("windSpeedMPH", "main", "windSpeedMPH"),
    ("windSpeedKMH", "main", "windSpeedKMH"),
    ("lightIntensity", "atlas", "lightIntensity"),
    ("uvIndex", "atlas", "uvIndex"),
)
LAST_UPDATED: Tuple[str, str, str] = ("lastUpdated", "main", "lastUpdated")


def canonical_name(section: str, key: str) -> str:
    return f"{section}_{_WHITESPACE.sub('', str(key))}"


SIMPLIFIED_SOURCES = frozenset(
    canonical_name(section, key) for _, section, key in SIMPLIFIED_ATTRIBUTES + (LAST_UPDATED,)
)


def normalize_value(value: Any) -> str:
    """String form used to decide whether an attribute actually changed.

    Numbers and numeric strings share one spelling, so ``72.5``, ``"72.50"``
    and ``Decimal("72.5")`` compare equal.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip()
    if not isinstance(value, (str, int, float, Decimal)):
        return text
    try:
        number = Decimal(text)
    except InvalidOperation:
        return text
    if not number.is_finite():
        return text
    if number.is_zero():
        return "0"
    return format(number.normalize(), "f")


def discover_fields(snapshot: WeatherSnapshot) -> List[Tuple[str, Any]]:
    """Flatten the snapshot into ``(canonical name, value)`` pairs, in section order."""
    fields: List[Tuple[str, Any]] = []
    for section in SECTIONS:
        for key, value in snapshot.section(section).items():
            fields.append((canonical_name(section, key), value))
    return fields


class _Collector:
    def __init__(self, policy: FieldPolicy, log: logging.Logger) -> None:
        self.updates: List[AttributeUpdate] = []
        self._seen: Set[str] = set()
        self._log = log
        try:
            self._tz = resolve_timezone(policy.timezone)
        except TimestampError as exc:
            log.warning("Falling back to UTC: %s", exc)
            self._tz = timezone.utc

    def emit(self, name: str, value: Any) -> None:
        if name in self._seen:
            return
        self._seen.add(name)
        self.updates.append(AttributeUpdate(name=name, value=value))

    def emit_timestamp(self, name: str, value: Any) -> None:
        try:
            full, date, time = expand_timestamp(value, self._tz)
        except TimestampError as exc:
            self._log.warning("Timestamp parse failed for %s: %s", name, exc)
            self.emit(name, value)
            return
        self.emit(name, full)
        self.emit(f"{name}_date", date)
        self.emit(f"{name}_time", time)


def synchronize(
    snapshot: WeatherSnapshot,
    policy: FieldPolicy,
    prior_values: Optional[Mapping[str, Any]] = None,
    *,
    log: Optional[logging.Logger] = None,
) -> SyncResult:
    """Compute the changed attributes for one poll cycle.

    Pure with respect to its inputs: the caller feeds the previous attribute
    values back in as ``prior_values``.
    """
    log = log or logger
    prior_values = prior_values or {}
    collector = _Collector(policy, log)

    fields = discover_fields(snapshot)
    discovered = frozenset(name for name, _ in fields)
    extras = frozenset(policy.extra_fields)

    invalid = tuple(name for name in policy.extra_fields if name not in discovered)
    if invalid:
        log.warning("Ignoring unknown extra fields: %s", ", ".join(invalid))

    for name, value in fields:
        if name in SIMPLIFIED_SOURCES:
            continue
        if not (policy.pull_all or name in policy.core_fields or name in extras):
            continue
        if name in policy.timestamp_fields and value not in (None, ""):
            collector.emit_timestamp(name, value)
        else:
            collector.emit(name, value)

    for attribute, section, key in SIMPLIFIED_ATTRIBUTES:
        value = snapshot.get(section, key)
        if value is not None:
            collector.emit(attribute, value)

    attribute, section, key = LAST_UPDATED
    last_updated = snapshot.get(section, key)
    if last_updated not in (None, ""):
        collector.emit_timestamp(attribute, last_updated)

    changed = [
        update
        for update in collector.updates
        if update.name not in prior_values
        or normalize_value(update.value) != normalize_value(prior_values[update.name])
    ]
    return SyncResult(updates=changed, discovered=discovered, invalid_extra_fields=invalid)


def compute_updates(
    snapshot: WeatherSnapshot,
    policy: FieldPolicy,
    prior_values: Optional[Mapping[str, Any]] = None,
) -> List[AttributeUpdate]:
    return synchronize(snapshot, policy, prior_values).updates


def as_mapping(updates: List[AttributeUpdate]) -> Dict[str, Any]:
    return {update.name: update.value for update in updates}


__all__ = [
    "SIMPLIFIED_ATTRIBUTES",
    "SIMPLIFIED_SOURCES",
    "canonical_name",
    "normalize_value",
    "discover_fields",
    "synchronize",
    "compute_updates",
    "as_mapping",
]
