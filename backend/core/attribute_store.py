"""Attribute store backed by a Django cache alias."""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from django.core.cache.backends.base import BaseCache

from hubdrivers.entities import AttributeEvent
from hubdrivers.hub import ListenerMixin


class CacheAttributeStore(ListenerMixin):
    """Keeps one device's attributes in the cache so every worker sees them."""

    value_key_template = "attr:{device}:{name}"
    index_key_template = "attrs:{device}"

    def __init__(self, device: str, cache: BaseCache, timeout: Optional[int] = None) -> None:
        if not device:
            raise ValueError("device must be provided")
        self.device = device
        self._cache = cache
        self._timeout = timeout
        self._lock = threading.Lock()
        self._init_listeners()

    def current_value(self, name: str) -> Any:
        return self._cache.get(self._value_key(name))

    def send_event(
        self,
        name: str,
        value: Any,
        description: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> AttributeEvent:
        event = AttributeEvent(device=self.device, name=name, value=value, description=description, unit=unit)
        with self._lock:
            self._cache.set(self._value_key(name), value, self._timeout)
            names = self._names()
            if name not in names:
                names.append(name)
                self._cache.set(self._index_key(), names, self._timeout)
        self._notify(event)
        return event

    def snapshot(self) -> Dict[str, Any]:
        names = self._names()
        if not names:
            return {}
        keys = {self._value_key(name): name for name in names}
        values = self._cache.get_many(list(keys))
        return {keys[key]: value for key, value in values.items()}

    def clear(self) -> None:
        with self._lock:
            keys = [self._value_key(name) for name in self._names()]
            keys.append(self._index_key())
            self._cache.delete_many(keys)

    def _names(self) -> List[str]:
        return list(self._cache.get(self._index_key()) or [])

    def _value_key(self, name: str) -> str:
        return self.value_key_template.format(device=self.device, name=name)

    def _index_key(self) -> str:
        return self.index_key_template.format(device=self.device)


__all__ = ["CacheAttributeStore"]
