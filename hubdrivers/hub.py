"""In-process stand-ins for the hub runtime: timers and the attribute store.

Drivers only talk to the :class:`Scheduler` and :class:`AttributeStore`
protocols, so the Django process can swap in a cache backed store and tests
can drive time by hand.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .entities import AttributeEvent
from .sync import normalize_value


logger = logging.getLogger(__name__)

Listener = Callable[[AttributeEvent], None]


class Scheduler(Protocol):
    def run_in(self, seconds: float, callback: Callable[[], Any], name: Optional[str] = None) -> None:
        """Run ``callback`` once after ``seconds``, replacing a pending job of the same name."""
        ...

    def unschedule(self, name: Optional[str] = None) -> None:
        """Cancel one named job, or every pending job when ``name`` is None."""
        ...


class AttributeStore(Protocol):
    device: str

    def current_value(self, name: str) -> Any:
        ...

    def send_event(
        self,
        name: str,
        value: Any,
        description: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> AttributeEvent:
        ...

    def snapshot(self) -> Dict[str, Any]:
        ...


class ThreadingScheduler:
    """Daemon ``threading.Timer`` per job name."""

    def __init__(self) -> None:
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def run_in(self, seconds: float, callback: Callable[[], Any], name: Optional[str] = None) -> None:
        key = name or getattr(callback, "__name__", repr(callback))
        timer = threading.Timer(max(float(seconds), 0.0), self._run, args=(key, callback))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(key, None)
            if previous is not None:
                previous.cancel()
            self._timers[key] = timer
        timer.start()

    def unschedule(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name is None:
                timers = list(self._timers.values())
                self._timers.clear()
            else:
                timer = self._timers.pop(name, None)
                timers = [timer] if timer is not None else []
        for timer in timers:
            timer.cancel()

    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._timers)

    def _run(self, key: str, callback: Callable[[], Any]) -> None:
        with self._lock:
            if self._timers.get(key) is threading.current_thread():
                del self._timers[key]
        try:
            callback()
        except Exception:  # noqa: BLE001 - a failing job must not kill the timer thread silently
            logger.exception("Scheduled job %s failed", key)


class ManualScheduler:
    """Scheduler driven by :meth:`advance`; nothing runs on its own.

    Used where another process owns the timers (the web workers) and in tests.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._jobs: Dict[str, Tuple[float, Callable[[], Any]]] = {}
        self._lock = threading.Lock()

    def run_in(self, seconds: float, callback: Callable[[], Any], name: Optional[str] = None) -> None:
        key = name or getattr(callback, "__name__", repr(callback))
        with self._lock:
            self._jobs[key] = (self.now + max(float(seconds), 0.0), callback)

    def unschedule(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name is None:
                self._jobs.clear()
            else:
                self._jobs.pop(name, None)

    def pending(self) -> Dict[str, float]:
        with self._lock:
            return {key: due - self.now for key, (due, _) in self._jobs.items()}

    def advance(self, seconds: float) -> List[str]:
        """Move the clock forward and run every job that became due, in due order."""
        self.now += seconds
        ran: List[str] = []
        while True:
            with self._lock:
                due = sorted(
                    ((when, key) for key, (when, _) in self._jobs.items() if when <= self.now),
                )
                if not due:
                    return ran
                _, key = due[0]
                _, callback = self._jobs.pop(key)
            ran.append(key)
            callback()


class ListenerMixin:
    def _init_listeners(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: AttributeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - listener failures are logged, the write stands
                logger.exception("Attribute listener failed for %s.%s", event.device, event.name)


class InMemoryAttributeStore(ListenerMixin):
    """Thread safe attribute values plus the events that produced them."""

    def __init__(self, device: str) -> None:
        if not device:
            raise ValueError("device must be provided")
        self.device = device
        self._values: Dict[str, Any] = {}
        self._events: List[AttributeEvent] = []
        self._lock = threading.Lock()
        self._init_listeners()

    def current_value(self, name: str) -> Any:
        with self._lock:
            return self._values.get(name)

    def send_event(
        self,
        name: str,
        value: Any,
        description: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> AttributeEvent:
        event = AttributeEvent(device=self.device, name=name, value=value, description=description, unit=unit)
        with self._lock:
            self._values[name] = value
            self._events.append(event)
        self._notify(event)
        return event

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)

    def events(self, name: Optional[str] = None) -> List[AttributeEvent]:
        with self._lock:
            if name is None:
                return list(self._events)
            return [event for event in self._events if event.name == name]

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._events.clear()


def send_event_if_changed(
    store: AttributeStore,
    name: str,
    value: Any,
    description: Optional[str] = None,
    *,
    log: Optional[logging.Logger] = None,
) -> bool:
    """Write ``value`` only when it differs from the stored one."""
    log = log or logger
    current = store.current_value(name)
    if current is not None and normalize_value(current) == normalize_value(value):
        log.debug("No change for %s, remains %s", name, value)
        return False
    store.send_event(name, value, description=description)
    if description:
        log.info("Updated %s to %s (%s)", name, value, description)
    else:
        log.info("Updated %s = %s", name, value)
    return True


__all__ = [
    "Scheduler",
    "AttributeStore",
    "ThreadingScheduler",
    "ManualScheduler",
    "InMemoryAttributeStore",
    "ListenerMixin",
    "send_event_if_changed",
]
