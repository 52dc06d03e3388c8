import itertools
import threading
from typing import Dict, Iterable, Iterator, Tuple

from ..domain.entities import InteractionEvent, StoredEvent
from ..domain.interfaces import IEventRepository

class InMemoryEventRepository(IEventRepository):
    """
    Repository in memoria con id monotoni e indice sulla chiave naturale.
    Gli id non vengono mai riutilizzati, neanche dopo una rimozione; le chiavi
    naturali degli eventi rimossi escono dall'indice.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._events: Dict[int, InteractionEvent] = {}
        self._by_natural_key: Dict[Tuple, int] = {}

    def append(self, event: InteractionEvent) -> Tuple[int, bool]:
        with self._lock:
            existing = self._by_natural_key.get(event.natural_key)
            if existing is not None:
                return existing, False

            event_id = next(self._ids)
            self._events[event_id] = event
            self._by_natural_key[event.natural_key] = event_id
            return event_id, True

    def iter_events(self) -> Iterator[StoredEvent]:
        with self._lock:
            snapshot = list(self._events.items())
        for event_id, event in snapshot:
            yield StoredEvent(event_id=event_id, event=event)

    def remove(self, event_ids: Iterable[int]) -> int:
        removed = 0
        with self._lock:
            for event_id in event_ids:
                event = self._events.pop(event_id, None)
                if event is None:
                    continue
                self._by_natural_key.pop(event.natural_key, None)
                removed += 1
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._events)
