import logging
import threading
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Union

from ..domain.entities import EventFilter, InteractionEvent, StoredEvent
from ..domain.errors import ValidationError
from ..domain.interfaces import IEventArchive, IEventRepository, IEventSubscriber
from ..domain.metadata import parse_enum
from ..domain.services import extract_interaction_event, validate_event
from ..domain.types import InteractionType
from ..domain.utils import parse_timestamp


class EventQuery:
    """
    Sequenza lazy, finita e riavviabile: ogni iterazione rilegge il repository
    e restituisce gli eventi filtrati in ordine di timestamp crescente.
    """

    def __init__(self, repository: IEventRepository, event_filter: EventFilter):
        self._repository = repository
        self._filter = event_filter

    def _sorted(self) -> List[StoredEvent]:
        matching = [
            stored for stored in self._repository.iter_events()
            if self._filter.matches(stored.event)
        ]
        matching.sort(key=lambda stored: (stored.event.timestamp, stored.event_id))
        return matching

    def __iter__(self) -> Iterator[InteractionEvent]:
        for stored in self._sorted():
            yield stored.event

    def stored(self) -> Iterator[StoredEvent]:
        yield from self._sorted()


class EventStore:
    def __init__(
        self,
        repository: IEventRepository,
        archive: Optional[IEventArchive] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.repository = repository
        self.archive = archive
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._subscribers: List[IEventSubscriber] = []
        self._subscribers_lock = threading.Lock()
        self._prune_lock = threading.Lock()
        self._retention_cutoff: Optional[datetime] = None

    def subscribe(self, subscriber: IEventSubscriber) -> None:
        with self._subscribers_lock:
            if subscriber not in self._subscribers:
                self._subscribers.append(subscriber)

    def record(self, event: InteractionEvent) -> int:
        event = validate_event(event)
        cutoff = self._retention_cutoff
        if cutoff is not None and event.timestamp < cutoff:
            raise ValidationError(
                f"Evento del {event.timestamp.isoformat()} anteriore alla soglia di retention {cutoff.isoformat()}."
            )
        event_id, created = self.repository.append(event)

        if not created:
            self.logger.debug(f"Evento già registrato (id={event_id}), replay ignorato.")
            return event_id

        self._notify(event_id, event)
        return event_id

    def record_raw(self, raw: Dict[str, Any]) -> int:
        return self.record(extract_interaction_event(raw))

    def _notify(self, event_id: int, event: InteractionEvent) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        for subscriber in subscribers:
            try:
                subscriber.on_event(event_id, event)
            except Exception as error:
                self.logger.error(
                    f"Subscriber {subscriber.__class__.__name__} fallito sull'evento {event_id}: {error}",
                    exc_info=True,
                )

    def query(self, event_filter: Optional[EventFilter] = None, **criteria: Any) -> EventQuery:
        if event_filter is None:
            event_filter = self._build_filter(**criteria)
        elif criteria:
            raise ValidationError("Specificare un EventFilter oppure criteri nominali, non entrambi.")
        return EventQuery(self.repository, event_filter)

    @staticmethod
    def _build_filter(
        project_id: Optional[int] = None,
        user_id: Optional[str] = None,
        type: Any = None,
        since: Any = None,
        until: Any = None,
    ) -> EventFilter:
        return EventFilter(
            project_id=project_id,
            user_id=user_id,
            type=parse_enum(InteractionType, type, "type") if type is not None else None,
            since=parse_timestamp(since) if since is not None else None,
            until=parse_timestamp(until) if until is not None else None,
        )

    def prune(self, before: datetime) -> int:
        cutoff = parse_timestamp(before)
        with self._prune_lock:
            if self._retention_cutoff is None or cutoff > self._retention_cutoff:
                self._retention_cutoff = cutoff
            expired = [stored for stored in self.repository.iter_events() if stored.event.timestamp < cutoff]
            if not expired:
                self.logger.info(f"Nessun evento anteriore a {cutoff.isoformat()} da rimuovere.")
                return 0

            if self.archive is not None:
                archived = self.archive.archive(expired)
                self.logger.info(f"Archiviati {archived} eventi anteriori a {cutoff.isoformat()}.")

            expired_ids = frozenset(stored.event_id for stored in expired)
            removed = self.repository.remove(expired_ids)
            self._forget(expired_ids)
            self.logger.info(f"Retention applicata: rimossi {removed} eventi.")
            return removed

    def _forget(self, event_ids: FrozenSet[int]) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        for subscriber in subscribers:
            try:
                subscriber.forget(event_ids)
            except Exception as error:
                self.logger.error(
                    f"Subscriber {subscriber.__class__.__name__} fallito durante la retention: {error}",
                    exc_info=True,
                )

    def count(self) -> int:
        return self.repository.count()

    def replay(self, subscriber: IEventSubscriber, event_filter: Optional[EventFilter] = None) -> int:
        """Rinvia gli eventi storici a un subscriber (idempotente lato aggregatori)."""
        replayed = 0
        for stored in self.query(event_filter or EventFilter()).stored():
            subscriber.on_event(stored.event_id, stored.event)
            replayed += 1
        self.logger.info(f"Replay completato: {replayed} eventi inviati a {subscriber.__class__.__name__}.")
        return replayed
