from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, Iterator, List, Tuple

from .entities import InteractionEvent, ProjectSnapshot, StoredEvent

class IEventRepository(ABC):
    @abstractmethod
    def append(self, event: InteractionEvent) -> Tuple[int, bool]:
        """
        Aggiunge l'evento e ritorna (event_id, created).
        Un evento con chiave naturale già presente non viene duplicato:
        si ritorna l'id originale con created=False.
        """
        pass

    @abstractmethod
    def iter_events(self) -> Iterator[StoredEvent]:
        pass

    @abstractmethod
    def remove(self, event_ids: Iterable[int]) -> int:
        pass

    @abstractmethod
    def count(self) -> int:
        pass

class IEventSubscriber(ABC):
    @abstractmethod
    def on_event(self, event_id: int, event: InteractionEvent) -> None:
        pass

    def forget(self, event_ids: FrozenSet[int]) -> None:
        """Scarta lo stato di deduplica relativo a eventi rimossi dalla retention."""
        pass

class IEventArchive(ABC):
    @abstractmethod
    def archive(self, events: List[StoredEvent]) -> int:
        pass

class IProjectSnapshotProvider(ABC):
    @abstractmethod
    def get(self, project_id: int) -> ProjectSnapshot | None:
        pass

    @abstractmethod
    def get_many(self, project_ids: Iterable[int]) -> List[ProjectSnapshot]:
        pass

    @abstractmethod
    def list_all(self) -> List[ProjectSnapshot]:
        pass

class IIdentityProvider(ABC):
    @abstractmethod
    def current_user_id(self) -> str:
        pass
