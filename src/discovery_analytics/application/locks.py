import threading
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Hashable, Iterator, List, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
S = TypeVar("S")


class KeyedStateStore(Generic[K, S]):
    """
    Stato mutabile per entità (progetto o utente) con un lock esclusivo per chiave.
    Il lock di registro protegge solo la creazione delle entry: le mutazioni
    su chiavi diverse procedono in parallelo.
    """

    def __init__(self, factory: Callable[[K], S]):
        self._factory = factory
        self._registry_lock = threading.Lock()
        self._entries: Dict[K, Tuple[threading.Lock, S]] = {}

    def _entry(self, key: K, create: bool) -> Optional[Tuple[threading.Lock, S]]:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None and create:
                entry = (threading.Lock(), self._factory(key))
                self._entries[key] = entry
            return entry

    @contextmanager
    def locked(self, key: K) -> Iterator[S]:
        lock, state = self._entry(key, create=True)
        with lock:
            yield state

    @contextmanager
    def locked_existing(self, key: K) -> Iterator[Optional[S]]:
        entry = self._entry(key, create=False)
        if entry is None:
            yield None
            return
        lock, state = entry
        with lock:
            yield state

    def for_each(self, action: Callable[[S], None]) -> None:
        """Applica action a ogni stato, prendendo un lock per chiave alla volta."""
        with self._registry_lock:
            entries = list(self._entries.values())
        for lock, state in entries:
            with lock:
                action(state)

    def keys(self) -> List[K]:
        with self._registry_lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._entries)
