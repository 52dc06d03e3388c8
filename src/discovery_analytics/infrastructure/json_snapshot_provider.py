import json
import logging
import os
from typing import Dict, Iterable, List, Optional, Union

from ..application.errors import SnapshotSourceError
from ..domain.entities import ProjectSnapshot
from ..domain.errors import ValidationError
from ..domain.interfaces import IProjectSnapshotProvider

class JsonProjectSnapshotProvider(IProjectSnapshotProvider):
    """Snapshot dei progetti letti da un file JSON (lista di oggetti in formato GitHub)."""

    def __init__(self, path: str, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.path = path
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._projects: Optional[Dict[int, ProjectSnapshot]] = None

    def _load(self) -> Dict[int, ProjectSnapshot]:
        if self._projects is not None:
            return self._projects

        if not os.path.exists(self.path):
            raise SnapshotSourceError(f"File degli snapshot non trovato: {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as error:
            raise SnapshotSourceError(f"Impossibile leggere gli snapshot da {self.path}") from error

        if not isinstance(data, list):
            raise SnapshotSourceError(f"Formato snapshot non valido in {self.path}: attesa una lista.")

        projects: Dict[int, ProjectSnapshot] = {}
        for raw in data:
            if not isinstance(raw, dict):
                self.logger.warning(f"Voce di snapshot ignorata (non è un oggetto): {raw!r}")
                continue
            try:
                snapshot = ProjectSnapshot.from_mapping(raw)
            except ValidationError as error:
                self.logger.warning(f"Snapshot scartato: {error}")
                continue
            projects.setdefault(snapshot.id, snapshot)

        self.logger.info(f"Caricati {len(projects)} snapshot di progetto da {self.path}")
        self._projects = projects
        return projects

    def get(self, project_id: int) -> ProjectSnapshot | None:
        return self._load().get(project_id)

    def get_many(self, project_ids: Iterable[int]) -> List[ProjectSnapshot]:
        projects = self._load()
        seen = set()
        result = []
        for project_id in project_ids:
            if project_id in seen or project_id not in projects:
                continue
            seen.add(project_id)
            result.append(projects[project_id])
        return result

    def list_all(self) -> List[ProjectSnapshot]:
        return list(self._load().values())
