import logging
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

from ..domain.entities import ContributionImpactMetrics, ContributionRecord, InteractionEvent
from ..domain.errors import ValidationError
from ..domain.interfaces import IEventSubscriber
from ..domain.metadata import ContributionMetadata, parse_enum
from ..domain.services import contribution_impact
from ..domain.types import ContributionSize, ContributionType, InteractionType
from ..domain.utils import parse_timestamp, utc_now
from .locks import KeyedStateStore


class _UserContributions:
    def __init__(self, user_id: str):
        self.user_id = user_id
        self.records: List[ContributionRecord] = []
        self.record_keys: Set[Tuple] = set()
        self.by_type: Dict[ContributionType, int] = {}
        self.projects: Set[int] = set()
        self.impact_score = 0.0
        self.helpful_votes = 0
        self.vote_keys: Set[Tuple[str, str]] = set()
        self.seen_event_ids: Set[int] = set()

    def add(self, record: ContributionRecord) -> bool:
        if record.natural_key in self.record_keys:
            return False
        self.record_keys.add(record.natural_key)
        self.records.append(record)
        self.by_type[record.contribution_type] = self.by_type.get(record.contribution_type, 0) + 1
        self.projects.add(record.project_id)
        # aggiornamento incrementale: lo score non viene mai ricalcolato da zero
        self.impact_score += contribution_impact(record.contribution_type, record.size)
        return True

    def snapshot(self) -> ContributionImpactMetrics:
        return ContributionImpactMetrics(
            user_id=self.user_id,
            total_contributions=len(self.records),
            by_type=dict(self.by_type),
            projects_contributed=len(self.projects),
            impact_score=self.impact_score,
            helpful_votes=self.helpful_votes,
        )


class ContributionImpactTracker(IEventSubscriber):
    def __init__(self, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._users: KeyedStateStore[str, _UserContributions] = KeyedStateStore(_UserContributions)

    def track_contribution(
        self,
        user_id: str,
        project_id: int,
        contribution_type,
        size=None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        if not isinstance(user_id, str) or not user_id:
            raise ValidationError(f"userId non valido: {user_id!r}")
        if isinstance(project_id, bool) or not isinstance(project_id, int):
            raise ValidationError(f"projectId non intero: {project_id!r}")

        record = ContributionRecord(
            user_id=user_id,
            project_id=project_id,
            contribution_type=parse_enum(ContributionType, contribution_type, "contribution_type"),
            size=parse_enum(ContributionSize, size, "size") if size is not None else None,
            timestamp=parse_timestamp(timestamp) if timestamp is not None else utc_now(),
        )
        with self._users.locked(user_id) as state:
            return self._add(state, record)

    def on_event(self, event_id: int, event: InteractionEvent) -> None:
        if event.type != InteractionType.CONTRIBUTION or not isinstance(event.metadata, ContributionMetadata):
            return

        record = ContributionRecord(
            user_id=event.user_id,
            project_id=event.project_id,
            contribution_type=event.metadata.contribution_type,
            size=event.metadata.size,
            timestamp=event.timestamp,
        )
        with self._users.locked(event.user_id) as state:
            if event_id in state.seen_event_ids:
                return
            state.seen_event_ids.add(event_id)
            self._add(state, record)

    def forget(self, event_ids: FrozenSet[int]) -> None:
        self._users.for_each(lambda state: state.seen_event_ids.difference_update(event_ids))

    def _add(self, state: _UserContributions, record: ContributionRecord) -> bool:
        created = state.add(record)
        if not created:
            self.logger.info(
                f"Contributo duplicato ignorato: {record.user_id} / {record.project_id} / "
                f"{record.contribution_type.value} @ {record.timestamp.isoformat()}"
            )
        return created

    def record_helpful_vote(self, author_id: str, voter_id: str, review_key: str) -> bool:
        if not isinstance(author_id, str) or not author_id or not isinstance(voter_id, str) or not voter_id:
            raise ValidationError("author_id e voter_id sono obbligatori.")
        if author_id == voter_id:
            raise ValidationError("Un utente non può votare come utile la propria review.")

        with self._users.locked(author_id) as state:
            vote_key = (voter_id, str(review_key))
            if vote_key in state.vote_keys:
                return False
            state.vote_keys.add(vote_key)
            state.helpful_votes += 1
            return True

    def get_contribution_impact_metrics(self, user_id: str) -> ContributionImpactMetrics:
        with self._users.locked_existing(user_id) as state:
            if state is None:
                return ContributionImpactMetrics(user_id=user_id)
            return state.snapshot()

    def records(self, user_id: str) -> List[ContributionRecord]:
        with self._users.locked_existing(user_id) as state:
            return list(state.records) if state is not None else []

    def all_metrics(self) -> List[ContributionImpactMetrics]:
        return [self.get_contribution_impact_metrics(user_id) for user_id in self._users.keys()]
