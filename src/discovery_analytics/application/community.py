import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Set, Tuple, Union

from ..domain.entities import InteractionEvent, ProjectCommunityMetrics
from ..domain.errors import ValidationError
from ..domain.interfaces import IEventSubscriber
from ..domain.metadata import CommentMetadata, RateMetadata, ReviewMetadata, parse_rating
from ..domain.types import InteractionType
from ..domain.utils import parse_timestamp, utc_now
from .locks import KeyedStateStore


class _ProjectCommunity:
    def __init__(self, project_id: int):
        self.project_id = project_id
        # utente -> (timestamp, rating)
        self.ratings: Dict[str, Tuple[datetime, int]] = {}
        # utente -> (timestamp, voti utili della review più recente)
        self.reviews: Dict[str, Tuple[datetime, int]] = {}
        self.comments = 0
        self.replies = 0
        self.seen_event_ids: Set[int] = set()

    def snapshot(self) -> ProjectCommunityMetrics:
        values = [rating for _, rating in self.ratings.values()]
        if not values:
            average, distribution = 0.0, {}
        else:
            average = round(sum(values) / len(values), 1)
            distribution = {star: values.count(star) for star in range(1, 6)}

        return ProjectCommunityMetrics(
            project_id=self.project_id,
            total_ratings=len(values),
            average_rating=average,
            rating_distribution=distribution,
            reviews=len(self.reviews),
            review_helpful_votes=sum(votes for _, votes in self.reviews.values()),
            comments=self.comments,
            replies=self.replies,
        )


def _keep_latest(slots: Dict[str, Tuple[datetime, int]], user_id: str, candidate: Tuple[datetime, int]) -> None:
    # a parità di timestamp vince il valore più alto, indipendentemente dall'ordine di arrivo
    current = slots.get(user_id)
    if current is None or candidate > current:
        slots[user_id] = candidate


class CommunityAggregator(IEventSubscriber):
    """Rating, review e commenti per progetto, alimentati dagli eventi rate/review/comment."""

    def __init__(self, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._projects: KeyedStateStore[int, _ProjectCommunity] = KeyedStateStore(_ProjectCommunity)

    def add_rating(self, project_id: int, user_id: str, rating, at: Optional[datetime] = None) -> None:
        if isinstance(project_id, bool) or not isinstance(project_id, int):
            raise ValidationError(f"projectId non intero: {project_id!r}")
        if not isinstance(user_id, str) or not user_id:
            raise ValidationError(f"userId non valido: {user_id!r}")
        value = parse_rating(rating)
        moment = parse_timestamp(at) if at is not None else utc_now()

        with self._projects.locked(project_id) as state:
            _keep_latest(state.ratings, user_id, (moment, value))

    def on_event(self, event_id: int, event: InteractionEvent) -> None:
        if event.type not in (InteractionType.RATE, InteractionType.REVIEW, InteractionType.COMMENT):
            return

        with self._projects.locked(event.project_id) as state:
            if isinstance(event.metadata, (RateMetadata, ReviewMetadata)):
                _keep_latest(state.ratings, event.user_id, (event.timestamp, event.metadata.rating))
            if isinstance(event.metadata, ReviewMetadata):
                _keep_latest(state.reviews, event.user_id, (event.timestamp, event.metadata.helpful_votes))
            if isinstance(event.metadata, CommentMetadata):
                if event_id in state.seen_event_ids:
                    self.logger.debug(f"Commento {event_id} già aggregato per il progetto {event.project_id}.")
                    return
                state.seen_event_ids.add(event_id)
                state.comments += 1
                if event.metadata.parent_id is not None:
                    state.replies += 1

    def forget(self, event_ids: FrozenSet[int]) -> None:
        self._projects.for_each(lambda state: state.seen_event_ids.difference_update(event_ids))

    def get_metrics(self, project_id: int) -> ProjectCommunityMetrics:
        with self._projects.locked_existing(project_id) as state:
            if state is None:
                return ProjectCommunityMetrics(project_id=project_id)
            return state.snapshot()
