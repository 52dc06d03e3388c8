import logging
from datetime import date, datetime
from typing import Dict, FrozenSet, Optional, Set, Union

from ..domain.entities import EngagementMetrics, InteractionEvent
from ..domain.errors import ValidationError
from ..domain.interfaces import IEventSubscriber
from ..domain.metadata import parse_enum
from ..domain.services import next_streak
from ..domain.types import InteractionType
from ..domain.utils import calendar_day, to_utc, utc_now
from .locks import KeyedStateStore


class _UserEngagement:
    def __init__(self, user_id: str):
        self.user_id = user_id
        self.actions_by_type: Dict[InteractionType, int] = {}
        self.last_active_at: Optional[datetime] = None
        self.last_active_day: Optional[date] = None
        self.current_streak_days = 0
        self.longest_streak_days = 0
        self.seen_event_ids: Set[int] = set()

    def snapshot(self) -> EngagementMetrics:
        return EngagementMetrics(
            user_id=self.user_id,
            actions_by_type=dict(self.actions_by_type),
            last_active_at=self.last_active_at,
            current_streak_days=self.current_streak_days,
            longest_streak_days=self.longest_streak_days,
        )


class EngagementAggregator(IEventSubscriber):
    def __init__(self, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._users: KeyedStateStore[str, _UserEngagement] = KeyedStateStore(_UserEngagement)

    def track_action(self, user_id: str, action_type, at: Optional[datetime] = None) -> None:
        if not isinstance(user_id, str) or not user_id:
            raise ValidationError(f"userId non valido: {user_id!r}")
        parsed_type = parse_enum(InteractionType, action_type, "action_type")
        moment = to_utc(at) if at is not None else utc_now()

        with self._users.locked(user_id) as state:
            self._apply(state, parsed_type, moment)

    def on_event(self, event_id: int, event: InteractionEvent) -> None:
        with self._users.locked(event.user_id) as state:
            if event_id in state.seen_event_ids:
                self.logger.debug(f"Evento {event_id} già aggregato per l'utente {event.user_id}.")
                return
            state.seen_event_ids.add(event_id)
            self._apply(state, event.type, event.timestamp)

    def forget(self, event_ids: FrozenSet[int]) -> None:
        self._users.for_each(lambda state: state.seen_event_ids.difference_update(event_ids))

    def _apply(self, state: _UserEngagement, action_type: InteractionType, moment: datetime) -> None:
        state.actions_by_type[action_type] = state.actions_by_type.get(action_type, 0) + 1

        event_day = calendar_day(moment)
        streak, advances = next_streak(state.last_active_day, state.current_streak_days, event_day)
        state.current_streak_days = streak
        if advances:
            state.last_active_day = event_day
        state.longest_streak_days = max(state.longest_streak_days, streak)

        if state.last_active_at is None or moment > state.last_active_at:
            state.last_active_at = moment

    def get_metrics(self, user_id: str) -> EngagementMetrics:
        with self._users.locked_existing(user_id) as state:
            if state is None:
                return EngagementMetrics(user_id=user_id)
            return state.snapshot()
