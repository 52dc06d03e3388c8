import logging
import math
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Union

from ..domain.entities import InteractionEvent, PopularityMetrics, popularity_composite
from ..domain.errors import ValidationError
from ..domain.interfaces import IEventSubscriber
from ..domain.metadata import ShareMetadata, ViewMetadata, parse_enum
from ..domain.types import InteractionType, SharePlatform
from ..domain.utils import utc_now, to_utc
from .locks import KeyedStateStore


class _ProjectPopularity:
    def __init__(self, project_id: int):
        self.project_id = project_id
        self.views = 0
        self.unique_viewers: Set[str] = set()
        self.total_view_duration = 0.0
        self.bookmarks = 0
        self.shares = 0
        self.shares_by_platform: Dict[SharePlatform, int] = {}
        self.click_throughs = 0
        self.last_updated: Optional[datetime] = None
        self.seen_event_ids: Set[int] = set()

    def touch(self, at: Optional[datetime]) -> None:
        moment = to_utc(at) if at is not None else utc_now()
        if self.last_updated is None or moment > self.last_updated:
            self.last_updated = moment

    def composite_score(self) -> float:
        return popularity_composite(
            self.views, len(self.unique_viewers), self.bookmarks, self.shares, self.click_throughs
        )

    def snapshot(self) -> PopularityMetrics:
        return PopularityMetrics(
            project_id=self.project_id,
            views=self.views,
            unique_viewers=frozenset(self.unique_viewers),
            total_view_duration=self.total_view_duration,
            bookmarks=self.bookmarks,
            shares=self.shares,
            shares_by_platform=dict(self.shares_by_platform),
            click_throughs=self.click_throughs,
            last_updated=self.last_updated,
        )


def _check_project_id(project_id) -> None:
    if isinstance(project_id, bool) or not isinstance(project_id, int):
        raise ValidationError(f"projectId non intero: {project_id!r}")


def validate_limit(limit) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError(f"Limite non valido: {limit!r} (deve essere un intero > 0)")
    return limit


class PopularityAggregator(IEventSubscriber):
    def __init__(self, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._projects: KeyedStateStore[int, _ProjectPopularity] = KeyedStateStore(_ProjectPopularity)

    def track_view(
        self,
        project_id: int,
        user_id: str,
        duration_seconds: Optional[float] = None,
        at: Optional[datetime] = None,
    ) -> None:
        _check_project_id(project_id)
        if not isinstance(user_id, str) or not user_id:
            raise ValidationError(f"userId non valido: {user_id!r}")
        if duration_seconds is not None and (not math.isfinite(duration_seconds) or duration_seconds < 0):
            raise ValidationError(f"Durata non valida: {duration_seconds}")

        with self._projects.locked(project_id) as state:
            self._apply_view(state, user_id, duration_seconds, at)

    def track_bookmark(self, project_id: int, is_bookmarked: bool, at: Optional[datetime] = None) -> None:
        _check_project_id(project_id)
        with self._projects.locked(project_id) as state:
            self._apply_bookmark(state, bool(is_bookmarked), at)

    def track_share(self, project_id: int, at: Optional[datetime] = None, platform=None) -> None:
        _check_project_id(project_id)
        parsed = parse_enum(SharePlatform, platform, "platform") if platform is not None else None
        with self._projects.locked(project_id) as state:
            self._apply_share(state, parsed, at)

    def track_click_through(self, project_id: int, at: Optional[datetime] = None) -> None:
        _check_project_id(project_id)
        with self._projects.locked(project_id) as state:
            state.click_throughs += 1
            state.touch(at)

    def on_event(self, event_id: int, event: InteractionEvent) -> None:
        if event.type not in (
            InteractionType.VIEW,
            InteractionType.BOOKMARK,
            InteractionType.UNBOOKMARK,
            InteractionType.SHARE,
            InteractionType.CLICK_THROUGH,
        ):
            return

        with self._projects.locked(event.project_id) as state:
            if event_id in state.seen_event_ids:
                self.logger.debug(f"Evento {event_id} già aggregato per il progetto {event.project_id}.")
                return
            state.seen_event_ids.add(event_id)

            if event.type == InteractionType.VIEW:
                duration = event.metadata.duration_seconds if isinstance(event.metadata, ViewMetadata) else None
                self._apply_view(state, event.user_id, duration, event.timestamp)
            elif event.type == InteractionType.BOOKMARK:
                self._apply_bookmark(state, True, event.timestamp)
            elif event.type == InteractionType.UNBOOKMARK:
                self._apply_bookmark(state, False, event.timestamp)
            elif event.type == InteractionType.SHARE:
                platform = event.metadata.platform if isinstance(event.metadata, ShareMetadata) else None
                self._apply_share(state, platform, event.timestamp)
            else:
                state.click_throughs += 1
                state.touch(event.timestamp)

    def forget(self, event_ids: FrozenSet[int]) -> None:
        self._projects.for_each(lambda state: state.seen_event_ids.difference_update(event_ids))

    def _apply_view(self, state: _ProjectPopularity, user_id: str, duration: Optional[float], at: Optional[datetime]) -> None:
        state.views += 1
        state.unique_viewers.add(user_id)
        if duration is not None:
            state.total_view_duration += duration
        state.touch(at)

    def _apply_share(self, state: _ProjectPopularity, platform: Optional[SharePlatform], at: Optional[datetime]) -> None:
        state.shares += 1
        if platform is not None:
            state.shares_by_platform[platform] = state.shares_by_platform.get(platform, 0) + 1
        state.touch(at)

    def _apply_bookmark(self, state: _ProjectPopularity, is_bookmarked: bool, at: Optional[datetime]) -> None:
        if is_bookmarked:
            state.bookmarks += 1
        elif state.bookmarks > 0:
            state.bookmarks -= 1
        else:
            self.logger.warning(
                f"Rimozione bookmark su progetto {state.project_id} con contatore a 0: valore mantenuto a 0."
            )
        state.touch(at)

    def get_metrics(self, project_id: int) -> PopularityMetrics:
        with self._projects.locked_existing(project_id) as state:
            if state is None:
                return PopularityMetrics(project_id=project_id)
            return state.snapshot()

    def composite_scores(self, project_ids: Iterable[int]) -> Dict[int, float]:
        scores: Dict[int, float] = {}
        for project_id in project_ids:
            if project_id in scores:
                continue
            with self._projects.locked_existing(project_id) as state:
                scores[project_id] = state.composite_score() if state is not None else 0.0
        return scores

    def get_top_projects(self, project_ids: Iterable[int], limit: int) -> List[int]:
        validate_limit(limit)
        scores = self.composite_scores(project_ids)
        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [project_id for project_id, _ in ranked[:limit]]

    def tracked_projects(self) -> List[int]:
        return sorted(self._projects.keys())
