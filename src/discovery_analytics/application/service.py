import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..config import AnalyticsConfig
from ..domain.entities import (
    CommunityHealthScore,
    ContributionImpactMetrics,
    EngagementMetrics,
    InteractionEvent,
    LeaderboardEntry,
    PopularityMetrics,
    ProjectCommunityMetrics,
    ProjectSnapshot,
    Recommendation,
)
from ..domain.errors import NotFoundError
from ..domain.health import calculate_community_health, summarize_community_health
from ..domain.interfaces import IEventArchive, IEventRepository, IIdentityProvider, IProjectSnapshotProvider
from ..domain.services import make_event
from ..domain.utils import parse_timestamp, utc_now
from .community import CommunityAggregator
from .contributions import ContributionImpactTracker
from .engagement import EngagementAggregator
from .errors import AnalyticsError
from .event_store import EventStore
from .feedback import FeedbackRecorder
from .interfaces import IAnalyticsUseCase
from .leaderboard import Leaderboard
from .popularity import PopularityAggregator
from .recommendations import RecommendationEngine

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class AnalyticsService(IAnalyticsUseCase):
    """
    Punto d'ingresso unico del motore: inoltra le interazioni all'EventStore,
    che le distribuisce in modo sincrono agli aggregatori sottoscritti, ed
    espone le letture (metriche, health, raccomandazioni, leaderboard).
    """

    def __init__(
        self,
        config: AnalyticsConfig,
        event_store: EventStore,
        popularity: PopularityAggregator,
        engagement: EngagementAggregator,
        contributions: ContributionImpactTracker,
        community: CommunityAggregator,
        leaderboard: Leaderboard,
        recommendations: RecommendationEngine,
        feedback: FeedbackRecorder,
        snapshot_provider: Optional[IProjectSnapshotProvider] = None,
        identity_provider: Optional[IIdentityProvider] = None,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[LoggerLike] = None,
    ):
        self.config = config
        self.event_store = event_store
        self.popularity = popularity
        self.engagement = engagement
        self.contributions = contributions
        self.community = community
        self.leaderboard = leaderboard
        self.recommendations = recommendations
        self.feedback = feedback
        self.snapshot_provider = snapshot_provider
        self.identity_provider = identity_provider
        self.clock = clock
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def create(
        cls,
        config: AnalyticsConfig,
        repository: IEventRepository,
        archive: Optional[IEventArchive] = None,
        snapshot_provider: Optional[IProjectSnapshotProvider] = None,
        identity_provider: Optional[IIdentityProvider] = None,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[LoggerLike] = None,
    ) -> "AnalyticsService":
        event_store = EventStore(repository, archive=archive, logger=logger)
        popularity = PopularityAggregator(logger=logger)
        engagement = EngagementAggregator(logger=logger)
        contributions = ContributionImpactTracker(logger=logger)
        community = CommunityAggregator(logger=logger)

        for subscriber in (popularity, engagement, contributions, community):
            event_store.subscribe(subscriber)

        return cls(
            config=config,
            event_store=event_store,
            popularity=popularity,
            engagement=engagement,
            contributions=contributions,
            community=community,
            leaderboard=Leaderboard(contributions, engagement, logger=logger),
            recommendations=RecommendationEngine(
                popularity,
                weights=config.recommendation_weights,
                saturation=config.popularity_saturation,
                default_limit=config.default_recommendation_limit,
                logger=logger,
            ),
            feedback=FeedbackRecorder(logger=logger),
            snapshot_provider=snapshot_provider,
            identity_provider=identity_provider,
            clock=clock,
            logger=logger,
        )

    # --- Eventi ---

    def record_event(self, event: InteractionEvent) -> int:
        return self.event_store.record(event)

    def record_raw_event(self, raw: Dict[str, Any]) -> int:
        return self.event_store.record_raw(raw)

    def record_for_current_user(
        self,
        project_id: int,
        event_type: Any,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> int:
        if self.identity_provider is None:
            raise AnalyticsError("Nessun identity provider configurato: utente corrente sconosciuto.")
        user_id = self.identity_provider.current_user_id()
        event = make_event(user_id, project_id, event_type, metadata, timestamp or self.clock())
        return self.event_store.record(event)

    def prune_events(self, before: datetime) -> int:
        return self.event_store.prune(before)

    def apply_retention(self) -> int:
        if self.config.retention_days is None:
            self.logger.debug("Retention illimitata: nessun evento rimosso.")
            return 0
        cutoff = self.clock() - timedelta(days=self.config.retention_days)
        return self.event_store.prune(cutoff)

    # --- Metriche ---

    def get_popularity(self, project_id: int) -> PopularityMetrics:
        return self.popularity.get_metrics(project_id)

    def get_top_projects(self, project_ids: Iterable[int], limit: int) -> List[int]:
        return self.popularity.get_top_projects(project_ids, limit)

    def tracked_projects(self) -> List[int]:
        return self.popularity.tracked_projects()

    def get_engagement(self, user_id: str) -> EngagementMetrics:
        return self.engagement.get_metrics(user_id)

    def get_contribution_impact(self, user_id: str) -> ContributionImpactMetrics:
        return self.contributions.get_contribution_impact_metrics(user_id)

    def track_contribution(self, user_id: str, project_id: int, contribution_type: Any, size: Any = None, timestamp: Any = None) -> bool:
        return self.contributions.track_contribution(
            user_id, project_id, contribution_type, size=size, timestamp=timestamp or self.clock()
        )

    def record_helpful_vote(self, author_id: str, voter_id: str, review_key: str) -> bool:
        return self.contributions.record_helpful_vote(author_id, voter_id, review_key)

    def get_community_metrics(self, project_id: int) -> ProjectCommunityMetrics:
        return self.community.get_metrics(project_id)

    def get_leaderboard(self, kind: Any = "contributions", limit: Optional[int] = None) -> List[LeaderboardEntry]:
        return self.leaderboard.get_leaderboard(
            kind, self.config.default_leaderboard_limit if limit is None else limit
        )

    # --- Community health ---

    def calculate_health(self, project: ProjectSnapshot) -> CommunityHealthScore:
        return calculate_community_health(project, now=self.clock())

    def calculate_health_for(self, project_id: int) -> CommunityHealthScore:
        project = self._require_provider().get(project_id)
        if project is None:
            raise NotFoundError(f"Progetto {project_id} non presente tra gli snapshot.")
        return self.calculate_health(project)

    def health_summary(self) -> Dict[str, float]:
        return summarize_community_health(self.known_projects(), now=self.clock())

    # --- Raccomandazioni ---

    def generate_recommendations(
        self, candidates: Iterable[Any], preferences: Any, limit: Optional[int] = None
    ) -> List[Recommendation]:
        return self.recommendations.generate_recommendations(candidates, preferences, limit)

    def recommend_for(self, project_ids: Iterable[int], preferences: Any, limit: Optional[int] = None) -> List[Recommendation]:
        wanted = list(project_ids)
        candidates = self._require_provider().get_many(wanted)
        if len(candidates) < len(set(wanted)):
            self.logger.debug(f"{len(set(wanted)) - len(candidates)} progetti richiesti senza snapshot: ignorati.")
        return self.recommendations.generate_recommendations(candidates, preferences, limit)

    def get_trending(self, candidates: Iterable[Any]) -> List[Recommendation]:
        return self.recommendations.get_trending_recommendations(candidates)

    def record_feedback(self, user_id: str, project_id: int, feedback_type: Any, timestamp: Any = None) -> bool:
        moment = parse_timestamp(timestamp) if timestamp is not None else self.clock()
        return self.feedback.record_feedback(user_id, project_id, feedback_type, moment)

    def known_projects(self) -> List[ProjectSnapshot]:
        if self.snapshot_provider is None:
            return []
        return self.snapshot_provider.list_all()

    def _require_provider(self) -> IProjectSnapshotProvider:
        if self.snapshot_provider is None:
            raise AnalyticsError("Nessuna sorgente di snapshot dei progetti configurata.")
        return self.snapshot_provider
