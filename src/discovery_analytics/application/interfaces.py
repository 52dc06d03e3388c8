from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

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

class IAnalyticsUseCase(ABC):
    @abstractmethod
    def record_event(self, event: InteractionEvent) -> int:
        pass

    @abstractmethod
    def record_raw_event(self, raw: Dict[str, Any]) -> int:
        pass

    @abstractmethod
    def get_popularity(self, project_id: int) -> PopularityMetrics:
        pass

    @abstractmethod
    def get_top_projects(self, project_ids: Iterable[int], limit: int) -> List[int]:
        pass

    @abstractmethod
    def tracked_projects(self) -> List[int]:
        pass

    @abstractmethod
    def get_engagement(self, user_id: str) -> EngagementMetrics:
        pass

    @abstractmethod
    def get_contribution_impact(self, user_id: str) -> ContributionImpactMetrics:
        pass

    @abstractmethod
    def get_community_metrics(self, project_id: int) -> ProjectCommunityMetrics:
        pass

    @abstractmethod
    def calculate_health_for(self, project_id: int) -> CommunityHealthScore:
        pass

    @abstractmethod
    def generate_recommendations(
        self, candidates: Iterable[Any], preferences: Any, limit: Optional[int] = None
    ) -> List[Recommendation]:
        pass

    @abstractmethod
    def get_trending(self, candidates: Iterable[Any]) -> List[Recommendation]:
        pass

    @abstractmethod
    def get_leaderboard(self, kind: Any = "contributions", limit: Optional[int] = None) -> List[LeaderboardEntry]:
        pass

    @abstractmethod
    def known_projects(self) -> List[ProjectSnapshot]:
        pass

    @abstractmethod
    def prune_events(self, before: datetime) -> int:
        pass
