from .service import AnalyticsService
from .interfaces import IAnalyticsUseCase
from .event_store import EventStore, EventQuery
from .popularity import PopularityAggregator
from .engagement import EngagementAggregator
from .contributions import ContributionImpactTracker
from .community import CommunityAggregator
from .leaderboard import Leaderboard
from .recommendations import RecommendationEngine
from .feedback import FeedbackRecorder
from .errors import AnalyticsError, ArchiveError, SnapshotSourceError

__all__ = [
    "AnalyticsService",
    "IAnalyticsUseCase",
    "EventStore",
    "EventQuery",
    "PopularityAggregator",
    "EngagementAggregator",
    "ContributionImpactTracker",
    "CommunityAggregator",
    "Leaderboard",
    "RecommendationEngine",
    "FeedbackRecorder",
    "AnalyticsError",
    "ArchiveError",
    "SnapshotSourceError",
]
