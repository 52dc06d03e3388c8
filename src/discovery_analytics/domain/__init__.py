from .entities import (
    InteractionEvent,
    StoredEvent,
    EventFilter,
    PopularityMetrics,
    EngagementMetrics,
    ContributionRecord,
    ContributionImpactMetrics,
    CommunityHealthScore,
    ProjectCommunityMetrics,
    ProjectSnapshot,
    UserPreferenceProfile,
    Recommendation,
    LeaderboardEntry,
    RecommendationFeedback,
)
from .errors import DomainError, ValidationError, NotFoundError
from .health import calculate_community_health, summarize_community_health
from .interfaces import (
    IEventRepository,
    IEventSubscriber,
    IEventArchive,
    IProjectSnapshotProvider,
    IIdentityProvider,
)
from .services import extract_interaction_event, make_event
from .types import (
    InteractionType,
    ContributionType,
    ContributionSize,
    Difficulty,
    HealthTier,
    LeaderboardKind,
    SharePlatform,
    FeedbackType,
)

__all__ = [
    "InteractionEvent",
    "StoredEvent",
    "EventFilter",
    "PopularityMetrics",
    "EngagementMetrics",
    "ContributionRecord",
    "ContributionImpactMetrics",
    "CommunityHealthScore",
    "ProjectCommunityMetrics",
    "ProjectSnapshot",
    "UserPreferenceProfile",
    "Recommendation",
    "LeaderboardEntry",
    "RecommendationFeedback",
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "calculate_community_health",
    "summarize_community_health",
    "IEventRepository",
    "IEventSubscriber",
    "IEventArchive",
    "IProjectSnapshotProvider",
    "IIdentityProvider",
    "extract_interaction_event",
    "make_event",
    "InteractionType",
    "ContributionType",
    "ContributionSize",
    "Difficulty",
    "HealthTier",
    "LeaderboardKind",
    "SharePlatform",
    "FeedbackType",
]
