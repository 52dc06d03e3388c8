import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from .constants import (
    POPULARITY_WEIGHTS,
    ENGAGEMENT_COMPONENTS,
    ENGAGEMENT_STREAK_CAP,
    ENGAGEMENT_STREAK_WEIGHT,
    ACTIVITY_LEVEL_THRESHOLDS,
    CONTRIBUTION_QUALITY_THRESHOLDS,
)
from .errors import ValidationError
from .metadata import EventMetadata, parse_enum
from .types import (
    InteractionType,
    ContributionType,
    ContributionSize,
    Difficulty,
    HealthTier,
    FeedbackType,
    ActivityLevel,
    ContributionQuality,
    SharePlatform,
)
from .utils import parse_optional_timestamp


@dataclass(frozen=True)
class InteractionEvent:
    user_id: str
    project_id: int
    type: InteractionType
    timestamp: datetime
    metadata: EventMetadata

    @property
    def natural_key(self) -> Tuple[str, int, str, datetime]:
        return (self.user_id, self.project_id, self.type.value, self.timestamp)


@dataclass(frozen=True)
class StoredEvent:
    event_id: int
    event: InteractionEvent


@dataclass(frozen=True)
class EventFilter:
    project_id: Optional[int] = None
    user_id: Optional[str] = None
    type: Optional[InteractionType] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    def matches(self, event: InteractionEvent) -> bool:
        if self.project_id is not None and event.project_id != self.project_id:
            return False
        if self.user_id is not None and event.user_id != self.user_id:
            return False
        if self.type is not None and event.type != self.type:
            return False
        if self.since is not None and event.timestamp < self.since:
            return False
        if self.until is not None and event.timestamp >= self.until:
            return False
        return True


def popularity_composite(views: int, unique_viewers: int, bookmarks: int, shares: int, click_throughs: int) -> float:
    return (
        views * POPULARITY_WEIGHTS["views"]
        + unique_viewers * POPULARITY_WEIGHTS["unique_viewers"]
        + bookmarks * POPULARITY_WEIGHTS["bookmarks"]
        + shares * POPULARITY_WEIGHTS["shares"]
        + click_throughs * POPULARITY_WEIGHTS["click_throughs"]
    )


@dataclass(frozen=True)
class PopularityMetrics:
    project_id: int
    views: int = 0
    unique_viewers: FrozenSet[str] = frozenset()
    total_view_duration: float = 0.0
    bookmarks: int = 0
    shares: int = 0
    shares_by_platform: Dict[SharePlatform, int] = field(default_factory=dict)
    click_throughs: int = 0
    last_updated: Optional[datetime] = None

    @property
    def unique_viewer_count(self) -> int:
        return len(self.unique_viewers)

    @property
    def average_view_duration(self) -> float:
        return self.total_view_duration / self.views if self.views else 0.0

    @property
    def click_through_rate(self) -> float:
        return self.click_throughs / self.views * 100 if self.views else 0.0

    @property
    def composite_score(self) -> float:
        return popularity_composite(
            self.views, self.unique_viewer_count, self.bookmarks, self.shares, self.click_throughs
        )


def _tier_for(score: float, thresholds, fallback: str) -> str:
    for threshold, label in thresholds:
        if score >= threshold:
            return label
    return fallback


@dataclass(frozen=True)
class EngagementMetrics:
    user_id: str
    actions_by_type: Dict[InteractionType, int] = field(default_factory=dict)
    last_active_at: Optional[datetime] = None
    current_streak_days: int = 0
    longest_streak_days: int = 0

    @property
    def total_actions(self) -> int:
        return sum(self.actions_by_type.values())

    @property
    def engagement_score(self) -> int:
        score = 0.0
        for action_types, cap, weight in ENGAGEMENT_COMPONENTS:
            count = sum(self.actions_by_type.get(t, 0) for t in action_types)
            score += min(count / cap, 1.0) * weight
        score += min(self.longest_streak_days / ENGAGEMENT_STREAK_CAP, 1.0) * ENGAGEMENT_STREAK_WEIGHT
        return round(score * 100)

    @property
    def activity_level(self) -> ActivityLevel:
        return _tier_for(self.engagement_score, ACTIVITY_LEVEL_THRESHOLDS, "low")


@dataclass(frozen=True)
class ContributionRecord:
    user_id: str
    project_id: int
    contribution_type: ContributionType
    timestamp: datetime
    size: Optional[ContributionSize] = None

    @property
    def natural_key(self) -> Tuple[str, int, str, datetime]:
        return (self.user_id, self.project_id, self.contribution_type.value, self.timestamp)


@dataclass(frozen=True)
class ContributionImpactMetrics:
    user_id: str
    total_contributions: int = 0
    by_type: Dict[ContributionType, int] = field(default_factory=dict)
    projects_contributed: int = 0
    impact_score: float = 0.0
    helpful_votes: int = 0

    @property
    def contribution_quality(self) -> ContributionQuality:
        return _tier_for(min(self.impact_score, 100.0), CONTRIBUTION_QUALITY_THRESHOLDS, "beginner")


@dataclass(frozen=True)
class ProjectCommunityMetrics:
    """
    Rating e discussione di un progetto: un solo voto per utente (vale il più
    recente), distribuzione 1-5, review con i relativi voti utili, commenti e risposte.
    """
    project_id: int
    total_ratings: int = 0
    average_rating: float = 0.0
    rating_distribution: Dict[int, int] = field(default_factory=dict)
    reviews: int = 0
    review_helpful_votes: int = 0
    comments: int = 0
    replies: int = 0


@dataclass(frozen=True)
class CommunityHealthScore:
    project_id: int
    responsiveness: int
    activity: int
    diversity: int
    documentation: int
    overall: int
    tier: HealthTier


def _as_str_tuple(raw: Any) -> Tuple[str, ...]:
    if isinstance(raw, str):
        return (raw,)
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(str(item) for item in raw if item)


def _as_str(raw: Any) -> str:
    return raw if isinstance(raw, str) else ""


def _as_optional_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return None


def _as_optional_float(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _as_int_tuple(raw: Any) -> Optional[Tuple[int, ...]]:
    if not isinstance(raw, (list, tuple)):
        return None
    parsed = (_as_optional_int(item) for item in raw)
    return tuple(value for value in parsed if value is not None and value >= 0)


def _as_optional_difficulty(raw: Any) -> Optional[Difficulty]:
    if not raw:
        return None
    try:
        return parse_enum(Difficulty, raw, "difficulty")
    except ValidationError:
        return None


@dataclass(frozen=True)
class ProjectSnapshot:
    id: int
    name: str = ""
    full_name: str = ""
    language: Optional[str] = None
    secondary_languages: Tuple[str, ...] = ()
    topics: Tuple[str, ...] = ()
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    good_first_issues: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    description: str = ""
    has_readme: bool = False
    has_contributing: bool = False
    has_license: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    commits_last_90_days: Optional[int] = None
    releases_last_year: Optional[int] = None
    contributor_contributions: Optional[Tuple[int, ...]] = None
    avg_first_response_hours: Optional[float] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ProjectSnapshot":
        """
        Costruisce uno snapshot a partire da un dizionario nel formato
        dell'API GitHub (stargazers_count, forks_count, license, ...).
        I campi opzionali assenti o malformati degradano ai default neutri.
        """
        project_id = raw.get("id")
        if isinstance(project_id, bool) or not isinstance(project_id, int):
            raise ValidationError(f"Snapshot di progetto senza id intero: {project_id!r}")

        contributors = raw.get("contributor_contributions")
        if contributors is None and isinstance(raw.get("contributors"), list):
            contributors = [c.get("contributions") for c in raw["contributors"] if isinstance(c, dict)]

        return cls(
            id=project_id,
            name=_as_str(raw.get("name")),
            full_name=_as_str(raw.get("full_name")),
            language=_as_str(raw.get("language")) or None,
            secondary_languages=_as_str_tuple(raw.get("secondary_languages")),
            topics=_as_str_tuple(raw.get("topics")),
            stars=_as_optional_int(raw.get("stars", raw.get("stargazers_count"))) or 0,
            forks=_as_optional_int(raw.get("forks", raw.get("forks_count"))) or 0,
            open_issues=_as_optional_int(raw.get("open_issues", raw.get("open_issues_count"))) or 0,
            good_first_issues=_as_optional_int(raw.get("good_first_issues")),
            difficulty=_as_optional_difficulty(raw.get("difficulty")),
            description=_as_str(raw.get("description")),
            has_readme=bool(raw.get("has_readme", False)),
            has_contributing=bool(raw.get("has_contributing", False)),
            has_license=bool(raw.get("has_license", raw.get("license"))),
            created_at=parse_optional_timestamp(raw.get("created_at")),
            updated_at=parse_optional_timestamp(raw.get("updated_at")),
            pushed_at=parse_optional_timestamp(raw.get("pushed_at")),
            commits_last_90_days=_as_optional_int(raw.get("commits_last_90_days")),
            releases_last_year=_as_optional_int(raw.get("releases_last_year")),
            contributor_contributions=_as_int_tuple(contributors),
            avg_first_response_hours=_as_optional_float(raw.get("avg_first_response_hours")),
        )


def _as_lower_frozenset(raw: Any, field_name: str) -> FrozenSet[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str) or not isinstance(raw, (list, tuple, set, frozenset)):
        raise ValidationError(f"Il campo '{field_name}' deve essere una lista, ricevuto {type(raw).__name__}.")
    return frozenset(str(item).strip().lower() for item in raw if str(item).strip())


def _as_id_frozenset(raw: Any) -> FrozenSet[int]:
    if raw is None:
        return frozenset()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple, set, frozenset)):
        raise ValidationError("exclude_project_ids deve essere una lista di id.")
    if any(isinstance(pid, bool) or not isinstance(pid, int) for pid in raw):
        raise ValidationError(f"exclude_project_ids contiene id non interi: {raw!r}")
    return frozenset(raw)


@dataclass(frozen=True)
class UserPreferenceProfile:
    languages: FrozenSet[str] = frozenset()
    topics: FrozenSet[str] = frozenset()
    min_stars: int = 0
    difficulty: Difficulty = Difficulty.ANY
    exclude_project_ids: FrozenSet[int] = frozenset()

    def __post_init__(self):
        if isinstance(self.min_stars, bool) or not isinstance(self.min_stars, int) or self.min_stars < 0:
            raise ValidationError(f"min_stars non valido: {self.min_stars!r}")
        if not isinstance(self.difficulty, Difficulty):
            raise ValidationError(f"difficulty non valida: {self.difficulty!r}")
        object.__setattr__(self, "languages", _as_lower_frozenset(self.languages, "languages"))
        object.__setattr__(self, "topics", _as_lower_frozenset(self.topics, "topics"))
        object.__setattr__(self, "exclude_project_ids", _as_id_frozenset(self.exclude_project_ids))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "UserPreferenceProfile":
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Profilo di preferenze non valido: {type(raw).__name__}")

        difficulty = raw.get("difficulty", Difficulty.ANY)
        return cls(
            languages=_as_lower_frozenset(raw.get("languages"), "languages"),
            topics=_as_lower_frozenset(raw.get("topics"), "topics"),
            min_stars=raw.get("min_stars", raw.get("minStars", 0)),
            difficulty=parse_enum(Difficulty, difficulty, "difficulty"),
            exclude_project_ids=_as_id_frozenset(raw.get("exclude_project_ids", raw.get("excludeProjectIds"))),
        )


@dataclass(frozen=True)
class Recommendation:
    project: ProjectSnapshot
    score: float
    reasons: Tuple[str, ...] = ()
    popularity: float = 0.0


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    score: float
    contributions: int
    reviews_count: int
    helpful_votes: int
    streak: int = 0


@dataclass(frozen=True)
class RecommendationFeedback:
    user_id: str
    project_id: int
    feedback_type: FeedbackType
    timestamp: datetime
