from .types import ContributionType, ContributionSize, InteractionType

# Composite popularity score (ranking dei progetti)
POPULARITY_WEIGHTS = {
    "views": 1.0,
    "unique_viewers": 3.0,
    "bookmarks": 5.0,
    "shares": 4.0,
    "click_throughs": 2.0,
}

# Punteggio di salute della community
HEALTH_WEIGHTS = {
    "responsiveness": 0.30,
    "activity": 0.30,
    "diversity": 0.25,
    "documentation": 0.15,
}

HEALTH_TIER_THRESHOLDS = [
    (80, "excellent"),
    (60, "good"),
    (40, "fair"),
]

NEUTRAL_SUB_SCORE = 50

# Impatto dei contributi
CONTRIBUTION_BASE_WEIGHTS = {
    ContributionType.PULL_REQUEST: 10.0,
    ContributionType.ISSUE: 3.0,
    ContributionType.COMMIT: 2.0,
    ContributionType.REVIEW: 5.0,
    ContributionType.DOCUMENTATION: 4.0,
}

CONTRIBUTION_SIZE_MULTIPLIERS = {
    ContributionSize.SMALL: 1.0,
    ContributionSize.MEDIUM: 1.5,
    ContributionSize.LARGE: 2.0,
}

CONTRIBUTION_QUALITY_THRESHOLDS = [
    (80, "expert"),
    (60, "advanced"),
    (30, "intermediate"),
]

# Raccomandazioni
RECOMMENDATION_WEIGHTS = {
    "language": 0.30,
    "topic": 0.25,
    "difficulty": 0.15,
    "popularity": 0.15,
    "beginner_friendly": 0.15,
}

POPULARITY_SATURATION = 50.0
DIFFICULTY_MISMATCH_SCORE = 0.3
SECONDARY_LANGUAGE_SCORE = 0.5
MAX_REASONS = 3
DEFAULT_RECOMMENDATION_LIMIT = 10
DEFAULT_LEADERBOARD_LIMIT = 50

# Engagement score: (tipi di azione, soglia di saturazione, peso)
ENGAGEMENT_COMPONENTS = [
    ((InteractionType.VIEW,), 100, 0.25),
    ((InteractionType.BOOKMARK,), 20, 0.20),
    ((InteractionType.SHARE,), 20, 0.10),
    ((InteractionType.COMMENT, InteractionType.REVIEW, InteractionType.RATE), 30, 0.20),
    ((InteractionType.CONTRIBUTION,), 10, 0.15),
]
ENGAGEMENT_STREAK_CAP = 30
ENGAGEMENT_STREAK_WEIGHT = 0.10

ACTIVITY_LEVEL_THRESHOLDS = [
    (75, "very_high"),
    (50, "high"),
    (25, "medium"),
]
