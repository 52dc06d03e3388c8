from enum import Enum
from typing import Literal


class InteractionType(Enum):
    VIEW = "view"
    BOOKMARK = "bookmark"
    UNBOOKMARK = "unbookmark"
    SHARE = "share"
    CLICK_THROUGH = "click_through"
    COMMENT = "comment"
    RATE = "rate"
    REVIEW = "review"
    CONTRIBUTION = "contribution"


class ContributionType(Enum):
    PULL_REQUEST = "pull_request"
    ISSUE = "issue"
    COMMIT = "commit"
    REVIEW = "review"
    DOCUMENTATION = "documentation"


class ContributionSize(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Difficulty(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ANY = "any"


class HealthTier(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class LeaderboardKind(Enum):
    CONTRIBUTIONS = "contributions"
    REVIEWS = "reviews"
    HELPFUL = "helpful"


class SharePlatform(Enum):
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    REDDIT = "reddit"
    COPY = "copy"


class FeedbackType(Enum):
    INTERESTED = "interested"
    NOT_INTERESTED = "not_interested"
    DISMISSED = "dismissed"


ActivityLevel = Literal["low", "medium", "high", "very_high"]
"""
Livello di attività di un utente, derivato dall'engagement score (0-100).

Valori possibili:
- very_high: score >= 75
- high:      score >= 50
- medium:    score >= 25
- low:       tutto il resto (incluso l'utente mai visto)
"""

ContributionQuality = Literal["beginner", "intermediate", "advanced", "expert"]
"""
Fascia qualitativa di un contributore, calcolata sull'impact score
saturato a 100 (>= 80 expert, >= 60 advanced, >= 30 intermediate).
"""
