import logging
from typing import List, Optional, Union

import polars as pl

from ..domain.entities import LeaderboardEntry
from ..domain.errors import NotFoundError
from ..domain.types import ContributionType, LeaderboardKind
from .contributions import ContributionImpactTracker
from .engagement import EngagementAggregator
from .popularity import validate_limit

_SCORE_COLUMN = {
    LeaderboardKind.CONTRIBUTIONS: "impact_score",
    LeaderboardKind.REVIEWS: "reviews_count",
    LeaderboardKind.HELPFUL: "helpful_votes",
}

_SCHEMA = {
    "user_id": pl.Utf8,
    "impact_score": pl.Float64,
    "contributions": pl.Int64,
    "reviews_count": pl.Int64,
    "helpful_votes": pl.Int64,
}


def parse_kind(kind) -> LeaderboardKind:
    if isinstance(kind, LeaderboardKind):
        return kind
    try:
        return LeaderboardKind(str(kind).strip().lower())
    except ValueError:
        allowed = ", ".join(k.value for k in LeaderboardKind)
        raise NotFoundError(f"Leaderboard '{kind}' inesistente (disponibili: {allowed})")


class Leaderboard:
    """Proiezione in sola lettura sul ContributionImpactTracker."""

    def __init__(
        self,
        tracker: ContributionImpactTracker,
        engagement: Optional[EngagementAggregator] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.tracker = tracker
        self.engagement = engagement
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def _build_frame(self) -> pl.DataFrame:
        rows = [
            (
                m.user_id,
                float(m.impact_score),
                m.total_contributions,
                m.by_type.get(ContributionType.REVIEW, 0),
                m.helpful_votes,
            )
            for m in self.tracker.all_metrics()
        ]
        if not rows:
            return pl.DataFrame(schema=_SCHEMA)
        return pl.DataFrame(rows, schema=_SCHEMA, orient="row")

    def get_leaderboard(self, kind="contributions", limit: int = 50) -> List[LeaderboardEntry]:
        board_kind = parse_kind(kind)
        validate_limit(limit)
        score_column = _SCORE_COLUMN[board_kind]

        ranked = (
            self._build_frame()
            .with_columns(pl.col(score_column).cast(pl.Float64).alias("score"))
            .filter(pl.col("score") > 0)
            .sort(["score", "user_id"], descending=[True, False])
            .head(limit)
            .with_row_index("rank", offset=1)
        )
        self.logger.debug(f"Leaderboard '{board_kind.value}' calcolata su {ranked.height} utenti.")

        return [
            LeaderboardEntry(
                rank=row["rank"],
                user_id=row["user_id"],
                score=row["score"],
                contributions=row["contributions"],
                reviews_count=row["reviews_count"],
                helpful_votes=row["helpful_votes"],
                streak=self._streak_for(row["user_id"]),
            )
            for row in ranked.iter_rows(named=True)
        ]

    def _streak_for(self, user_id: str) -> int:
        if self.engagement is None:
            return 0
        return self.engagement.get_metrics(user_id).current_streak_days
