import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..domain.constants import RECOMMENDATION_WEIGHTS, POPULARITY_SATURATION, DEFAULT_RECOMMENDATION_LIMIT
from ..domain.entities import ProjectSnapshot, Recommendation, UserPreferenceProfile
from ..domain.errors import ValidationError
from ..domain.scoring import rank_recommendations, rank_trending
from .popularity import PopularityAggregator, validate_limit


def coerce_preferences(preferences: Any) -> UserPreferenceProfile:
    if isinstance(preferences, UserPreferenceProfile):
        return preferences
    if isinstance(preferences, Mapping):
        return UserPreferenceProfile.from_mapping(preferences)
    raise ValidationError(f"Profilo di preferenze non valido: {type(preferences).__name__}")


class RecommendationEngine:
    def __init__(
        self,
        popularity: PopularityAggregator,
        weights: Optional[Dict[str, float]] = None,
        saturation: float = POPULARITY_SATURATION,
        default_limit: int = DEFAULT_RECOMMENDATION_LIMIT,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.popularity = popularity
        self.weights = dict(weights or RECOMMENDATION_WEIGHTS)
        self.saturation = saturation
        self.default_limit = default_limit
        self.logger = logger or logging.getLogger(self.__class__.__name__)

        if set(self.weights) != set(RECOMMENDATION_WEIGHTS):
            raise ValidationError(f"Pesi di raccomandazione incompleti: {sorted(self.weights)}")
        if saturation <= 0:
            raise ValidationError(f"Costante di saturazione non valida: {saturation}")

    def _usable_candidates(self, candidates: Optional[Iterable[Any]]) -> List[ProjectSnapshot]:
        usable = []
        for candidate in candidates or []:
            if isinstance(candidate, ProjectSnapshot):
                usable.append(candidate)
            elif isinstance(candidate, Mapping):
                try:
                    usable.append(ProjectSnapshot.from_mapping(candidate))
                except ValidationError as error:
                    self.logger.warning(f"Candidato scartato: {error}")
            else:
                self.logger.warning(f"Candidato di tipo inatteso ignorato: {type(candidate).__name__}")
        return usable

    def generate_recommendations(
        self,
        candidates: Iterable[Any],
        preferences: Any,
        limit: Optional[int] = None,
    ) -> List[Recommendation]:
        limit = validate_limit(self.default_limit if limit is None else limit)
        profile = coerce_preferences(preferences)
        projects = self._usable_candidates(candidates)

        popularity = self.popularity.composite_scores(p.id for p in projects)
        results = rank_recommendations(projects, profile, popularity, limit, self.weights, self.saturation)

        self.logger.info(f"Generate {len(results)} raccomandazioni su {len(projects)} candidati.")
        return results

    def get_trending_recommendations(self, candidates: Iterable[Any]) -> List[Recommendation]:
        projects = self._usable_candidates(candidates)
        popularity = self.popularity.composite_scores(p.id for p in projects)
        return rank_trending(projects, popularity, self.saturation)
