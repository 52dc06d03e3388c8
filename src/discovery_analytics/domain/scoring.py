from typing import Dict, Iterable, List, Mapping, Tuple

from .constants import (
    RECOMMENDATION_WEIGHTS,
    POPULARITY_SATURATION,
    DIFFICULTY_MISMATCH_SCORE,
    SECONDARY_LANGUAGE_SCORE,
    MAX_REASONS,
)
from .entities import ProjectSnapshot, Recommendation, UserPreferenceProfile
from .types import Difficulty

SIGNAL_ORDER = ("language", "topic", "difficulty", "popularity", "beginner_friendly")


def unique_candidates(candidates: Iterable[ProjectSnapshot]) -> List[ProjectSnapshot]:
    seen = set()
    unique = []
    for project in candidates:
        if not isinstance(project, ProjectSnapshot) or project.id in seen:
            continue
        seen.add(project.id)
        unique.append(project)
    return unique


def estimate_difficulty(project: ProjectSnapshot) -> Difficulty:
    if project.difficulty is not None and project.difficulty != Difficulty.ANY:
        return project.difficulty
    if project.stars < 1000 and project.open_issues < 50:
        return Difficulty.BEGINNER
    if project.stars > 10000 or project.forks > 5000:
        return Difficulty.ADVANCED
    return Difficulty.INTERMEDIATE


def language_signal(project: ProjectSnapshot, preferences: UserPreferenceProfile) -> float:
    if project.language and project.language.lower() in preferences.languages:
        return 1.0
    if any(lang.lower() in preferences.languages for lang in project.secondary_languages):
        return SECONDARY_LANGUAGE_SCORE
    return 0.0


def matched_topics(project: ProjectSnapshot, preferences: UserPreferenceProfile) -> List[str]:
    return sorted({t.lower() for t in project.topics} & preferences.topics)


def topic_signal(project: ProjectSnapshot, preferences: UserPreferenceProfile) -> float:
    return len(matched_topics(project, preferences)) / max(1, len(preferences.topics))


def difficulty_signal(project: ProjectSnapshot, preferences: UserPreferenceProfile) -> float:
    if preferences.difficulty == Difficulty.ANY or estimate_difficulty(project) == preferences.difficulty:
        return 1.0
    return DIFFICULTY_MISMATCH_SCORE


def popularity_signal(popularity: float, saturation: float = POPULARITY_SATURATION) -> float:
    if popularity <= 0:
        return 0.0
    return popularity / (popularity + saturation)


def beginner_friendly_signal(project: ProjectSnapshot) -> float:
    if project.good_first_issues is None or project.open_issues <= 0:
        return 0.0
    return min(max(project.good_first_issues / project.open_issues, 0.0), 1.0)


def compute_signals(
    project: ProjectSnapshot,
    preferences: UserPreferenceProfile,
    popularity: float,
    saturation: float = POPULARITY_SATURATION,
) -> Dict[str, float]:
    return {
        "language": language_signal(project, preferences),
        "topic": topic_signal(project, preferences),
        "difficulty": difficulty_signal(project, preferences),
        "popularity": popularity_signal(popularity, saturation),
        "beginner_friendly": beginner_friendly_signal(project),
    }


def _reason_for(signal: str, project: ProjectSnapshot, preferences: UserPreferenceProfile, value: float) -> str:
    if signal == "language":
        if value >= 1.0:
            return f"Written in {project.language}, one of your preferred languages"
        secondary = [lang for lang in project.secondary_languages if lang.lower() in preferences.languages]
        return f"Also uses {secondary[0]}, one of your preferred languages"
    if signal == "topic":
        return f"Matches your interests: {', '.join(matched_topics(project, preferences)[:2])}"
    if signal == "difficulty":
        level = estimate_difficulty(project).value
        if value >= 1.0 and preferences.difficulty != Difficulty.ANY:
            return f"Suitable for {level} developers"
        return f"{level.capitalize()} level project"
    if signal == "popularity":
        return "Trending in the community"
    return f"{round(value * 100)}% of open issues are good first issues"


def explain(
    project: ProjectSnapshot,
    preferences: UserPreferenceProfile,
    signals: Mapping[str, float],
    weights: Mapping[str, float] = RECOMMENDATION_WEIGHTS,
) -> Tuple[str, ...]:
    contributions = [
        (signals[name] * weights[name], index, name)
        for index, name in enumerate(SIGNAL_ORDER)
        if signals[name] * weights[name] > 0
    ]
    contributions.sort(key=lambda item: (-item[0], item[1]))
    return tuple(
        _reason_for(name, project, preferences, signals[name])
        for _, _, name in contributions[:MAX_REASONS]
    )


def score_project(
    project: ProjectSnapshot,
    preferences: UserPreferenceProfile,
    popularity: float,
    weights: Mapping[str, float] = RECOMMENDATION_WEIGHTS,
    saturation: float = POPULARITY_SATURATION,
) -> Recommendation:
    signals = compute_signals(project, preferences, popularity, saturation)
    score = sum(signals[name] * weights[name] for name in SIGNAL_ORDER)
    return Recommendation(
        project=project,
        score=min(max(score, 0.0), 1.0),
        reasons=explain(project, preferences, signals, weights),
        popularity=popularity,
    )


def rank_recommendations(
    candidates: Iterable[ProjectSnapshot],
    preferences: UserPreferenceProfile,
    popularity_by_project: Mapping[int, float],
    limit: int,
    weights: Mapping[str, float] = RECOMMENDATION_WEIGHTS,
    saturation: float = POPULARITY_SATURATION,
) -> List[Recommendation]:
    eligible = [
        project for project in unique_candidates(candidates)
        if project.id not in preferences.exclude_project_ids and project.stars >= preferences.min_stars
    ]
    scored = [
        score_project(project, preferences, popularity_by_project.get(project.id, 0.0), weights, saturation)
        for project in eligible
    ]
    scored.sort(key=lambda rec: (-rec.score, -rec.popularity, rec.project.id))
    return scored[:limit]


def rank_trending(
    candidates: Iterable[ProjectSnapshot],
    popularity_by_project: Mapping[int, float],
    saturation: float = POPULARITY_SATURATION,
) -> List[Recommendation]:
    trending = []
    for project in unique_candidates(candidates):
        popularity = popularity_by_project.get(project.id, 0.0)
        reason = "Trending in the community" if popularity > 0 else "Newly listed project"
        trending.append(Recommendation(
            project=project,
            score=popularity_signal(popularity, saturation),
            reasons=(reason,),
            popularity=popularity,
        ))
    # sort stabile: a parità di popolarità resta l'ordine di input
    trending.sort(key=lambda rec: -rec.popularity)
    return trending
