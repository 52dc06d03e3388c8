import math
from datetime import datetime
from typing import Dict, Iterable, Optional

from .constants import HEALTH_WEIGHTS, HEALTH_TIER_THRESHOLDS, NEUTRAL_SUB_SCORE
from .entities import CommunityHealthScore, ProjectSnapshot
from .types import HealthTier
from .utils import clamp, to_utc

FAST_RESPONSE_HOURS = 24.0
SLOW_RESPONSE_HOURS = 720.0
STALE_AFTER_DAYS = 365.0
FREQUENCY_REFERENCE = 200.0
RELEASE_WEIGHT = 4
DIVERSITY_REFERENCE_CONTRIBUTORS = 10


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _reference_time(project: ProjectSnapshot, now: Optional[datetime]) -> Optional[datetime]:
    if now is not None:
        return to_utc(now)
    candidates = [to_utc(t) for t in (project.pushed_at, project.updated_at, project.created_at) if t is not None]
    return max(candidates) if candidates else None


def responsiveness_score(project: ProjectSnapshot) -> float:
    hours = project.avg_first_response_hours
    if hours is None or hours < 0:
        return NEUTRAL_SUB_SCORE
    if hours <= FAST_RESPONSE_HOURS:
        return 100.0
    span = SLOW_RESPONSE_HOURS - FAST_RESPONSE_HOURS
    return clamp(100.0 * (1 - (hours - FAST_RESPONSE_HOURS) / span))


def activity_score(project: ProjectSnapshot, now: Optional[datetime] = None) -> float:
    parts = []

    last_activity = project.pushed_at or project.updated_at
    reference = _reference_time(project, now)
    if last_activity is not None and reference is not None:
        days = max((reference - to_utc(last_activity)).total_seconds() / 86400, 0.0)
        parts.append(clamp(100.0 * (1 - days / STALE_AFTER_DAYS)))

    if project.commits_last_90_days is not None or project.releases_last_year is not None:
        volume = max(project.commits_last_90_days or 0, 0) + RELEASE_WEIGHT * max(project.releases_last_year or 0, 0)
        parts.append(clamp(100.0 * math.log1p(volume) / math.log1p(FREQUENCY_REFERENCE)))

    if not parts:
        return NEUTRAL_SUB_SCORE
    return sum(parts) / len(parts)


def diversity_score(project: ProjectSnapshot) -> float:
    if project.contributor_contributions is None:
        return NEUTRAL_SUB_SCORE

    shares = [c for c in project.contributor_contributions if c > 0]
    total = sum(shares)
    contributors = len(shares)
    if contributors == 0:
        return NEUTRAL_SUB_SCORE
    if contributors == 1:
        return 0.0

    # Gini-Simpson normalizzato: 1 quando i contributi sono equidistribuiti
    concentration = sum((c / total) ** 2 for c in shares)
    evenness = (1 - concentration) / (1 - 1 / contributors)
    breadth = min(1.0, math.log2(1 + contributors) / math.log2(1 + DIVERSITY_REFERENCE_CONTRIBUTORS))
    return clamp(100.0 * evenness * breadth)


def documentation_score(project: ProjectSnapshot) -> float:
    score = 0
    if project.has_readme:
        score += 40
    if project.has_contributing:
        score += 30
    if project.has_license:
        score += 30
    return float(score)


def tier_for(overall: int) -> HealthTier:
    for threshold, label in HEALTH_TIER_THRESHOLDS:
        if overall >= threshold:
            return HealthTier(label)
    return HealthTier.POOR


def calculate_community_health(project: ProjectSnapshot, now: Optional[datetime] = None) -> CommunityHealthScore:
    """
    Calcola il punteggio di salute (0-100) di un progetto a partire dal solo snapshot.
    Funzione pura: a parità di snapshot e di `now` il risultato è identico.
    Senza `now` il riferimento temporale è il timestamp più recente dello snapshot.
    """
    sub_scores = {
        "responsiveness": _round_half_up(responsiveness_score(project)),
        "activity": _round_half_up(activity_score(project, now)),
        "diversity": _round_half_up(diversity_score(project)),
        "documentation": _round_half_up(documentation_score(project)),
    }
    weighted = sum(sub_scores[name] * weight for name, weight in HEALTH_WEIGHTS.items())
    overall = int(clamp(_round_half_up(weighted), 0, 100))

    return CommunityHealthScore(
        project_id=project.id,
        overall=overall,
        tier=tier_for(overall),
        **sub_scores,
    )


def summarize_community_health(projects: Iterable[ProjectSnapshot], now: Optional[datetime] = None) -> Dict[str, float]:
    scores = [calculate_community_health(p, now) for p in projects]
    if not scores:
        return {"projects": 0, "healthy": 0, "needs_attention": 0, "average": 0}

    return {
        "projects": len(scores),
        "healthy": sum(1 for s in scores if s.overall >= 60),
        "needs_attention": sum(1 for s in scores if s.overall < 40),
        "average": _round_half_up(sum(s.overall for s in scores) / len(scores)),
    }
