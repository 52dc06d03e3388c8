from dataclasses import dataclass, field
import os
from typing import Dict, Optional

from .domain.constants import (
    RECOMMENDATION_WEIGHTS,
    POPULARITY_SATURATION,
    DEFAULT_RECOMMENDATION_LIMIT,
    DEFAULT_LEADERBOARD_LIMIT,
)


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Variabile d'ambiente {name} non intera: {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Variabile d'ambiente {name} non numerica: {raw!r}")


@dataclass
class AnalyticsConfig:
    """
    Parametri del motore di analytics condivisi tra i layer
    (Application, Domain, Infrastructure). Le costanti di punteggio
    hanno default di dominio e possono essere sovrascritte via ambiente.
    """

    # --- Raccomandazioni ---
    recommendation_weights: Dict[str, float] = field(default_factory=lambda: dict(RECOMMENDATION_WEIGHTS))
    popularity_saturation: float = POPULARITY_SATURATION
    default_recommendation_limit: int = DEFAULT_RECOMMENDATION_LIMIT

    # --- Leaderboard ---
    default_leaderboard_limit: int = DEFAULT_LEADERBOARD_LIMIT

    # --- Retention degli eventi (None = illimitata) ---
    retention_days: Optional[int] = None

    # --- Percorsi opzionali degli adattatori ---
    archive_directory: Optional[str] = None
    snapshots_file: Optional[str] = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AnalyticsConfig":
        return cls(
            popularity_saturation=_env_float("DISCOVERY_POPULARITY_SATURATION", POPULARITY_SATURATION),
            default_recommendation_limit=_env_int("DISCOVERY_RECOMMENDATION_LIMIT", DEFAULT_RECOMMENDATION_LIMIT),
            default_leaderboard_limit=_env_int("DISCOVERY_LEADERBOARD_LIMIT", DEFAULT_LEADERBOARD_LIMIT),
            retention_days=_env_int("DISCOVERY_RETENTION_DAYS", None),
            archive_directory=os.environ.get("DISCOVERY_ARCHIVE_DIR") or None,
            snapshots_file=os.environ.get("DISCOVERY_SNAPSHOTS_FILE") or None,
            log_level=os.environ.get("DISCOVERY_LOG_LEVEL", "INFO").upper(),
        )
