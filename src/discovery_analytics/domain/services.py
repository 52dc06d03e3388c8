from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from .constants import CONTRIBUTION_BASE_WEIGHTS, CONTRIBUTION_SIZE_MULTIPLIERS
from .entities import InteractionEvent
from .errors import ValidationError
from .metadata import build_metadata, check_metadata, default_metadata, parse_enum
from .types import InteractionType, ContributionType, ContributionSize
from .utils import parse_timestamp, to_utc, utc_now


def _first_present(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def validate_identity(user_id: Any, project_id: Any) -> None:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError(f"userId mancante o non valido: {user_id!r}")
    if isinstance(project_id, bool) or not isinstance(project_id, int):
        raise ValidationError(f"projectId mancante o non intero: {project_id!r}")


def validate_event(event: Any) -> InteractionEvent:
    if not isinstance(event, InteractionEvent):
        raise ValidationError(f"Oggetto non riconosciuto come InteractionEvent: {type(event).__name__}")
    validate_identity(event.user_id, event.project_id)
    if not isinstance(event.type, InteractionType):
        raise ValidationError(f"Tipo di evento sconosciuto: {event.type!r}")
    if not isinstance(event.timestamp, datetime):
        raise ValidationError(f"Timestamp non valido: {event.timestamp!r}")
    check_metadata(event.type, event.metadata)
    # timestamp naive interpretati come UTC
    return replace(event, timestamp=to_utc(event.timestamp))


def extract_interaction_event(raw: Dict[str, Any], now: Optional[datetime] = None) -> InteractionEvent:
    """
    Costruisce un InteractionEvent da una mappa aperta (es. il body di una
    richiesta o una riga NDJSON). Accetta sia chiavi camelCase che snake_case.
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"Evento non valido: atteso un dizionario, ricevuto {type(raw).__name__}")

    user_id = _first_present(raw, "user_id", "userId")
    project_id = _first_present(raw, "project_id", "projectId")
    raw_type = raw.get("type")

    validate_identity(user_id, project_id)
    if raw_type is None:
        raise ValidationError("Campo 'type' mancante.")
    event_type = parse_enum(InteractionType, raw_type, "type")

    raw_timestamp = raw.get("timestamp")
    timestamp = parse_timestamp(raw_timestamp) if raw_timestamp is not None else (now or utc_now())

    raw_metadata = raw.get("metadata")
    if raw_metadata is not None and not isinstance(raw_metadata, dict):
        raise ValidationError("Il campo 'metadata' deve essere un oggetto.")

    return InteractionEvent(
        user_id=user_id.strip(),
        project_id=project_id,
        type=event_type,
        timestamp=timestamp,
        metadata=build_metadata(event_type, raw_metadata),
    )


def make_event(
    user_id: str,
    project_id: int,
    event_type: Any,
    metadata: Any = None,
    timestamp: Optional[datetime] = None,
) -> InteractionEvent:
    validate_identity(user_id, project_id)
    parsed_type = parse_enum(InteractionType, event_type, "type")
    if metadata is None:
        metadata = default_metadata(parsed_type)
    elif isinstance(metadata, dict):
        metadata = build_metadata(parsed_type, metadata)
    return validate_event(InteractionEvent(
        user_id=user_id,
        project_id=project_id,
        type=parsed_type,
        timestamp=parse_timestamp(timestamp) if timestamp is not None else utc_now(),
        metadata=metadata,
    ))


def next_streak(last_active_day: Optional[date], current_streak: int, event_day: date) -> Tuple[int, bool]:
    """
    Applica la regola dello streak giornaliero.
    Ritorna il nuovo valore e un flag che indica se il giorno attivo avanza.
    Eventi di giorni precedenti all'ultimo giorno attivo non modificano lo streak.
    """
    if last_active_day is None:
        return 1, True

    elapsed = (event_day - last_active_day).days
    if elapsed < 0:
        return current_streak, False
    if elapsed == 0:
        return max(current_streak, 1), False
    if elapsed == 1:
        return current_streak + 1, True
    return 1, True


def contribution_impact(contribution_type: ContributionType, size: Optional[ContributionSize]) -> float:
    base = CONTRIBUTION_BASE_WEIGHTS[contribution_type]
    multiplier = CONTRIBUTION_SIZE_MULTIPLIERS.get(size, 1.0) if size is not None else 1.0
    return base * multiplier
