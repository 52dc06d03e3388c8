import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .errors import ValidationError
from .types import InteractionType, ContributionType, ContributionSize, SharePlatform


@dataclass(frozen=True)
class ViewMetadata:
    duration_seconds: Optional[float] = None

@dataclass(frozen=True)
class BookmarkMetadata:
    pass

@dataclass(frozen=True)
class ShareMetadata:
    platform: Optional[SharePlatform] = None

@dataclass(frozen=True)
class ClickThroughMetadata:
    pass

@dataclass(frozen=True)
class CommentMetadata:
    parent_id: Optional[str] = None

@dataclass(frozen=True)
class RateMetadata:
    rating: int

@dataclass(frozen=True)
class ReviewMetadata:
    rating: int
    helpful_votes: int = 0

@dataclass(frozen=True)
class ContributionMetadata:
    contribution_type: ContributionType
    size: Optional[ContributionSize] = None


EventMetadata = Union[
    ViewMetadata,
    BookmarkMetadata,
    ShareMetadata,
    ClickThroughMetadata,
    CommentMetadata,
    RateMetadata,
    ReviewMetadata,
    ContributionMetadata,
]

METADATA_BY_TYPE = {
    InteractionType.VIEW: ViewMetadata,
    InteractionType.BOOKMARK: BookmarkMetadata,
    InteractionType.UNBOOKMARK: BookmarkMetadata,
    InteractionType.SHARE: ShareMetadata,
    InteractionType.CLICK_THROUGH: ClickThroughMetadata,
    InteractionType.COMMENT: CommentMetadata,
    InteractionType.RATE: RateMetadata,
    InteractionType.REVIEW: ReviewMetadata,
    InteractionType.CONTRIBUTION: ContributionMetadata,
}

# Metadati di default per i tipi che non hanno campi obbligatori
_DEFAULT_FACTORIES = {
    InteractionType.VIEW: ViewMetadata,
    InteractionType.BOOKMARK: BookmarkMetadata,
    InteractionType.UNBOOKMARK: BookmarkMetadata,
    InteractionType.SHARE: ShareMetadata,
    InteractionType.CLICK_THROUGH: ClickThroughMetadata,
    InteractionType.COMMENT: CommentMetadata,
}


def parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationError(f"Valore non valido per '{field_name}': {value!r} (ammessi: {allowed})")


def parse_rating(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError(f"Rating non valido: {raw!r}")
    if isinstance(raw, float) and (not math.isfinite(raw) or not raw.is_integer()):
        raise ValidationError(f"Rating non valido: {raw!r}")
    rating = int(raw)
    if not 1 <= rating <= 5:
        raise ValidationError(f"Rating fuori intervallo (1-5): {rating}")
    return rating


def _parse_non_negative(raw: Any, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError(f"Campo '{field_name}' non numerico: {raw!r}")
    if isinstance(raw, float) and not math.isfinite(raw):
        raise ValidationError(f"Campo '{field_name}' non finito: {raw!r}")
    if raw < 0:
        raise ValidationError(f"Campo '{field_name}' negativo: {raw}")
    return raw


def build_metadata(event_type: InteractionType, raw: Optional[Mapping[str, Any]]) -> EventMetadata:
    """
    Converte la mappa aperta ricevuta al confine del sistema nella variante
    tipizzata associata al tipo di evento. Chiavi sconosciute vengono ignorate.
    """
    raw = dict(raw or {})

    if event_type == InteractionType.VIEW:
        duration = raw.get("duration", raw.get("duration_seconds"))
        if duration is None:
            return ViewMetadata()
        return ViewMetadata(duration_seconds=float(_parse_non_negative(duration, "duration")))

    if event_type in (InteractionType.BOOKMARK, InteractionType.UNBOOKMARK):
        return BookmarkMetadata()

    if event_type == InteractionType.SHARE:
        platform = raw.get("platform")
        if platform is None:
            return ShareMetadata()
        return ShareMetadata(platform=parse_enum(SharePlatform, platform, "platform"))

    if event_type == InteractionType.CLICK_THROUGH:
        return ClickThroughMetadata()

    if event_type == InteractionType.COMMENT:
        parent_id = raw.get("parent_id", raw.get("parentId"))
        return CommentMetadata(parent_id=str(parent_id) if parent_id is not None else None)

    if event_type == InteractionType.RATE:
        if "rating" not in raw:
            raise ValidationError("Evento 'rate' senza campo 'rating'.")
        return RateMetadata(rating=parse_rating(raw["rating"]))

    if event_type == InteractionType.REVIEW:
        if "rating" not in raw:
            raise ValidationError("Evento 'review' senza campo 'rating'.")
        helpful = raw.get("helpful_votes", raw.get("helpful", 0))
        return ReviewMetadata(
            rating=parse_rating(raw["rating"]),
            helpful_votes=int(_parse_non_negative(helpful, "helpful_votes")),
        )

    if event_type == InteractionType.CONTRIBUTION:
        contribution_type = raw.get("contribution_type", raw.get("contributionType"))
        if contribution_type is None:
            raise ValidationError("Evento 'contribution' senza 'contribution_type'.")
        size = raw.get("size")
        return ContributionMetadata(
            contribution_type=parse_enum(ContributionType, contribution_type, "contribution_type"),
            size=parse_enum(ContributionSize, size, "size") if size is not None else None,
        )

    raise ValidationError(f"Tipo di evento non gestito: {event_type!r}")


def default_metadata(event_type: InteractionType) -> EventMetadata:
    factory = _DEFAULT_FACTORIES.get(event_type)
    if factory is None:
        raise ValidationError(f"L'evento '{event_type.value}' richiede metadati espliciti.")
    return factory()


def check_metadata(event_type: InteractionType, metadata: Any) -> None:
    expected = METADATA_BY_TYPE[event_type]
    if not isinstance(metadata, expected):
        raise ValidationError(
            f"Metadati {type(metadata).__name__} incompatibili con l'evento '{event_type.value}' "
            f"(atteso {expected.__name__})."
        )
    if isinstance(metadata, (RateMetadata, ReviewMetadata)):
        parse_rating(metadata.rating)
    if isinstance(metadata, ReviewMetadata):
        _parse_non_negative(metadata.helpful_votes, "helpful_votes")
    if isinstance(metadata, ViewMetadata) and metadata.duration_seconds is not None:
        _parse_non_negative(metadata.duration_seconds, "duration")
