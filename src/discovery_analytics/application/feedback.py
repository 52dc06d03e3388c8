import logging
from datetime import datetime
from typing import List, Optional, Set, Tuple, Union

from ..domain.entities import RecommendationFeedback
from ..domain.errors import ValidationError
from ..domain.metadata import parse_enum
from ..domain.types import FeedbackType
from ..domain.utils import parse_timestamp, utc_now
from .locks import KeyedStateStore


class _UserFeedback:
    def __init__(self, user_id: str):
        self.user_id = user_id
        self.entries: List[RecommendationFeedback] = []
        self.keys: Set[Tuple] = set()


class FeedbackRecorder:
    """
    Registra il feedback sulle raccomandazioni (interested / not_interested / dismissed).
    Il feedback viene solo acquisito: non modifica il punteggio delle raccomandazioni.
    """

    def __init__(self, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._users: KeyedStateStore[str, _UserFeedback] = KeyedStateStore(_UserFeedback)

    def record_feedback(
        self,
        user_id: str,
        project_id: int,
        feedback_type,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        if not isinstance(user_id, str) or not user_id:
            raise ValidationError(f"userId non valido: {user_id!r}")
        if isinstance(project_id, bool) or not isinstance(project_id, int):
            raise ValidationError(f"projectId non intero: {project_id!r}")

        feedback = RecommendationFeedback(
            user_id=user_id,
            project_id=project_id,
            feedback_type=parse_enum(FeedbackType, feedback_type, "feedback_type"),
            timestamp=parse_timestamp(timestamp) if timestamp is not None else utc_now(),
        )
        key = (feedback.project_id, feedback.feedback_type.value, feedback.timestamp)

        with self._users.locked(user_id) as state:
            if key in state.keys:
                return False
            state.keys.add(key)
            state.entries.append(feedback)

        self.logger.info(f"Feedback '{feedback.feedback_type.value}' registrato: {user_id} -> {project_id}")
        return True

    def feedback_for(self, user_id: str) -> List[RecommendationFeedback]:
        with self._users.locked_existing(user_id) as state:
            return list(state.entries) if state is not None else []
