import json
import logging
import os
from typing import List, Tuple

from ..application.interfaces import IAnalyticsUseCase
from ..domain.errors import DomainError

class AnalyticsController:
    def __init__(self, use_case: IAnalyticsUseCase, logger: logging.LoggerAdapter):
        self.use_case = use_case
        self.logger = logger

    def load_events(self, path: str) -> Tuple[int, int]:
        if not os.path.exists(path):
            self.logger.warning(f"File eventi non trovato: {path}")
            return 0, 0

        recorded, discarded = 0, 0
        with open(path, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    self.use_case.record_raw_event(json.loads(line))
                    recorded += 1
                except (json.JSONDecodeError, DomainError) as error:
                    discarded += 1
                    self.logger.warning(f"Riga {line_number} ignorata: {error}")

        self.logger.info(f"Eventi caricati: Recorded={recorded}, Bad={discarded}")
        return recorded, discarded

    def show_top(self, limit: int):
        # senza snapshot si classificano i progetti visti negli eventi
        project_ids = [p.id for p in self.use_case.known_projects()] or self.use_case.tracked_projects()
        if not project_ids:
            self.logger.info("Nessun progetto disponibile.")
            return

        for position, project_id in enumerate(self.use_case.get_top_projects(project_ids, limit), start=1):
            metrics = self.use_case.get_popularity(project_id)
            self.logger.info(
                f"{position:>3}. progetto {project_id}: score={metrics.composite_score:.0f} "
                f"views={metrics.views} unique={metrics.unique_viewer_count} "
                f"bookmarks={metrics.bookmarks} shares={metrics.shares} ctr={metrics.click_through_rate:.1f}%"
            )

    def show_trending(self):
        trending = self.use_case.get_trending(self.use_case.known_projects())
        if not trending:
            self.logger.info("Nessun progetto disponibile.")
            return
        for rec in trending:
            self.logger.info(f"{rec.project.full_name or rec.project.id}: {rec.score:.3f} ({'; '.join(rec.reasons)})")

    def show_recommendations(self, languages: List[str], limit: int):
        preferences = {"languages": [lang.strip() for lang in languages if lang.strip()]}
        results = self.use_case.generate_recommendations(self.use_case.known_projects(), preferences, limit)
        if not results:
            self.logger.info("Nessuna raccomandazione per le preferenze indicate.")
            return
        for position, rec in enumerate(results, start=1):
            self.logger.info(
                f"{position:>3}. {rec.project.full_name or rec.project.id} score={rec.score:.3f} "
                f"- {'; '.join(rec.reasons) or 'n/d'}"
            )

    def show_health(self, project_id: int):
        health = self.use_case.calculate_health_for(project_id)
        self.logger.info(
            f"Health progetto {project_id}: {health.overall}/100 ({health.tier.value}) - "
            f"responsiveness={health.responsiveness} activity={health.activity} "
            f"diversity={health.diversity} documentation={health.documentation}"
        )

    def show_leaderboard(self, kind: str, limit: int):
        entries = self.use_case.get_leaderboard(kind, limit)
        if not entries:
            self.logger.info(f"Leaderboard '{kind}' vuota.")
            return
        for entry in entries:
            self.logger.info(
                f"{entry.rank:>3}. {entry.user_id}: {entry.score:g} "
                f"(contributi={entry.contributions}, review={entry.reviews_count}, "
                f"utili={entry.helpful_votes}, streak={entry.streak})"
            )

    def show_engagement(self, user_id: str):
        metrics = self.use_case.get_engagement(user_id)
        if metrics.total_actions == 0:
            self.logger.info(f"Nessuna attività registrata per {user_id}.")
            return
        actions = ", ".join(f"{t.value}={n}" for t, n in sorted(metrics.actions_by_type.items(), key=lambda i: i[0].value))
        self.logger.info(
            f"Engagement {user_id}: score={metrics.engagement_score} ({metrics.activity_level}) "
            f"streak={metrics.current_streak_days} (max {metrics.longest_streak_days}) - {actions}"
        )

    def show_community(self, project_id: int):
        metrics = self.use_case.get_community_metrics(project_id)
        if metrics.total_ratings == 0 and metrics.comments == 0:
            self.logger.info(f"Nessun rating o commento per il progetto {project_id}.")
            return
        distribution = " ".join(f"{star}:{count}" for star, count in metrics.rating_distribution.items())
        self.logger.info(
            f"Community progetto {project_id}: rating medio {metrics.average_rating} su {metrics.total_ratings} voti "
            f"[{distribution}] review={metrics.reviews} (utili={metrics.review_helpful_votes}) "
            f"commenti={metrics.comments} (risposte={metrics.replies})"
        )
