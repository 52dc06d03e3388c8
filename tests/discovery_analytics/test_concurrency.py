import threading
from datetime import datetime, timedelta, timezone

from discovery_analytics.application.community import CommunityAggregator
from discovery_analytics.application.contributions import ContributionImpactTracker
from discovery_analytics.application.popularity import PopularityAggregator
from discovery_analytics.domain.services import make_event

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _run(workers):
    threads = [threading.Thread(target=w) for w in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class TestConcurrentUpdates:
    def test_parallel_views_are_not_lost(self):
        popularity = PopularityAggregator()

        def worker(n):
            def run():
                for i in range(250):
                    popularity.track_view(1, f"user-{n}-{i % 10}")
                    popularity.track_bookmark(2, True)
            return run

        _run([worker(n) for n in range(8)])

        assert popularity.get_metrics(1).views == 2000
        assert popularity.get_metrics(1).unique_viewer_count == 80
        assert popularity.get_metrics(2).bookmarks == 2000

    def test_parallel_record_with_replays(self, service):
        def worker(n):
            def run():
                for i in range(100):
                    event = make_event(f"user-{n}", 1, "view", timestamp=T0 + timedelta(minutes=i))
                    service.record_event(event)
                    service.record_event(event)
            return run

        _run([worker(n) for n in range(6)])

        assert service.event_store.count() == 600
        assert service.get_popularity(1).views == 600
        assert service.get_engagement("user-3").total_actions == 100

    def test_parallel_contributions_dedup(self):
        tracker = ContributionImpactTracker()

        def run():
            for i in range(50):
                tracker.track_contribution("u1", i, "commit", timestamp=T0)

        _run([run for _ in range(4)])

        metrics = tracker.get_contribution_impact_metrics("u1")
        assert metrics.total_contributions == 50
        assert metrics.impact_score == 100

    def test_parallel_ratings_keep_latest_per_user(self):
        community = CommunityAggregator()

        def worker(n):
            def run():
                for i in range(1, 6):
                    community.add_rating(1, f"user-{n}", i, T0 + timedelta(minutes=i))
            return run

        _run([worker(n) for n in range(8)])

        metrics = community.get_metrics(1)
        assert metrics.total_ratings == 8
        assert metrics.rating_distribution[5] == 8
