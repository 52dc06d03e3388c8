import json
import pytest
from datetime import date, datetime, timedelta, timezone

from discovery_analytics.domain.entities import (
    EngagementMetrics,
    EventFilter,
    ContributionImpactMetrics,
    InteractionEvent,
    ProjectSnapshot,
    UserPreferenceProfile,
)
from discovery_analytics.domain.errors import ValidationError
from discovery_analytics.domain.health import (
    calculate_community_health,
    diversity_score,
    responsiveness_score,
    summarize_community_health,
)
from discovery_analytics.domain.metadata import ContributionMetadata, RateMetadata, ViewMetadata
from discovery_analytics.domain.scoring import estimate_difficulty, rank_recommendations, rank_trending
from discovery_analytics.domain.services import (
    contribution_impact,
    extract_interaction_event,
    make_event,
    next_streak,
    validate_event,
)
from discovery_analytics.domain.types import (
    ContributionSize,
    ContributionType,
    Difficulty,
    HealthTier,
    InteractionType,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestEventExtraction:
    def test_camel_case_keys(self):
        event = extract_interaction_event({
            "userId": "u1",
            "projectId": 7,
            "type": "VIEW",
            "timestamp": "2024-01-15T10:00:00Z",
            "metadata": {"duration": 30},
        })
        assert event.user_id == "u1"
        assert event.project_id == 7
        assert event.type == InteractionType.VIEW
        assert event.timestamp == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        assert event.metadata == ViewMetadata(duration_seconds=30.0)

    def test_missing_timestamp_uses_now(self):
        event = extract_interaction_event({"user_id": "u1", "project_id": 1, "type": "share"}, now=NOW)
        assert event.timestamp == NOW

    @pytest.mark.parametrize("raw", [
        {"user_id": "", "project_id": 1, "type": "view"},
        {"user_id": "u1", "project_id": True, "type": "view"},
        {"user_id": "u1", "project_id": "7", "type": "view"},
        {"user_id": "u1", "project_id": 1, "type": "like"},
        {"user_id": "u1", "project_id": 1},
        {"user_id": "u1", "project_id": 1, "type": "rate"},
        {"user_id": "u1", "project_id": 1, "type": "rate", "metadata": {"rating": 9}},
        {"user_id": "u1", "project_id": 1, "type": "view", "metadata": {"duration": -1}},
        {"user_id": "u1", "project_id": 1, "type": "view", "metadata": "lungo"},
        {"user_id": "u1", "project_id": 1, "type": "view", "timestamp": "ieri"},
    ])
    def test_invalid_events_rejected(self, raw):
        with pytest.raises(ValidationError):
            extract_interaction_event(raw, now=NOW)

    def test_naive_timestamp_is_utc(self):
        event = make_event("u1", 1, "view", timestamp=datetime(2024, 1, 1, 8, 0))
        assert event.timestamp.tzinfo is not None
        assert event.timestamp.hour == 8

    def test_contribution_metadata(self):
        event = make_event("u1", 1, "contribution", {"contributionType": "pull_request", "size": "large"}, NOW)
        assert event.metadata == ContributionMetadata(ContributionType.PULL_REQUEST, ContributionSize.LARGE)

    def test_metadata_must_match_type(self):
        with pytest.raises(ValidationError):
            make_event("u1", 1, "view", RateMetadata(rating=3), NOW)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            make_event("u1", 1, "not-a-type")

    @pytest.mark.parametrize("metadata", [
        {"duration": float("nan")},
        {"duration": float("inf")},
    ])
    def test_non_finite_duration_rejected(self, metadata):
        with pytest.raises(ValidationError):
            make_event("u1", 1, "view", metadata, NOW)

    @pytest.mark.parametrize("rating", [float("nan"), float("inf"), -float("inf"), 3.5])
    def test_bad_rating_values_rejected(self, rating):
        with pytest.raises(ValidationError):
            extract_interaction_event(
                {"userId": "u1", "projectId": 1, "type": "rate", "metadata": {"rating": rating}}, now=NOW
            )

    def test_non_finite_helpful_votes_rejected(self):
        with pytest.raises(ValidationError):
            make_event("u1", 1, "review", {"rating": 4, "helpful_votes": float("nan")}, NOW)

    def test_non_finite_values_from_json_line(self):
        raw = json.loads('{"userId": "u1", "projectId": 1, "type": "view", "metadata": {"duration": NaN}}')
        with pytest.raises(ValidationError):
            extract_interaction_event(raw, now=NOW)

    def test_validate_event_normalizes_naive_timestamp(self):
        naive = InteractionEvent("u1", 1, InteractionType.VIEW, datetime(2024, 1, 1, 9), ViewMetadata())
        validated = validate_event(naive)
        assert validated.timestamp == datetime(2024, 1, 1, 9, tzinfo=timezone.utc)
        assert validated.natural_key == make_event("u1", 1, "view", timestamp=validated.timestamp).natural_key


class TestEventFilter:
    def test_since_inclusive_until_exclusive(self):
        event = make_event("u1", 1, "view", timestamp=NOW)
        assert EventFilter(since=NOW).matches(event)
        assert not EventFilter(until=NOW).matches(event)
        assert EventFilter(until=NOW + timedelta(seconds=1)).matches(event)
        assert not EventFilter(project_id=2).matches(event)


class TestStreakRule:
    def test_first_action(self):
        assert next_streak(None, 0, date(2024, 1, 1)) == (1, True)

    def test_same_day_unchanged(self):
        assert next_streak(date(2024, 1, 1), 3, date(2024, 1, 1)) == (3, False)

    def test_consecutive_day(self):
        assert next_streak(date(2024, 1, 1), 3, date(2024, 1, 2)) == (4, True)

    def test_gap_resets(self):
        assert next_streak(date(2024, 1, 1), 3, date(2024, 1, 5)) == (1, True)

    def test_older_event_ignored(self):
        assert next_streak(date(2024, 1, 5), 2, date(2024, 1, 1)) == (2, False)


class TestContributionImpact:
    def test_weights(self):
        assert contribution_impact(ContributionType.PULL_REQUEST, None) == 10
        assert contribution_impact(ContributionType.PULL_REQUEST, ContributionSize.LARGE) == 20
        assert contribution_impact(ContributionType.REVIEW, ContributionSize.MEDIUM) == 7.5
        assert contribution_impact(ContributionType.COMMIT, ContributionSize.SMALL) == 2

    def test_quality_tiers(self):
        assert ContributionImpactMetrics("u", impact_score=0).contribution_quality == "beginner"
        assert ContributionImpactMetrics("u", impact_score=35).contribution_quality == "intermediate"
        assert ContributionImpactMetrics("u", impact_score=250).contribution_quality == "expert"


class TestEngagementScore:
    def test_zero_valued(self):
        metrics = EngagementMetrics("u1")
        assert metrics.engagement_score == 0
        assert metrics.activity_level == "low"

    def test_saturated(self):
        metrics = EngagementMetrics(
            "u1",
            actions_by_type={
                InteractionType.VIEW: 500,
                InteractionType.BOOKMARK: 50,
                InteractionType.SHARE: 50,
                InteractionType.COMMENT: 40,
                InteractionType.CONTRIBUTION: 20,
            },
            longest_streak_days=45,
        )
        assert metrics.engagement_score == 100
        assert metrics.activity_level == "very_high"


class TestCommunityHealth:
    def test_healthy_project(self, make_project):
        project = make_project(
            1,
            has_readme=True,
            has_contributing=True,
            has_license=True,
            avg_first_response_hours=12,
            pushed_at=NOW,
            commits_last_90_days=200,
            contributor_contributions=tuple([10] * 10),
        )
        health = calculate_community_health(project, now=NOW)
        assert health.overall == 100
        assert health.tier == HealthTier.EXCELLENT

    def test_missing_data_is_neutral(self, make_project):
        health = calculate_community_health(make_project(2), now=NOW)
        assert health.responsiveness == 50
        assert health.activity == 50
        assert health.diversity == 50
        assert health.documentation == 0
        assert health.tier == HealthTier.FAIR

    def test_single_contributor(self, make_project):
        assert diversity_score(make_project(3, contributor_contributions=(120,))) == 0

    def test_responsiveness_decay(self, make_project):
        assert responsiveness_score(make_project(4, avg_first_response_hours=372)) == pytest.approx(50)
        assert responsiveness_score(make_project(4, avg_first_response_hours=2000)) == 0

    def test_stale_project_scores_low_activity(self, make_project):
        project = make_project(5, pushed_at=NOW - timedelta(days=400), commits_last_90_days=0)
        assert calculate_community_health(project, now=NOW).activity == 0

    def test_deterministic_and_bounded(self, make_project):
        project = make_project(
            6,
            pushed_at=datetime(2023, 1, 1),
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            contributor_contributions=(50, 3, 1),
            releases_last_year=2,
            avg_first_response_hours=48,
        )
        first = calculate_community_health(project)
        second = calculate_community_health(project)
        assert first == second
        for value in (first.responsiveness, first.activity, first.diversity, first.documentation, first.overall):
            assert 0 <= value <= 100

    def test_summary(self, make_project):
        healthy = make_project(1, has_readme=True, has_contributing=True, has_license=True,
                               avg_first_response_hours=1, pushed_at=NOW, commits_last_90_days=300,
                               contributor_contributions=tuple([5] * 12))
        poor = make_project(2, avg_first_response_hours=5000, pushed_at=NOW - timedelta(days=900),
                            contributor_contributions=(10,))
        summary = summarize_community_health([healthy, poor], now=NOW)
        assert summary["projects"] == 2
        assert summary["healthy"] == 1
        assert summary["needs_attention"] == 1


class TestProjectSnapshot:
    def test_from_github_mapping(self):
        snapshot = ProjectSnapshot.from_mapping({
            "id": 42,
            "full_name": "acme/tool",
            "stargazers_count": 120,
            "forks_count": 4,
            "open_issues_count": 7,
            "license": {"spdx_id": "MIT"},
            "pushed_at": "2024-01-01T00:00:00Z",
            "contributors": [{"contributions": 3}, {"contributions": 1}],
        })
        assert snapshot.stars == 120
        assert snapshot.has_license is True
        assert snapshot.contributor_contributions == (3, 1)
        assert snapshot.pushed_at.tzinfo is not None

    def test_malformed_optional_fields_degrade(self):
        snapshot = ProjectSnapshot.from_mapping({
            "id": 7,
            "name": 12,
            "language": ["rust"],
            "topics": 5,
            "stargazers_count": float("inf"),
            "difficulty": "guru",
            "avg_first_response_hours": float("nan"),
            "contributors": [{"login": "a", "contributions": None}, {"login": "b", "contributions": "x"}, {"contributions": 4}],
        })
        assert snapshot.name == ""
        assert snapshot.language is None
        assert snapshot.topics == ()
        assert snapshot.stars == 0
        assert snapshot.difficulty is None
        assert snapshot.avg_first_response_hours is None
        assert snapshot.contributor_contributions == (4,)

    def test_non_list_contributor_counts(self):
        assert ProjectSnapshot.from_mapping({"id": 7, "contributor_contributions": "tanti"}).contributor_contributions is None

    def test_requires_integer_id(self):
        with pytest.raises(ValidationError):
            ProjectSnapshot.from_mapping({"id": "42"})

    @pytest.mark.parametrize("stars,forks,issues,expected", [
        (100, 5, 10, Difficulty.BEGINNER),
        (20000, 100, 500, Difficulty.ADVANCED),
        (3000, 6000, 10, Difficulty.ADVANCED),
        (5000, 200, 80, Difficulty.INTERMEDIATE),
    ])
    def test_estimated_difficulty(self, make_project, stars, forks, issues, expected):
        assert estimate_difficulty(make_project(1, stars=stars, forks=forks, open_issues=issues)) == expected


class TestPreferences:
    def test_normalized(self):
        prefs = UserPreferenceProfile.from_mapping({"languages": ["Rust", " Go "], "minStars": 10})
        assert prefs.languages == frozenset({"rust", "go"})
        assert prefs.min_stars == 10
        assert prefs.difficulty == Difficulty.ANY

    @pytest.mark.parametrize("raw", [
        {"languages": "rust"},
        {"min_stars": -1},
        {"difficulty": "guru"},
        {"exclude_project_ids": ["1"]},
    ])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            UserPreferenceProfile.from_mapping(raw)

    def test_direct_construction(self):
        assert UserPreferenceProfile(exclude_project_ids=None).exclude_project_ids == frozenset()
        assert UserPreferenceProfile(exclude_project_ids=[3, 3]).exclude_project_ids == frozenset({3})
        with pytest.raises(ValidationError):
            UserPreferenceProfile(exclude_project_ids=5)
        with pytest.raises(ValidationError):
            UserPreferenceProfile(exclude_project_ids=["3"])


class TestRanking:
    def test_filters_and_scores_in_range(self, make_project):
        prefs = UserPreferenceProfile.from_mapping({
            "languages": ["python"],
            "topics": ["ml", "cli"],
            "min_stars": 50,
            "exclude_project_ids": [3],
        })
        candidates = [
            make_project(1, language="Python", topics=("ml",), stars=100, open_issues=10, good_first_issues=4),
            make_project(2, language="Go", stars=10),
            make_project(3, language="Python", stars=500),
            make_project(4, language="C", secondary_languages=("Python",), stars=60),
            make_project(1, language="Go", stars=100),
        ]
        results = rank_recommendations(candidates, prefs, {1: 10.0, 4: 0.0}, limit=10)

        assert [r.project.id for r in results] == [1, 4]
        assert results[0].project.language == "Python"
        for rec in results:
            assert 0.0 <= rec.score <= 1.0
            assert len(rec.reasons) <= 3
        assert results[0].reasons[0] == "Written in Python, one of your preferred languages"

    def test_ties_broken_by_popularity_then_id(self, make_project):
        prefs = UserPreferenceProfile()
        candidates = [make_project(5), make_project(3), make_project(4)]
        results = rank_recommendations(candidates, prefs, {}, limit=3)
        assert [r.project.id for r in results] == [3, 4, 5]

    def test_trending_is_stable(self, make_project):
        candidates = [make_project(9), make_project(2), make_project(5)]
        trending = rank_trending(candidates, {5: 20.0})
        assert [r.project.id for r in trending] == [5, 9, 2]
        assert trending[0].reasons == ("Trending in the community",)
        assert trending[1].reasons == ("Newly listed project",)
        assert trending[0].score == pytest.approx(20 / 70)
