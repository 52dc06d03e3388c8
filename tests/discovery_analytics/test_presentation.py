import json
import logging
import pytest
from unittest.mock import Mock

from discovery_analytics.domain.entities import PopularityMetrics
from discovery_analytics.domain.errors import ValidationError
from discovery_analytics.presentation import cli
from discovery_analytics.presentation.controllers import AnalyticsController


class TestAnalyticsController:
    def test_load_events_skips_bad_lines(self, tmp_path):
        """Righe JSON malformate o eventi non validi vengono loggati e scartati."""
        path = tmp_path / "events.ndjson"
        path.write_text(
            '{"userId": "u1", "projectId": 1, "type": "view"}\n'
            "{non json\n"
            "\n"
            '{"userId": "u1", "projectId": 1, "type": "dance"}\n',
            encoding="utf-8",
        )
        service = Mock()
        service.record_raw_event.side_effect = [1, ValidationError("tipo sconosciuto")]
        logger = Mock()

        recorded, discarded = AnalyticsController(service, logger).load_events(str(path))

        assert (recorded, discarded) == (1, 2)
        assert service.record_raw_event.call_count == 2
        assert logger.warning.call_count == 2

    def test_load_events_missing_file(self, tmp_path):
        service, logger = Mock(), Mock()
        assert AnalyticsController(service, logger).load_events(str(tmp_path / "x.ndjson")) == (0, 0)
        service.record_raw_event.assert_not_called()
        logger.warning.assert_called_once()

    def test_show_top_without_projects(self):
        service, logger = Mock(), Mock()
        service.known_projects.return_value = []
        service.tracked_projects.return_value = []
        AnalyticsController(service, logger).show_top(3)
        service.get_top_projects.assert_not_called()

    def test_show_top_falls_back_to_tracked_projects(self):
        service, logger = Mock(), Mock()
        service.known_projects.return_value = []
        service.tracked_projects.return_value = [4, 9]
        service.get_top_projects.return_value = [9]
        service.get_popularity.return_value = PopularityMetrics(project_id=9, views=3)
        AnalyticsController(service, logger).show_top(1)
        service.get_top_projects.assert_called_once_with([4, 9], 1)
        service.get_popularity.assert_called_once_with(9)

    def test_load_events_skips_non_finite_values(self, tmp_path, service):
        path = tmp_path / "events.ndjson"
        path.write_text(
            '{"userId": "u1", "projectId": 1, "type": "view", "metadata": {"duration": 30}}\n'
            '{"userId": "u1", "projectId": 1, "type": "view", "metadata": {"duration": NaN}}\n'
            '{"userId": "u1", "projectId": 1, "type": "rate", "metadata": {"rating": Infinity}}\n',
            encoding="utf-8",
        )

        assert AnalyticsController(service, Mock()).load_events(str(path)) == (1, 2)
        assert service.get_popularity(1).total_view_duration == 30

    def test_show_recommendations_builds_preferences(self):
        service, logger = Mock(), Mock()
        service.known_projects.return_value = ["p"]
        service.generate_recommendations.return_value = []
        AnalyticsController(service, logger).show_recommendations(["rust", " go", ""], 4)
        service.generate_recommendations.assert_called_once_with(["p"], {"languages": ["rust", "go"]}, 4)


@pytest.fixture
def events_file(tmp_path):
    lines = [
        {"userId": "alice", "projectId": 1, "type": "view", "timestamp": "2024-05-01T10:00:00Z"},
        {"userId": "bob", "projectId": 1, "type": "bookmark", "timestamp": "2024-05-01T11:00:00Z"},
        {"userId": "bob", "projectId": 2, "type": "view", "timestamp": "2024-05-02T11:00:00Z"},
        {"userId": "alice", "projectId": 1, "type": "contribution", "timestamp": "2024-05-02T12:00:00Z",
         "metadata": {"contributionType": "pull_request"}},
    ]
    path = tmp_path / "events.ndjson"
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n", encoding="utf-8")
    return str(path)


class TestCli:
    @pytest.fixture(autouse=True)
    def testing_mode(self, monkeypatch):
        monkeypatch.setenv("TESTING_MODE", "1")
        for name in ("DISCOVERY_ARCHIVE_DIR", "DISCOVERY_SNAPSHOTS_FILE", "DISCOVERY_RETENTION_DAYS"):
            monkeypatch.delenv(name, raising=False)

    def test_top(self, events_file, snapshots_file, caplog):
        with caplog.at_level(logging.INFO):
            cli.main(["--events", events_file, "--snapshots", snapshots_file, "--top", "1"])
        assert "Eventi caricati: Recorded=4, Bad=0" in caplog.text
        assert "progetto 1:" in caplog.text
        assert "progetto 2:" not in caplog.text

    def test_leaderboard(self, events_file, caplog):
        with caplog.at_level(logging.INFO):
            cli.main(["--events", events_file, "--leaderboard", "contributions"])
        assert "1. alice: 10" in caplog.text

    def test_top_without_snapshots(self, events_file, caplog):
        with caplog.at_level(logging.INFO):
            cli.main(["--events", events_file, "--top", "1"])
        assert "progetto 1:" in caplog.text

    def test_community(self, tmp_path, caplog):
        path = tmp_path / "ratings.ndjson"
        lines = [
            {"userId": "alice", "projectId": 3, "type": "rate", "timestamp": "2024-05-01T10:00:00Z", "metadata": {"rating": 4}},
            {"userId": "bob", "projectId": 3, "type": "review", "timestamp": "2024-05-01T11:00:00Z",
             "metadata": {"rating": 5, "helpful_votes": 3}},
            {"userId": "carol", "projectId": 3, "type": "comment", "timestamp": "2024-05-01T12:00:00Z"},
        ]
        path.write_text("\n".join(json.dumps(line) for line in lines) + "\n", encoding="utf-8")
        with caplog.at_level(logging.INFO):
            cli.main(["--events", str(path), "--community", "3"])
        assert "rating medio 4.5 su 2 voti" in caplog.text
        assert "commenti=1" in caplog.text

    def test_unknown_project_exits_with_error(self, events_file, snapshots_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--events", events_file, "--snapshots", snapshots_file, "--health", "404"])
        assert exc_info.value.code == 2

    def test_commands_are_mutually_exclusive(self, events_file):
        with pytest.raises(SystemExit):
            cli.main(["--events", events_file, "--trending", "--top", "3"])
