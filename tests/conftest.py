import json
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

from discovery_analytics.application.service import AnalyticsService
from discovery_analytics.config import AnalyticsConfig
from discovery_analytics.domain.entities import ProjectSnapshot
from discovery_analytics.infrastructure.memory_repository import InMemoryEventRepository

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def service():
    """Servizio completo in memoria con orologio fisso."""
    return AnalyticsService.create(
        AnalyticsConfig(),
        repository=InMemoryEventRepository(),
        clock=lambda: NOW,
    )


@pytest.fixture
def logger():
    return Mock()


@pytest.fixture
def make_project():
    def _make(project_id, **overrides):
        fields = {"name": f"repo-{project_id}", "full_name": f"owner/repo-{project_id}"}
        fields.update(overrides)
        return ProjectSnapshot(id=project_id, **fields)
    return _make


@pytest.fixture
def snapshots_file(tmp_path):
    """File JSON di snapshot in formato API GitHub."""
    data = [
        {
            "id": 1,
            "name": "ferris",
            "full_name": "acme/ferris",
            "language": "Rust",
            "topics": ["cli", "parser"],
            "stargazers_count": 800,
            "forks_count": 40,
            "open_issues_count": 10,
            "good_first_issues": 5,
            "has_readme": True,
            "has_contributing": True,
            "license": {"spdx_id": "MIT"},
            "pushed_at": "2024-05-30T10:00:00Z",
            "commits_last_90_days": 120,
            "avg_first_response_hours": 6,
            "contributors": [{"login": "a", "contributions": 30}, {"login": "b", "contributions": 25}],
        },
        {
            "id": 2,
            "name": "gopher",
            "full_name": "acme/gopher",
            "language": "Go",
            "stargazers_count": 15000,
            "forks_count": 900,
            "open_issues_count": 300,
        },
        {"name": "senza-id"},
    ]
    path = tmp_path / "snapshots.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)
