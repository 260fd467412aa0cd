import json

import pytest

from jobs_analytics import cli
from jobs_analytics.core.config import get_settings
from jobs_analytics.services.analytics import get_analytics_cache
from jobs_analytics.services.local_store import get_local_store
from jobs_analytics.services.publisher import get_downstream_publisher
from jobs_analytics.services.source import get_source_reader
from jobs_analytics.services.sync import get_sync_service

FACTORIES = (
    get_settings,
    get_local_store,
    get_analytics_cache,
    get_source_reader,
    get_downstream_publisher,
    get_sync_service,
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("UNJ_LOCAL_DB_PATH", str(tmp_path / "jobs.db"))
    monkeypatch.setenv("UNJ_OTEL_ENABLED", "false")
    monkeypatch.delenv("UNJ_SOURCE_DATABASE_URL", raising=False)
    monkeypatch.delenv("UNJ_DOWNSTREAM_DATABASE_URL", raising=False)
    for factory in FACTORIES:
        factory.cache_clear()
    yield
    for factory in FACTORIES:
        factory.cache_clear()


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_status_command_prints_metadata(capsys) -> None:
    exit_code = cli.main(["status"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["status"] == "never_synced"
    assert payload["needs_sync"] is True


def test_sync_without_source_fails(capsys) -> None:
    exit_code = cli.main(["sync"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["success"] is False
    assert "UNJ_SOURCE_DATABASE_URL" in payload["error"]


def test_push_without_downstream_is_skipped(capsys) -> None:
    exit_code = cli.main(["push"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["skipped"] is True
