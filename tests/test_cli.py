"""Tests for the command-line entry point."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from mbox_indexer import cli
from mbox_indexer.core.config import DeliverySettings, load_app_settings
from mbox_indexer.ingestion.filenames import encode_filename

MAIL_URL = "http://lists.jboss.org/pipermail/hibernate-dev/2013-May/000001.html"


class StubClient:
    """Stand-in for the HTTP client recording its configuration."""

    instances: list[StubClient] = []

    def __init__(self, settings: DeliverySettings, *, max_connections: int) -> None:
        self.settings = settings
        self.max_connections = max_connections
        self.posted: list[str] = []
        StubClient.instances.append(self)

    def post(self, document: str, document_id: str) -> object:
        self.posted.append(document_id)
        return None

    def __enter__(self) -> StubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


@pytest.fixture(autouse=True)
def isolate(monkeypatch: pytest.MonkeyPatch) -> None:
    load_app_settings.cache_clear()
    StubClient.instances = []
    monkeypatch.setattr(cli, "SearchiskoClient", StubClient)
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)


def _args(drop: Path, active: Path, concurrency: str = "2") -> list[str]:
    return [
        str(drop),
        concurrency,
        "http://search.example.org",
        "/v1/rest/content",
        "jbossorg_mailing_list",
        " indexer ",
        "secret",
        str(active),
    ]


def test_missing_arguments_print_usage(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["/tmp/delta", "2"]) == 0

    assert "pathToDeltaArchive numberOfThreads" in capsys.readouterr().out
    assert StubClient.instances == []


def test_concurrency_below_one_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(_args(tmp_path, tmp_path / "active.properties", concurrency="0"))

    assert excinfo.value.code != 0


def test_unreadable_active_list_config_aborts(tmp_path: Path) -> None:
    assert cli.main(_args(tmp_path, tmp_path / "missing.properties")) == 1


def test_missing_drop_folder_aborts(tmp_path: Path) -> None:
    active = tmp_path / "active.properties"
    active.write_text("hibernate-dev\n", encoding="utf-8")

    assert cli.main(_args(tmp_path / "missing", active)) == 1


def test_full_run_delivers_and_reports(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    drop = tmp_path / "delta"
    drop.mkdir()
    mail = drop / encode_filename(MAIL_URL)
    mail.write_bytes(b"Message-ID: <cli@example.org>\nSubject: hi\n\nHello\n")
    stamp = time.time() - 60
    os.utime(mail, (stamp, stamp))
    active = tmp_path / "active.properties"
    active.write_text("hibernate-dev=\n", encoding="utf-8")

    assert cli.main(_args(drop, active, concurrency="3")) == 0

    client = StubClient.instances[0]
    assert client.max_connections == 4
    assert client.settings.service_host == "http://search.example.org"
    assert client.settings.username == "indexer"
    assert client.posted == ["cli@example.org"]
    assert not mail.exists()
    assert "1 delivered" in capsys.readouterr().out
