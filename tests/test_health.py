import sqlite3
from collections import namedtuple
from dataclasses import replace

from placesync.core import db
from placesync.jobs import health
from placesync.vendors import google_places

Usage = namedtuple("Usage", "total used free")


def test_check_api_key(settings):
    assert health.check_api_key(settings).success is True
    assert health.check_api_key(replace(settings, google_api_key="your_api_key_here")).success is False


def test_check_database_uses_store(settings, tmp_path):
    url = f"sqlite:///{tmp_path / 'listings.db'}"
    db.open_store(url).close()

    result = health.check_database(replace(settings, database_url=url))
    assert result.success is True
    assert result.message == "0 listings"


def test_check_database_does_not_create_schema(settings, tmp_path):
    path = tmp_path / "listings.db"

    result = health.check_database(replace(settings, database_url=f"sqlite:///{path}"))

    assert result.success is False
    assert "no such table" in result.message
    conn = sqlite3.connect(path)
    try:
        tables = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    finally:
        conn.close()
    assert tables == []


def test_check_database_reports_errors(settings, monkeypatch):
    def broken(url, **kwargs):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(health, "open_store", broken)
    result = health.check_database(settings)
    assert result.success is False
    assert "connection refused" in result.message


def test_check_google_api(settings, monkeypatch):
    monkeypatch.setattr(
        google_places,
        "nearby_search",
        lambda lat, lng, radius, api_key, place_type="restaurant": {"status": "OK", "results": [{}, {}]},
    )
    result = health.check_google_api(settings)
    assert result.success is True
    assert "found 2" in result.message

    assert health.check_google_api(replace(settings, google_api_key="")).success is False


def test_check_disk_space(monkeypatch):
    monkeypatch.setattr(health.shutil, "disk_usage", lambda path: Usage(100 * 1024 ** 3, 95 * 1024 ** 3, 5 * 1024 ** 3))
    assert health.check_disk_space().success is False

    monkeypatch.setattr(health.shutil, "disk_usage", lambda path: Usage(100 * 1024 ** 3, 50 * 1024 ** 3, 50 * 1024 ** 3))
    result = health.check_disk_space()
    assert result.success is True
    assert result.message == "50.0GB free (50.0%)"


def test_run_checks_returns_all(settings, monkeypatch):
    monkeypatch.setattr(health, "check_google_api", lambda s: health.CheckResult("Google API Access", True))
    names = [result.name for result in health.run_checks(settings)]
    assert names == ["Database Connection", "Google API Key", "Google API Access", "Disk Space"]
