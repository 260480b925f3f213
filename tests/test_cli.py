"""Tests for the portalctl CLI."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect
from typer.testing import CliRunner

from portal import cli
from portal.models.session import UserSession
from portal.models.user import User

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_db(monkeypatch, engine, session_factory):
    monkeypatch.setattr(cli, "engine", engine)
    monkeypatch.setattr(cli, "SessionLocal", session_factory)


def test_db_init(engine):
    result = runner.invoke(cli.app, ["db", "init"])

    assert result.exit_code == 0
    assert "users" in inspect(engine).get_table_names()


def test_db_reset_needs_confirmation(make_user, db):
    make_user()

    result = runner.invoke(cli.app, ["db", "reset"], input="n\n")

    assert result.exit_code != 0
    assert db.query(User).count() == 1


def test_db_reset_with_yes(make_user, db):
    make_user()
    db.close()

    result = runner.invoke(cli.app, ["db", "reset", "--yes"])

    assert result.exit_code == 0
    assert "Database reset" in result.output
    assert db.query(User).count() == 0


def test_db_seed_is_idempotent(db):
    first = runner.invoke(cli.app, ["db", "seed", "--email", "seed@example.com"])
    second = runner.invoke(cli.app, ["db", "seed", "--email", "seed@example.com"])

    assert first.exit_code == 0
    assert "Created demo user seed@example.com" in first.output
    assert "already exists" in second.output
    assert db.query(User).filter(User.email == "seed@example.com").count() == 1


def test_storage_init(monkeypatch, minio_client):
    monkeypatch.setattr("portal.services.file_service.get_minio_client", lambda: minio_client)
    minio_client.bucket_exists.return_value = False

    result = runner.invoke(cli.app, ["storage", "init"])

    assert result.exit_code == 0
    assert minio_client.make_bucket.call_count == 2


def test_sessions_purge(make_user, db):
    user = make_user()
    now = datetime.now(timezone.utc)
    db.add_all([
        UserSession(user_id=user.id, token="a" * 64, expires_at=now - timedelta(days=1)),
        UserSession(user_id=user.id, token="b" * 64, expires_at=now + timedelta(days=1)),
    ])
    db.commit()

    result = runner.invoke(cli.app, ["sessions", "purge"])

    assert result.exit_code == 0
    assert "Purged 1 expired session(s)" in result.output
    assert [s.token for s in db.query(UserSession).all()] == ["b" * 64]
