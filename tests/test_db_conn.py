import pytest

from utils import db_conn as db_conn_module
from utils.db_conn import DatabaseConnection, resolve_database_uri


def test_database_connection_initializes_existing_app(app):
    conn = DatabaseConnection(app)
    assert conn.init_database() is True
    assert not hasattr(db_conn_module, "init_database_with_app")


def test_database_url_wins(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")
    assert resolve_database_uri() == "sqlite:///other.db"


def test_environment_selects_mysql_settings(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "online")
    monkeypatch.setenv("ONLINE_DB_HOST", "db.example")
    monkeypatch.setenv("ONLINE_DB_NAME", "portal")
    monkeypatch.delenv("ONLINE_DB_PORT", raising=False)
    uri = resolve_database_uri()
    assert uri.startswith("mysql+pymysql://")
    assert uri.endswith("@db.example:3306/portal")


def test_unknown_environment_rejected(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "staging")
    with pytest.raises(ValueError):
        resolve_database_uri()
