import pytest
from lms.config import DEFAULT_DB_URL, Settings


def test_defaults(monkeypatch):
    for name in ("ENV", "DATABASE_URL", "SQL_ECHO", "LOG_LEVEL", "ALLOW_DEV_CORS"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.ENV == "dev"
    assert s.DATABASE_URL == DEFAULT_DB_URL
    assert s.SQL_ECHO is False
    assert s.LOG_LEVEL == "INFO"
    assert s.ALLOW_DEV_CORS is True


def test_unknown_env_rejected(monkeypatch):
    monkeypatch.setenv("ENV", "staging")
    with pytest.raises(RuntimeError):
        Settings()


def test_prod_requires_database_url(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv("DATABASE_URL", "postgresql://lms@db/lms")
    assert Settings().DATABASE_URL == "postgresql://lms@db/lms"
