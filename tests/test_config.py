from app.core.config import Settings


def test_allowed_origins_read_comma_separated_from_env(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.example, http://b.example")

    assert Settings().ALLOWED_ORIGINS == ["http://a.example", "http://b.example"]


def test_allowed_origins_default_to_any(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)

    assert Settings().ALLOWED_ORIGINS == ["*"]


def test_database_url_alias(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///elsewhere.db")

    assert Settings().database_url == "sqlite:///elsewhere.db"
