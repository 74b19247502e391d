from usm_kit.config import load_settings


def test_load_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://example")
    monkeypatch.setenv("REDIS_URL", "redis://example:6379/0")
    monkeypatch.setenv("APP_ID", "demo-app")
    settings = load_settings("usm-web")

    assert settings.SERVICE_NAME == "usm-web"
    assert settings.DATABASE_URL == "postgresql://example"
    assert settings.REDIS_URL == "redis://example:6379/0"
    assert settings.collection_path == "/artifacts/demo-app/public/data/universal_vms"


def test_load_settings_defaults(monkeypatch) -> None:
    for name in ("APP_ID", "DATABASE_URL", "INITIAL_AUTH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings("usm-web")

    assert settings.INITIAL_AUTH_TOKEN is None
    assert settings.DATABASE_URL is None
    assert settings.collection_path == "/artifacts/default-app-id/public/data/universal_vms"
