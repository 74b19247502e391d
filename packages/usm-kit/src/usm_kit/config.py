from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

COLLECTION_PATH_TEMPLATE = "/artifacts/{app_id}/public/data/universal_vms"


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "service"
    APP_ID: str = "default-app-id"
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None
    INITIAL_AUTH_TOKEN: str | None = None
    AUTH_TOKEN_SECRET: str = "dev-only-secret"
    SESSION_KEY: str = "default"
    SNAPSHOT_POLL_SECONDS: float = 1.0
    DISPLAY_TIMEZONE: str = "UTC"

    @property
    def collection_path(self) -> str:
        return COLLECTION_PATH_TEMPLATE.format(app_id=self.APP_ID)


def load_settings(service_name: str) -> ServiceSettings:
    return ServiceSettings(SERVICE_NAME=service_name)
