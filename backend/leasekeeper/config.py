from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./leasekeeper.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Documents ----
    upload_dir: str = "./uploads"
    max_files_per_request: int = 4

    # ---- Status transitions ----
    # False keeps the historical permissive table; True enforces the strict one.
    strict_status_transitions: bool = False

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    # ---- Daily sweep ----
    sweep_hour: int = 0
    sweep_minute: int = 0
    sweep_timezone: str | None = None  # None -> server local time

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        if not (0 <= int(self.sweep_hour) <= 23):
            raise ValueError("sweep_hour must be between 0 and 23")
        if not (0 <= int(self.sweep_minute) <= 59):
            raise ValueError("sweep_minute must be between 0 and 59")


settings = Settings()
