from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-19.v1"
    database_url: str = "sqlite:///./agency_listings.db"
    create_tables_on_startup: bool = True

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Identity (external provider) ----
    auth_mode: str = "dev"  # dev|jwt
    auth_jwt_secret: str = "dev-change-me"
    auth_jwt_algorithms: list[str] = ["HS256"]
    auth_jwt_audience: str | None = None

    # Dev header names
    dev_header_user_id: str = "X-Auth-User-Id"
    dev_header_user_email: str = "X-Auth-Email"

    # ---- Profile provisioning policy ----
    # One reviewed default for profiles created on first sight of an identity.
    auto_provision_profiles: bool = False
    default_profile_role: str = "AGENT"
    default_profile_agency_id: int | None = None

    # ---- Logging ----
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"

    # ---- Pagination ----
    page_default_limit: int = 20
    page_max_limit: int = 100

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.auth_jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: auth_jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
