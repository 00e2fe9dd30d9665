from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Merchant Onboarding API"
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    # Database (SQLite for local dev, any async SQLAlchemy URL in production)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./onboarding_dev.db",
        alias="DATABASE_URL",
    )
    auto_create_tables: bool = Field(
        default=True, alias="AUTO_CREATE_TABLES",
    )  # Alembic owns the schema when this is off

    # Multi-tenancy default
    default_client_id: str = Field(default="default", alias="DEFAULT_CLIENT_ID")

    # Document uploads
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")
    max_upload_size_mb: int = 10
    max_additional_documents: int = 5

    # Credential tokens
    setup_token_ttl_hours: int = Field(
        default=7 * 24, alias="SETUP_TOKEN_TTL_HOURS",
    )
    reset_token_ttl_minutes: int = Field(
        default=60, alias="RESET_TOKEN_TTL_MINUTES",
    )

    # Record every write request in audit_trail
    audit_requests: bool = Field(default=True, alias="AUDIT_REQUESTS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    def setup_url(self, token: str) -> str:
        return f"{self.frontend_url.rstrip('/')}/merchant/account-setup/{token}"

    def reset_url(self, token: str) -> str:
        return f"{self.frontend_url.rstrip('/')}/merchant/reset-password/{token}"


settings = Settings()
