from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(alias="DATABASE_URL")

    # JWT Configuration
    secret_key: str = Field(alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_days: int = Field(default=365, alias="ACCESS_TOKEN_EXPIRE_DAYS")

    # Account lifecycle
    account_activation_required: bool = Field(
        default=False, alias="ACCOUNT_ACTIVATION_REQUIRED"
    )
    # Time allowed between requesting a reset and using the emailed token (2 hours)
    password_reset_expire_minutes: int = Field(
        default=120, alias="PASSWORD_RESET_EXPIRE_MINUTES"
    )

    # Browser session cookie
    cookie_secure: bool = Field(default=False, alias="COOKIE_SECURE")

    # First Admin User (seeded by the users migration when set)
    first_admin_email: str | None = Field(default=None, alias="FIRST_ADMIN_EMAIL")
    first_admin_username: str = Field(default="admin", alias="FIRST_ADMIN_USERNAME")
    first_admin_password: str | None = Field(default=None, alias="FIRST_ADMIN_PASSWORD")

    # SMTP Configuration (optional)
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int | None = Field(default=None, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    smtp_from_email: str | None = Field(default=None, alias="SMTP_FROM_EMAIL")

    # Base URL used to build links in outgoing emails
    site_url: str = Field(default="http://localhost:8000", alias="SITE_URL")

    # Frontend origin allowed by CORS
    frontend_url: str | None = Field(default=None, alias="FRONTEND_URL")

    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator(
        "smtp_host",
        "smtp_user",
        "smtp_password",
        "smtp_from_email",
        "first_admin_email",
        "first_admin_password",
        "frontend_url",
        mode="before",
    )
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for optional string fields."""
        if v == "":
            return None
        return v

    @field_validator("smtp_port", mode="before")
    @classmethod
    def empty_str_to_none_int(cls, v: str | int | None) -> int | None:
        """Convert empty strings to None for optional integer fields."""
        if v == "":
            return None
        if isinstance(v, str):
            try:
                return int(v)
            except ValueError:
                return None
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
