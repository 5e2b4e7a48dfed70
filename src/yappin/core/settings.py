"""Application settings and configuration.

This module defines all configuration options for the Yappin' core.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Yappin'", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Security and authentication
    secret_key: str = Field(default="yappin-development-secret", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Store backend selection
    store_backend: str = Field(default="memory", alias="STORE_BACKEND")
    database_url: str = Field(default="sqlite:///./yappin.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    firebase_database_url: str | None = Field(default=None, alias="FIREBASE_DATABASE_URL")
    firebase_credentials_path: str | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
    )
    store_transaction_max_retries: int = Field(
        default=25,
        alias="STORE_TRANSACTION_MAX_RETRIES",
    )
    # Seconds each in-memory round trip sleeps before it executes
    store_simulated_latency: float = Field(default=0.0, alias="STORE_SIMULATED_LATENCY")

    # Content limits
    yap_max_length: int = Field(default=280, alias="YAP_MAX_LENGTH")
    media_max_items: int = Field(default=4, alias="MEDIA_MAX_ITEMS")
    display_name_max_length: int = Field(default=50, alias="DISPLAY_NAME_MAX_LENGTH")
    username_min_length: int = Field(default=3, alias="USERNAME_MIN_LENGTH")
    username_max_length: int = Field(default=30, alias="USERNAME_MAX_LENGTH")
    bio_max_length: int = Field(default=160, alias="BIO_MAX_LENGTH")
    message_max_length: int = Field(default=2000, alias="MESSAGE_MAX_LENGTH")
    message_page_size: int = Field(default=40, alias="MESSAGE_PAGE_SIZE")
    group_yap_page_size: int = Field(default=50, alias="GROUP_YAP_PAGE_SIZE")

    # Group limits
    group_name_min_length: int = Field(default=3, alias="GROUP_NAME_MIN_LENGTH")
    group_name_max_length: int = Field(default=50, alias="GROUP_NAME_MAX_LENGTH")
    group_description_min_length: int = Field(
        default=10,
        alias="GROUP_DESCRIPTION_MIN_LENGTH",
    )
    group_description_max_length: int = Field(
        default=500,
        alias="GROUP_DESCRIPTION_MAX_LENGTH",
    )
    group_topic_min_length: int = Field(default=3, alias="GROUP_TOPIC_MIN_LENGTH")
    group_topic_max_length: int = Field(default=50, alias="GROUP_TOPIC_MAX_LENGTH")

    # Invite codes
    invite_code_length: int = Field(default=8, alias="INVITE_CODE_LENGTH")
    invite_code_ttl_days: int = Field(default=30, alias="INVITE_CODE_TTL_DAYS")
    invites_per_new_user: int = Field(default=3, alias="INVITES_PER_NEW_USER")
    group_invite_code_length: int = Field(default=8, alias="GROUP_INVITE_CODE_LENGTH")

    # Consistency: use single-path transactions for derived counters
    atomic_derived_counters: bool = Field(default=False, alias="ATOMIC_DERIVED_COUNTERS")

    # CORS
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def invite_code_ttl_ms(self) -> int:
        """Return the invite code lifetime in milliseconds."""
        return self.invite_code_ttl_days * 24 * 60 * 60 * 1000


settings = Settings()
