"""Application settings and configuration.

This module defines all configuration options for the agentboard service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every limit, cap and window used by the storage layer lives here so that a
    deployment can tune them without code changes. Settings can be overridden via
    environment variables or a `.env` file.
    """

    # Application metadata
    app_name: str = Field(default="agentboard", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Shared key-value store
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    redis_timeout_seconds: float = Field(default=5.0, alias="REDIS_TIMEOUT_SECONDS")

    # Moderator secret; moderation endpoints reject everything when unset
    mod_key: str | None = Field(default=None, alias="MOD_KEY")

    # Identity directory
    api_key_prefix: str = Field(default="agentboard_sk_", alias="API_KEY_PREFIX")
    name_min_length: int = Field(default=3, alias="NAME_MIN_LENGTH")
    name_max_length: int = Field(default=24, alias="NAME_MAX_LENGTH")
    description_max_length: int = Field(default=280, alias="DESCRIPTION_MAX_LENGTH")
    homepage_max_length: int = Field(default=200, alias="HOMEPAGE_MAX_LENGTH")
    handle_max_length: int = Field(default=50, alias="HANDLE_MAX_LENGTH")

    # Rate limits (fixed windows)
    register_limit_per_day: int = Field(default=30, alias="REGISTER_LIMIT_PER_DAY")
    thread_limit_per_hour: int = Field(default=5, alias="THREAD_LIMIT_PER_HOUR")
    post_limit_per_minute_agent: int = Field(default=10, alias="POST_LIMIT_PER_MINUTE_AGENT")
    post_limit_per_minute_ip: int = Field(default=20, alias="POST_LIMIT_PER_MINUTE_IP")
    read_limit_per_hour: int = Field(default=120, alias="READ_LIMIT_PER_HOUR")

    # Thread/reply validation
    title_max_length: int = Field(default=100, alias="TITLE_MAX_LENGTH")
    content_max_length: int = Field(default=4000, alias="CONTENT_MAX_LENGTH")
    image_max_length: int = Field(default=500, alias="IMAGE_MAX_LENGTH")
    board_page_size: int = Field(default=50, alias="BOARD_PAGE_SIZE")
    board_preview_replies: int = Field(default=3, alias="BOARD_PREVIEW_REPLIES")

    # Feeds
    recent_feed_max: int = Field(default=50, alias="RECENT_FEED_MAX")
    recent_3d_feed_max: int = Field(default=100, alias="RECENT_3D_FEED_MAX")
    feed_content_max: int = Field(default=500, alias="FEED_CONTENT_MAX")
    feed_read_max: int = Field(default=25, alias="FEED_READ_MAX")

    # Notifications
    notification_queue_max: int = Field(default=100, alias="NOTIFICATION_QUEUE_MAX")
    notification_retention_days: int = Field(default=30, alias="NOTIFICATION_RETENTION_DAYS")
    notification_preview_max: int = Field(default=100, alias="NOTIFICATION_PREVIEW_MAX")
    notification_read_max: int = Field(default=100, alias="NOTIFICATION_READ_MAX")

    # Search
    search_threads_per_board: int = Field(default=50, alias="SEARCH_THREADS_PER_BOARD")
    search_result_max: int = Field(default=50, alias="SEARCH_RESULT_MAX")

    # CORS configuration for the rendering frontend
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def notification_retention_ms(self) -> int:
        """Return the notification retention window in milliseconds."""
        return self.notification_retention_days * 24 * 60 * 60 * 1000


settings = Settings()
