from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "vanish"
    app_env: str = "development"
    log_level: str = "INFO"

    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 5.0

    frontend_url: str = "http://localhost:3000"

    # Capability tokens (one secret per scope)
    INVITE_SECRET: str = "dev-invite"
    ATTACHMENT_SECRET: str | None = None
    ATTACHMENT_UPLOAD_SECRET: str | None = None
    ATTACHMENT_DOWNLOAD_SECRET: str | None = None
    TOKEN_ALGORITHM: str = "HS256"

    # Rooms
    room_default_ttl: int = 3600
    room_min_ttl: int = 60
    room_max_ttl: int = 86400

    # Messages
    message_default_ttl: int = 300
    message_min_ttl: int = 30
    message_max_ttl: int = 86400

    # Token lifetimes (seconds)
    invite_default_ttl: int = 1800
    invite_max_ttl: int = 86400
    upload_token_ttl: int = 600
    download_token_default_ttl: int = 300
    download_token_max_ttl: int = 900

    # Attachments / vault blobs
    attachment_max_bytes: int = 10 * 1024 * 1024
    attachment_default_ttl_ms: int = 5 * 60 * 1000
    attachment_sweep_interval: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    def secret_for(self, scope: str) -> str:
        if scope == "join":
            return self.INVITE_SECRET
        if scope == "upload":
            return self.ATTACHMENT_UPLOAD_SECRET or self.ATTACHMENT_SECRET or "dev-upload-secret"
        if scope == "download":
            return self.ATTACHMENT_DOWNLOAD_SECRET or self.ATTACHMENT_SECRET or "dev-download-secret"
        raise ValueError(f"Unknown token scope: {scope}")


settings = Settings()
