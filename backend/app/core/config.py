from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg2://iruka:iruka@db:5432/game_console"
    LOG_LEVEL: str = "INFO"

    # Auth
    JWT_SECRET: str = "changethis"  # Should be changed in .env
    JWT_EXPIRES_SECONDS: int = 3600  # 1 hour

    # Object storage
    STORAGE_ROOT: str = "storage"
    STORAGE_BUCKET: str = "iruka-edu-mini-game"
    CDN_BASE_URL: str | None = None
    PUBLIC_API_BASE_URL: str = "http://localhost:8000"
    SIGNED_URL_EXPIRES_SECONDS: int = 15 * 60
    DELETE_BATCH_SIZE: int = 10

    # Uploads
    SMALL_UPLOAD_MAX_BYTES: int = 4 * 1024 * 1024
    MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cdn_base(self) -> str:
        if self.CDN_BASE_URL:
            return self.CDN_BASE_URL.rstrip("/")
        return f"https://storage.googleapis.com/{self.STORAGE_BUCKET}"


settings = Settings()
