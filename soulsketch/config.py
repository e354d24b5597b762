from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_IMAGE_MODEL: str = "dall-e-3"
    STRIPE_SECRET_KEY: str | None = None
    SMTP_HOST: str | None = None
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False
    SMTP_FROM_EMAIL: str = "noreply@soulmatesketch.com"
    DB_URL: str = "sqlite:///./db/soulsketch.sqlite"
    UPLOAD_DIR: str = "./uploads"
    LOG_DIR: str = "./logs"
    DELIVERY_LOG_LIMIT: int = 50
    EMAIL_LOG_LIMIT: int = 100
    FILE_RETENTION_DAYS: int = 7
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    cors_allow_origins: List[str] = ["*"]
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASS)

settings = Settings()
