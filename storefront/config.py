from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Course Storefront"
    APP_VERSION: str = "0.1.0"

    # sql | redis | memory
    STORAGE_BACKEND: str = "sql"
    DATABASE_URL: str = "sqlite:///./storefront.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    STORAGE_NAMESPACE: str = "storefront"

    LOG_LEVEL: str = "INFO"
    RATE_LIMIT_PER_MINUTE: int = 60

    ADMIN_NAME: str = "Administrator"
    ADMIN_EMAIL: str = "admin@gmail.com"
    ADMIN_PASSWORD: str = "admin123"
    PLACEHOLDER_PASSWORD: str = "password123"
    MIN_PASSWORD_LENGTH: int = 6

    SEED_CATALOG: bool = True

    PAYMENT_PROCESSING_SECONDS: float = 2.0
    PAYMENT_FAILURE_RATE: float = 0.0
    URL_VALIDATION_SECONDS: float = 1.5
    TRUSTED_ATTACHMENT_DOMAINS: list[str] = [
        "youtube.com",
        "youtu.be",
        "drive.google.com",
        "docs.google.com",
        "dropbox.com",
        "github.com",
        "onedrive.live.com",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
