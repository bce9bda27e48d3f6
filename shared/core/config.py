import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", 1440))  # 24 hours default

    DATABASE_URL: str | None = os.getenv("DATABASE_URL")
    DB_USER: str | None = os.getenv("DB_USER")
    DB_PASS: str | None = os.getenv("DB_PASS")
    DB_HOST: str | None = os.getenv("DB_HOST")
    DB_PORT: str | None = os.getenv("DB_PORT")
    DB_NAME: str | None = os.getenv("DB_NAME")

    # Stripe
    STRIPE_SECRET_KEY: str | None = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: str | None = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_TIMEOUT_SECONDS: int = int(os.getenv("STRIPE_TIMEOUT_SECONDS", 20))
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = int(
        os.getenv("STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300))

    # Contract / escrow policy
    DEFAULT_PLATFORM_COMMISSION_PERCENT: int = int(
        os.getenv("DEFAULT_PLATFORM_COMMISSION_PERCENT", 5))
    KEY_COLLECTION_DEFAULT_HOUR: int = int(
        os.getenv("KEY_COLLECTION_DEFAULT_HOUR", 12))
    CHECKLIST_DEADLINE_DAYS: int = int(os.getenv("CHECKLIST_DEADLINE_DAYS", 7))
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "EUR")

    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8002")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8080")
    CORS_ORIGINS: str = os.getenv(
        "CORS_ORIGINS", "http://localhost:8080,http://127.0.0.1:8002")

    # Email Configuration
    SMTP_HOST: str | None = os.getenv("SMTP_HOST")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", 587))
    SMTP_USERNAME: str | None = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD: str | None = os.getenv("SMTP_PASSWORD")
    SMTP_USE_SSL: bool = os.getenv("SMTP_USE_SSL", "False").lower() == "true"
    EMAIL_SENDER: str = os.getenv("EMAIL_SENDER", "noreply@clearlet.app")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()


def build_database_url() -> str:
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    if settings.DB_HOST:
        return (
            f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}?sslmode=require"
        )
    return "sqlite:///./contract_service.db"


CONTRACT_DATABASE_URL = build_database_url()
