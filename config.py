import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def allowed_origins() -> List[str]:
    # ALLOWED_ORIGINS is comma-separated, e.g. https://parking.example.org,http://localhost:5173
    raw = os.environ.get("ALLOWED_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()]


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_echo: bool = False
    db_retries: int = 2
    db_retry_delay: float = 0.5
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""


def get_settings() -> Settings:
    # Fail fast: nothing works without a database.
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL is not set. Please check your .env file.")

    return Settings(
        database_url=database_url,
        db_echo=os.environ.get("DB_ECHO", "").lower() in ("1", "true", "yes"),
        db_retries=int(os.environ.get("DB_RETRIES", "2")),
        db_retry_delay=float(os.environ.get("DB_RETRY_DELAY", "0.5")),
        smtp_host=os.environ.get("SMTP_HOST", "").strip(),
        smtp_port=int(os.environ.get("SMTP_PORT", "587")),
        smtp_user=os.environ.get("SMTP_USER", "").strip(),
        smtp_password=os.environ.get("SMTP_PASSWORD", "").strip(),
        from_email=os.environ.get("FROM_EMAIL", "").strip(),
    )
