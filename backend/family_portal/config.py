# family_portal/config.py
import os
from pydantic import BaseModel, ConfigDict
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

DEFAULT_SYSTEM_PROMPT = "You are the family helper. Answer briefly, warmly and clearly."

class Settings(BaseModel):
    """
    Immutable runtime configuration.

    Built once at import time and handed to each service constructor.
    Tests derive variants with `settings.model_copy(update={...})`.
    """
    model_config = ConfigDict(frozen=True)

    # General app settings
    APP_NAME: str = "Family Portal API"
    env: str = os.getenv("ENV", "dev")

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        o.strip() for o in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",") if o.strip()
    ]

    # Database (single SQLite file by default)
    database_url: str = os.getenv("DATABASE_URL", "sqlite://data.db")

    # Session tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    session_ttl_days: int = int(os.getenv("SESSION_TTL_DAYS", "14"))
    secure_cookies: bool = os.getenv("SECURE_COOKIES", "false").lower() in ("true", "1", "yes")

    # Chat completion backend (OpenAI-compatible)
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY") or None
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.6"))
    completion_timeout_seconds: float = float(os.getenv("COMPLETION_TIMEOUT_SECONDS", "60"))
    system_prompt: str = os.getenv("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT)

    # Registration policy
    allow_registration: bool = os.getenv("ALLOW_REGISTRATION", "true").lower() in ("true", "1", "yes")
    require_invite: bool = os.getenv("REQUIRE_INVITE", "false").lower() in ("true", "1", "yes")

    # Per-user daily quota ceilings
    max_requests_per_day: int = int(os.getenv("MAX_REQUESTS_PER_DAY", "200"))
    max_tokens_per_day: int = int(os.getenv("MAX_TOKENS_PER_DAY", "50000"))

    # Coarse per-address rate limit in front of /api
    rate_limit_max_requests: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "60"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

settings = Settings()  # Instantiate configuration
