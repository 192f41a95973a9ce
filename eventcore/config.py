from dotenv import load_dotenv
import os

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./eventcore.db")
    DATABASE_TIMEOUT = float(os.getenv("DATABASE_TIMEOUT", "30"))
    DATABASE_ECHO = _env_bool("DATABASE_ECHO", False)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

    TICKET_CODE_MAX_ATTEMPTS = int(os.getenv("TICKET_CODE_MAX_ATTEMPTS", "5"))
    ALLOW_MULTIPLE_TICKETS_PER_USER = _env_bool("ALLOW_MULTIPLE_TICKETS_PER_USER", False)
    TICKETS_REQUIRE_PAYMENT = _env_bool("TICKETS_REQUIRE_PAYMENT", False)

    SEED_DEMO_PASSWORD = os.getenv("SEED_DEMO_PASSWORD", "password123")
    SEED_CONCURRENCY = int(os.getenv("SEED_CONCURRENCY", "4"))

    FIGMA_TOKEN = os.getenv("FIGMA_TOKEN")
    FIGMA_API_BASE = os.getenv("FIGMA_API_BASE", "https://api.figma.com/v1")
    FIGMA_TIMEOUT = float(os.getenv("FIGMA_TIMEOUT", "30"))

settings = Settings()
