import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./kardex.db")
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    # Checkout money rules
    iva_rate: Decimal = Decimal(os.getenv("IVA_RATE", "0"))
    round_step: Decimal = Decimal(os.getenv("ROUND_STEP", "0"))

    conflict_retry_attempts: int = int(os.getenv("CONFLICT_RETRY_ATTEMPTS", "3"))
    business_timezone: str = os.getenv("BUSINESS_TIMEZONE", "UTC")

    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "kardex-dev-secret")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    cors_origins: list[str] = _split_csv(
        os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )


settings = Settings()
