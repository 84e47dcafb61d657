from decimal import Decimal
from dotenv import load_dotenv
import os

# Load environment variables
load_dotenv()


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "")
    SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in {"1", "true", "yes"}
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,https://localhost:3000,http://127.0.0.1:3000,https://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]
    IS_HOSTED = bool(os.getenv("RENDER") or os.getenv("RAILWAY_ENVIRONMENT"))

    # Amounts are in the company's default currency
    FAST_TRACK_THRESHOLD = Decimal(os.getenv("FAST_TRACK_THRESHOLD", "500"))
    FINANCE_APPROVAL_ROLE = os.getenv("FINANCE_APPROVAL_ROLE", "finance").lower()


settings = Settings()
