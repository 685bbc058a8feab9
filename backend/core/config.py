import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./stock.db"
    )
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    # Realtime change feed
    realtime_channel: str = os.getenv("REALTIME_CHANNEL", "app-activity")

    # Global fallback when neither the item nor its category sets a threshold
    low_stock_threshold: int = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))

    # Logging
    environment: str = os.getenv("ENVIRONMENT", "development").lower()
    log_level: str = os.getenv("LOG_LEVEL", "")

    # Host-side API client
    api_base_url: str = os.getenv("STOCK_API_URL", "http://localhost:8000")


settings = Settings()
