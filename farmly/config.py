# farmly/config.py
from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "development"
    DATA_DIR: Path = Path("data")  # where the CSV tables live

    # table -> file mapping; set to .xlsx in .env to keep a table in Excel instead
    PRODUCTS_FILE: str = "products.csv"
    FARMS_FILE: str = "farms.csv"
    EVENTS_FILE: str = "events.csv"
    EVENT_PRODUCTS_FILE: str = "event_products.csv"
    REVIEWS_FILE: str = "reviews.csv"
    ORDERS_FILE: str = "orders.csv"
    CART_STORAGE_TABLE: str = "cart_slots"
    # carts kept in memory; older ones are read back from the slot table on access
    CART_SESSION_CACHE_SIZE: int = 1024

    # listing defaults; clients may ask for less but never for more than MAX_PAGE_SIZE
    DEFAULT_PAGE_SIZE: int = 32
    MAX_PAGE_SIZE: int = 100

    LOG_LEVEL: str = "INFO"
    # comma separated; empty means the local dev frontend only
    CORS_ORIGINS: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
