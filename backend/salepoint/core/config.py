from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./salepoint.db"

    # CORS origins for the till UI
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    TERMINAL_ID: str = "till-1"
    CURRENCY: str = "KSh"

    # Tax policy: percent per product category, DEFAULT_TAX_RATE for the rest
    DEFAULT_TAX_RATE: Decimal = Decimal("16")
    TAX_RATES: dict[str, Decimal] = {}

    # Customer directory
    MIN_CUSTOMER_QUERY_LENGTH: int = 2
    LOYALTY_POINT_VALUE: Decimal = Decimal("100")

    # Sale history: fresh receipt numbers tried when one is already taken
    RECEIPT_NUMBER_ATTEMPTS: int = 3

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


settings = Settings()
