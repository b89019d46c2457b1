from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "FinSync Dashboard"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])

    # Aggregation backend
    BACKEND_BASE_URL: str = Field(default="http://localhost:3001")
    BACKEND_TIMEOUT_SECONDS: float = Field(default=15.0)

    # Sync timing
    AUTO_SYNC_ENABLED: bool = Field(default=True)
    AUTO_SYNC_INTERVAL_SECONDS: float = Field(default=300.0)  # 5 minutes
    SYNC_TIMEOUT_SECONDS: float = Field(default=10.0)
    STATUS_REFRESH_DELAY_SECONDS: float = Field(default=5.0)
    SYNC_RESULT_CLEAR_SECONDS: float = Field(default=3.0)
    INCLUDE_INVESTMENT_SYNC: bool = Field(default=True)

    # Insight thresholds (placeholders until real spending / limit data is wired in)
    DEFAULT_CREDIT_LIMIT: float = Field(default=1000.0)
    CREDIT_UTILIZATION_THRESHOLD: float = Field(default=0.8)
    MONTHLY_EXPENSE_ESTIMATE: float = Field(default=3000.0)
    EMERGENCY_FUND_MONTHS: int = Field(default=6)

    # Load pipeline
    TRANSACTION_WINDOW_DAYS: int = Field(default=90)
    TRANSACTION_PAGE_LIMIT: int = Field(default=1000)
    TRANSACTION_MAX_PAGES: int = Field(default=10)


settings = Settings()
