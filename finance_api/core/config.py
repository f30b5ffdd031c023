from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    # App settings
    PROJECT_NAME: str = "PersonalFinanceAPI"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # DynamoDB
    DYNAMO_REGION: str = "eu-west-1"
    DYNAMO_ENDPOINT_URL: Optional[str] = None  # e.g. http://localhost:8001 for DynamoDB Local
    DYNAMO_TABLE_USERS: str = "finance-users"
    DYNAMO_TABLE_TRANSACTIONS: str = "finance-transactions"
    DYNAMO_TABLE_BUDGETS: str = "finance-budgets"
    DYNAMO_TABLE_GOALS: str = "finance-goals"
    DYNAMO_TABLE_NOTIFICATIONS: str = "finance-notifications"

    # JWT Authentication
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Background jobs
    SCHEDULER_ENABLED: bool = True
    BUDGET_MONITOR_CRON: str = "0 */6 * * *"  # every 6 hours
    RECURRING_TRANSACTIONS_CRON: str = "0 0 * * *"  # daily at midnight UTC

    # Analytics
    RECOMMENDATION_WINDOW_MONTHS: int = Field(default=3, ge=1)
    UPCOMING_NOTICE_DAYS: int = Field(default=3, ge=0)


settings = Settings()
