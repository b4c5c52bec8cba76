"""
Application configuration with environment variables.
"""
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator
from typing import Dict, List, Optional


DEFAULT_WEIGHTS = {"price": 40, "quality": 30, "leadTime": 20, "compliance": 10}


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "ProcureFlow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database (workflow state store)
    DATABASE_URL: str = "sqlite:///./procureflow.db"

    # Redis (rq queues for RFQ dispatch and notifications)
    REDIS_URL: str = "redis://redis:6379/0"

    # Extraction collaborator
    LLM_PROVIDER: str = "mock"  # mock, openai, anthropic
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"
    UPSTREAM_TIMEOUT_SECONDS: float = 60.0

    # Notification collaborator
    NOTIFIER: str = "log"  # log, queue, webhook
    NOTIFY_WEBHOOK_URL: Optional[str] = None

    # Supplier directory
    SUPPLIER_DIRECTORY_PATH: Optional[str] = None

    # Workflow defaults
    SIMULATE_BIDS: bool = True
    DEFAULT_BUYER_LOCATION: str = "Los Angeles, CA"
    RFQ_RESPONSE_DAYS: int = 14
    RFQ_DEFAULT_SUPPLIERS: int = 3
    DEFAULT_BID_WEIGHTS: Dict[str, int] = DEFAULT_WEIGHTS

    # Compliance rules
    ADA_MIN_HEIGHT_IN: float = 28.0
    ADA_MAX_HEIGHT_IN: float = 34.0

    # Region table override: {"West": ["CA", ...], ...}
    REGIONS: Optional[Dict[str, List[str]]] = None

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    @field_validator('DEFAULT_BID_WEIGHTS')
    @classmethod
    def validate_bid_weights(cls, v: Dict[str, int]) -> Dict[str, int]:
        """Default bid weights must cover every category and sum to 100."""
        if set(v) != set(DEFAULT_WEIGHTS):
            raise ValueError(
                f"DEFAULT_BID_WEIGHTS must have exactly the keys {sorted(DEFAULT_WEIGHTS)}"
            )
        if sum(v.values()) != 100:
            raise ValueError("DEFAULT_BID_WEIGHTS must sum to 100")
        return v

    @field_validator('ADA_MAX_HEIGHT_IN')
    @classmethod
    def validate_ada_range(cls, v: float, info) -> float:
        low = info.data.get("ADA_MIN_HEIGHT_IN", 28.0)
        if v <= low:
            raise ValueError("ADA_MAX_HEIGHT_IN must be greater than ADA_MIN_HEIGHT_IN")
        return v

    @field_validator('LLM_PROVIDER', 'NOTIFIER')
    @classmethod
    def lowercase_choice(cls, v: str) -> str:
        return v.strip().lower()


settings = Settings()
