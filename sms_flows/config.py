from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Twilio credentials. Without them outbound SMS are only logged (dry run).
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_MESSAGING_SERVICE_SID: Optional[str] = None
    VALIDATE_TWILIO_SIGNATURE: bool = False

    # Conversation state persistence
    STATE_BACKEND: Literal["cookie", "memory", "database"] = "cookie"
    COOKIE_NAME: Optional[str] = None  # Derived from the account SID when unset
    COOKIE_SECRET: Optional[str] = None  # Derived from the Twilio credentials when unset
    DATABASE_URL: str = "sqlite:///./sms_flows.db"

    # Delivery
    SEND_ON_EXIT: Optional[str] = "Goodbye."
    SEND_DELAY_SECONDS: float = 1.0

    # Module exposing ROOT (and optionally SCHEMA and hooks)
    FLOWS_MODULE: str = "sms_flows.data.example_flows"

    # Loads from a .env file in the root directory
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

# Singleton instance
settings = Settings()
