from pydantic_settings import BaseSettings
from typing import Dict, Optional


class Settings(BaseSettings):
    APP_NAME: str = "Hospital Portal"
    VERSION: str = "1.0.0"
    SECRET_KEY: str = "change-me-in-production-use-strong-random-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    DATABASE_URL: str = "sqlite:///./hospital_portal.db"

    # Registry blob key (one JSON document holds every patient record)
    REGISTRY_STORAGE_KEY: str = "hospital_patients"

    # Shared HCP passphrases -> role tag. Supply as JSON in the environment,
    # e.g. HCP_ACCESS_KEYS='{"<passphrase>": "engineer"}'
    HCP_ACCESS_KEYS: Dict[str, str] = {}

    # External generative-language API (OpenAI-compatible chat completions)
    LLM_API_URL: Optional[str] = "https://api.x.ai/v1"
    LLM_API_KEY: Optional[str] = None
    LLM_MODEL: str = "grok-beta"
    LLM_TIMEOUT: int = 15
    LLM_MAX_TOKENS: int = 1000
    LLM_TEMPERATURE: float = 0.3
    LLM_MOCK_MODE: bool = False  # Canned responses, no network calls

    # One retry after a transient failure, then the template report
    LLM_MAX_ATTEMPTS: int = 2
    LLM_RETRY_DELAY_SECONDS: float = 2.0

    SEED_DEMO_DATA: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
