from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    The host provides env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Gemini (vision analysis + visual re-ranking)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_MAX_OUTPUT_TOKENS: int = 800
    GEMINI_RERANK_MAX_OUTPUT_TOKENS: int = 10
    GEMINI_MAX_RETRIES: int = 3
    GEMINI_MAX_BACKOFF_SECONDS: float = 20.0

    # Open Food Facts catalog
    OFF_BASE_URL: str = "https://world.openfoodfacts.org"
    OFF_PAGE_SIZE: int = 5
    OFF_USER_AGENT: str = "NutriScan/0.1.0 (https://github.com/nutriscan/nutriscan-api)"

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # Service
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"


# Other modules import this
settings = Settings()
