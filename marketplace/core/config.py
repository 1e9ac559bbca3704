from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Charity Marketplace API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api"
    # Comma separated list, "*" allows any origin
    ALLOWED_ORIGINS: str = "*"

    # MongoDB settings
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "marketplace"

    # Collection names
    PRODUCTS_COLLECTION: str = "products"
    CATEGORIES_COLLECTION: str = "categories"
    ORGANIZATIONS_COLLECTION: str = "organizations"
    ORDERS_COLLECTION: str = "orders"
    LOGS_COLLECTION: str = "logs"

    # OpenAI settings (no key means every search goes through the fallback parser)
    OPENAI_API_KEY: str | None = None
    AI_SEARCH_MODEL: str = "gpt-3.5-turbo"
    AI_SEARCH_TIMEOUT_SECONDS: float = 5.0
    AI_SEARCH_MAX_TOKENS: int = 300
    AI_SEARCH_TEMPERATURE: float = 0.1


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
