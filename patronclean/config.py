from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./patronclean.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    # Email domain reachability (DNS-over-HTTPS JSON API)
    DNS_RESOLVER_URL: str = "https://dns.google/resolve"
    DNS_TIMEOUT_SECONDS: float = 5.0
    ALWAYS_REACHABLE_DOMAINS: List[str] = ["gmail.com"]
    LOOKUP_FAILURE_POLICY: str = "assume_valid"  # assume_valid | assume_invalid | reject

    # Prefix for audit cell references, e.g. "Patrons!G12"
    SHEET_NAME: str = "Sheet1"

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
