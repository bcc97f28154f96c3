"""Service settings: Salesforce connected app, contact cache, Firebase, Gmail.

Values come from the environment or a .env file in the working directory.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class CacheBackendKind(str, Enum):
    sqlite = "sqlite"
    json = "json"


class Settings(BaseSettings):
    """Process-wide settings; read once through get_settings()."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # Salesforce connected app
    SALESFORCE_CLIENT_ID: str = ""
    SALESFORCE_CLIENT_SECRET: str = ""
    SALESFORCE_OAUTH_BASE: str = "https://login.salesforce.com/services/oauth2"
    SALESFORCE_API_VERSION: str = "v44.0"
    SALESFORCE_TOKEN_FILE: str = "sf-auth.json"  # access/refresh token + instance_url
    HTTP_TIMEOUT: float = 30.0
    QUERY_MAX_PAGES: int = 50

    # Firebase contact-id cache (chosen once at startup)
    CONTACT_CACHE_BACKEND: CacheBackendKind = CacheBackendKind.sqlite
    CONTACT_CACHE_SQLITE_PATH: str = "contact-ids.sqlite"
    CONTACT_CACHE_JSON_PATH: str = "contact-ids.json"

    # Firebase identity toolkit
    FIREBASE_API_KEY: str = ""
    FIREBASE_AUTH_BASE: str = "https://www.googleapis.com/identitytoolkit/v3/relyingparty"

    # Google Workspace (Gmail notifications)
    GOOGLE_SERVICE_ACCOUNT_FILE: str = ""  # Path to service account JSON key file
    NOTIFICATION_SENDER_EMAIL: str = ""  # Mailbox the service account sends as


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings instance."""
    return Settings()
