"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Supabase Configuration
    supabase_url: str = "https://test.supabase.co"
    supabase_anon_key: str = "test-anon-key"

    # Identity Configuration
    user_profiles_table: str = "user_profiles"
    session_token_key: str = "dynamic_edu_session_token"
    session_store_path: str = ".yourvoice/session.json"
    session_token_hashing: bool = False  # Store sha256(token) instead of the raw token
    session_ttl_hours: int | None = None  # None = sessions never expire

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"


settings = Settings()
