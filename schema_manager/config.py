"""Application configuration using pydantic-settings."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via:
    1. Environment variables (e.g., SUPABASE_URL=https://xyz.supabase.co)
    2. .env file in the project root

    The catalog is reached through two Supabase keys: the anon (publishable)
    key is only used to verify the caller's access token, the service role
    key runs introspection queries and DDL.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    # API settings
    api_title: str = "Schema Manager API"
    api_version: str = "0.1.0"
    debug: bool = True  # Default to True for development

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS - the dashboard calls the service straight from the browser
    cors_allow_origins: list[str] = ["*"]

    # Supabase project
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    supabase_anon_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_anon_key", "supabase_publishable_key"),
    )

    # Catalog
    db_schema: str = "public"
    ddl_rpc: str = "exec_ddl"
    query_rpc: str = "exec_query"
    catalog_timeout: int = 30  # seconds

    # Schema objects exempt from user-driven mutation
    protected_tables: list[str] = ["table_settings"]
    system_columns: list[str] = ["id", "created_at", "updated_at", "user_id"]

    @property
    def catalog_configured(self) -> dict[str, bool]:
        """Return which catalog settings are present, for health checks."""
        return {
            "supabase_url": bool(self.supabase_url),
            "supabase_service_role_key": bool(self.supabase_service_role_key),
            "supabase_anon_key": bool(self.supabase_anon_key),
        }


# Global settings instance
settings = Settings()
