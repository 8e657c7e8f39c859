from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "CardKeeper"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/cardkeeper"

    # Card metadata lookup (Scryfall-compatible API)
    card_lookup_url: str = "https://api.scryfall.com"
    card_lookup_timeout: float = 10.0
    # Most recently used printings kept by the process-wide lookup client
    card_lookup_cache_size: int = 2048

    # When True, hydrated views fill missing type line / colors / mana value
    # from the card lookup service. Lookup failures never block hydration.
    enrich_missing_metadata: bool = False


settings = Settings()


# =============================================================================
# CONTAINER LIMITS
# =============================================================================

# Longest accepted deck or binder name
DEFAULT_CONTAINER_NAME_MAX = 120

# Upper bound on items accepted by a single bulk binder allocation
MAX_BULK_ALLOCATION_ITEMS = 500

# Upper bound on cards accepted by a single collection import
MAX_IMPORT_CARDS = 1000
