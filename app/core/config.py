"""Configuration management for the Clarity Snapshot service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    SNAPSHOT_ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")
    SNAPSHOT_VERSION: str = Field(default="1.0.0", description="Snapshot version for A/B tracking")

    # Provider keys (all optional - missing keys degrade to fallbacks)
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    FIRECRAWL_API_KEY: str = Field(default="", description="Firecrawl API key for website scraping")
    FIRECRAWL_TIMEOUT: int = Field(default=4, description="Firecrawl request timeout in seconds")

    # Narrative generation
    NARRATIVE_PROVIDER: str = Field(
        default="anthropic", description="Generative provider: anthropic or openai"
    )
    NARRATIVE_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Anthropic model for snapshot panes"
    )
    NARRATIVE_OPENAI_MODEL: str = Field(
        default="gpt-4o-mini", description="OpenAI model for snapshot panes"
    )
    NARRATIVE_TEMPERATURE: float = Field(default=0.75, description="Narrative temperature")
    NARRATIVE_MAX_TOKENS: int = Field(default=1200, description="Narrative max output tokens")
    NARRATIVE_TIMEOUT_SECONDS: float = Field(
        default=8.0, description="Hard bound on the narrative call before fallback"
    )

    # Scoring
    SCORING_BUDGET_MS: float = Field(
        default=50.0, description="Soft scoring budget; exceeding it only logs a warning"
    )

    # Enrichment
    ENRICHMENT_TIMEOUT_MS: int = Field(
        default=5000, description="Wall-clock cap for the whole enrichment batch"
    )
    WEBSITE_FETCH_TIMEOUT: float = Field(
        default=4.0, description="Per-request timeout for website extraction in seconds"
    )
    GBP_FETCH_TIMEOUT: float = Field(
        default=3.0, description="Per-request timeout for Google Business pages in seconds"
    )

    # Response cache
    SNAPSHOT_CACHE_MAX_SIZE: int = Field(default=100, description="Max cached snapshot responses")
    SNAPSHOT_CACHE_TTL_SECONDS: int = Field(
        default=24 * 60 * 60, description="Cached snapshot time-to-live in seconds"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If an environment variable has an invalid value
    """
    return Settings()
