"""Core configuration for the searchwire package.

All environment-based configuration flows through this module. Entry
points load settings once with ``get_config()`` and inject them into the
executor and clients; library code never reads the environment itself.

Usage:
    from searchwire.core.config import get_config
    config = get_config()

    endpoint = config.search_endpoint
    budget = config.max_response_chars
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigException


class SearchwireSettings(BaseSettings):
    """Configuration settings for searchwire.

    Upstream credentials use the conventional AZURE_* variable names;
    everything else uses the SEARCHWIRE_ prefix.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ==========================================================================
    # SEARCH SERVICE SETTINGS
    # ==========================================================================

    search_endpoint: str = Field(
        default="",
        description="Search service endpoint, e.g. https://<service>.search.windows.net",
        validation_alias="AZURE_SEARCH_ENDPOINT",
    )
    search_api_key: str = Field(
        default="",
        description="Search service admin or query key",
        validation_alias="AZURE_SEARCH_API_KEY",
    )
    search_api_version: str = Field(
        default="2025-08-01-preview",
        description="REST API version sent with every search request",
        validation_alias="AZURE_SEARCH_API_VERSION",
    )

    # ==========================================================================
    # SUMMARIZER SETTINGS
    # ==========================================================================

    openai_endpoint: str = Field(
        default="",
        description="Azure OpenAI endpoint used to summarize oversized responses",
        validation_alias="AZURE_OPENAI_ENDPOINT",
    )
    openai_api_key: str = Field(
        default="",
        description="Azure OpenAI API key",
        validation_alias="AZURE_OPENAI_API_KEY",
    )
    openai_deployment: str = Field(
        default="gpt-4o-mini",
        description="Chat deployment used for summaries",
        validation_alias="AZURE_OPENAI_DEPLOYMENT",
    )
    openai_api_version: str = Field(
        default="2024-08-01-preview",
        description="Azure OpenAI REST API version",
        validation_alias="AZURE_OPENAI_API_VERSION",
    )

    # ==========================================================================
    # PIPELINE SETTINGS
    # ==========================================================================

    default_timeout_ms: int = Field(
        default=30000,
        description="Deadline for a tool's domain operation",
        validation_alias="SEARCHWIRE_DEFAULT_TIMEOUT_MS",
    )
    summarizer_timeout_ms: int = Field(
        default=10000,
        description="Deadline for a single summarization call",
        validation_alias="SEARCHWIRE_SUMMARIZER_TIMEOUT_MS",
    )
    elicitation_timeout_ms: int = Field(
        default=120000,
        description="How long to wait for the user to answer an elicitation",
        validation_alias="SEARCHWIRE_ELICITATION_TIMEOUT_MS",
    )
    max_response_chars: int = Field(
        default=20 * 1024,
        description="Character budget for a tool response",
        validation_alias="SEARCHWIRE_MAX_RESPONSE_CHARS",
    )
    summary_max_tokens: int = Field(
        default=800,
        description="Token budget handed to the summarizer",
        validation_alias="SEARCHWIRE_SUMMARY_MAX_TOKENS",
    )
    cursor_secret: str = Field(
        default="",
        description="Key used to seal pagination cursors (built-in key when empty)",
        validation_alias="SEARCHWIRE_CURSOR_SECRET",
    )

    # ==========================================================================
    # LIMITS
    # ==========================================================================

    default_page_size: int = Field(
        default=50,
        description="Page size used when a listing tool is called without one",
        validation_alias="SEARCHWIRE_DEFAULT_PAGE_SIZE",
    )
    max_page_size: int = Field(
        default=200,
        description="Largest page size a caller may request",
        validation_alias="SEARCHWIRE_MAX_PAGE_SIZE",
    )
    max_search_results: int = Field(
        default=50,
        description="Largest 'top' accepted by search_documents",
        validation_alias="SEARCHWIRE_MAX_SEARCH_RESULTS",
    )
    max_documents_per_batch: int = Field(
        default=1000,
        description="Largest document batch accepted by upload_documents",
        validation_alias="SEARCHWIRE_MAX_DOCUMENTS_PER_BATCH",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        description="Interval between status polls of long-running operations",
        validation_alias="SEARCHWIRE_POLL_INTERVAL_SECONDS",
    )
    poll_max_attempts: int = Field(
        default=60,
        description="Maximum number of status polls before giving up",
        validation_alias="SEARCHWIRE_POLL_MAX_ATTEMPTS",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="SEARCHWIRE_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="SEARCHWIRE_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="SEARCHWIRE_LOG_FILE",
    )

    # ==========================================================================
    # SERVER SETTINGS
    # ==========================================================================

    server_name: str = Field(
        default="searchwire",
        description="Name announced to MCP clients",
        validation_alias="SEARCHWIRE_SERVER_NAME",
    )
    host: str = Field(
        default="127.0.0.1",
        description="Bind address for the HTTP transport",
        validation_alias="SEARCHWIRE_HOST",
    )
    port: int = Field(
        default=8430,
        description="Port for the HTTP transport",
        validation_alias="SEARCHWIRE_PORT",
    )
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="CORS origins for the HTTP transport",
        validation_alias="SEARCHWIRE_ALLOWED_ORIGINS",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def summarization_enabled(self) -> bool:
        """True when a summarization endpoint and key are configured."""
        return bool(self.openai_endpoint and self.openai_api_key)

    def require_search_credentials(self) -> None:
        """Raise ConfigException if the search service is not configured."""
        missing = []
        if not self.search_endpoint:
            missing.append("AZURE_SEARCH_ENDPOINT")
        if not self.search_api_key:
            missing.append("AZURE_SEARCH_API_KEY")
        if missing:
            raise ConfigException("Search service credentials are not configured", missing_vars=missing)


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: SearchwireSettings | None = None


def get_config() -> SearchwireSettings:
    """Get the global configuration instance.

    Returns:
        The singleton SearchwireSettings instance.
    """
    global _config
    if _config is None:
        _config = SearchwireSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
