"""Health check utilities for searchwire.

Provides startup validation, the HTTP health endpoint, and the CLI
``--health-check`` report.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .config import SearchwireSettings, get_config
from .exceptions import ConfigException, UpstreamError

if TYPE_CHECKING:
    from ..upstream.search_client import SearchServiceClient

logger = logging.getLogger(__name__)

# Optional but recommended environment variables
OPTIONAL_ENV_VARS = {
    "AZURE_OPENAI_ENDPOINT": "openai_endpoint",
    "AZURE_OPENAI_API_KEY": "openai_api_key",
    "SEARCHWIRE_CURSOR_SECRET": "cursor_secret",
}


@dataclass
class HealthStatus:
    """Overall health status of the server."""

    healthy: bool = False
    config_valid: bool = False
    search_reachable: bool = False
    summarization_enabled: bool = False
    missing_env_vars: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "healthy": self.healthy,
            "config_valid": self.config_valid,
            "search_reachable": self.search_reachable,
            "summarization_enabled": self.summarization_enabled,
            "missing_env_vars": self.missing_env_vars,
            "warnings": self.warnings,
            "stats": self.stats,
            "error": self.error,
        }


def check_configuration(settings: SearchwireSettings) -> tuple[bool, list[str], list[str]]:
    """Check required and optional settings.

    Returns:
        Tuple of (all_required_present, missing_required, missing_optional)
    """
    try:
        settings.require_search_credentials()
        missing_required: list[str] = []
    except ConfigException as e:
        missing_required = e.missing_vars

    missing_optional = [var for var, attr in OPTIONAL_ENV_VARS.items() if not getattr(settings, attr)]
    return not missing_required, missing_required, missing_optional


def _service_counters(stats: dict[str, Any]) -> dict[str, Any]:
    counters = (stats or {}).get("counters") or {}
    return {
        name: (counters.get(name) or {}).get("usage", 0)
        for name in ("indexesCount", "indexersCount", "documentCount", "storageSize")
        if name in counters
    }


async def check_search_service(client: SearchServiceClient) -> tuple[bool, str | None, dict[str, Any]]:
    """Check that the search service answers with the configured key.

    Returns:
        Tuple of (reachable, error_message, counters)
    """
    try:
        stats = await client.get_service_statistics()
    except UpstreamError as e:
        return False, e.message, {}
    return True, None, _service_counters(stats)


async def run_health_check(
    settings: SearchwireSettings | None = None, client: SearchServiceClient | None = None
) -> HealthStatus:
    """Run comprehensive health check.

    Args:
        settings: Settings to check; the global config when None.
        client: Search client to check; one is built from settings when None.

    Returns:
        HealthStatus with all check results
    """
    settings = settings or get_config()
    status = HealthStatus(summarization_enabled=settings.summarization_enabled)
    warnings: list[str] = []

    config_ok, missing_required, missing_optional = check_configuration(settings)
    status.config_valid = config_ok
    status.missing_env_vars = missing_required
    if missing_optional:
        warnings.append(f"Optional env vars not set: {', '.join(missing_optional)}")

    if not config_ok:
        status.error = f"Missing required environment variables: {', '.join(missing_required)}"
        status.warnings = warnings
        return status

    if client is None:
        from ..upstream.search_client import SearchServiceClient

        async with SearchServiceClient.from_settings(settings) as owned:
            reachable, error, counters = await check_search_service(owned)
    else:
        reachable, error, counters = await check_search_service(client)

    status.search_reachable = reachable
    status.stats = counters
    status.warnings = warnings
    if not reachable:
        status.error = f"Search service check failed: {error}"
        return status

    status.healthy = True
    return status


async def startup_checks(settings: SearchwireSettings | None = None, fail_fast: bool = True) -> HealthStatus:
    """Run all startup checks.

    Args:
        settings: Settings to check; the global config when None.
        fail_fast: If True, exit with error code on failure

    Returns:
        HealthStatus
    """
    logger.info("Running startup health checks...")
    status = await run_health_check(settings)

    if status.healthy:
        logger.info("All startup checks passed")
        logger.info(f"  Summarization: {'enabled' if status.summarization_enabled else 'disabled'}")
        for name, value in status.stats.items():
            logger.info(f"  {name}: {value}")
        for warning in status.warnings:
            logger.warning(warning)
    else:
        logger.error("Startup checks FAILED")
        logger.error(f"  Error: {status.error}")
        if status.missing_env_vars:
            logger.error(f"  Missing env vars: {', '.join(status.missing_env_vars)}")
        if fail_fast:
            sys.exit(1)

    return status


def cli_health_check(settings: SearchwireSettings | None = None) -> int:
    """CLI entry point for health check.

    Returns:
        Exit code (0 for healthy, 1 for unhealthy)
    """
    status = asyncio.run(run_health_check(settings))

    print(f"Healthy: {status.healthy}")
    print(f"Configuration valid: {status.config_valid}")
    print(f"Search service reachable: {status.search_reachable}")
    print(f"Summarization enabled: {status.summarization_enabled}")

    if status.missing_env_vars:
        print(f"Missing env vars: {', '.join(status.missing_env_vars)}")

    if status.error:
        print(f"Error: {status.error}")

    if status.warnings:
        print("Warnings:")
        for warning in status.warnings:
            print(f"  - {warning}")

    if status.stats:
        print("Stats:")
        for key, value in status.stats.items():
            print(f"  {key}: {value}")

    return 0 if status.healthy else 1
