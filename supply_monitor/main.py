"""Main entry point for a single supply monitoring run."""

import asyncio
import logging
import sys

import httpx

from supply_monitor.config import Settings, get_settings, load_sheet_configs
from supply_monitor.logs import LoggingConfig, setup_logging
from supply_monitor.monitor import SupplyMonitor
from supply_monitor.monitoring import capture_exception, setup_sentry
from supply_monitor.notifier import DiscordNotifier, HttpxJsonTransport
from supply_monitor.sheets import SheetsClient

logger = logging.getLogger(__name__)


def build_monitor(settings: Settings) -> SupplyMonitor:
    transport = HttpxJsonTransport(timeout=httpx.Timeout(settings.webhook_timeout, connect=10.0))
    return SupplyMonitor(
        sheets=SheetsClient.from_settings(settings),
        notifier=DiscordNotifier(transport, timezone=settings.timezone),
        sheet_delay=settings.sheet_delay_seconds,
        max_retries=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
    )


async def main() -> None:
    """Main async entry point."""
    settings = get_settings()
    setup_logging(LoggingConfig(level=settings.log_level, redact=settings.log_redact))
    setup_sentry(settings)

    logger.info("Starting supply status monitor...")

    configs = load_sheet_configs(settings)
    logger.info("Loaded configuration for %d sheets", len(configs))

    monitor = build_monitor(settings)
    await monitor.run(configs)

    logger.info("Supply status monitor completed successfully")


def run() -> None:
    try:
        asyncio.run(main())
    except Exception as e:
        logger.critical("Fatal error in supply status monitor: %s", e)
        capture_exception(e, {"stage": "fatal"})
        sys.exit(1)


if __name__ == "__main__":
    run()
