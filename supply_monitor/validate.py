"""Check every configured sheet without modifying anything.

Resolves the target tab of each SheetConfig and reads both configured cells,
logging what it finds. Uses larger retry budgets and a longer pause between
sheets than the monitor run, since it is usually run by hand against the
whole configuration.

Run with:
  supply-monitor-validate
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supply_monitor.config import SheetConfig, get_settings, load_sheet_configs
from supply_monitor.logs import LoggingConfig, setup_logging
from supply_monitor.models import SheetValidation
from supply_monitor.monitoring import retry_with_backoff
from supply_monitor.sheets import SheetsClient

logger = logging.getLogger(__name__)

VALIDATE_MAX_RETRIES = 4
VALIDATE_BASE_DELAY = 2.0
VALIDATE_SHEET_DELAY = 5.0


@dataclass
class ValidationReport:
    name: str
    validation: SheetValidation | None = None
    cells: dict[str, object] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.validation is not None and self.validation.is_valid


async def validate_sheet(
    sheets: SheetsClient,
    config: SheetConfig,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> ValidationReport:
    report = ValidationReport(name=config.name)
    try:
        validation = await retry_with_backoff(
            sheets.validate_sheet_config,
            config.sheet_id,
            config.sheet_name,
            max_retries=VALIDATE_MAX_RETRIES,
            base_delay=VALIDATE_BASE_DELAY,
            sleep=sleep,
        )
    except Exception as e:
        logger.error("❌ Error validating %s: %s", config.name, e)
        report.error = str(e)
        return report

    report.validation = validation
    logger.info('Spreadsheet: "%s"', validation.spreadsheet_title)
    logger.info("Total sheets: %d", validation.total_sheets)
    logger.info("Available sheets: %s", ", ".join(validation.available_sheets))
    logger.info("Target sheet: %s", validation.target_sheet or "N/A")
    logger.info("Status: %s", "✅ VALID" if validation.is_valid else "❌ INVALID")
    logger.info("Message: %s", validation.message)

    if not validation.is_valid:
        return report

    try:
        cells = await retry_with_backoff(
            sheets.get_cell_values_batch,
            config.sheet_id,
            [config.current_supplies_cell, config.daily_consumption_cell],
            config.sheet_name,
            max_retries=VALIDATE_MAX_RETRIES,
            base_delay=VALIDATE_BASE_DELAY,
            sleep=sleep,
        )
    except Exception as e:
        logger.error("❌ Error reading cells: %s", e)
        report.error = str(e)
        return report

    report.cells = cells
    for label, cell in (
        ("Current supplies", config.current_supplies_cell),
        ("Daily consumption", config.daily_consumption_cell),
    ):
        value = cells.get(cell)
        logger.info("%s (%s): %s", label, cell, "No data" if value is None else value)
    return report


async def validate_sheets(
    sheets: SheetsClient,
    configs: list[SheetConfig],
    sheet_delay: float = VALIDATE_SHEET_DELAY,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> list[ValidationReport]:
    sleep = sleep or asyncio.sleep
    reports = []
    for index, config in enumerate(configs):
        logger.info("--- Validating: %s (%d/%d) ---", config.name, index + 1, len(configs))
        if index > 0 and sheet_delay > 0:
            logger.info("Waiting %.0f seconds to avoid rate limits...", sheet_delay)
            await sleep(sheet_delay)
        reports.append(await validate_sheet(sheets, config, sleep=sleep))

    valid = sum(1 for r in reports if r.ok)
    logger.info("Validation completed: %d/%d sheets valid", valid, len(reports))
    return reports


async def main() -> bool:
    settings = get_settings()
    setup_logging(LoggingConfig(level=settings.log_level, redact=settings.log_redact))

    logger.info("Starting sheet configuration validation...")
    configs = load_sheet_configs(settings)
    logger.info("Loaded configuration for %d sheets", len(configs))

    reports = await validate_sheets(SheetsClient.from_settings(settings), configs)
    return all(r.ok for r in reports)


def run() -> None:
    try:
        all_valid = asyncio.run(main())
    except Exception as e:
        logger.critical("Fatal error during validation: %s", e, exc_info=True)
        sys.exit(1)
    sys.exit(0 if all_valid else 1)


if __name__ == "__main__":
    run()
