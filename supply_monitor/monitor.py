"""Supply monitor orchestration: read, decrement, write back, notify."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from supply_monitor.config import SheetConfig
from supply_monitor.errors import InvalidInput
from supply_monitor.models import RunSummary, SupplyOutcome, SupplyReading, compute_outcome
from supply_monitor.monitoring import capture_exception, retry_with_backoff
from supply_monitor.notifier import DiscordNotifier
from supply_monitor.sheets import SheetsClient
from supply_monitor.utils import format_number, parse_numeric_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SupplyMonitor:
    """Processes configured sheets one at a time."""

    def __init__(
        self,
        sheets: SheetsClient,
        notifier: DiscordNotifier,
        sheet_delay: float = 3.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.sheets = sheets
        self.notifier = notifier
        self.sheet_delay = sheet_delay
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep

    async def _call(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        return await retry_with_backoff(
            fn,
            *args,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            sleep=self._sleep,
        )

    async def read_supplies(self, config: SheetConfig) -> SupplyReading:
        """Fetch and parse both configured cells in one batched call."""
        values = await self._call(
            self.sheets.get_cell_values_batch,
            config.sheet_id,
            [config.current_supplies_cell, config.daily_consumption_cell],
            config.sheet_name,
        )

        current = values.get(config.current_supplies_cell)
        daily = values.get(config.daily_consumption_cell)
        if current is None:
            raise InvalidInput(
                f"No data found in current supplies cell {config.current_supplies_cell}"
            )
        if daily is None:
            raise InvalidInput(
                f"No data found in daily consumption cell {config.daily_consumption_cell}"
            )

        reading = SupplyReading(
            current_supplies=parse_numeric_value(current),
            daily_consumption=parse_numeric_value(daily),
        )
        if reading.daily_consumption <= 0:
            raise InvalidInput("Daily consumption must be greater than 0")
        return reading

    async def process_sheet(self, config: SheetConfig) -> SupplyOutcome:
        logger.info("Processing sheet: %s", config.name)

        reading = await self.read_supplies(config)
        outcome = compute_outcome(reading)

        logger.info(
            "%s: Current supplies: %s, Daily consumption: %s, New supply value: %s",
            config.name,
            format_number(reading.current_supplies),
            format_number(reading.daily_consumption),
            format_number(outcome.new_supply_value),
        )

        if outcome.supplies_were_zero:
            logger.info("%s supplies were already at zero - no update needed", config.name)
        else:
            await self._call(
                self.sheets.update_cell_value,
                config.sheet_id,
                config.current_supplies_cell,
                outcome.new_supply_value,
                config.sheet_name,
            )
            logger.info(
                "Updated %s current supplies from %s to %s",
                config.name,
                format_number(reading.current_supplies),
                format_number(outcome.new_supply_value),
            )

        if outcome.is_zero:
            await self.notifier.send_zero_supplies(
                name=config.name,
                supplies_were_already_zero=outcome.supplies_were_zero,
                daily_consumption=reading.daily_consumption,
                webhook_url=config.webhook_url,
                sheet_id=config.sheet_id,
            )
            logger.info("Successfully processed %s: supplies are at zero", config.name)
        else:
            await self.notifier.send_supply_status(
                name=config.name,
                current_supplies=outcome.new_supply_value,
                daily_consumption=reading.daily_consumption,
                days_remaining=outcome.days_remaining,
                webhook_url=config.webhook_url,
                sheet_id=config.sheet_id,
            )
            logger.info(
                "Successfully processed %s: %d days remaining",
                config.name,
                outcome.days_remaining,
            )

        return outcome

    async def report_error(self, config: SheetConfig, error: BaseException) -> None:
        """Tell the sheet's channel that processing failed. Never raises."""
        try:
            await self.notifier.send_error(
                sheet_name=config.name,
                error=str(error) or type(error).__name__,
                webhook_url=config.webhook_url,
            )
        except Exception as notify_error:
            logger.error(
                "Failed to send error notification for %s: %s",
                config.name,
                notify_error,
                exc_info=True,
            )

    async def run(self, configs: list[SheetConfig]) -> RunSummary:
        summary = RunSummary()

        for index, config in enumerate(configs):
            if index > 0 and self.sheet_delay > 0:
                logger.info(
                    "Waiting %.1f seconds between sheets to avoid rate limits...",
                    self.sheet_delay,
                )
                await self._sleep(self.sheet_delay)

            try:
                await self.process_sheet(config)
                summary.processed += 1
            except Exception as e:
                summary.failed += 1
                summary.failures.append(config.name)
                logger.error("Error processing sheet %s: %s", config.name, e)
                capture_exception(e, {"sheet": config.name})
                await self.report_error(config, e)

        logger.info(
            "Run complete: processed=%d failed=%d", summary.processed, summary.failed
        )
        return summary
