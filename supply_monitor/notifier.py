"""Discord webhook notifications for supply status."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx

from supply_monitor.errors import InvalidInput, WebhookError
from supply_monitor.models import StatusTier
from supply_monitor.utils import format_day, format_number, spreadsheet_url, zero_date

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
USER_AGENT = "Supply-Status-Monitor/1.0"

ERROR_COLOR = 0xFF0000
# Discord rejects embed field values longer than this
FIELD_VALUE_LIMIT = 1024

TIER_COLORS = {
    StatusTier.CRITICAL: 0x8B0000,
    StatusTier.URGENT: 0xFF0000,
    StatusTier.WARNING: 0xFF8C00,
    StatusTier.CAUTION: 0xFFFF00,
    StatusTier.NORMAL: 0x00FF00,
}

TIER_EMOJI = {
    StatusTier.CRITICAL: "🚨",
    StatusTier.URGENT: "🚨",
    StatusTier.WARNING: "⚠️",
    StatusTier.CAUTION: "⚡",
    StatusTier.NORMAL: "✅",
}


@dataclass(frozen=True)
class StatusNotice:
    """Tier, color and wording for one supply state."""

    tier: StatusTier
    color: int
    emoji: str
    message: str
    label: str | None = None

    @property
    def alerts(self) -> bool:
        """Whether the notice carries a top-level alert line."""
        return self.label is not None

    def headline(self, name: str) -> str:
        if self.label:
            return f"{self.emoji} **{self.label}**: {name} {self.message}"
        return f"{self.emoji} {name} {self.message}"


def tier_for_days(days_remaining: int) -> StatusTier:
    if days_remaining < 0:
        raise InvalidInput(f"Days remaining cannot be negative: {days_remaining}")
    if days_remaining == 0:
        return StatusTier.CRITICAL
    if days_remaining <= 3:
        return StatusTier.URGENT
    if days_remaining <= 7:
        return StatusTier.WARNING
    if days_remaining <= 14:
        return StatusTier.CAUTION
    return StatusTier.NORMAL


def classify_status(
    days_remaining: int,
    supplies_were_zero: bool = False,
    supplies_hit_zero: bool = False,
) -> StatusNotice:
    """Map a supply state to its severity tier, color and message."""
    if supplies_were_zero or supplies_hit_zero:
        tier = StatusTier.CRITICAL
    else:
        tier = tier_for_days(days_remaining)

    color = TIER_COLORS[tier]
    emoji = TIER_EMOJI[tier]

    if supplies_were_zero:
        message = "supplies are STILL at ZERO! No supplies available for consumption."
        return StatusNotice(tier, color, emoji, message, label="CRITICAL")
    if supplies_hit_zero:
        message = "supplies have reached ZERO today! Immediate restocking required."
        return StatusNotice(tier, color, emoji, message, label="CRITICAL")
    # Under a day left with stock on hand keeps the critical color, urgent wording
    if tier in (StatusTier.CRITICAL, StatusTier.URGENT):
        return StatusNotice(
            tier,
            color,
            emoji,
            f"supplies are critically low! Only {days_remaining} days remaining.",
            label="URGENT",
        )
    if tier is StatusTier.WARNING:
        return StatusNotice(
            tier,
            color,
            emoji,
            f"supplies are running low. {days_remaining} days remaining.",
            label="WARNING",
        )
    if tier is StatusTier.CAUTION:
        return StatusNotice(tier, color, emoji, f"supplies will last {days_remaining} more days.")
    return StatusNotice(tier, color, emoji, f"supplies are healthy. {days_remaining} days remaining.")


# ---------------------------------------------------------------------------
# Payload builders (pure)
# ---------------------------------------------------------------------------


def build_status_payload(
    name: str,
    current_supplies: float,
    daily_consumption: float,
    days_remaining: int,
    sheet_id: str,
    now: datetime,
    tz: str = "America/New_York",
) -> dict[str, Any]:
    notice = classify_status(days_remaining)
    description = "\n".join(
        [
            f"⚡ **Status:** {name}",
            f"📅 {format_day(now, tz)} • [Open Sheet]({spreadsheet_url(sheet_id)})",
            f"📦 **Supplies** {format_number(current_supplies)} • "
            f"📉 **Cons** {format_number(daily_consumption)}/d • "
            f"⏰ **Days** {days_remaining}",
            f"🚨 **Zero Date** {zero_date(now, days_remaining, tz)}",
        ]
    )

    payload: dict[str, Any] = {
        "embeds": [
            {
                "description": description,
                "color": notice.color,
                "timestamp": now.isoformat(),
            }
        ]
    }
    # Only low-supply tiers ping the channel
    if notice.alerts:
        payload["content"] = notice.headline(name)
    return payload


def build_zero_supplies_payload(
    name: str,
    supplies_were_already_zero: bool,
    daily_consumption: float,
    sheet_id: str,
    now: datetime,
    tz: str = "America/New_York",
) -> dict[str, Any]:
    notice = classify_status(
        0,
        supplies_were_zero=supplies_were_already_zero,
        supplies_hit_zero=not supplies_were_already_zero,
    )
    variant = (
        "Supplies were already depleted"
        if supplies_were_already_zero
        else "Supplies have just been depleted today"
    )
    description = "\n".join(
        [
            f"⚡ **Status:** {name}",
            f"📅 {format_day(now, tz)} • [Open Sheet]({spreadsheet_url(sheet_id)})",
            f"📦 **Supplies** 0 (OUT OF STOCK) • "
            f"📉 **Cons** {format_number(daily_consumption)}/d • ⏰ **Days** 0",
            "🚨 **Zero Date** TODAY - IMMEDIATE ACTION REQUIRED",
            "",
            f"**{variant}**",
        ]
    )
    return {
        "content": notice.headline(name),
        "embeds": [
            {
                "title": f"🚨 ZERO SUPPLIES ALERT: {name}",
                "description": description,
                "color": notice.color,
                "timestamp": now.isoformat(),
            }
        ],
    }


def build_error_payload(sheet_name: str, error: str, now: datetime) -> dict[str, Any]:
    if len(error) > FIELD_VALUE_LIMIT:
        error = error[: FIELD_VALUE_LIMIT - 3] + "..."
    return {
        "content": "🚨 **ERROR**: Failed to process supply status",
        "embeds": [
            {
                "title": "❌ Supply Monitor Error",
                "color": ERROR_COLOR,
                "fields": [
                    {"name": "Sheet", "value": sheet_name, "inline": True},
                    {"name": "Error", "value": error or "Unknown error", "inline": False},
                ],
                "timestamp": now.isoformat(),
            }
        ],
    }


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class JsonTransport(Protocol):
    async def post_json(self, url: str, payload: dict[str, Any]) -> str: ...


class HttpxJsonTransport:
    """POSTs JSON with httpx and treats anything but 2xx as a failure."""

    def __init__(
        self,
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._http_transport = http_transport

    async def post_json(self, url: str, payload: dict[str, Any]) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._http_transport
            ) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"User-Agent": USER_AGENT},
                )
        except httpx.HTTPError as e:
            raise WebhookError(f"Webhook request failed: {e}") from e

        if not response.is_success:
            raise WebhookError(
                f"Webhook failed with status {response.status_code}: {response.text}",
                status=response.status_code,
                body=response.text,
            )
        return response.text


class DiscordNotifier:
    """Formats supply notifications and sends them to Discord webhooks."""

    def __init__(
        self,
        transport: JsonTransport | None = None,
        timezone: str = "America/New_York",
        clock: Callable[[], datetime] | None = None,
    ):
        self.transport = transport or HttpxJsonTransport()
        self.timezone = timezone
        self._clock = clock or (lambda: datetime.now(UTC))

    async def send_supply_status(
        self,
        name: str,
        current_supplies: float,
        daily_consumption: float,
        days_remaining: int,
        webhook_url: str,
        sheet_id: str,
    ) -> None:
        payload = build_status_payload(
            name,
            current_supplies,
            daily_consumption,
            days_remaining,
            sheet_id,
            self._clock(),
            self.timezone,
        )
        await self.transport.post_json(webhook_url, payload)
        logger.info("Sent supply status notification for %s", name)

    async def send_zero_supplies(
        self,
        name: str,
        supplies_were_already_zero: bool,
        daily_consumption: float,
        webhook_url: str,
        sheet_id: str,
    ) -> None:
        payload = build_zero_supplies_payload(
            name,
            supplies_were_already_zero,
            daily_consumption,
            sheet_id,
            self._clock(),
            self.timezone,
        )
        await self.transport.post_json(webhook_url, payload)
        logger.info("Sent zero supplies alert for %s", name)

    async def send_error(self, sheet_name: str, error: str, webhook_url: str) -> None:
        payload = build_error_payload(sheet_name, error, self._clock())
        await self.transport.post_json(webhook_url, payload)
        logger.info("Sent error notification for %s", sheet_name)
