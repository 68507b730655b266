"""Data models for the supply monitor."""

import math
from dataclasses import dataclass, field
from enum import Enum

from supply_monitor.errors import InvalidInput


class StatusTier(str, Enum):
    """Severity bucket derived from days remaining."""

    CRITICAL = "critical"
    URGENT = "urgent"
    WARNING = "warning"
    CAUTION = "caution"
    NORMAL = "normal"


@dataclass(frozen=True)
class SupplyReading:
    """Parsed values of the two configured cells."""

    current_supplies: float
    daily_consumption: float


@dataclass(frozen=True)
class SupplyOutcome:
    """Result of applying one day of consumption to a reading."""

    new_supply_value: float
    days_remaining: int
    supplies_were_zero: bool
    supplies_hit_zero: bool

    @property
    def is_zero(self) -> bool:
        return self.supplies_were_zero or self.supplies_hit_zero


@dataclass(frozen=True)
class SheetTab:
    """A single tab inside a spreadsheet document."""

    title: str
    sheet_id: int


@dataclass(frozen=True)
class SheetInfo:
    """Spreadsheet metadata."""

    title: str
    locale: str = ""
    sheets: list[SheetTab] = field(default_factory=list)

    @property
    def titles(self) -> list[str]:
        return [s.title for s in self.sheets]


@dataclass
class SheetValidation:
    """Result of checking a sheet configuration against the live document."""

    spreadsheet_title: str
    total_sheets: int
    available_sheets: list[str]
    target_sheet: str | None = None
    is_valid: bool = False
    message: str = ""


@dataclass
class RunSummary:
    """Counters for one monitoring run."""

    processed: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)


def calculate_days_remaining(supplies: float, daily_consumption: float) -> int:
    """Whole days the given supplies last at the given daily consumption."""
    if daily_consumption <= 0:
        raise InvalidInput("Daily consumption must be greater than 0")
    return max(0, math.floor(supplies / daily_consumption))


def compute_outcome(reading: SupplyReading) -> SupplyOutcome:
    """Decrement supplies by one day of consumption, clamping at zero."""
    current = reading.current_supplies
    daily = reading.daily_consumption
    if daily <= 0:
        raise InvalidInput("Daily consumption must be greater than 0")

    new_value = max(0, current - daily)
    return SupplyOutcome(
        new_supply_value=new_value,
        days_remaining=calculate_days_remaining(new_value, daily),
        supplies_were_zero=current == 0,
        supplies_hit_zero=current > 0 and new_value == 0,
    )
