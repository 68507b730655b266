"""Daily supply depletion monitor for Google Sheets with Discord alerts."""

__version__ = "1.0.0"
