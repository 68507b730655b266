"""Exception hierarchy for the supply monitor."""


class SupplyMonitorError(Exception):
    """Base class for all supply monitor errors."""


class ConfigurationError(SupplyMonitorError):
    """Raised when sheet configuration or settings are missing or malformed."""


class InvalidInput(SupplyMonitorError):
    """Raised when cell content is present but unusable (empty, non-positive consumption)."""


class InvalidNumericValue(InvalidInput):
    """Raised when a cell value cannot be parsed as a number."""


class RemoteApiError(SupplyMonitorError):
    """Non-quota failure from the spreadsheet API or a webhook."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemoteQuotaError(RemoteApiError):
    """Spreadsheet API rejected the call because a rate or usage quota was hit."""


class SheetNotFoundError(RemoteApiError):
    """Requested sheet tab does not exist in the spreadsheet."""

    def __init__(self, message: str, available: list[str] | None = None):
        super().__init__(message)
        self.available = available or []


class WebhookError(RemoteApiError):
    """Webhook POST failed or returned a non-2xx status."""

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message, status=status)
        self.body = body
