"""Error types shared by the store, the provider clients and the registry."""


class WidgetError(Exception):
    """Base class for all weatherwidget errors."""


class NotFoundError(WidgetError):
    """Raised for unknown city names and missing cache keys."""


class ProviderError(WidgetError):
    """Raised when a geocoding or forecast provider call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(WidgetError):
    """Raised when cached or provider JSON is malformed."""


class PersistenceError(WidgetError):
    """Raised when the key/value store rejects a read or write."""
