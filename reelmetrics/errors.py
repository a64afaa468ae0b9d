class ReelMetricsError(Exception):
    """Base error for the reel metrics tracker."""


class FetchError(ReelMetricsError):
    """Navigation failed or Facebook blocked the page."""


class StorageError(ReelMetricsError):
    """The metrics file could not be written."""
