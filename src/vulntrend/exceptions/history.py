"""History-related exceptions: bad arguments, malformed scans, missing history."""

from typing import Optional

from .base import VulnTrendError


class HistoryError(VulnTrendError):
    """Base class for scan-history errors."""

    pass


class InvalidArgumentError(HistoryError):
    """Raised when a store or registry operation receives an unusable argument.

    Examples are an empty project key or a ``None`` snapshot passed to a
    mutating call.
    """

    def __init__(self, argument: str, reason: str):
        super().__init__(
            f"Invalid argument '{argument}': {reason}",
            details={"argument": argument, "reason": reason},
        )
        self.argument = argument
        self.reason = reason


class InvalidInputError(HistoryError):
    """Raised when a raw scan result cannot be turned into a snapshot."""

    def __init__(self, reason: str, field: Optional[str] = None):
        details = {"reason": reason}
        if field:
            details["field"] = field

        super().__init__(f"Malformed scan result: {reason}", details=details)
        self.reason = reason
        self.field = field


class InsufficientHistoryError(HistoryError):
    """Raised when a trend is requested with fewer than two retained snapshots.

    This is a normal state for a project's first scan; callers that only want
    to report should use :func:`vulntrend.analysis.trend.analyze_trend`, which
    turns it into a ``BASELINE`` or ``NO_HISTORY`` report instead.
    """

    def __init__(self, project_key: str, available: int, required: int = 2):
        super().__init__(
            f"Insufficient history for {project_key}",
            details={
                "available": str(available),
                "required": str(required),
            },
        )
        self.project_key = project_key
        self.available = available
        self.required = required
