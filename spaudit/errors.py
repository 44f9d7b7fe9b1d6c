"""
Error types shared by the SharePoint permission audit tools.

Only ``Throttled`` is ever retried (see ``retry.RetryPolicy``). Everything
else aborts the audit run.
"""

from typing import List, Optional

# SharePoint Online signals throttling with either of these.
THROTTLE_STATUS_CODES = (429, 503)


class AuditError(Exception):
    """Base class for every error raised by spaudit."""


class ConfigError(AuditError):
    """Settings or credentials could not be loaded."""


class Throttled(AuditError):
    """The remote service asked us to slow down."""

    def __init__(self, status_code: int, retry_after: Optional[float] = None, operation: str = ""):
        self.status_code = status_code
        self.retry_after = retry_after
        self.operation = operation
        message = f"Throttled ({status_code})"
        if operation:
            message += f" while trying to {operation}"
        super().__init__(message)


class RetriesExhausted(AuditError):
    """A throttled operation kept failing for every allowed attempt."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Giving up after {attempts} throttled attempt(s)")


class SharePointApiError(AuditError):
    """Non-retryable failure returned by the SharePoint REST API."""

    def __init__(self, status_code: int, operation: str, response_text: str = ""):
        self.status_code = status_code
        self.operation = operation
        self.response_text = response_text
        super().__init__(f"Failed to {operation}: {status_code}")


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Return the Retry-After header as seconds, or None if absent/unparseable."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        # HTTP-date form is not used by SharePoint Online
        return None


def describe_api_error(status_code: int) -> List[str]:
    """
    Explain a SharePoint REST API status code to the person running the audit.

    Args:
        status_code: HTTP status code from the failed response

    Returns:
        Lines of guidance, most important first
    """
    if status_code == 401:
        return [
            "🔑 Token expired or invalid",
            "Refresh with: rclone config reconnect <remote>",
            "or export a fresh token in SPAUDIT_ACCESS_TOKEN",
        ]
    if status_code == 403:
        return [
            "❌ Access denied - you may not have permission for this operation",
            "This could be due to:",
            "  - The account is not a site collection administrator",
            "  - The token was issued for another resource (e.g. Graph instead of SharePoint)",
            "  - The app registration lacks Sites.FullControl.All",
        ]
    if status_code == 404:
        return ["❌ Not found - check that the site URL is correct"]
    if status_code in THROTTLE_STATUS_CODES:
        return ["⏳ SharePoint kept throttling requests - try again later or raise --max-retries"]
    return [f"Unexpected response status {status_code}"]
