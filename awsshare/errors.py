"""Exceptions raised by awsshare.

Missing fields and missing tabs are not errors: extractors return the
``N/A`` sentinel and the tab loop logs and moves on. Only failures that
stop an instance (or the whole run) from being identified surface here.
"""
from typing import Optional


class AwsShareError(Exception):
    """Base class for all awsshare errors"""


class ExtractionError(AwsShareError):
    """No instance identifier could be resolved from the scraped tabs."""

    def __init__(self, identifier: Optional[str] = None, message: str = "No instance identifier found"):
        self.identifier = identifier
        self.message = message
        super().__init__(message if not identifier else f"{identifier}: {message}")


class LoginTimeout(AwsShareError):
    """The console login was not completed within the wait budget."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__("Login timeout exceeded")


class BrowserNotStarted(AwsShareError):
    """A page operation was attempted before the browser session started."""

    def __init__(self):
        super().__init__("Browser not started. Call start() first.")
