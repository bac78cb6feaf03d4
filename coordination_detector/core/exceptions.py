"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
exceptions.py

MAIN OBJECTIVE:
---------------
This script defines custom exception classes for the coordination detection engine, providing
structured error handling for configuration, input batches, content search and the actor pool.

Dependencies:
-------------
None

MAIN FEATURES:
--------------
1) Base CoordinationDetectorError exception class
2) Configuration and strategy selection errors
3) Insufficient input condition for missing event batches
4) Content-search errors carrying status code and retryability
5) Actor-pool persistence errors

Author:
-------
Antoine Lemor
"""

from typing import Optional


class CoordinationDetectorError(Exception):
    """Base exception for the coordination detector."""
    pass


class ConfigurationError(CoordinationDetectorError):
    """Configuration-related errors."""
    pass


class UnknownStrategyError(ConfigurationError):
    """Requested content-matching strategy does not exist."""
    pass


class InsufficientInputError(CoordinationDetectorError):
    """The event supplier did not deliver any batch for the cycle."""
    pass


class ContentSearchError(CoordinationDetectorError):
    """
    A content-search lookup failed for one content key.

    Args:
        message: Description of the failure
        status_code: HTTP status returned by the search backend, if any
        retryable: Whether the retry policy may try the same key again
    """

    def __init__(self, message: str,
                 status_code: Optional[int] = None,
                 retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class ContentSearchAuthError(ContentSearchError):
    """Search backend rejected the credentials; no further lookups can succeed."""

    def __init__(self, message: str, status_code: Optional[int] = 401):
        super().__init__(message, status_code=status_code, retryable=False)


class ActorPoolError(CoordinationDetectorError):
    """Actor-pool store could not be read or written."""
    pass
