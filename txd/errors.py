"""
TXD client error taxonomy.

Every error raised by this package derives from TxdError so callers can
catch the whole family at once, while still telling a server-confirmed
failure apart from a client-side timeout.
"""

from __future__ import annotations

from typing import Optional


class TxdError(Exception):
    """Base exception for TXD client errors."""

    pass


class ConfigurationError(TxdError):
    """Raised when a required setting is missing or invalid at startup."""

    pass


class SigningFailed(TxdError):
    """Raised when the signer could not produce a signature."""

    def __init__(self, message: str = "Signer failed to produce a signature"):
        super().__init__(message)


class SubmissionFailed(TxdError):
    """Raised when the service or the transport rejects a submission."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StatusQueryFailed(TxdError):
    """Raised when a single status query could not be completed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PollTimeout(TxdError):
    """Raised when no terminal status was observed within the poll window."""

    def __init__(self, submission_id: str, elapsed: float, last_status: Optional[str] = None):
        super().__init__(
            f"Submission {submission_id} not terminal after {elapsed:.1f}s "
            f"(last status: {last_status or 'unknown'})"
        )
        self.submission_id = submission_id
        self.elapsed = elapsed
        self.last_status = last_status


class RemoteFailed(TxdError):
    """Raised when the service reports the submission as Failed."""

    def __init__(self, submission_id: str):
        super().__init__(f"Submission {submission_id} failed on the service side")
        self.submission_id = submission_id
