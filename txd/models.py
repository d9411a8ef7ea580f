"""
TXD data model: submission status, wire responses and poll results.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from txd.errors import PollTimeout, RemoteFailed


SUBMISSION_PATH = "/api/v1/submission"
META_PATH = "/meta"


# one unreserved path segment, so the signed path is the path sent
SUBMISSION_ID_PATTERN = r"^[A-Za-z0-9._~-]+$"
_SUBMISSION_ID_RE = re.compile(SUBMISSION_ID_PATTERN)


def check_submission_id(submission_id: str) -> str:
    """
    Validate a submission id for use as a URL path segment.

    Raises:
        ValueError: If the id is empty, a dot segment, or contains
            characters outside the unreserved set.
    """
    if not isinstance(submission_id, str) or not _SUBMISSION_ID_RE.fullmatch(submission_id):
        raise ValueError(f"Invalid submission id: {submission_id!r}")
    if submission_id in (".", ".."):
        raise ValueError(f"Invalid submission id: {submission_id!r}")
    return submission_id


def status_path(submission_id: str) -> str:
    return f"{SUBMISSION_PATH}/{check_submission_id(submission_id)}"


class SubmissionStatus(str, Enum):
    """Lifecycle of a submission as reported by TXD."""

    PENDING = "Pending"
    IN_BLOCK = "InBlock"
    FINALIZED = "Finalized"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionStatus.FINALIZED, SubmissionStatus.FAILED)


class PollOutcome(str, Enum):
    FINALIZED = "finalized"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class TimeoutPolicy(str, Enum):
    """What the poller does once the poll window has elapsed."""

    RAISE = "raise"
    RETURN = "return"


# =============================================================================
# Wire models
# =============================================================================


class SubmissionResponse(BaseModel):
    """Response to POST /api/v1/submission."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1, pattern=SUBMISSION_ID_PATTERN)

    @field_validator("id")
    @classmethod
    def single_path_segment(cls, value: str) -> str:
        return check_submission_id(value)


class StatusReport(BaseModel):
    """Response to GET /api/v1/submission/{id}, extra fields kept verbatim."""

    model_config = ConfigDict(extra="allow")

    status: SubmissionStatus

    @property
    def details(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


# =============================================================================
# Poll session
# =============================================================================


@dataclass(frozen=True)
class PollSession:
    """One polling run for a submission, timed from the first poll."""

    submission_id: str
    started_at: float
    timeout: float

    def elapsed(self, now: float) -> float:
        return now - self.started_at

    def expired(self, now: float) -> bool:
        return self.elapsed(now) > self.timeout


@dataclass
class PollResult:
    """Terminal result of a poll session."""

    submission_id: str
    outcome: PollOutcome
    status: Optional[SubmissionStatus]
    ticks: int
    elapsed: float
    report: Optional[StatusReport] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is PollOutcome.FINALIZED

    def raise_for_outcome(self) -> "PollResult":
        """
        Raise if the submission did not finalize.

        Raises:
            RemoteFailed: The service reported the submission as Failed.
            PollTimeout: No terminal status within the poll window.
        """
        if self.outcome is PollOutcome.FAILED:
            raise RemoteFailed(self.submission_id)
        if self.outcome is PollOutcome.TIMED_OUT:
            raise PollTimeout(
                self.submission_id,
                self.elapsed,
                self.status.value if self.status else None,
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.submission_id,
            "outcome": self.outcome.value,
            "status": self.status.value if self.status else None,
            "ticks": self.ticks,
            "elapsed": round(self.elapsed, 3),
        }
