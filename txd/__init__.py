"""
TXD client - authenticated submissions to the transaction-dispatch service.

Signs every request with a DID key, submits call data and polls the
submission until it is finalized, fails, or the poll window closes.
"""

__version__ = "0.3.0"

# Core
from .signer import Signer, Ed25519Signer
from .token import AuthToken, TokenIssuer, create_jws, request_digest, verify_token
from .client import TxdClient
from .poller import StatusPoller, submit_and_wait
from .config import TxdConfig
from .metrics import TxdMetrics
from .models import (
    SubmissionStatus,
    StatusReport,
    PollSession,
    PollResult,
    PollOutcome,
    TimeoutPolicy,
)

# Errors
from .errors import (
    TxdError,
    ConfigurationError,
    SigningFailed,
    SubmissionFailed,
    StatusQueryFailed,
    PollTimeout,
    RemoteFailed,
)


__all__ = [
    "__version__",
    # Core
    "Signer",
    "Ed25519Signer",
    "AuthToken",
    "TokenIssuer",
    "create_jws",
    "request_digest",
    "verify_token",
    "TxdClient",
    "StatusPoller",
    "submit_and_wait",
    "TxdConfig",
    # Models
    "SubmissionStatus",
    "StatusReport",
    "PollSession",
    "PollResult",
    "PollOutcome",
    "TimeoutPolicy",
    # Errors
    "TxdError",
    "ConfigurationError",
    "SigningFailed",
    "SubmissionFailed",
    "StatusQueryFailed",
    "PollTimeout",
    "RemoteFailed",
    # Metrics
    "TxdMetrics",
]
