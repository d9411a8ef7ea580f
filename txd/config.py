# txd/config.py
"""
Configuration for the TXD client.

Settings are read from environment variables once at process start and
collected in an immutable TxdConfig that is passed to the components
that need it.

Usage:
    from txd.config import TxdConfig

    config = TxdConfig.from_env()
    signer = config.make_signer()

Environment Variables:
    BASE_URI_TXD: Base URL of the TXD service (required)
    DID_KEY_URI: DID key URI the service verifies tokens with (required)
    SECRET_SIGNING_KEY: Ed25519 private key, JWK JSON or 32-byte hex seed (required)
    TXD_POLL_INTERVAL: Seconds between status polls (default: 1.0)
    TXD_POLL_TIMEOUT: Seconds before polling gives up (default: 120)
    TXD_HTTP_TIMEOUT: Timeout of a single HTTP request (default: 10.0)
"""

import os
from dataclasses import dataclass
from typing import Any, Final, Mapping, Optional

import httpx

from txd.errors import ConfigurationError
from txd.signer import Ed25519Signer

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_POLL_INTERVAL: Final[float] = 1.0
DEFAULT_POLL_TIMEOUT: Final[float] = 120.0
DEFAULT_HTTP_TIMEOUT: Final[float] = 10.0

# system.remark("Hello World!") call data
DEFAULT_PAYLOAD: Final[str] = "0x00002c68656c6c6f20776f726c64"

# =============================================================================
# Environment variable names
# =============================================================================

ENV_BASE_URL: Final[str] = "BASE_URI_TXD"
ENV_KEY_URI: Final[str] = "DID_KEY_URI"
ENV_SIGNING_KEY: Final[str] = "SECRET_SIGNING_KEY"
ENV_POLL_INTERVAL: Final[str] = "TXD_POLL_INTERVAL"
ENV_POLL_TIMEOUT: Final[str] = "TXD_POLL_TIMEOUT"
ENV_HTTP_TIMEOUT: Final[str] = "TXD_HTTP_TIMEOUT"


def _service_url(raw: str) -> str:
    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"{ENV_BASE_URL} is not a valid URL: {raw!r} ({e})")
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"{ENV_BASE_URL} must be an http(s) URL with a host, got {raw!r}")
    return str(raw).rstrip("/")


def _positive_float(name: str, raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class TxdConfig:
    """
    Process-wide TXD settings.

    Attributes:
        base_url: Base URL of the TXD service, without trailing slash
        key_uri: DID key URI placed in every token header
        signing_key: Ed25519 private key (JWK JSON or hex seed)
        poll_interval: Seconds between status polls
        poll_timeout: Seconds after the first poll at which polling stops
        http_timeout: Timeout of a single HTTP request
    """

    base_url: str
    key_uri: str
    signing_key: str
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_POLL_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    def __post_init__(self):
        missing = [
            env
            for env, value in (
                (ENV_BASE_URL, self.base_url),
                (ENV_KEY_URI, self.key_uri),
                (ENV_SIGNING_KEY, self.signing_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        object.__setattr__(self, "base_url", _service_url(self.base_url))
        object.__setattr__(self, "poll_interval", _positive_float(ENV_POLL_INTERVAL, self.poll_interval))
        object.__setattr__(self, "poll_timeout", _positive_float(ENV_POLL_TIMEOUT, self.poll_timeout))
        object.__setattr__(self, "http_timeout", _positive_float(ENV_HTTP_TIMEOUT, self.http_timeout))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "TxdConfig":
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ).
            **overrides: Field values taking precedence over the
                environment; None values are ignored.

        Raises:
            ConfigurationError: If a required value is missing or a
                numeric value is invalid.
        """
        env = os.environ if environ is None else environ

        values = {
            "base_url": env.get(ENV_BASE_URL, ""),
            "key_uri": env.get(ENV_KEY_URI, ""),
            "signing_key": env.get(ENV_SIGNING_KEY, ""),
            "poll_interval": env.get(ENV_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
            "poll_timeout": env.get(ENV_POLL_TIMEOUT, DEFAULT_POLL_TIMEOUT),
            "http_timeout": env.get(ENV_HTTP_TIMEOUT, DEFAULT_HTTP_TIMEOUT),
        }
        for field_name, value in overrides.items():
            if field_name not in values:
                raise TypeError(f"Unknown configuration field: {field_name}")
            if value is not None:
                values[field_name] = value

        return cls(**values)

    def make_signer(self) -> Ed25519Signer:
        """
        Build the Ed25519 signer for the configured key.

        Raises:
            ConfigurationError: If the signing key cannot be loaded.
        """
        try:
            return Ed25519Signer.from_secret(self.signing_key, self.key_uri)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {ENV_SIGNING_KEY}: {e}")

    def __repr__(self) -> str:
        return (
            f"TxdConfig(base_url={self.base_url!r}, key_uri={self.key_uri!r}, "
            f"signing_key='***', poll_interval={self.poll_interval}, "
            f"poll_timeout={self.poll_timeout}, http_timeout={self.http_timeout})"
        )
