"""
TXD request tokens.

Every request to TXD carries a bearer token bound to the exact request
path and body:

    header    = base64url({"kid": <DID key URI>})
    payload   = base64url(BLAKE2b-256(path ++ body))
    signature = base64url(sign(payload digest))

The result looks like a compact JWS but is not one: there is no algorithm
header and no expiry claim. The service is the only consumer of these tokens.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from jwcrypto.common import base64url_decode, base64url_encode

from txd.errors import SigningFailed
from txd.signer import Signer


logger = logging.getLogger(__name__)

DIGEST_SIZE = 32

Body = Union[bytes, str]


def encode_body(body: Body) -> bytes:
    """Request bodies are sent as bytes; text is UTF-8 encoded."""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def request_digest(path: str, body: Body = b"") -> bytes:
    """Hash the request path followed by the request body."""
    return hashlib.blake2b(path.encode("utf-8") + encode_body(body), digest_size=DIGEST_SIZE).digest()


@dataclass(frozen=True)
class AuthToken:
    """The three base64url segments of a request token."""

    header: str
    payload: str
    signature: str

    @classmethod
    def parse(cls, token: str) -> "AuthToken":
        """
        Split a serialized token into its segments.

        Raises:
            ValueError: If the token does not have exactly three segments.
        """
        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            raise ValueError("Invalid token format: expected header.payload.signature")
        return cls(header=parts[0], payload=parts[1], signature=parts[2])

    @property
    def kid(self) -> str:
        return json.loads(base64url_decode(self.header))["kid"]

    @property
    def digest(self) -> bytes:
        return base64url_decode(self.payload)

    @property
    def signature_bytes(self) -> bytes:
        return base64url_decode(self.signature)

    def serialize(self) -> str:
        return f"{self.header}.{self.payload}.{self.signature}"

    def __str__(self) -> str:
        return self.serialize()


def create_jws(path: str, body: Body, identity: str, signer: Signer) -> str:
    """
    Create a token authenticating one request.

    Args:
        path: Request path, starting with "/" (e.g. "/api/v1/submission").
        body: Request body; empty for GET requests.
        identity: DID key URI placed in the token header.
        signer: Signs the request digest.

    Returns:
        The serialized token.

    Raises:
        ValueError: If path is empty or not absolute.
        SigningFailed: If the signer raised or returned no signature.
    """
    if not path or not path.startswith("/"):
        raise ValueError(f"Token path must be non-empty and start with '/': {path!r}")

    digest = request_digest(path, body)

    try:
        sig = signer.sign(digest)
    except Exception as e:
        raise SigningFailed(f"Signer failed for {path}: {e}") from e
    if not sig:
        raise SigningFailed(f"Signer returned an empty signature for {path}")

    token = AuthToken(
        header=base64url_encode(json.dumps({"kid": identity}, separators=(",", ":"))),
        payload=base64url_encode(digest),
        signature=base64url_encode(sig),
    )
    return token.serialize()


class TokenIssuer:
    """
    Issues request-bound bearer tokens for one signing identity.

    Example:
        >>> issuer = TokenIssuer(signer)
        >>> headers = issuer.authorization_header("/api/v1/submission", tx)
    """

    def __init__(self, signer: Signer, identity: Optional[str] = None):
        self._signer = signer
        self.identity = identity or signer.identity_reference()
        if not self.identity:
            raise ValueError("TokenIssuer requires a signing identity (DID key URI)")

    def issue(self, path: str, body: Body = b"") -> str:
        return create_jws(path, body, self.identity, self._signer)

    def authorization_header(self, path: str, body: Body = b"") -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.issue(path, body)}"}


def verify_token(token: str, path: str, body: Body, public_key: bytes) -> bool:
    """
    Check a token against a request the way the service does.

    Args:
        token: The serialized token.
        path: Path of the request the token was presented with.
        body: Body of that request.
        public_key: Raw 32-byte Ed25519 public key of the token's kid.

    Returns:
        True if the digest matches (path, body) and the signature verifies.
    """
    try:
        parsed = AuthToken.parse(token)
        digest = parsed.digest
        signature = parsed.signature_bytes
    except ValueError as e:
        logger.debug(f"Malformed token: {e}")
        return False

    if digest != request_digest(path, body):
        logger.debug(f"Token digest does not match request {path}")
        return False

    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, digest)
    except InvalidSignature:
        logger.debug(f"Token signature invalid for {path}")
        return False
    return True
