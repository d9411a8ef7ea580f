"""
TXD Signer - Signs request digests on behalf of a DID.

The token issuer only needs an opaque capability that signs bytes and
names the key the service should verify with. Signer is that interface;
Ed25519Signer is the concrete implementation backed by a JWK.
"""

from abc import ABC, abstractmethod

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from jwcrypto import jwk


class Signer(ABC):
    """Abstract signing capability bound to one DID key."""

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Sign data and return the raw signature bytes."""
        pass

    @abstractmethod
    def identity_reference(self) -> str:
        """Return the DID key URI the service verifies signatures with."""
        pass


class Ed25519Signer(Signer):
    """
    Signs digests with an Ed25519 key.

    Example:
        >>> signer = Ed25519Signer(private_key='{"kty":"OKP",...}',
        ...                        key_uri='did:kilt:4r1...#0x6d3e...')
        >>> signature = signer.sign(digest)
    """

    def __init__(self, private_key: str, key_uri: str):
        """
        Initialize the signer with credentials.

        Args:
            private_key: JWK JSON string containing the Ed25519 private key.
            key_uri: The DID key URI identifying this key to the service.

        Raises:
            ValueError: If private_key or key_uri is missing or invalid.
        """
        if not private_key:
            raise ValueError("Ed25519Signer requires 'private_key' (JWK JSON string)")
        if not key_uri:
            raise ValueError("Ed25519Signer requires 'key_uri' (DID key URI)")

        self.key_uri = key_uri

        try:
            self._key = jwk.JWK.from_json(private_key)
        except Exception as e:
            raise ValueError(f"Invalid JWK private key: {e}")

        if self._key.get("kty") != "OKP" or self._key.get("crv") != "Ed25519":
            raise ValueError("Key must be an Ed25519 key (OKP with crv=Ed25519)")
        if not self._key.has_private:
            raise ValueError("Invalid JWK private key: no private component")

        self._signing_key = self._key.get_op_key("sign")

    @classmethod
    def from_seed(cls, seed: str, key_uri: str) -> "Ed25519Signer":
        """
        Build a signer from a raw 32-byte Ed25519 seed.

        Args:
            seed: Hex encoded seed, with or without a leading ``0x``.
            key_uri: The DID key URI identifying this key to the service.
        """
        hex_seed = seed[2:] if seed.startswith("0x") else seed
        try:
            raw = bytes.fromhex(hex_seed)
        except ValueError as e:
            raise ValueError(f"Invalid hex seed: {e}")
        if len(raw) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(raw)}")

        key = jwk.JWK.from_pyca(Ed25519PrivateKey.from_private_bytes(raw))
        return cls(private_key=key.export_private(), key_uri=key_uri)

    @classmethod
    def from_secret(cls, secret: str, key_uri: str) -> "Ed25519Signer":
        """Build a signer from either a JWK JSON string or a hex seed."""
        if secret.lstrip().startswith("{"):
            return cls(private_key=secret, key_uri=key_uri)
        return cls.from_seed(secret.strip(), key_uri)

    def sign(self, data: bytes) -> bytes:
        return self._signing_key.sign(data)

    def identity_reference(self) -> str:
        return self.key_uri

    def get_public_key_jwk(self) -> str:
        """Returns the public key in JWK format."""
        return self._key.export_public()

    def public_key_bytes(self) -> bytes:
        """Returns the raw 32-byte Ed25519 public key."""
        return self._signing_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
