"""
Shared pytest fixtures for TXD client tests.
"""

from typing import List, Optional, Sequence

import httpx
import pytest
from jwcrypto import jwk

from txd import Ed25519Signer, TokenIssuer, TxdClient, TxdConfig, TxdMetrics
from txd.models import SUBMISSION_PATH
from txd.token import verify_token


KEY_URI = "did:kilt:4rDeMGr3Hi4NfxRUp8qVyhvgW3BSUBLneQisGa9ASkhh2sXB#0x78579576fa15684e5d868c9e123d2f8ca0da4e5ac2a6a3d4a2d7f2e3b9a1c0d4"
BASE_URL = "https://txd.test"


class FakeTxdService:
    """
    In-process stand-in for TXD, served through httpx.MockTransport.

    Checks every bearer token against the request it came with, the way the
    real service does, and answers status queries from a scripted sequence
    (the last status repeats forever).
    """

    def __init__(
        self,
        public_key: bytes,
        submission_id: str = "abc",
        statuses: Sequence[str] = ("Finalized",),
        submit_status_code: int = 200,
        submit_body: Optional[dict] = None,
    ):
        self.public_key = public_key
        self.submission_id = submission_id
        self.statuses = list(statuses)
        self.submit_status_code = submit_status_code
        self.submit_body = submit_body if submit_body is not None else {"id": submission_id}
        self.requests: List[httpx.Request] = []
        self.status_polls = 0
        self.closed = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/meta":
            return httpx.Response(200, json={"paymentAddress": "4qAtxSMwk6fyeDd3bFbg6ebAmfSnAQMMH5nYHYSW5xKQb26A"})

        auth = request.headers.get("Authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
        if not verify_token(token, path, request.content, self.public_key):
            return httpx.Response(401, json={"detail": "invalid token"})

        if request.method == "POST" and path == SUBMISSION_PATH:
            return httpx.Response(self.submit_status_code, json=self.submit_body)

        if request.method == "GET" and path == f"{SUBMISSION_PATH}/{self.submission_id}":
            status = self.statuses[min(self.status_polls, len(self.statuses) - 1)]
            self.status_polls += 1
            return httpx.Response(200, json={"status": status, "blockHash": None})

        return httpx.Response(404, json={"detail": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        service = self

        class _Transport(httpx.MockTransport):
            async def aclose(self) -> None:
                service.closed = True

        return _Transport(self.handler)


class FakeClock:
    """Monotonic clock advanced only by its own sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def private_key_jwk() -> str:
    """Generate a fresh Ed25519 private key for testing."""
    return jwk.JWK.generate(kty='OKP', crv='Ed25519').export_private()


@pytest.fixture
def signer(private_key_jwk: str) -> Ed25519Signer:
    return Ed25519Signer(private_key=private_key_jwk, key_uri=KEY_URI)


@pytest.fixture
def issuer(signer: Ed25519Signer) -> TokenIssuer:
    return TokenIssuer(signer)


@pytest.fixture
def config(private_key_jwk: str) -> TxdConfig:
    return TxdConfig(
        base_url=BASE_URL,
        key_uri=KEY_URI,
        signing_key=private_key_jwk,
        poll_interval=1.0,
        poll_timeout=3.0,
    )


@pytest.fixture
def metrics() -> TxdMetrics:
    return TxdMetrics()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_service(signer: Ed25519Signer):
    """Factory for a FakeTxdService trusting the test signer's key."""

    def _make(**kwargs) -> FakeTxdService:
        return FakeTxdService(signer.public_key_bytes(), **kwargs)

    return _make


@pytest.fixture
def make_client(issuer: TokenIssuer, metrics: TxdMetrics):
    """Factory for a TxdClient talking to a FakeTxdService."""

    def _make(service: FakeTxdService) -> TxdClient:
        return TxdClient(BASE_URL, issuer, transport=service.transport, metrics=metrics)

    return _make
