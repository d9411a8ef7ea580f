"""
TXD HTTP client.

Sends authenticated submissions to the transaction-dispatch service and
queries their status. Every request carries a bearer token bound to its
own path and body, issued fresh per call.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from txd.config import DEFAULT_HTTP_TIMEOUT, TxdConfig
from txd.errors import StatusQueryFailed, SubmissionFailed, TxdError
from txd.metrics import TxdMetrics
from txd.models import META_PATH, SUBMISSION_PATH, StatusReport, SubmissionResponse, status_path
from txd.token import Body, TokenIssuer, encode_body


logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("message") or data.get("error")
        if detail:
            return f"HTTP {response.status_code}: {detail}"
    text = response.text.strip()
    return f"HTTP {response.status_code}: {text[:200]}" if text else f"HTTP {response.status_code}"


class TxdClient:
    """
    Asynchronous client for the TXD submission API.

    Example:
        ```python
        issuer = TokenIssuer(signer)

        async with TxdClient("https://txd-stg.trusted-entity.io", issuer) as client:
            submission_id = await client.submit("0x00002c68656c6c6f20776f726c64")
            report = await client.get_status(submission_id)
        ```
    """

    def __init__(
        self,
        base_url: str,
        issuer: TokenIssuer,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[TxdMetrics] = None,
    ):
        """
        Initialize the TXD client.

        Args:
            base_url: Base URL of the service (e.g. https://txd.trusted-entity.io).
            issuer: Issues the per-request bearer tokens.
            timeout: HTTP timeout in seconds for each request.
            transport: Optional httpx transport (used by tests).
            metrics: Optional metrics collector.
        """
        if not base_url:
            raise ValueError("TxdClient requires 'base_url'")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.metrics = metrics
        self._issuer = issuer
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    @classmethod
    def from_config(
        cls,
        config: TxdConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[TxdMetrics] = None,
    ) -> "TxdClient":
        """Build a client signing with the configured key."""
        issuer = TokenIssuer(config.make_signer(), config.key_uri)
        return cls(
            config.base_url,
            issuer,
            timeout=config.http_timeout,
            transport=transport,
            metrics=metrics,
        )

    @property
    def issuer(self) -> TokenIssuer:
        return self._issuer

    async def submit(self, payload: Body) -> str:
        """
        Submit a payload for dispatch.

        Args:
            payload: The call data to submit, sent verbatim as the request body.

        Returns:
            The submission id assigned by the service.

        Raises:
            SigningFailed: If the request token could not be signed.
            SubmissionFailed: On transport errors, non-2xx responses or a
                response without an id.
        """
        body = encode_body(payload)
        headers = self._issuer.authorization_header(SUBMISSION_PATH, body)

        try:
            response = await self._client.post(
                f"{self.base_url}{SUBMISSION_PATH}",
                content=body,
                headers=headers,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._record_submission(False)
            raise SubmissionFailed(f"Connection failed: {e}") from e

        if not response.is_success:
            self._record_submission(False)
            raise SubmissionFailed(
                f"Submission rejected: {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            parsed = SubmissionResponse.model_validate(response.json())
        except ValueError as e:
            self._record_submission(False)
            raise SubmissionFailed(
                f"Submission response has no valid id: {e}",
                status_code=response.status_code,
            ) from e

        self._record_submission(True)
        logger.info(f"Submission accepted by TXD: id={parsed.id}")
        return parsed.id

    async def get_status(self, submission_id: str) -> StatusReport:
        """
        Query the status of a submission once.

        Raises:
            SigningFailed: If the request token could not be signed.
            StatusQueryFailed: On transport errors, non-2xx responses or an
                unreadable status.
            ValueError: If submission_id is not a single URL path segment.
        """
        path = status_path(submission_id)
        headers = self._issuer.authorization_header(path)

        try:
            response = await self._client.get(f"{self.base_url}{path}", headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise StatusQueryFailed(f"Connection failed: {e}") from e

        if not response.is_success:
            raise StatusQueryFailed(
                f"Status query rejected: {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            report = StatusReport.model_validate(response.json())
        except ValueError as e:
            raise StatusQueryFailed(
                f"Unreadable status for {submission_id}: {e}",
                status_code=response.status_code,
            ) from e

        logger.debug(f"Submission {submission_id} status: {report.status.value}")
        return report

    async def fetch_meta(self) -> Dict[str, Any]:
        """
        Fetch the service metadata (e.g. the payment address).

        This endpoint is public, so no token is sent.
        """
        try:
            response = await self._client.get(f"{self.base_url}{META_PATH}")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise TxdError(f"Metadata request failed: {_error_detail(e.response)}") from e
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise TxdError(f"Metadata request failed: {e}") from e

        if not isinstance(data, dict):
            raise TxdError("Metadata response is not a JSON object")
        return data

    def _record_submission(self, success: bool) -> None:
        if self.metrics:
            self.metrics.record_submission(success)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "TxdClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
