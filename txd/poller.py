"""
TXD status polling.

Polls a submission until the service reports a terminal status or the
poll window closes. One timer covers the whole session: it starts when
polling begins and is never reset by status changes. Waits between polls
are cooperative asyncio sleeps, so a session can be cancelled at any point
and other tasks keep running while it idles.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx

from txd.client import TxdClient
from txd.config import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT, TxdConfig
from txd.errors import PollTimeout, StatusQueryFailed
from txd.metrics import TxdMetrics
from txd.models import (
    PollOutcome,
    PollResult,
    PollSession,
    StatusReport,
    SubmissionStatus,
    TimeoutPolicy,
)
from txd.token import Body


logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class StatusPoller:
    """
    Drives the status loop for submissions made through a TxdClient.

    Example:
        >>> poller = StatusPoller(client, poll_interval=1.0, timeout=120.0)
        >>> result = await poller.poll_until_terminal(submission_id)
        >>> result.raise_for_outcome()
    """

    def __init__(
        self,
        client: TxdClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        timeout_policy: TimeoutPolicy = TimeoutPolicy.RAISE,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        metrics: Optional[TxdMetrics] = None,
    ):
        """
        Initialize the poller.

        Args:
            client: Client used for the authenticated status queries.
            poll_interval: Seconds to wait before each status query.
            timeout: Seconds after the start of polling at which a
                non-terminal submission is given up on.
            timeout_policy: RAISE raises PollTimeout, RETURN returns a
                timed_out PollResult. Both stop polling.
            clock: Monotonic clock, injectable for tests.
            sleep: Awaitable sleep, injectable for tests.
            metrics: Optional metrics collector (defaults to the client's).
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self._client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.timeout_policy = TimeoutPolicy(timeout_policy)
        self._clock = clock
        self._sleep = sleep
        self._metrics = metrics or client.metrics

    async def poll_until_terminal(self, submission_id: str) -> PollResult:
        """
        Poll until Finalized, Failed or timeout.

        The window is checked between requests, not during one: a status
        query that is still in flight when the window closes runs to
        completion (bounded by the client's HTTP timeout) and its status
        is honoured, so a session can end up to one HTTP timeout late.

        Returns:
            PollResult with outcome finalized or failed (or timed_out under
            TimeoutPolicy.RETURN).

        Raises:
            PollTimeout: Under TimeoutPolicy.RAISE when the window closes.
            SigningFailed: If a status token could not be signed.
            asyncio.CancelledError: If the session is cancelled.
        """
        session = PollSession(submission_id=submission_id, started_at=self._clock(), timeout=self.timeout)
        observed = SubmissionStatus.PENDING
        last_report: Optional[StatusReport] = None
        ticks = 0

        logger.info(f"Waiting for submission {submission_id} to be finalized")

        while True:
            await self._sleep(self.poll_interval)
            ticks += 1

            try:
                report = await self._client.get_status(submission_id)
            except StatusQueryFailed as e:
                logger.warning(f"Status query {ticks} for {submission_id} failed: {e}")
                self._record_poll("error")
            else:
                last_report = report
                self._record_poll(report.status.value)

                if report.status is not observed:
                    logger.info(
                        f"Submission {submission_id}: {observed.value} -> {report.status.value}"
                    )
                else:
                    logger.debug(f"Submission {submission_id} still {observed.value}")
                observed = report.status

                if observed is SubmissionStatus.FINALIZED:
                    return self._finish(session, PollOutcome.FINALIZED, observed, ticks, last_report)

                if observed is SubmissionStatus.FAILED:
                    logger.error(f"Submission {submission_id} failed")
                    return self._finish(session, PollOutcome.FAILED, observed, ticks, last_report)

            now = self._clock()
            if session.expired(now):
                logger.error(
                    f"Timeout, submission {submission_id} still {observed.value} "
                    f"after {session.elapsed(now):.1f}s"
                )
                result = self._finish(session, PollOutcome.TIMED_OUT, observed, ticks, last_report)
                if self.timeout_policy is TimeoutPolicy.RAISE:
                    raise PollTimeout(submission_id, result.elapsed, observed.value)
                return result

    def _finish(
        self,
        session: PollSession,
        outcome: PollOutcome,
        status: SubmissionStatus,
        ticks: int,
        report: Optional[StatusReport],
    ) -> PollResult:
        elapsed = session.elapsed(self._clock())
        if self._metrics:
            self._metrics.record_outcome(outcome.value, elapsed)
        return PollResult(
            submission_id=session.submission_id,
            outcome=outcome,
            status=status,
            ticks=ticks,
            elapsed=elapsed,
            report=report,
        )

    def _record_poll(self, result: str) -> None:
        if self._metrics:
            self._metrics.record_poll(result)


async def submit_and_wait(
    config: TxdConfig,
    payload: Body,
    timeout_policy: TimeoutPolicy = TimeoutPolicy.RAISE,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    metrics: Optional[TxdMetrics] = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> PollResult:
    """
    Submit a payload and poll it to a terminal status.

    The HTTP client is opened for the duration of the call and closed on
    every exit path, including timeout, transport errors and cancellation.
    """
    async with TxdClient.from_config(config, transport=transport, metrics=metrics) as client:
        submission_id = await client.submit(payload)
        poller = StatusPoller(
            client,
            poll_interval=config.poll_interval,
            timeout=config.poll_timeout,
            timeout_policy=timeout_policy,
            clock=clock,
            sleep=sleep,
        )
        return await poller.poll_until_terminal(submission_id)
