"""
TXD Command Line Interface.

Submits call data to TXD and waits for it to be finalized, queries the
status of earlier submissions, and prints request tokens for debugging.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from txd.client import TxdClient
from txd.config import DEFAULT_PAYLOAD, TxdConfig
from txd.errors import ConfigurationError, TxdError
from txd.metrics import TxdMetrics
from txd.models import PollOutcome, TimeoutPolicy
from txd.poller import submit_and_wait
from txd.token import TokenIssuer


logger = logging.getLogger("txd")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REMOTE_FAILED = 2
EXIT_TIMEOUT = 3
EXIT_INTERRUPTED = 130

OUTCOME_EXIT_CODES = {
    PollOutcome.FINALIZED: EXIT_OK,
    PollOutcome.FAILED: EXIT_REMOTE_FAILED,
    PollOutcome.TIMED_OUT: EXIT_TIMEOUT,
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def load_config(args: argparse.Namespace) -> TxdConfig:
    """Environment configuration with command line overrides."""
    config = TxdConfig.from_env(
        base_url=args.endpoint,
        key_uri=args.key_uri,
        poll_interval=getattr(args, 'interval', None),
        poll_timeout=getattr(args, 'timeout', None),
    )
    # reject an unusable key before any request is made
    config.make_signer()
    return config


async def _submit_only(config: TxdConfig, payload: str, metrics: TxdMetrics) -> str:
    async with TxdClient.from_config(config, metrics=metrics) as client:
        return await client.submit(payload)


async def _query_status(config: TxdConfig, submission_id: str) -> dict:
    async with TxdClient.from_config(config) as client:
        report = await client.get_status(submission_id)
    return {"id": submission_id, "status": report.status.value, **report.details}


async def _fetch_meta(config: TxdConfig) -> dict:
    async with TxdClient.from_config(config) as client:
        return await client.fetch_meta()


def cmd_submit(args: argparse.Namespace) -> int:
    """Submit call data and wait for it to be finalized."""
    config = load_config(args)
    metrics = TxdMetrics()

    try:
        if args.no_wait:
            submission_id = asyncio.run(_submit_only(config, args.tx, metrics))
            if args.json:
                print(json.dumps({"id": submission_id}))
            else:
                print(submission_id)
            return EXIT_OK

        result = asyncio.run(
            submit_and_wait(config, args.tx, timeout_policy=TimeoutPolicy.RETURN, metrics=metrics)
        )
    except TxdError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        if args.metrics_file:
            try:
                metrics.write_textfile(args.metrics_file)
            except OSError as e:
                logger.warning(f"Could not write metrics to {args.metrics_file}: {e}")

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.succeeded:
        print(f"✅ Submission {result.submission_id} finalized after {result.ticks} polls")
    elif result.outcome is PollOutcome.FAILED:
        print(f"❌ Submission {result.submission_id} failed")
    else:
        print(f"⏱️  Submission {result.submission_id} not finalized after {result.elapsed:.0f}s")

    return OUTCOME_EXIT_CODES[result.outcome]


def cmd_status(args: argparse.Namespace) -> int:
    """Query the status of a submission once."""
    config = load_config(args)

    try:
        status = asyncio.run(_query_status(config, args.id))
    except (ValueError, TxdError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.json:
        print(json.dumps(status, indent=2))
    else:
        print(f"Submission {args.id}: {status['status']}")
    return EXIT_OK


def cmd_token(args: argparse.Namespace) -> int:
    """Print a bearer token for a request path and body."""
    config = load_config(args)

    try:
        issuer = TokenIssuer(config.make_signer(), config.key_uri)
        token = issuer.issue(args.path, args.body)
    except (ValueError, TxdError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.header:
        print(f"Authorization: Bearer {token}")
    else:
        print(token)
    return EXIT_OK


def cmd_meta(args: argparse.Namespace) -> int:
    """Print the service metadata."""
    config = load_config(args)

    try:
        meta = asyncio.run(_fetch_meta(config))
    except TxdError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(json.dumps(meta, indent=2))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-e', '--endpoint', help='TXD base URL (default: $BASE_URI_TXD)')
    common.add_argument('--key-uri', help='DID key URI (default: $DID_KEY_URI)')

    parser = argparse.ArgumentParser(
        prog='txd',
        description='Submit signed calls to the transaction-dispatch service'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # submit command
    p_submit = subparsers.add_parser('submit', parents=[common], help='Submit call data and wait for it')
    p_submit.add_argument('-t', '--tx', default=DEFAULT_PAYLOAD,
                          help='Hex encoded call data (default: system.remark("Hello World!"))')
    p_submit.add_argument('--interval', type=float, help='Seconds between status polls')
    p_submit.add_argument('--timeout', type=float, help='Seconds before giving up')
    p_submit.add_argument('--no-wait', action='store_true', help='Print the submission id and exit')
    p_submit.add_argument('--json', action='store_true', help='Output as JSON')
    p_submit.add_argument('--metrics-file', help='Write Prometheus metrics to this file')

    # status command
    p_status = subparsers.add_parser('status', parents=[common], help='Query a submission status')
    p_status.add_argument('id', help='Submission id')
    p_status.add_argument('--json', action='store_true', help='Output as JSON')

    # token command
    p_token = subparsers.add_parser('token', parents=[common], help='Print a request token')
    p_token.add_argument('path', help='Request path, e.g. /api/v1/submission')
    p_token.add_argument('--body', default='', help='Request body')
    p_token.add_argument('--header', action='store_true', help='Output as an Authorization header')

    # meta command
    subparsers.add_parser('meta', parents=[common], help='Print service metadata')

    return parser


COMMANDS = {
    'submit': cmd_submit,
    'status': cmd_status,
    'token': cmd_token,
    'meta': cmd_meta,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return command(args)
    except ConfigurationError as e:
        logger.critical(str(e))
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())
