"""
Command-line interface for the NFT Batcher.

Provides commands for submitting batches of marketplace operations and
inspecting account and transaction state.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from nft_batcher import __version__
from nft_batcher.config import BatcherConfig, NetworkType
from nft_batcher.core.catalog import OperationKind
from nft_batcher.core.orchestrator import BatchOrchestrator
from nft_batcher.core.report import Report, ResultReporter
from nft_batcher.core.request import OperationRequest
from nft_batcher.core.result import BatchEntry
from nft_batcher.ledger.hiro import HiroLedgerAdapter
from nft_batcher.ledger.interface import LedgerError
from nft_batcher.plans import (
    InputError,
    build_deployment_plan,
    build_interaction_plan,
    load_requests,
)
from nft_batcher.state.database import Database, init_database
from nft_batcher.tx.signer import RemoteSigner

EXIT_OK = 0
EXIT_ITEM_FAILURES = 1
EXIT_FATAL = 2
EXIT_CANCELLED = 130

# CLI option -> BatcherConfig field
_CONFIG_OPTIONS = {
    "network": "network",
    "api_url": "api_base_url",
    "sender": "sender_address",
    "contract_address": "contract_address",
    "signer_url": "signer_url",
    "fee": "tx_fee",
    "delay": "min_submission_delay_seconds",
    "wait": "wait_for_confirmation",
    "poll_interval": "confirmation_poll_interval_seconds",
    "poll_attempts": "confirmation_max_attempts",
    "retries": "max_network_retries",
    "stop_on_failure": "stop_on_first_failure",
    "database_url": "database_url",
    "log_level": "log_level",
    "log_json": "log_json",
}


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--network",
        choices=[n.value for n in NetworkType],
        help="Stacks network (default: testnet)",
    )
    parser.add_argument("--api-url", help="Custom ledger API base URL")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Output logs in JSON format",
    )


def _add_batch_args(parser: argparse.ArgumentParser) -> None:
    _add_connection_args(parser)
    parser.add_argument("--sender", help="Address of the signing account")
    parser.add_argument("--contract-address", help="Deployer address of the marketplace contracts")
    parser.add_argument("--signer-url", help="Base URL of the signing service")
    parser.add_argument("--fee", type=int, help="Fee per transaction in micro-STX (default: 50000)")
    parser.add_argument(
        "--delay",
        type=float,
        help="Seconds between submissions (default: 2)",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        default=None,
        help="Wait for each transaction to confirm",
    )
    parser.add_argument("--poll-interval", type=float, help="Seconds between status queries (default: 10)")
    parser.add_argument("--poll-attempts", type=int, help="Maximum status queries (default: 30)")
    parser.add_argument("--retries", type=int, help="Retries for network errors (default: 3)")
    parser.add_argument(
        "--stop-on-failure",
        action="store_true",
        default=None,
        help="Skip the remaining items after the first failure",
    )
    parser.add_argument("--output", "-o", help="Report file (default: <command>-results.json)")
    parser.add_argument("--database-url", help="Database URL for reports and checkpoints")
    parser.add_argument("--resume", metavar="RUN_ID", help="Resume a run from its checkpoint")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nft-batcher",
        description="Batch submitter for NFT marketplace contract calls",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    bulk_list_parser = subparsers.add_parser(
        "bulk-list",
        help="List NFTs from a CSV file (nft_contract,token_id,price)",
    )
    bulk_list_parser.add_argument("file", help="CSV file")
    _add_batch_args(bulk_list_parser)

    transfer_parser = subparsers.add_parser(
        "transfer",
        help="Transfer NFTs from a CSV file (nft_contract,token_id,recipient)",
    )
    transfer_parser.add_argument("file", help="CSV file")
    _add_batch_args(transfer_parser)

    run_parser = subparsers.add_parser(
        "run",
        help="Submit a CSV or JSON batch with an operation per row",
    )
    run_parser.add_argument("file", help="CSV or JSON file")
    _add_batch_args(run_parser)

    interact_parser = subparsers.add_parser(
        "interact",
        help="Run the scripted marketplace interaction plan",
    )
    interact_parser.add_argument(
        "--nft-contract",
        help="NFT contract for listings, offers and auctions (default: <contract-address>.example-nft)",
    )
    _add_batch_args(interact_parser)

    deploy_parser = subparsers.add_parser(
        "deploy",
        help="Deploy the marketplace contracts from Clarity sources",
    )
    deploy_parser.add_argument(
        "--contracts-dir",
        default="contracts",
        help="Directory with <contract-name>.clar sources (default: contracts)",
    )
    deploy_parser.add_argument(
        "--contract",
        action="append",
        dest="contracts",
        metavar="NAME",
        help="Deploy only this contract (repeatable, keeps the given order)",
    )
    _add_batch_args(deploy_parser)

    nonce_parser = subparsers.add_parser("nonce", help="Show an account's nonce and balance")
    nonce_parser.add_argument("address", nargs="?", help="Account address (default: configured sender)")
    _add_connection_args(nonce_parser)

    status_parser = subparsers.add_parser("status", help="Show a transaction's status")
    status_parser.add_argument("txid", help="Transaction ID")
    _add_connection_args(status_parser)

    return parser


def build_config(args: argparse.Namespace) -> BatcherConfig:
    """Build configuration from the environment, overridden by CLI options."""
    overrides: Dict[str, Any] = {}
    for option, field_name in _CONFIG_OPTIONS.items():
        value = getattr(args, option, None)
        if value is not None:
            overrides[field_name] = value
    return BatcherConfig(**overrides)


def load_batch(args: argparse.Namespace, config: BatcherConfig) -> List[OperationRequest]:
    """
    Load the requests for a batch command.

    Raises:
        InputError: If the input cannot be read
    """
    if args.command == "bulk-list":
        return load_requests(args.file, kind=OperationKind.CREATE_LISTING.value)

    if args.command == "transfer":
        defaults = {"sender": config.sender_address} if config.sender_address else {}
        return load_requests(args.file, kind=OperationKind.TRANSFER.value, defaults=defaults)

    if args.command == "interact":
        if not config.contract_address:
            raise InputError("interact needs a contract deployer address (--contract-address)")
        return build_interaction_plan(config.contract_address, nft_contract=args.nft_contract)

    if args.command == "deploy":
        if not Path(args.contracts_dir).is_dir():
            raise InputError(f"contracts directory not found: {args.contracts_dir}")
        return build_deployment_plan(args.contracts_dir, contracts=args.contracts)

    return load_requests(args.file)


def exit_code_for(report: Report) -> int:
    """Map a report to the process exit code."""
    if report.fatal_error is not None:
        return EXIT_FATAL
    if report.cancelled:
        return EXIT_CANCELLED
    if report.all_succeeded:
        return EXIT_OK
    return EXIT_ITEM_FAILURES


def print_summary(report: Report, path: Optional[Path]) -> None:
    print()
    print(f"Run: {report.run_id}")
    print(f"Total: {report.total}")
    print(f"Succeeded: {report.succeeded}")
    print(f"Failed: {report.failed}")
    print(f"Timed out: {report.timed_out}")
    print(f"Skipped: {report.skipped}")
    if report.cancelled:
        print("Run was cancelled before completion")
    if report.fatal_error:
        print(f"Fatal error: {report.fatal_error}")
    if path:
        print(f"Report saved to {path}")


def _install_signal_handlers(cancel_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def signal_handler():
        print("\nCancelling after the current item...", file=sys.stderr)
        cancel_event.set()

    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)
    except NotImplementedError:
        pass  # Signals not available on Windows


async def run_batch(args: argparse.Namespace, config: BatcherConfig) -> int:
    """Run a batch command and write its report."""
    try:
        requests = load_batch(args, config)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL

    if not config.signer_url:
        print("Error: no signer URL configured (--signer-url or BATCHER_SIGNER_URL)", file=sys.stderr)
        return EXIT_FATAL

    ledger = HiroLedgerAdapter(config)
    signer = RemoteSigner(config)
    db: Optional[Database] = None
    cancel_event = asyncio.Event()
    _install_signal_handlers(cancel_event)

    try:
        await ledger.connect()
        if config.database_url:
            db = await init_database(config)

        start_index = 0
        run_id = None
        previous_entries: List[BatchEntry] = []
        if args.resume:
            if db is None:
                print("Error: --resume needs a database (--database-url)", file=sys.stderr)
                return EXIT_FATAL
            checkpoint = await db.load_checkpoint(args.resume)
            if checkpoint is None:
                print(f"Error: no checkpoint for run {args.resume}", file=sys.stderr)
                return EXIT_FATAL
            start_index = checkpoint.resume_index
            run_id = checkpoint.run_id
            previous_entries = await db.load_checkpoint_entries(run_id)

        print(f"NFT Batcher v{__version__}")
        print(f"Network: {config.network.value} ({config.api_url})")
        print(f"Sender: {config.sender_address}")
        print(f"Operations: {len(requests)}")

        orchestrator = BatchOrchestrator(config, ledger, signer, checkpoint_store=db)
        result = await orchestrator.run(
            requests,
            cancel_event=cancel_event,
            start_index=start_index,
            run_id=run_id,
            previous_entries=previous_entries,
        )

        report = ResultReporter.summarize(result)
        path = ResultReporter.write_report(report, args.output or f"{args.command}-results.json")
        if db:
            await db.save_report(report)

        print_summary(report, path)
        return exit_code_for(report)

    finally:
        await signer.close()
        await ledger.disconnect()
        if db:
            await db.disconnect()


async def show_nonce(args: argparse.Namespace, config: BatcherConfig) -> int:
    """Print an account's nonce and balance."""
    address = args.address or config.sender_address
    if not address:
        print("Error: no address given and no sender configured", file=sys.stderr)
        return EXIT_FATAL

    ledger = HiroLedgerAdapter(config)
    await ledger.connect()
    try:
        account = await ledger.get_account(address)
    except LedgerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    finally:
        await ledger.disconnect()

    print(f"Address: {account.address}")
    print(f"Nonce: {account.nonce}")
    print(f"Balance: {account.balance / 1_000_000:.6f} STX")
    return EXIT_OK


async def show_status(args: argparse.Namespace, config: BatcherConfig) -> int:
    """Print a transaction's status."""
    ledger = HiroLedgerAdapter(config)
    await ledger.connect()
    try:
        status = await ledger.get_transaction_status(args.txid)
    except LedgerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    finally:
        await ledger.disconnect()

    print(f"Transaction: {args.txid}")
    print(f"Status: {status.value if status else 'unknown'}")
    return EXIT_OK


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FATAL)

    config = build_config(args)
    setup_logging(config.log_level, config.log_json)

    if args.command == "nonce":
        code = asyncio.run(show_nonce(args, config))
    elif args.command == "status":
        code = asyncio.run(show_status(args, config))
    else:
        code = asyncio.run(run_batch(args, config))

    sys.exit(code)


if __name__ == "__main__":
    main()
