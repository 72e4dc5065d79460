"""Command-line utilities for interdependence."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from .errors import InterdependenceError
from .ledger import ArweaveLedgerClient
from .logging_pipeline import configure_structured_logging, shutdown_listener
from .relay import RelayClient
from .resolver import DeclarationResolver
from .settings import InterdependenceSettings, get_settings
from .wallet import Ed25519Wallet


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="interdependence",
        description="Resolve, fork and sign declarations stored on Arweave.",
    )
    parser.add_argument("--gateway", help="Arweave gateway base URL.")
    parser.add_argument("--relay", help="Relay server base URL.")
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Quiet mode: suppress output, just return exit code.",
    )
    parser.add_argument(
        "--log-level",
        help="Emit JSON logs to stderr at this level (for example 'debug').",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Print a declaration and its signers.")
    resolve.add_argument("tx_id")

    fork = commands.add_parser("fork", help="Fork a declaration with new authors.")
    fork.add_argument("tx_id")
    fork.add_argument("--text", required=True, help="Text of the new declaration.")
    fork.add_argument(
        "--author",
        action="append",
        required=True,
        dest="authors",
        help="Author of the new declaration; repeat for several.",
    )

    sign = commands.add_parser("sign", help="Sign a declaration.")
    sign.add_argument("tx_id")
    sign.add_argument("--name", required=True)
    sign.add_argument("--handle", default="null", help="Social handle, if any.")
    sign.add_argument("--text", required=True, help="Declaration text to sign.")
    sign.add_argument(
        "--key-file",
        required=True,
        help="File holding the hex-encoded 32-byte Ed25519 seed.",
    )

    verify = commands.add_parser(
        "verify-identity", help="Ask the relay to verify a social handle."
    )
    verify.add_argument("address")
    verify.add_argument("handle")
    return parser


async def _run(
    args: argparse.Namespace, settings: InterdependenceSettings
) -> tuple[object, bool]:
    """Execute the selected command and return ``(output, success)``."""

    if args.command == "resolve":
        async with ArweaveLedgerClient(args.gateway, settings=settings) as ledger:
            view = await DeclarationResolver(ledger, settings=settings).resolve(
                args.tx_id
            )
        return view.to_wire(), view.found

    async with RelayClient(args.relay, settings=settings) as relay:
        if args.command == "fork":
            reply = await relay.fork_declaration(args.tx_id, args.text, args.authors)
        elif args.command == "sign":
            wallet = Ed25519Wallet.from_key_file(args.key_file)
            reply = await relay.sign_declaration(
                args.tx_id, args.name, args.handle, args.text, wallet
            )
        else:
            reply = await relay.verify_identity(args.address, args.handle)
    return reply, True


def main(argv: list[str] | None = None) -> int:
    """Run the interdependence command-line interface."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        exit_code = int(exc.code) if isinstance(exc.code, int) else 1
        return 0 if exit_code == 0 else 1

    settings = get_settings()
    package_logger = logging.getLogger("interdependence")
    log_level = args.log_level or settings.log_level
    listener = None
    if log_level:
        listener = configure_structured_logging(package_logger, level=log_level)

    try:
        output, success = asyncio.run(_run(args, settings))
        if not args.quiet:
            print(json.dumps(output, separators=(",", ":"), ensure_ascii=False))
        return 0 if success else 1
    except (InterdependenceError, OSError, ValueError) as exc:
        if not args.quiet:
            print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    finally:
        if listener is not None:
            shutdown_listener(package_logger, listener)


if __name__ == "__main__":
    raise SystemExit(main())
