"""
Command-line interface for the VAT checker system.

Commands:
- check: Run the full request pipeline for a single VAT identifier
- serve: Serve the HTTP endpoint with uvicorn
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    SUPPORTED_LANGUAGES,
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
)
from .exceptions import ConfigurationError
from .handler import VatCheckHandler
from .i18n import get_message
from .models import HTTPResponse, IncomingRequest


CLI_CLIENT_IDENTITY = "cli"


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Config from --config, else from the environment; CLI flags override both."""
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        config = load_config_from_env()

    if getattr(args, "dry_run", False):
        config.simulation_mode = True
    if getattr(args, "language", None):
        config.language = args.language
    return config


async def check_single_vat_id(
    vat_id: str,
    config: SystemConfig,
    verbose: bool = False,
) -> HTTPResponse:
    """
    Run one identifier through the handler as a GET request.

    Args:
        vat_id: Identifier as typed by the user
        config: System configuration
        verbose: Write handler log entries to stderr

    Returns:
        The handler's response
    """
    logger = None
    if verbose:
        logger = AuditLogger.from_config("debug", config.logging.output_format)

    request = IncomingRequest(
        method="GET",
        query={"vatId": vat_id},
        remote_addr=CLI_CLIENT_IDENTITY,
    )

    async with VatCheckHandler(config=config, logger=logger) as handler:
        return await handler.handle(request)


def print_result(response: HTTPResponse, language: str) -> None:
    body = response.body or {}

    if response.status_code != 200:
        print(f"{response.status_code}: {body.get('error', '')}")
        return

    valid = body.get("valid")
    if valid is True:
        status = get_message("cli.result_valid", language)
    elif valid is False:
        status = get_message("cli.result_invalid", language)
    else:
        status = get_message("cli.result_unknown", language)

    print(f"{body.get('vatId')}: {status}")
    if body.get("name"):
        print(f"  {body['name']}")
    if body.get("address"):
        for line in str(body["address"]).splitlines():
            print(f"  {line}")


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2
    if config is None:
        return 2

    language = config.language
    if config.simulation_mode and not args.json:
        print(get_message("cli.simulation", language))
    if not args.json:
        print(get_message("cli.checking", language, vat_id=args.vat_id))

    response = asyncio.run(check_single_vat_id(args.vat_id, config, verbose=args.verbose))

    if args.json:
        print(json.dumps(response.body, indent=2, ensure_ascii=False))
    else:
        print_result(response, language)

    body = response.body or {}
    return 0 if body.get("valid") is True else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle the 'serve' command."""
    import uvicorn

    from .app import create_app

    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2
    if config is None:
        return 2

    uvicorn.run(
        create_app(config),
        host=args.host,
        port=args.port,
        log_level=config.logging.level if config.logging.level != "warn" else "warning",
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="vat-checker",
        description="EU VAT identification number checker (format rules + VIES lookup)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Check a single VAT identifier",
    )
    check_parser.add_argument(
        "vat_id",
        help="VAT identifier to check (e.g., DE123456789)",
    )
    check_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode: do not contact the VIES registry",
    )
    check_parser.add_argument(
        "--language",
        choices=sorted(SUPPORTED_LANGUAGES),
        help="Output language",
    )
    check_parser.add_argument(
        "--config",
        help="Path to a JSON configuration file",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw JSON response body",
    )
    check_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Write log entries to stderr",
    )
    check_parser.set_defaults(func=cmd_check)

    # 'serve' command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the HTTP endpoint",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument(
        "--config",
        help="Path to a JSON configuration file",
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
