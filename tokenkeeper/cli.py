"""Operator command line for bootstrapping and inspecting the stored tokens.

Example usages::

    # Create the token table in the configured SQLite database.
    tokenkeeper setup --yes

    # Print the consent URL, then paste the returned authorization code.
    tokenkeeper login

    # Store tokens obtained out of band, then inspect them.
    tokenkeeper set --access-token AT... --refresh-token RT... --expires-in 60
    tokenkeeper status
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, Optional, Sequence

from pydantic import ValidationError

from tokenkeeper.clients.sqlite_store import SQLiteTokenTable
from tokenkeeper.core.config import AppSettings, get_settings
from tokenkeeper.core.errors import ConfigurationError
from tokenkeeper.core.logging import configure_logging
from tokenkeeper.dependencies import ServiceContainer, build_container
from tokenkeeper.schemas.tokens import OperationResult
from tokenkeeper.services.operator_actions import format_status

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

Handler = Callable[[ServiceContainer, argparse.Namespace], Awaitable[int]]


def _prompt(question: str) -> str:
    return input(question).strip()


def _confirmed(question: str, *accepted: str) -> bool:
    return _prompt(question).lower() in accepted


def _report(result: OperationResult, *, show_status: bool = True) -> int:
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return EXIT_FAILURE
    print(result.message)
    if show_status and result.status is not None:
        print()
        print(format_status(result.status))
    return EXIT_OK


async def _login(container: ServiceContainer, args: argparse.Namespace) -> int:
    code = args.code
    if not code:
        scope = args.scope or _prompt(
            f"Enter OAuth scope (default: {container.settings.oauth.scope}): "
        )
        authorization_url = container.oauth_client.build_authorization_url(scope=scope)
        print()
        print("To get an authorization code:")
        print("1. Visit this URL in your browser:")
        print()
        print(f"   {authorization_url}")
        print()
        print("2. Authorize the application")
        print("3. Copy the 'code' parameter from the redirect URL")
        print("4. Paste it below")
        print()
        code = _prompt("Enter authorization code: ")
    if not code:
        print("Error: Authorization code cannot be empty", file=sys.stderr)
        return EXIT_FAILURE
    return _report(await container.operator_actions.login(code))


async def _set_tokens(container: ServiceContainer, args: argparse.Namespace) -> int:
    print("Tokens will be encrypted and stored securely.")
    access_token = args.access_token or _prompt("Enter access token: ")
    if not access_token:
        print("Error: Access token cannot be empty", file=sys.stderr)
        return EXIT_FAILURE
    refresh_token = args.refresh_token or _prompt("Enter refresh token: ")
    if not refresh_token:
        print("Error: Refresh token cannot be empty", file=sys.stderr)
        return EXIT_FAILURE

    expires_in = args.expires_in
    if expires_in is None and not (args.access_token and args.refresh_token):
        raw = _prompt("Enter expiry time in minutes (default: 60): ")
        if raw:
            try:
                expires_in = int(raw)
            except ValueError:
                print("Error: Expiry time must be a positive number (minutes)", file=sys.stderr)
                return EXIT_FAILURE
    return _report(
        await container.operator_actions.set_tokens(access_token, refresh_token, expires_in)
    )


async def _refresh(container: ServiceContainer, args: argparse.Namespace) -> int:
    return _report(await container.operator_actions.refresh())


async def _status(container: ServiceContainer, args: argparse.Namespace) -> int:
    result = await container.operator_actions.status()
    if result.formatted:
        print(result.formatted)
    else:
        print(f"Error: {result.message}", file=sys.stderr)
    return EXIT_OK if result.success else EXIT_FAILURE


async def _show_tokens(container: ServiceContainer, args: argparse.Namespace) -> int:
    print("SECURITY WARNING:")
    print("   These tokens provide full access to the connected account.")
    print("   Make sure no one can see your screen and clear your terminal history afterwards.")
    print()
    if not _confirmed("Type 'yes' to continue and display tokens: ", "yes"):
        print("Operation cancelled for security")
        return EXIT_OK

    result = await container.operator_actions.show_tokens()
    if not result.success or result.tokens is None:
        print(f"Error: {result.message}", file=sys.stderr)
        return EXIT_FAILURE
    tokens = result.tokens
    print()
    print("Current Tokens:")
    print(f"   Access Token:  {tokens.access_token}")
    print(f"   Refresh Token: {tokens.refresh_token}")
    print(
        f"   Expires At:    {tokens.expires_at.isoformat() if tokens.expires_at else 'Unknown'}"
    )
    return EXIT_OK


async def _clear(container: ServiceContainer, args: argparse.Namespace) -> int:
    if not args.yes and not _confirmed(
        "This removes all stored tokens. Continue? (y/N): ", "y", "yes"
    ):
        print("Clear cancelled")
        return EXIT_OK
    return _report(await container.operator_actions.clear(), show_status=False)


def _setup(settings: AppSettings, args: argparse.Namespace) -> int:
    print(f"Database: {settings.database_path}")
    if not args.yes and not _confirmed(
        "Continue with database setup? (y/N): ", "y", "yes"
    ):
        print("Setup cancelled")
        return EXIT_OK
    table = SQLiteTokenTable(settings.database_path)
    print(f"Token table ready in {table.db_path} ({table.count()} record(s) stored)")
    return EXIT_OK


def _check(settings: AppSettings) -> int:
    settings.validate_runtime()
    print("Configuration OK.")
    return EXIT_OK


_HANDLERS: dict[str, Handler] = {
    "login": _login,
    "set": _set_tokens,
    "refresh": _refresh,
    "status": _status,
    "tokens": _show_tokens,
    "clear": _clear,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokenkeeper",
        description="Manage the encrypted OAuth token pair kept fresh by the service.",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Show informational log output."
    )
    subparsers = parser.add_subparsers(dest="command")

    setup = subparsers.add_parser("setup", help="Create the token table")
    setup.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    login = subparsers.add_parser("login", help="Interactive OAuth login to get initial tokens")
    login.add_argument("--code", help="Authorization code; prompted for when omitted.")
    login.add_argument("--scope", help="OAuth scope used in the consent URL.")

    set_tokens = subparsers.add_parser("set", help="Store an access and refresh token manually")
    set_tokens.add_argument("--access-token")
    set_tokens.add_argument("--refresh-token")
    set_tokens.add_argument(
        "--expires-in", type=int, help="Minutes until the access token expires (default 60)."
    )

    subparsers.add_parser("refresh", help="Force refresh the current tokens")
    subparsers.add_parser("status", help="View current token status and expiry information")
    subparsers.add_parser("tokens", help="Display decrypted tokens (use with caution)")

    clear = subparsers.add_parser("clear", help="Clear all stored tokens")
    clear.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    subparsers.add_parser("check", help="Validate the environment configuration")
    subparsers.add_parser("help", help="Show this help message")
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    container: Optional[ServiceContainer] = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command in (None, "help"):
        parser.print_help()
        return EXIT_OK

    try:
        settings = container.settings if container is not None else get_settings()
        configure_logging("INFO" if args.verbose else "WARNING")
        if args.command == "check":
            return _check(settings)
        if args.command == "setup":
            return _setup(settings, args)
        container = container or build_container(settings)
        return asyncio.run(_HANDLERS[args.command](container, args))
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


def run() -> None:  # pragma: no cover - console script entry point
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - manual execution path
    run()
