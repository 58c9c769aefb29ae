#!/usr/bin/env python3
"""
Command line entry point for streamauth.

Sub-commands: ``login <provider>``, ``logout <provider>``, ``status`` and
``resolve <title>``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from .auth.models import Provider, TokenRole
from .config import load_config
from .errors.handling import log_error
from .errors.internal import AuthError, InternalError
from .logging_config import LoggerConfigurator
from .resolvers.base import MediaKind, MediaRef
from .service import AuthService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamauth",
        description="Device-code login and token management for media providers",
    )
    parser.add_argument("--config", help="Path to the JSON configuration file")
    sub = parser.add_subparsers(dest="command", required=True)

    providers = [p.value for p in Provider]
    login = sub.add_parser("login", help="Authorize a provider via device code")
    login.add_argument("provider", choices=providers)
    login.add_argument("--force", action="store_true", help="Ignore stored credentials")

    logout = sub.add_parser("logout", help="Forget a provider's credentials")
    logout.add_argument("provider", choices=providers)

    sub.add_parser("status", help="Show which providers are logged in")

    resolve = sub.add_parser("resolve", help="Resolve a stream URL from the debrid cloud")
    resolve.add_argument("title")
    resolve.add_argument("--season", type=int)
    resolve.add_argument("--episode", type=int)
    return parser


def _print_code(verification_uri: str, user_code: str) -> None:
    print(f"👉 Open {verification_uri} and enter code: {user_code}", flush=True)


async def _status(service: AuthService) -> None:
    for provider in Provider:
        configured = provider in service.config.providers
        logged_in = await service.is_logged_in(provider)
        username = await service.store.get(provider, TokenRole.USERNAME) if logged_in else None
        state = "logged in" if logged_in else "logged out"
        suffix = f" as {username}" if username else ""
        note = "" if configured else " (not configured)"
        print(f"{provider.value}: {state}{suffix}{note}")


async def main(argv: Sequence[str] | None = None) -> int:
    """Run one CLI command and return the process exit code."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    async with AuthService(config) as service:
        try:
            if args.command == "login":
                credential = await service.authorize(args.provider, _print_code, force=args.force)
                who = f" as {credential.username}" if credential.username else ""
                print(f"✅ Logged in to {args.provider}{who}")
            elif args.command == "logout":
                await service.logout(args.provider)
                print(f"👋 Logged out of {args.provider}")
            elif args.command == "status":
                await _status(service)
            elif args.command == "resolve":
                kind = MediaKind.SHOW if args.season is not None else MediaKind.MOVIE
                ref = MediaRef(args.title, kind, args.season, args.episode)
                print(await service.resolve_stream_url(ref))
        except AuthError as e:
            log_error(f"{args.command} failed", e, level=logging.WARNING)
            print(f"🔒 {e}. Run 'streamauth login {e.provider or '<provider>'}' to authorize again.")
            return 1
        except (InternalError, KeyError, ValueError) as e:
            log_error(f"{args.command} failed", e)
            return 1
    return 0


def run() -> None:
    """Synchronous entry point for the application."""
    LoggerConfigurator().configure()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
