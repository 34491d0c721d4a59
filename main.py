#!/usr/bin/env python3
"""
DevDash -- operator commands for the auth database.

Usage:
  python main.py create-user alice
  python main.py create-user alice --email alice@example.com --first-name Alice
  python main.py purge-sessions

The password for create-user is read with getpass (never from argv, so it
does not land in shell history). Settings come from the environment / .env
exactly as for the API: DATABASE_URL, SECRET_KEY, SESSION_TTL_SECONDS.
"""

import argparse
import getpass
import logging
import sys

from auth.authenticator import Authenticator
from auth.errors import Err
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings


def _read_password() -> str:
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return ""
    return first


def cmd_create_user(authn: Authenticator, args: argparse.Namespace) -> int:
    password = _read_password()
    profile = {"email": args.email, "first_name": args.first_name, "last_name": args.last_name}
    result = authn.register(args.username, password, profile)
    if isinstance(result, Err):
        print(f"  [!] {result.error.message}")
        return 1
    # The CLI has no use for the browser session register() opened.
    authn.logout(result.value.token)
    print(f"  Created user '{result.value.user.username}' (id={result.value.user.id}).")
    return 0


def cmd_purge_sessions(authn: Authenticator, args: argparse.Namespace) -> int:
    removed = authn.session_store.purge_expired()
    print(f"  Removed {removed} expired session(s).")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="devdash",
        description="DevDash auth database administration.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create a local user account (prompts for a password)")
    create.add_argument("username")
    create.add_argument("--email", default=None)
    create.add_argument("--first-name", default=None)
    create.add_argument("--last-name", default=None)
    create.set_defaults(func=cmd_create_user)

    purge = sub.add_parser("purge-sessions", help="Delete expired session records")
    purge.set_defaults(func=cmd_purge_sessions)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)-5s %(name)s %(message)s")

    settings = get_settings()
    user_store = UserStore(settings.database_url)
    session_store = SessionStore(settings.database_url)
    authn = Authenticator(user_store, session_store, settings.secret_key, session_ttl=settings.session_ttl_seconds)
    try:
        return args.func(authn, args)
    finally:
        session_store.close()
        user_store.close()


if __name__ == "__main__":
    sys.exit(main())
