#!/usr/bin/env python3
"""
Gatehouse -- operator command line.

Usage:
  python main.py init
  python main.py create-account alice_01
  python main.py create-account alice_01 --first-name Alice --last-name Liddell
  python main.py purge-sessions

Environment variables (see core/config.py):
  ACCOUNTS_DB_URL      SQLAlchemy URL of the account store (default: auth/gatehouse_accounts.db)
  SESSIONS_DB_URL      SQLAlchemy URL of the session store (default: auth/gatehouse_sessions.db)
  SESSION_TTL_SECONDS  Server-side session lifetime; 0 disables expiry
"""

import argparse
import getpass
import sys

from auth.errors import AuthError, DuplicateAccountError, ValidationError
from auth.sessions import SessionStore
from auth.store import AccountStore
from core.config import get_settings


def _open_stores() -> tuple[AccountStore, SessionStore]:
    """Open both stores at the configured URLs, creating their tables if needed."""
    settings = get_settings()
    accounts = AccountStore(settings.accounts_db_url) if settings.accounts_db_url else AccountStore()
    if settings.sessions_db_url:
        sessions = SessionStore(accounts, settings.sessions_db_url, ttl_seconds=settings.session_ttl_seconds)
    else:
        sessions = SessionStore(accounts, ttl_seconds=settings.session_ttl_seconds)
    return accounts, sessions


def cmd_init(args: argparse.Namespace) -> int:
    accounts, sessions = _open_stores()
    try:
        print(f"  Account store ready ({'has accounts' if accounts.has_accounts() else 'empty'})")
        print(f"  Session store ready ({sessions.count_sessions()} stored)")
    finally:
        sessions.close()
        accounts.close()
    return 0


def cmd_create_account(args: argparse.Namespace) -> int:
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1

    accounts, sessions = _open_stores()
    try:
        account = accounts.create_account(
            args.username,
            password,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except (ValidationError, DuplicateAccountError) as e:
        print(f"  [!] {e}")
        return 1
    finally:
        sessions.close()
        accounts.close()
    print(f"  Created account {account.username}")
    return 0


def cmd_purge_sessions(args: argparse.Namespace) -> int:
    accounts, sessions = _open_stores()
    try:
        removed = sessions.purge_expired()
    finally:
        sessions.close()
        accounts.close()
    print(f"  Removed {removed} expired session(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatehouse",
        description="Manage Gatehouse account and session storage.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Create the account and session tables")
    p_init.set_defaults(func=cmd_init)

    p_create = sub.add_parser("create-account", help="Register a new account (prompts for the password)")
    p_create.add_argument("username")
    p_create.add_argument("--first-name", default=None)
    p_create.add_argument("--last-name", default=None)
    p_create.set_defaults(func=cmd_create_account)

    p_purge = sub.add_parser("purge-sessions", help="Delete sessions older than SESSION_TTL_SECONDS")
    p_purge.set_defaults(func=cmd_purge_sessions)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AuthError as e:
        print(f"  [!] {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
