"""Operator CLI for provisioning accounts, API keys and platform connections.

Connections are normally created by the OAuth flow; this script exists for
local development and for importing tokens obtained elsewhere.

Examples::

    python -m publora_engine.scripts.seed init-db
    python -m publora_engine.scripts.seed account "Acme" --monthly-limit 100
    python -m publora_engine.scripts.seed connection 1 twitter-12345 --token ... --username acme
"""
from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime

from publora_engine.db.session import SessionLocal, create_tables
from publora_engine.db.time import ensure_utc
from publora_engine.models import Account, PlatformConnection
from publora_engine.platforms.ids import parse_platform_id
from publora_engine.services.api_keys import create_account, issue_api_key


def _cmd_init_db(args: argparse.Namespace) -> int:
    create_tables()
    print("Tables created")
    return 0


def _cmd_account(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        account, raw_key = create_account(db, args.name, monthly_post_limit=args.monthly_limit)
        print(f"account_id={account.id}")
        print(f"api_key={raw_key}")
    return 0


def _cmd_key(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        account = db.get(Account, args.account_id)
        if account is None:
            print(f"Account {args.account_id} not found", file=sys.stderr)
            return 1
        print(f"api_key={issue_api_key(db, account, label=args.label)}")
    return 0


def _cmd_connection(args: argparse.Namespace) -> int:
    try:
        ref = parse_platform_id(args.platform_id)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    expires_at = ensure_utc(datetime.fromisoformat(args.expires_at)) if args.expires_at else None
    with SessionLocal() as db:
        db.add(
            PlatformConnection(
                account_id=args.account_id,
                workspace_user_id=args.workspace_user,
                platform=ref.platform.value,
                external_id=ref.external_id,
                platform_id=ref.platform_id,
                username=args.username,
                display_name=args.display_name,
                access_token=args.token,
                access_token_expires_at=expires_at,
                extra=json.loads(args.extra) if args.extra else {},
            )
        )
        db.commit()
    print(f"Connected {ref.platform_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables (development only; use Alembic otherwise)")

    account = sub.add_parser("account", help="Create an account and print its first API key")
    account.add_argument("name")
    account.add_argument("--monthly-limit", type=int, default=None)

    key = sub.add_parser("key", help="Issue another API key for an account")
    key.add_argument("account_id", type=int)
    key.add_argument("--label", default=None)

    connection = sub.add_parser("connection", help="Register a platform connection")
    connection.add_argument("account_id", type=int)
    connection.add_argument("platform_id", help='e.g. "twitter-12345"')
    connection.add_argument("--token", required=True)
    connection.add_argument("--username")
    connection.add_argument("--display-name")
    connection.add_argument("--workspace-user", default=None)
    connection.add_argument("--expires-at", help="ISO-8601 token expiry")
    connection.add_argument("--extra", help='JSON object, e.g. {"instance_url": "https://mastodon.social"}')
    return parser


COMMANDS = {
    "init-db": _cmd_init_db,
    "account": _cmd_account,
    "key": _cmd_key,
    "connection": _cmd_connection,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
