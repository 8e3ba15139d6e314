"""Management CLI.

Usage:
    producttrace init-db [--admin IDENTITY]    # Create tables, bootstrap administrator
    producttrace issue-token IDENTITY          # Print a bearer token for IDENTITY
    producttrace serve [--host H] [--port P]   # Run the API with uvicorn
"""

import argparse
import asyncio
import logging
import sys
from datetime import timedelta

import uvicorn

from producttrace.auth.jwt import create_access_token
from producttrace.config import settings
from producttrace.database import build_engine, build_sessionmaker, create_tables
from producttrace.errors import LedgerError
from producttrace.services.ledger import SupplyChainLedger
from producttrace.services.notifier import LoggingNotifier


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def init_db(database_url: str, administrator: str | None) -> None:
    engine = build_engine(database_url, echo=settings.debug)
    try:
        await create_tables(engine)
        print(f"  Tables ready on {engine.url.render_as_string(hide_password=True)}")
        if administrator:
            ledger = SupplyChainLedger(
                build_sessionmaker(engine), notifiers=[LoggingNotifier()]
            )
            if await ledger.bootstrap(administrator):
                print(f"  Administrator set to {administrator}")
            else:
                print("  Administrator already set")
    finally:
        await engine.dispose()


def issue_token(identity: str, minutes: int | None) -> str:
    expires = timedelta(minutes=minutes) if minutes else None
    return create_access_token(identity, expires_delta=expires)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="producttrace")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="create tables and bootstrap the administrator")
    init.add_argument("--database-url", default=settings.database_url)
    init.add_argument("--admin", default=settings.administrator_identity or None)

    token = sub.add_parser("issue-token", help="print a bearer token for an identity")
    token.add_argument("identity")
    token.add_argument("--minutes", type=int, default=None)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "init-db":
        try:
            asyncio.run(init_db(args.database_url, args.admin))
        except LedgerError as exc:
            print(f"  FAILED: {exc.error_code} - {exc.message}", file=sys.stderr)
            return 1
    elif args.command == "issue-token":
        print(issue_token(args.identity, args.minutes))
    elif args.command == "serve":
        uvicorn.run(
            "producttrace.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=(args.log_level or settings.log_level).lower(),
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
