"""Issue or revoke access tokens from the command line.

Examples::

    python scripts/tokens.py issue 7 --days 30
    python scripts/tokens.py issue 7 --token my-token
    python scripts/tokens.py revoke my-token
"""
import argparse
import asyncio
import sys
from datetime import timedelta

from cms.database import async_session, engine
from cms.errors import ServiceError
from cms.models import utcnow
from cms.services import credential_store


async def issue(user_id: int, token: str | None, days: int | None) -> int:
    token = token or credential_store.generate_token()
    expires_at = utcnow() + timedelta(days=days) if days else None
    async with async_session() as session:
        try:
            await credential_store.issue_token(session, user_id, token, expires_at)
        except ServiceError as exc:
            print(f"error: {exc.message}", file=sys.stderr)
            return 1
        await session.commit()
    print(token)
    if expires_at:
        print(f"expires at {expires_at.isoformat()}", file=sys.stderr)
    return 0


async def revoke(token: str) -> int:
    async with async_session() as session:
        await credential_store.revoke_token(session, token)
        await session.commit()
    print("revoked", file=sys.stderr)
    return 0


async def run(args: argparse.Namespace) -> int:
    try:
        if args.command == "issue":
            return await issue(args.user_id, args.token, args.days)
        return await revoke(args.token)
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Manage CMS access tokens")
    sub = parser.add_subparsers(dest="command", required=True)

    issue_p = sub.add_parser("issue", help="Issue a token for a user")
    issue_p.add_argument("user_id", type=int)
    issue_p.add_argument("--token", help="Token string (random when omitted)")
    issue_p.add_argument("--days", type=int, help="Expire after N days (never when omitted)")

    revoke_p = sub.add_parser("revoke", help="Delete a token")
    revoke_p.add_argument("token")

    sys.exit(asyncio.run(run(parser.parse_args())))


if __name__ == "__main__":
    main()
