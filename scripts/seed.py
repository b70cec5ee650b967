"""Create the schema and seed a development user with a non-expiring token."""
import argparse
import asyncio

from sqlalchemy import select

from cms.database import Base, async_session, engine
from cms.models import AccessToken, User
from cms.services import credential_store

DEV_EMAIL = "test@example.com"
DEV_NAME = "User 1"
DEV_TOKEN = "test-token-1"


async def seed(reset: bool = False):
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        user = (await session.execute(select(User).where(User.email == DEV_EMAIL))).scalar_one_or_none()
        if user is None:
            user = User(name=DEV_NAME, email=DEV_EMAIL)
            session.add(user)
            await session.flush()
            print(f"  Created user id={user.id} <{DEV_EMAIL}>")

        existing = await session.execute(select(AccessToken).where(AccessToken.token == DEV_TOKEN))
        if existing.scalar_one_or_none() is None:
            await credential_store.issue_token(session, user.id, DEV_TOKEN)
            print(f"  Issued token {DEV_TOKEN!r} (no expiry)")

        await session.commit()

    await engine.dispose()
    print("Seeding complete")


def main():
    parser = argparse.ArgumentParser(description="Seed the CMS database for local development")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    args = parser.parse_args()
    asyncio.run(seed(reset=args.reset))


if __name__ == "__main__":
    main()
