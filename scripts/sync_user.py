"""Insert a user row the identity provider failed to sync.

Users missing from ``users`` only ever get temporary chat sessions, so their
history is never saved. Run this with the provider's user id to repair it.

Usage:
    python -m scripts.sync_user --id dev-user-id --email dev@local.com --name Developer
"""

import argparse
import asyncio

from app.core.database import async_session_factory, engine
from app.repositories.user_repo import UserRepository


async def sync_user(
    user_id: str,
    email: str,
    name: str,
    display_name: str | None,
) -> None:
    """Create the user if it does not already exist."""
    async with async_session_factory() as session:
        user_repo = UserRepository(session)
        if await user_repo.exists_by_id(user_id):
            print(f"User '{user_id}' already exists.")
        else:
            await user_repo.create(
                user_id=user_id,
                email=email,
                name=name,
                display_name=display_name,
            )
            await session.commit()
            print(f"User inserted: {user_id} ({email})")

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Insert a missing user row")
    parser.add_argument("--id", required=True, help="Identity provider user id")
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--name", required=True, help="User name")
    parser.add_argument("--display-name", default=None, help="Display name")
    args = parser.parse_args()

    asyncio.run(sync_user(args.id, args.email, args.name, args.display_name))


if __name__ == "__main__":
    main()
