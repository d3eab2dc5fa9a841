"""Create a NoteVault account from the command line.

Usage:
    python scripts/add_user.py                 # prompts for username and password
    python scripts/add_user.py alice --token   # also print a 24h bearer token
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from notevault.core.config import settings  # noqa: E402
from notevault.core.token_factory import create_token  # noqa: E402
from notevault.database import Store  # noqa: E402
from notevault.exceptions import NoteVaultException  # noqa: E402
from notevault.services import user_service  # noqa: E402


def add_user(username: str, password: str, database_url: str = None) -> int:
    """Register the account and return its user id."""
    store = Store(database_url)
    try:
        store.init_schema()
        with store.unit_of_work() as db:
            user = user_service.register_user(db, username, password)
            return user.user_id
    finally:
        store.dispose()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Add a NoteVault user")
    parser.add_argument("username", nargs="?", help="Account name (prompted if omitted)")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--token", action="store_true", help="Print a bearer token for the new user")
    args = parser.parse_args(argv)

    username = args.username or input("Enter username: ").strip()
    password = getpass.getpass("Enter password: ").strip()

    try:
        user_id = add_user(username, password, args.database_url)
    except NoteVaultException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(f"User '{username}' added successfully (ID: {user_id}).")
    if args.token:
        print(create_token(user_id, username, settings.jwt_secret_key, settings.jwt_algorithm))
    return 0


if __name__ == "__main__":
    sys.exit(main())
