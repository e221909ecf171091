#!/usr/bin/env python3
"""
Clear Tracked Competitors

Maintenance tool: hard-deletes every watch-list row for one user,
including inactive ones.

Usage:
    python scripts/clear_tracked.py user@example.com
    python scripts/clear_tracked.py --user-id 0b8f... --yes
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def clear_tracked(email: str = None, user_id: str = None, assume_yes: bool = False) -> int:
    """Remove every tracked competitor for the user. Returns rows deleted."""

    load_dotenv()

    from lemonade.auth.sync import get_user_by_email, get_user_by_id
    from lemonade.database import init_db, get_db_context
    from lemonade.tracking import TrackedCompetitorService

    init_db()

    with get_db_context() as db:
        user = get_user_by_id(db, user_id) if user_id else get_user_by_email(db, email)
        if user is None:
            print(f"ERROR: No user found for {user_id or email}")
            return 0

        if not assume_yes:
            answer = input(f"Delete ALL tracked competitors for {user.email or user.id}? [y/N] ")
            if answer.strip().lower() != "y":
                print("Aborted")
                return 0

        removed = TrackedCompetitorService(db).clear_all(user.id)

    print(f"✓ Removed {removed} tracked competitors")
    return removed


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Hard-delete all tracked competitors for a user"
    )
    parser.add_argument(
        "email",
        nargs="?",
        default=None,
        help="Email of the user"
    )
    parser.add_argument(
        "--user-id",
        default=None,
        help="User ID (token subject) instead of email"
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip the confirmation prompt"
    )

    args = parser.parse_args()
    if not args.email and not args.user_id:
        parser.error("an email or --user-id is required")

    clear_tracked(email=args.email, user_id=args.user_id, assume_yes=args.yes)


if __name__ == "__main__":
    main()
