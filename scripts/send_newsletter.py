#!/usr/bin/env python3
"""
Newsletter Digest Runner

Builds a digest report for every premium user with tracked competitors:
1. Fresh signals for the watch-list (news, funding, products)
2. Highlights from the user's recent reports
3. Digest written by Claude (markdown fallback without an API key)
4. Email delivery (Resend)

Users who got a digest in the last two hours are skipped unless --force.

Usage:
    export ANTHROPIC_API_KEY=your_key
    export RESEND_API_KEY=your_key

    python scripts/send_newsletter.py
    python scripts/send_newsletter.py --test-email me@example.com --force
    python scripts/send_newsletter.py --no-email
"""

import asyncio
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


async def send_newsletters(force: bool = False, test_email: str = None, send_email: bool = True):
    """Run the digest for every eligible user."""

    load_dotenv()

    from lemonade.analysis import LLMClient
    from lemonade.cache import get_signal_cache
    from lemonade.database import init_db, get_db_context
    from lemonade.delivery import EmailDelivery
    from lemonade.newsletter import NewsletterService
    from lemonade.signals import SignalAggregator

    init_db()

    print(f"\n{'='*70}")
    print("COMPETITOR LEMONADE - NEWSLETTER DIGEST")
    print(f"{'='*70}")
    print(f"Force:        {force}")
    print(f"Test email:   {test_email or '(all premium users)'}")
    print(f"Send email:   {send_email}")
    print(f"{'='*70}\n")

    client = LLMClient()
    if not client.available:
        print("⚠ ANTHROPIC_API_KEY not set - digests use the plain markdown layout")

    with get_db_context() as db:
        service = NewsletterService(
            db,
            aggregator=SignalAggregator(cache=get_signal_cache()),
            client=client,
            email=EmailDelivery() if send_email else None,
        )
        results = await service.run(force=force, test_email=test_email, send_email=send_email)

    created = [r for r in results if r.report_id]
    for result in results:
        if result.report_id:
            mark = "✓ emailed" if result.emailed else "✓"
            print(f"{mark} {result.user_id}: report {result.report_id}")
        else:
            print(f"- {result.user_id}: skipped ({result.skipped})")

    print(f"\nDigests created: {len(created)} / {len(results)} users")
    return results


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Send tracked-competitor newsletter digests"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the two-hour recent digest window"
    )
    parser.add_argument(
        "--test-email",
        default=None,
        help="Only run for the user with this email"
    )
    parser.add_argument(
        "--no-email",
        action="store_true",
        help="Store digests without emailing them"
    )

    args = parser.parse_args()

    asyncio.run(send_newsletters(
        force=args.force,
        test_email=args.test_email,
        send_email=not args.no_email,
    ))


if __name__ == "__main__":
    main()
