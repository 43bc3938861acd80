#!/usr/bin/env python3
"""Collect stock (and optionally orders / branding) data from PrestaShop boutiques.

Runs the collectors inline, without the dispatch queue.

Usage:
  python scripts/collect_prestashop_data.py --boutique 3
  python scripts/collect_prestashop_data.py --all --orders --orders-days 7
  python scripts/collect_prestashop_data.py --all --branding

Exit code is 1 when any boutique's stock collection failed.
"""

import argparse
import asyncio
import os
import sys

# Add project root so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import settings  # noqa: E402
from app.database import SessionLocal  # noqa: E402
from app.models import Boutique  # noqa: E402
from app.services.collector import PrestaShopCollector  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect data from PrestaShop boutiques")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("-b", "--boutique", type=int, help="Boutique ID to collect data for")
    target.add_argument("-a", "--all", action="store_true", help="Collect data for all boutiques")
    parser.add_argument("--branding", action="store_true", help="Also collect branding data (logo, colors)")
    parser.add_argument("-o", "--orders", action="store_true", help="Also collect orders data")
    parser.add_argument("--orders-days", type=int, default=settings.default_orders_days, help="Number of days of orders (0 = all)")
    return parser


async def run(args, session_factory=SessionLocal, http=None) -> int:
    db = session_factory()
    try:
        if args.boutique:
            boutique = db.get(Boutique, args.boutique)
            if not boutique:
                print(f"ERROR: Boutique with ID {args.boutique} not found.")
                return 1
            boutiques = [boutique]
        elif args.all:
            boutiques = db.query(Boutique).order_by(Boutique.id).all()
        else:
            print("ERROR: Please specify either --boutique=ID or --all.")
            return 1

        if not boutiques:
            print("No boutiques found to process.")
            return 0

        print(f"Collecting data for {len(boutiques)} boutique(s)\n")
        collector = PrestaShopCollector(db, http=http)
        ok = 0
        errors = 0

        for boutique in boutiques:
            print(f"── {boutique.name} (ID: {boutique.id}) ──")
            result = await collector.collect_stock_data(boutique)
            if not result["success"]:
                print(f"  FAILED: {result['error']}")
                errors += 1
                continue

            print(f"  Stock: {result['products_count']} products, {result['saved_count']} stocks saved")
            ok += 1

            if args.branding:
                branding = await collector.collect_branding_data(boutique)
                if branding["success"]:
                    print("  Branding collected")
                else:
                    print(f"  WARNING: could not collect branding: {branding['error']}")

            if args.orders:
                orders = await collector.collect_orders_data(boutique, args.orders_days)
                if orders["success"]:
                    print(f"  Orders: {orders['saved_count']} orders saved")
                else:
                    print(f"  WARNING: could not collect orders: {orders['error']}")

        print("\n── Summary ──")
        print(f"  {'Success':10s} {ok}")
        print(f"  {'Errors':10s} {errors}")
        print(f"  {'Total':10s} {len(boutiques)}")
        return 0 if errors == 0 else 1
    finally:
        db.close()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    from app.logging_config import setup_logging

    setup_logging()

    async def _main():
        from app.http_client import close_clients

        try:
            return await run(args)
        finally:
            await close_clients()

    return asyncio.run(_main())


if __name__ == "__main__":
    sys.exit(main())
