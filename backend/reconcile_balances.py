#!/usr/bin/env python3
"""Reconciliation job: recompute cached friend balances from records.

Run after a store outage, or on a schedule, to bring stale caches back in line.
"""

import argparse
import logging
import sys

from database import SessionLocal
from utils.materializer import BalanceMaterializer
from utils.store import SqlRecordStore

logger = logging.getLogger(__name__)


def reconcile(db, user_ids=None):
    """
    Refresh cached balances for the given users, or for every user with a linked friend.

    Returns the list of RefreshResult, one per user.
    """
    store = SqlRecordStore(db)
    if user_ids is None:
        user_ids = store.list_owners_with_linked()

    results = BalanceMaterializer(store).refresh_many(user_ids)
    for result in results:
        if result.is_fresh:
            logger.info(f"User {result.user_id}: {len(result.balances)} balances refreshed")
        else:
            logger.warning(f"User {result.user_id}: still stale ({result.error})")
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Recompute cached friend balances from expense and settlement records')
    parser.add_argument('--user-id', type=int, action='append', default=None,
                        help='Only reconcile this user (repeatable; default: every user with a linked friend)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    db = SessionLocal()
    try:
        results = reconcile(db, args.user_id)
    finally:
        db.close()

    stale = [r.user_id for r in results if not r.is_fresh]
    print(f"Reconciled {len(results)} users, {len(stale)} stale")
    if stale:
        print(f"Stale users: {stale}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
