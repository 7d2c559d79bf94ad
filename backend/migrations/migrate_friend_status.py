#!/usr/bin/env python3
"""Migration script to give every friendships row an explicit status.

Rows imported without a status are resolved once here instead of at every read:
a row whose mirrored row also exists is a completed link and becomes 'linked';
a row without its mirror was only half-created and becomes 'pending', with a
zero cached balance.
"""

import sqlite3
import os
import argparse

# Default database path (relative to backend directory)
DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'db.sqlite3')


def migrate(db_path: str = None):
    """Fill in missing friendships.status values."""
    if db_path is None:
        db_path = DEFAULT_DB_PATH

    if not os.path.exists(db_path):
        print(f"Database not found at {db_path}")
        print("Please specify the correct path with --db-path")
        return False

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute("PRAGMA table_info(friendships)")
        columns = [row[1] for row in cursor.fetchall()]
        if not columns:
            print("friendships table not found, skipping migration.")
            return True
        if 'status' not in columns:
            cursor.execute("ALTER TABLE friendships ADD COLUMN status TEXT")

        cursor.execute("""
            UPDATE friendships
            SET status = 'linked'
            WHERE status IS NULL
              AND EXISTS (
                  SELECT 1 FROM friendships AS mirror
                  WHERE mirror.owner_id = friendships.friend_id
                    AND mirror.friend_id = friendships.owner_id
              )
        """)
        linked = cursor.rowcount

        cursor.execute("""
            UPDATE friendships
            SET status = 'pending', balance = 0
            WHERE status IS NULL
        """)
        pending = cursor.rowcount

        conn.commit()
        print(f"Marked {linked} rows as linked and {pending} half-created rows as pending.")
        return True

    except sqlite3.Error as e:
        print(f"Error migrating friendships.status: {e}")
        conn.rollback()
        return False
    finally:
        conn.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Fill in missing friendship statuses')
    parser.add_argument('--db-path', type=str, default=None,
                        help='Path to SQLite database file (default: backend/db.sqlite3)')
    args = parser.parse_args()
    migrate(args.db_path)
