#!/usr/bin/env python3
"""
Create ledger tables from models (no-op for tables that already exist)
"""
from database import engine, Base, DATABASE_PATH
import models  # noqa: F401  registers tables on Base.metadata

if __name__ == "__main__":
    print(f"Creating ledger tables in {DATABASE_PATH}...")
    Base.metadata.create_all(bind=engine)
    print("✓ Ledger tables ready")
