#!/usr/bin/env python
"""Initialize the PostgreSQL database for the Category Service."""

import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from storage.schema import create_engine_with_url, create_tables, get_database_url, metadata


def main(database_url: Optional[str] = None) -> int:
    """Create every taxonomy table and check the connection."""

    print("Category Service - Database Initialization")
    print("=" * 60)

    database_url = database_url or get_database_url()
    print(f"\nDatabase URL: {database_url.split('@')[-1]}")

    print("\nCreating database engine...")
    try:
        engine = create_engine_with_url(database_url)
    except Exception as e:
        print(f"Error creating engine: {e}")
        return 1

    print("\nCreating tables...")
    try:
        create_tables(engine)
        print("All tables created successfully")
    except Exception as e:
        print(f"Error creating tables: {e}")
        return 1

    print("\nTables:")
    for table_name in metadata.tables.keys():
        print(f"   - {table_name}")

    print("\nTesting database connection...")
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("Database connection successful")
    except Exception as e:
        print(f"Error connecting to database: {e}")
        return 1
    finally:
        engine.dispose()

    print("\n" + "=" * 60)
    print("Database initialization complete!")
    print("\nNext steps:")
    print("  1. Start the API: python cli.py serve")
    print("  2. Check status: python cli.py health")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
