"""
Supabase migration helper

The Supabase Python client cannot run arbitrary SQL, so this checks whether
the standings migration is applied and otherwise prints the SQL to paste into
the Supabase SQL editor.
"""
from pathlib import Path

from loguru import logger

from database.supabase_client import get_supabase_client


MIGRATION_FILE = Path(__file__).parent / "migrations" / "001_replace_scope_standings.sql"


def load_migration_sql(path: Path = MIGRATION_FILE) -> str:
    if not path.exists():
        raise FileNotFoundError(f"Migration file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def run_migration() -> bool:
    """
    Returns:
        True when the migration is already applied, False when the SQL was
        printed for manual execution
    """
    sql_content = load_migration_sql()
    client = get_supabase_client()

    try:
        client.table("global_standings").select("user_id").limit(1).execute()
        logger.info("global_standings exists; standings migration already applied")
        return True
    except Exception as e:
        if "does not exist" in str(e) or "relation" in str(e).lower():
            logger.info("global_standings is missing; migration required")
        else:
            logger.warning(f"Could not check global_standings: {e}")

    logger.info("=" * 60)
    logger.info("Run the SQL below in the Supabase dashboard (SQL Editor):")
    logger.info("=" * 60)
    print("\n" + sql_content + "\n")
    return False
