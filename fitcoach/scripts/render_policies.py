"""
Render Policy Set Script
Writes the row-level security policy set as a Supabase migration.
Run after changing fitcoach/config/policies_config.py, then apply with
`supabase db push` (or `supabase db reset` locally).
"""

import argparse
import logging
import sys
from pathlib import Path

from fitcoach.config.policies_config import POLICY_SET, render_sql

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

project_root = Path(__file__).parent.parent.parent
MIGRATIONS_DIR = project_root / "supabase" / "migrations"


def migration_path(directory: Path = MIGRATIONS_DIR) -> Path:
    version = POLICY_SET.version.replace(".", "")
    return directory / f"{version}_isolation_policies.sql"


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Render the RLS policy set to SQL")
    parser.add_argument("--stdout", action="store_true", help="print instead of writing a migration")
    parser.add_argument("--out-dir", type=Path, default=MIGRATIONS_DIR)
    args = parser.parse_args(argv)

    sql = render_sql(POLICY_SET)
    if args.stdout:
        sys.stdout.write(sql)
        return 0

    path = migration_path(args.out_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(sql)
    logger.info(f"Policy set {POLICY_SET.version} written to {path} ({len(POLICY_SET.tables)} tables)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
