#!/usr/bin/env python3
"""Apply Alembic migrations to the local posts database.

Usage: python tools/db_upgrade.py [revision]   (defaults to ``head``)
"""

from __future__ import annotations

import sys
from pathlib import Path

from alembic.config import Config

from alembic import command
from quill.config import settings


def upgrade(revision: str = "head") -> None:
    project_root = Path(__file__).resolve().parent.parent
    cfg = Config(str(project_root / "alembic.ini"))
    cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(cfg, revision)


def main() -> int:
    if settings.post_backend != "sqlalchemy":
        print("POST_BACKEND is not 'sqlalchemy'; the hosted table is managed remotely")
        return 1
    upgrade(sys.argv[1] if len(sys.argv) > 1 else "head")
    print(f"✅ Database at {settings.database_url} is up to date")
    return 0


if __name__ == "__main__":
    sys.exit(main())
