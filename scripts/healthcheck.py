"""
Simple container health check: the database must answer ``SELECT 1``.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from db.session import get_engine


def main() -> int:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except (SQLAlchemyError, RuntimeError):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
