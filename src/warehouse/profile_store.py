"""User profile store backed by DuckDB."""

import duckdb

from src.warehouse.db import init_db


class DuckDBUserProfileStore:
    """Persist sticky decisions in the ``user_profiles`` table.

    Each call runs on its own cursor so the store can be shared between
    threads deciding for different users.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self._conn = conn
        init_db(conn)

    def lookup(self, user_id: str) -> dict | None:
        cursor = self._conn.cursor()
        try:
            rows = cursor.execute(
                "SELECT experiment_id, variation_id FROM user_profiles WHERE user_id = ?",
                [user_id],
            ).fetchall()
        finally:
            cursor.close()
        if not rows:
            return None
        return {
            "user_id": user_id,
            "experiment_bucket_map": {
                experiment_id: {"variation_id": variation_id}
                for experiment_id, variation_id in rows
            },
        }

    def save(self, profile: dict) -> None:
        user_id = profile["user_id"]
        rows = [
            (user_id, experiment_id, decision["variation_id"])
            for experiment_id, decision in profile["experiment_bucket_map"].items()
        ]
        if not rows:
            return
        cursor = self._conn.cursor()
        try:
            cursor.executemany(
                "INSERT OR REPLACE INTO user_profiles (user_id, experiment_id, variation_id) "
                "VALUES (?, ?, ?)",
                rows,
            )
        finally:
            cursor.close()

    def count(self) -> int:
        cursor = self._conn.cursor()
        try:
            return cursor.execute("SELECT count(*) FROM user_profiles").fetchone()[0]
        finally:
            cursor.close()
