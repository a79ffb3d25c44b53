"""DuckDB connection and schema for persisted sticky bucketing decisions.

One row per (user, experiment) pair. The composite primary key lets saves
upsert, so re-bucketing a user overwrites the stale decision.
"""

import duckdb

DEFAULT_DB_PATH = ":memory:"

USER_PROFILES_DDL = """
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id       VARCHAR NOT NULL,
    experiment_id VARCHAR NOT NULL,
    variation_id  VARCHAR NOT NULL,
    updated_at    TIMESTAMP DEFAULT current_timestamp,
    PRIMARY KEY (user_id, experiment_id)
)
"""


def get_connection(path: str = DEFAULT_DB_PATH) -> duckdb.DuckDBPyConnection:
    return duckdb.connect(path)


def init_db(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(USER_PROFILES_DDL)
