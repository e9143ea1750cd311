"""Initial schema: scalar keys and hash fields of the widget cache."""

import sqlite3

DDL = [
    # Scalar keys, e.g. 'cities' -> {name: {lat, lng}}
    """
    CREATE TABLE IF NOT EXISTS kv (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Hash fields, e.g. hash 'forecast', field '<city>' -> {current, week}
    """
    CREATE TABLE IF NOT EXISTS kv_hash (
        name TEXT NOT NULL,
        field TEXT NOT NULL,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (name, field)
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
    conn.commit()
