import logging
import sqlite3

from empowerher.config import DATABASE_NAME

logger = logging.getLogger(__name__)


def get_db(database_name=None):
    """Open the app database (or ``database_name``); rows come back as sqlite3.Row, the caller closes."""
    conn = sqlite3.connect(database_name or DATABASE_NAME,
                           detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES)
    conn.row_factory = sqlite3.Row
    # enforce the user foreign keys on contacts and reports
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_db(database_name=None):
    """
    Initialize all required tables. Safe to call multiple times.
    """
    conn = get_db(database_name)
    cur = conn.cursor()

    # users table (stands in for the managed auth service)
    cur.execute('''
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            name TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
    ''')

    # emergency_contacts table
    cur.execute('''
        CREATE TABLE IF NOT EXISTS emergency_contacts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            email TEXT,
            relation TEXT,
            added_at TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    ''')

    # safety_reports table (post-trip feedback)
    cur.execute('''
        CREATE TABLE IF NOT EXISTS safety_reports (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            location TEXT NOT NULL,
            destination TEXT,
            latitude REAL,
            longitude REAL,
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            incident_type TEXT,
            description TEXT,
            reported_at TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE SET NULL
        )
    ''')

    conn.commit()
    conn.close()
    logger.info("Database initialized / verified (%s)", database_name or DATABASE_NAME)


if __name__ == "__main__":
    init_db()
