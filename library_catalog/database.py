import logging
import sqlite3

from .config import settings

logger = logging.getLogger(__name__)


def get_db_connection(db_file: str | None = None, timeout: float | None = None) -> sqlite3.Connection:
    """Open a connection to the catalog database.

    Connections run in autocommit mode (``isolation_level=None``); the store
    issues ``BEGIN``/``COMMIT`` itself so it can choose immediate transactions
    for the loan workflow.
    """
    conn = sqlite3.connect(
        db_file or settings.data_file,
        timeout=settings.db_timeout if timeout is None else timeout,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


def create_tables(db_file: str | None = None) -> None:
    """Create the catalog tables if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS authors (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                nationality TEXT,
                birth_year INTEGER CHECK(birth_year IS NULL OR birth_year >= 1000)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT UNIQUE NOT NULL,
                description TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                isbn TEXT UNIQUE NOT NULL,
                title TEXT NOT NULL,
                author_id INTEGER NOT NULL,
                total_copies INTEGER NOT NULL CHECK(total_copies >= 1),
                available_copies INTEGER NOT NULL,
                publication_year INTEGER CHECK(publication_year IS NULL OR publication_year >= 1000),
                FOREIGN KEY (author_id) REFERENCES authors(id) ON DELETE CASCADE
            )
        """)

        # Book <-> category link table
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS book_categories (
                book_id INTEGER NOT NULL,
                category_id INTEGER NOT NULL,
                PRIMARY KEY (book_id, category_id),
                FOREIGN KEY (book_id) REFERENCES books(id) ON DELETE CASCADE,
                FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                membership_date TEXT NOT NULL,
                active INTEGER NOT NULL DEFAULT 1
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                book_id INTEGER NOT NULL,
                loan_date TEXT NOT NULL,
                due_date TEXT NOT NULL,
                return_date TEXT,
                status TEXT NOT NULL CHECK(status IN ('ACTIVE', 'RETURNED', 'OVERDUE')),
                FOREIGN KEY (member_id) REFERENCES members(id) ON DELETE CASCADE,
                FOREIGN KEY (book_id) REFERENCES books(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_authors_name ON authors(first_name, last_name)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author_id ON books(author_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_book_categories_category_id ON book_categories(category_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_member_status ON loans(member_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_book_id ON loans(book_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_status ON loans(status)")
    finally:
        conn.close()


def initialize_database(db_file: str | None = None) -> None:
    """Create the schema for the given database file."""
    create_tables(db_file)
    logger.info(f"Catalog database ready: {db_file or settings.data_file}")
