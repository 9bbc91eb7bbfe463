"""
Module: inventory_kernel.db.triggers
Responsibility: Loading, installing, and verifying the database triggers that
    make stock_transactions append-only (Layer 2 of 2).  This is the
    database-level complement to the ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.  MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - stock_transactions rows: no UPDATE, no DELETE, whatever the client.

Failure modes:
    - SQLite RAISE(ABORT) / PostgreSQL RAISE EXCEPTION on any violation
      (surfaced by SQLAlchemy as a DBAPIError subclass).
    - FileNotFoundError if SQL files are missing from the sql/ directory.
    - ValueError for a dialect with no trigger scripts.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

SQL_DIR = Path(__file__).parent / "sql"

SUPPORTED_DIALECTS = ("sqlite", "postgresql")

TRIGGER_FILES = [
    "01_stock_transaction.sql",
]

DROP_FILE = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_stock_transaction_immutability_update",
    "trg_stock_transaction_immutability_delete",
]


def _sql_dir_for(engine: Engine) -> Path:
    dialect = engine.dialect.name
    if dialect not in SUPPORTED_DIALECTS:
        raise ValueError(f"No ledger trigger scripts for dialect '{dialect}'")
    return SQL_DIR / dialect


def _load_sql_file(engine: Engine, filename: str) -> str:
    """
    Load SQL content for the engine's dialect.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    return (_sql_dir_for(engine) / filename).read_text(encoding="utf-8")


def _run_script(engine: Engine, sql_content: str) -> None:
    """
    Execute a multi-statement script on a raw DBAPI connection.

    Trigger bodies contain semicolons, so the script goes to the driver in
    one piece: ``executescript`` on SQLite, a single parameterless
    ``execute`` on psycopg2.
    """
    raw = engine.raw_connection()
    try:
        if engine.dialect.name == "sqlite":
            raw.driver_connection.executescript(sql_content)
        else:
            cursor = raw.cursor()
            try:
                cursor.execute(sql_content)
            finally:
                cursor.close()
        raw.commit()
    finally:
        raw.close()


def install_ledger_triggers(engine: Engine) -> None:
    """
    Install the append-only triggers on stock_transactions.

    Preconditions: Tables must exist (call after metadata.create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
        Installation is idempotent on both dialects.
    """
    parts = []
    for filename in TRIGGER_FILES:
        parts.append(f"-- Loading: {filename}")
        parts.append(_load_sql_file(engine, filename))
    _run_script(engine, "\n".join(parts))


def uninstall_ledger_triggers(engine: Engine) -> None:
    """
    Remove the append-only triggers.

    WARNING: Only use this in tests or maintenance scripts.  Re-install the
    triggers IMMEDIATELY afterwards.
    """
    _run_script(engine, _load_sql_file(engine, DROP_FILE))


def get_installed_triggers(engine: Engine) -> list[str]:
    """
    Get the list of installed ledger triggers.

    Useful for debugging and verification.
    """
    names = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    if engine.dialect.name == "sqlite":
        check_sql = f"""
        SELECT name FROM sqlite_master
        WHERE type = 'trigger' AND name IN ({names})
        ORDER BY name
        """
    else:
        check_sql = f"""
        SELECT tgname FROM pg_trigger
        WHERE tgname IN ({names})
        ORDER BY tgname
        """

    with engine.connect() as conn:
        return [row[0] for row in conn.execute(text(check_sql))]


def ledger_triggers_installed(engine: Engine) -> bool:
    """True iff every trigger in ALL_TRIGGER_NAMES is installed."""
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)


def get_missing_triggers(engine: Engine) -> list[str]:
    """Ledger triggers that should be installed but aren't."""
    installed = set(get_installed_triggers(engine))
    return sorted(set(ALL_TRIGGER_NAMES) - installed)
