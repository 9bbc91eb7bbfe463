"""
Schema bootstrap: create_tables() is idempotent and lays out every table the
kernel and the web tier expect.
"""

from datetime import UTC, datetime

from sqlalchemy import inspect

from inventory_kernel.db.engine import create_tables
from inventory_kernel.db.triggers import ledger_triggers_installed
from inventory_kernel.models.session_record import SessionRecord

EXPECTED_TABLES = {
    "products",
    "stock_transactions",
    "users",
    "storage_locations",
    "storage_dimensions",
    "sessions",
}


class TestCreateTables:
    def test_all_tables_present(self, db_engine, db_tables):
        assert EXPECTED_TABLES <= set(inspect(db_engine).get_table_names())

    def test_second_run_is_a_no_op(self, db_engine, db_tables):
        create_tables()

        assert EXPECTED_TABLES <= set(inspect(db_engine).get_table_names())
        assert ledger_triggers_installed(db_engine)

    def test_tables_created_is_logged(self, db_tables, captured_logs):
        create_tables()

        records = [r for r in captured_logs() if r["message"] == "tables_created"]
        assert records
        assert "stock_transactions" in records[-1]["tables"]
        assert records[-1]["triggers"] is True


class TestSessionTable:
    def test_session_blob_round_trip(self, session):
        expire = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        session.add(SessionRecord(id="sid-1", sess={"user_id": "abc"}, expire=expire))
        session.flush()
        session.expire_all()

        record = session.get(SessionRecord, "sid-1")
        assert record.sess == {"user_id": "abc"}
        assert record.expire == expire
