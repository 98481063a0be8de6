"""
Database helpers
"""

import pytest
from sqlalchemy import inspect

from admissions.config import settings
from admissions.database import drop_all_tables, engine, init_db


def test_drop_all_tables_refuses_in_production(monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")

    with pytest.raises(RuntimeError):
        drop_all_tables()

    assert "applications" in inspect(engine).get_table_names()


def test_init_db_recreates_dropped_schema():
    drop_all_tables()
    assert inspect(engine).get_table_names() == []

    init_db()
    assert {"users", "applications", "audit_logs"} <= set(inspect(engine).get_table_names())
