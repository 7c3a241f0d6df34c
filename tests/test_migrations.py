"""Tests that the Alembic revision builds the schema the ORM models declare."""

from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from src.registrar.attendees import models  # noqa: F401
from src.registrar.core.database import Base

REVISION = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "001_initial_registrar.py"


def _load_revision():
    module_spec = importlib.util.spec_from_file_location("initial_registrar_revision", REVISION)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
def migrated(tmp_path):
    """Sync engine on a SQLite file after running the initial revision."""
    engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    revision = _load_revision()
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()
    yield engine
    engine.dispose()


class TestInitialRevision:
    def test_creates_every_model_table(self, migrated):
        assert set(inspect(migrated).get_table_names()) == set(Base.metadata.tables)

    @pytest.mark.parametrize("table_name", sorted(Base.metadata.tables))
    def test_column_nullability_matches_models(self, migrated, table_name):
        declared = {c.name: c.nullable for c in Base.metadata.tables[table_name].columns}
        migrated_columns = {
            c["name"]: c["nullable"] for c in inspect(migrated).get_columns(table_name)
        }
        assert migrated_columns == declared

    def test_profile_fields_default_to_empty(self, migrated):
        with migrated.begin() as conn:
            conn.exec_driver_sql(
                "INSERT INTO attendees (id, forum_id, email) "
                "VALUES ('6f1c2f3e000040008000000000000009', 'forum-1', 'a@acme.com')"
            )
            row = conn.exec_driver_sql(
                "SELECT first_name, notes, stage FROM attendees"
            ).one()
        assert tuple(row) == ("", "", "in_queue")
