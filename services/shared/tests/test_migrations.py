"""Tests for the Alembic migration scripts."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

pytestmark = pytest.mark.integration

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture
def alembic_config(tmp_path) -> Config:
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{tmp_path / 'migrations.db'}")
    return config


def table_names(config: Config) -> set[str]:
    engine = create_engine(config.get_main_option("sqlalchemy.url"))
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


class TestInitialSchema:
    """Migration 001."""

    def test_upgrade_creates_tables(self, alembic_config):
        command.upgrade(alembic_config, "head")

        tables = table_names(alembic_config)

        assert {"users", "user_api_quota", "languages", "api_usage_log"} <= tables

    def test_usage_log_foreign_keys(self, alembic_config):
        command.upgrade(alembic_config, "head")

        engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
        try:
            foreign_keys = {
                fk["referred_table"]: fk["options"].get("ondelete")
                for fk in inspect(engine).get_foreign_keys("api_usage_log")
            }
        finally:
            engine.dispose()

        assert foreign_keys == {"users": "CASCADE", "languages": "SET NULL"}

    def test_downgrade_removes_tables(self, alembic_config):
        command.upgrade(alembic_config, "head")
        command.downgrade(alembic_config, "base")

        tables = table_names(alembic_config)

        assert "users" not in tables
        assert "api_usage_log" not in tables
