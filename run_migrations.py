"""Utility script to run Alembic migrations programmatically before app start (optional).

Usage:
    python run_migrations.py

This can be invoked in a container entrypoint before launching uvicorn.
"""
import logging
import os

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ALEMBIC_INI = os.path.join(BASE_DIR, 'alembic.ini')
BASELINE_REVISION = '20250101_0001'

logger = logging.getLogger("run_migrations")


def run():
    cfg = Config(ALEMBIC_INI)
    cfg.set_main_option('script_location', os.path.join(BASE_DIR, 'alembic'))
    override = os.getenv('DB_URL') or os.getenv('DATABASE_URL')
    if override:
        cfg.set_main_option('sqlalchemy.url', override)

    # Auto-stamp baseline if tables already exist (schema bootstrapped with create_all)
    url = cfg.get_main_option('sqlalchemy.url')
    if url:
        if url.startswith('postgresql+asyncpg://'):
            url = url.replace('postgresql+asyncpg://', 'postgresql+psycopg://', 1)
        try:
            engine = create_engine(url)
            existing_tables = set(inspect(engine).get_table_names())
            engine.dispose()
            if 'alembic_version' not in existing_tables and existing_tables & {'customers', 'invoices'}:
                revision = 'head' if 'event_store' in existing_tables else BASELINE_REVISION
                logger.warning("Existing tables detected without alembic_version; stamping %s", revision)
                command.stamp(cfg, revision)
        except SQLAlchemyError as e:
            logger.warning("Baseline detection failed: %s", e)

    command.upgrade(cfg, 'head')


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    run()
