import logging
from decimal import Decimal

import click
from flask import current_app
from sqlalchemy import text, inspect as sql_inspect

from petgroom import db, bcrypt

logger = logging.getLogger(__name__)

SAMPLE_OWNER_EMAIL = 'owner@petgroom.local'
SAMPLE_OWNER_PASSWORD = 'groomer123'
SAMPLE_PRICES = ((7, Decimal('50.00')), (15, Decimal('90.00')), (30, Decimal('160.00')), (60, Decimal('300.00')))


def check_database_connection():
    """Check if database connection is working"""
    try:
        db.session.execute(text('SELECT 1'))
        return True
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


def get_missing_tables():
    existing = set(sql_inspect(db.engine).get_table_names())
    return [table.name for table in db.metadata.sorted_tables if table.name not in existing]


def initialize_database():
    """Create missing tables and, when configured, the sample owner account."""
    logger.info("Initializing database setup")

    if not check_database_connection():
        return False

    missing = get_missing_tables()
    if missing:
        logger.info("Creating %d missing tables: %s", len(missing), ', '.join(missing))
        db.create_all()
    else:
        logger.info("All model tables exist in the database")

    if current_app.config.get('SEED_SAMPLE_DATA'):
        create_sample_data_minimal()

    logger.info("Database setup complete")
    return True


def create_sample_data_minimal():
    """Create a demo owner with one grooming package, only if no account exists."""
    from petgroom.models import User, Package, PackagePrice

    if User.query.first():
        return False

    try:
        owner = User(
            name='Demo Groomer',
            email=SAMPLE_OWNER_EMAIL,
            password_hash=bcrypt.generate_password_hash(SAMPLE_OWNER_PASSWORD).decode('utf-8')
        )
        package = Package(owner=owner, name='Bath & Brush', description='Bath, brushing and nail trim',
                          duration=60)
        for recurrence, price in SAMPLE_PRICES:
            package.prices.append(PackagePrice(recurrence=recurrence, price=price))
        db.session.add(owner)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Sample owner %s created", SAMPLE_OWNER_EMAIL)
    return True


# Flask CLI commands registration
def register_db_commands(app):
    """Register database commands with Flask CLI"""

    @app.cli.command('init_db')
    def init_db_command():
        """Creates missing tables."""
        initialize_database()

    @app.cli.command('seed_db')
    def seed_db_command():
        """Creates the demo owner account and package."""
        if create_sample_data_minimal():
            click.echo(f"Sample owner: {SAMPLE_OWNER_EMAIL} / {SAMPLE_OWNER_PASSWORD}")
        else:
            click.echo("Accounts already exist, nothing seeded.")

    @app.cli.command('reset_db')
    @click.confirmation_option(prompt='This will delete all data. Continue?')
    def reset_db_command():
        """Drops all tables and re-initializes the database."""
        db.drop_all()
        initialize_database()
        click.echo("Database has been reset.")
