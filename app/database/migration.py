from sqlalchemy import text, inspect
import logging

from app.database.database import engine, Base
# Imported so every table is registered on Base.metadata
from app.database.models.users import User, Company  # noqa: F401
from app.database.models.approval import ApprovalFlowStep  # noqa: F401
from app.database.models.expense import Expense, ExpenseApproval  # noqa: F401

logger = logging.getLogger(__name__)

# Columns added after the first release; older databases get them patched in
EXPECTED_COLUMNS = {
    'companies': {
        'updated_at': 'TIMESTAMP',
    },
    'users': {
        'updated_at': 'TIMESTAMP',
    },
    'expenses': {
        'updated_at': 'TIMESTAMP',
    },
    'expense_approvals': {
        'decided_at': 'TIMESTAMP',
    },
}

def has_column(table_name: str, column_name: str) -> bool:
    """Check if a table has a specific column"""
    inspector = inspect(engine)
    if not inspector.has_table(table_name):
        return False
    columns = [col['name'] for col in inspector.get_columns(table_name)]
    return column_name in columns

def add_column_if_not_exists(table_name: str, column_name: str, column_type: str):
    """Add a column to a table if it doesn't exist"""
    if has_column(table_name, column_name):
        return
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_type}"))
    logger.info(f"Added column {column_name} to {table_name} table")

def check_and_add_missing_columns():
    """Check for missing columns and add them if necessary"""
    logger.info("Checking for missing database columns...")
    for table_name, columns in EXPECTED_COLUMNS.items():
        for column_name, column_type in columns.items():
            add_column_if_not_exists(table_name, column_name, column_type)
    logger.info("Column verification completed")

def create_tables_if_not_exist():
    """Create tables if they don't exist"""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

def run_migration():
    """Run complete database migration"""
    logger.info("Starting database migration...")

    # Create tables first
    create_tables_if_not_exist()

    # Then add missing columns
    check_and_add_missing_columns()

    logger.info("Database migration completed!")
