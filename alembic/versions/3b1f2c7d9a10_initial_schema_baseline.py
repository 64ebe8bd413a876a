"""initial_schema_baseline

Revision ID: 3b1f2c7d9a10
Revises:
Create Date: 2026-10-19 09:12:41.318204

Creates every table from the current model definitions, including the partial
unique index on doctor_shifts that blocks duplicate active assignments.
"""
from typing import Sequence, Union

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.database import Base
import models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '3b1f2c7d9a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create all database tables, indexes and constraints from the models.

    Status columns additionally get check constraints so that rows written
    outside the application stay within the known status values.
    """
    # Step 1: Create all tables from models
    Base.metadata.create_all(bind=op.get_bind())

    # Step 2: Status check constraints
    op.create_check_constraint(
        'check_doctor_shift_status',
        'doctor_shifts',
        "status IN ('Active', 'Cancelled', 'Completed')"
    )

    op.create_check_constraint(
        'check_payment_status',
        'payments',
        "status IN ('Pending', 'Paid', 'Cancelled')"
    )

    op.create_check_constraint(
        'check_doctor_shift_range',
        'doctor_shifts',
        "effective_to IS NULL OR effective_to >= effective_from"
    )


def downgrade() -> None:
    """Drop every table created by the baseline."""
    Base.metadata.drop_all(bind=op.get_bind())
