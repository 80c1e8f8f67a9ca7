"""add carried points and onboarding flags

Revision ID: 0002_carried_points_onboarding
Revises: 0001_dailybag_core
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_carried_points_onboarding"
down_revision = "0001_dailybag_core"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "user_stats",
        sa.Column("CarriedPoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.add_column(
        "users",
        sa.Column("HasCompletedOnboarding", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.add_column(
        "users",
        sa.Column("OnboardingDismissedPermanently", sa.Boolean(), nullable=False, server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_column("users", "OnboardingDismissedPermanently")
    op.drop_column("users", "HasCompletedOnboarding")
    op.drop_column("user_stats", "CarriedPoints")
