"""create daily bag tables

Revision ID: 0001_dailybag_core
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_dailybag_core"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("CURRENT_TIMESTAMP")


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=NOW)


def _index(table: str, *columns: str, unique: bool = False, name: str | None = None) -> None:
    op.create_index(name or f"ix_{table}_{columns[0]}", table, list(columns), unique=unique)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Email", sa.String(length=100), nullable=False),
        sa.Column("Name", sa.String(length=50), nullable=False),
        sa.Column("AvatarUrl", sa.String(length=500), nullable=False),
        sa.Column("PasswordHash", sa.String(length=255), nullable=False),
        sa.Column("Points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("Level", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("Role", sa.String(length=20), nullable=True),
        sa.Column("IsSiteAdmin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("FailedLoginCount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("LockedUntil", nullable=True),
        _timestamp("LastActive", nullable=True),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
    )
    _index("users", "Id")
    _index("users", "Email", unique=True)

    op.create_table(
        "refresh_tokens",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), sa.ForeignKey("users.Id"), nullable=False),
        sa.Column("TokenHash", sa.String(length=255), nullable=False),
        _timestamp("CreatedAt"),
        sa.Column("ExpiresAt", sa.DateTime(timezone=True), nullable=False),
        _timestamp("RevokedAt", nullable=True),
    )
    _index("refresh_tokens", "Id")
    _index("refresh_tokens", "UserId")

    op.create_table(
        "households",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Name", sa.String(length=50), nullable=False),
        sa.Column("Description", sa.Text(), nullable=True),
        sa.Column("CreatedByUserId", sa.Integer(), nullable=False),
        sa.Column("JoinCode", sa.String(length=12), nullable=False),
        sa.Column("AllowInvites", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("RequireApproval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("MaxMembers", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("ConversionRate", sa.Integer(), nullable=False, server_default=sa.text("100")),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
    )
    _index("households", "Id")
    _index("households", "CreatedByUserId")
    _index("households", "JoinCode", unique=True)

    op.create_table(
        "household_members",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("Role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("ParentUserId", sa.Integer(), nullable=True),
        _timestamp("JoinedAt"),
        sa.UniqueConstraint("HouseholdId", "UserId", name="uq_household_members_household_user"),
    )
    _index("household_members", "Id")
    _index("household_members", "HouseholdId")
    _index("household_members", "UserId")
    _index("household_members", "ParentUserId")

    op.create_table(
        "user_invites",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Email", sa.String(length=100), nullable=False),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("InvitedByUserId", sa.Integer(), nullable=False),
        sa.Column("Role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("Status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("Token", sa.String(length=64), nullable=False),
        sa.Column("ExpiresAt", sa.DateTime(timezone=True), nullable=False),
        _timestamp("CreatedAt"),
    )
    _index("user_invites", "Id")
    _index("user_invites", "Email")
    _index("user_invites", "HouseholdId")
    _index("user_invites", "Token", unique=True)
    _index("user_invites", "HouseholdId", "Status", name="ix_user_invites_household_status")

    op.create_table(
        "chores",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("Title", sa.String(length=100), nullable=False),
        sa.Column("Description", sa.Text(), nullable=True),
        sa.Column("Points", sa.Integer(), nullable=False),
        sa.Column("Difficulty", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("Category", sa.String(length=10), nullable=False, server_default="daily"),
        sa.Column("Priority", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("AssignedToUserId", sa.Integer(), nullable=True),
        sa.Column("Status", sa.String(length=20), nullable=False, server_default="pending"),
        _timestamp("DueDate", nullable=True),
        _timestamp("CompletedAt", nullable=True),
        sa.Column("CompletedByUserId", sa.Integer(), nullable=True),
        sa.Column("FinalPoints", sa.Integer(), nullable=True),
        sa.Column("BonusMessage", sa.String(length=200), nullable=True),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
    )
    _index("chores", "Id")
    _index("chores", "HouseholdId")
    _index("chores", "AssignedToUserId")
    _index("chores", "HouseholdId", "Status", name="ix_chores_household_status")
    _index("chores", "HouseholdId", "Category", name="ix_chores_household_category")

    op.create_table(
        "chore_completions",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("ChoreId", sa.Integer(), nullable=False),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("CompletedAt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("PointsEarned", sa.Integer(), nullable=False),
        sa.Column("BasePoints", sa.Integer(), nullable=False),
        sa.Column("Difficulty", sa.String(length=10), nullable=False, server_default="medium"),
        _timestamp("DueDate", nullable=True),
        sa.Column("BonusPoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("PenaltyPoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("BonusMessage", sa.String(length=200), nullable=True),
        sa.Column("IsEarly", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("IsLate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("DaysEarly", sa.Integer(), nullable=True),
        sa.Column("DaysLate", sa.Integer(), nullable=True),
    )
    _index("chore_completions", "Id")
    _index("chore_completions", "ChoreId")
    _index("chore_completions", "UserId")
    _index("chore_completions", "HouseholdId")
    _index("chore_completions", "CompletedAt")
    _index("chore_completions", "UserId", "HouseholdId", name="ix_chore_completions_user_household")

    op.create_table(
        "user_stats",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("TotalChores", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("CompletedChores", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("TotalPoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("EarnedPoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("LifetimePoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("PointsRedeemed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("CurrentStreak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("LongestStreak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("CurrentLevel", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("CurrentLevelPoints", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("PointsToNextLevel", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("EfficiencyScore", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("PersistedLevel", sa.Integer(), nullable=True),
        _timestamp("PersistedLevelExpiresAt", nullable=True),
        sa.Column("PointsAtRedemption", sa.Integer(), nullable=True),
        _timestamp("LastActive", nullable=True),
        _timestamp("UpdatedAt"),
        sa.UniqueConstraint("UserId", "HouseholdId", name="uq_user_stats_user_household"),
    )
    _index("user_stats", "Id")
    _index("user_stats", "UserId")
    _index("user_stats", "HouseholdId")

    op.create_table(
        "redemption_requests",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("PointsRequested", sa.Integer(), nullable=False),
        sa.Column("CashAmount", sa.Numeric(12, 2), nullable=False),
        sa.Column("Status", sa.String(length=20), nullable=False, server_default="pending"),
        _timestamp("RequestedAt"),
        _timestamp("ProcessedAt", nullable=True),
        sa.Column("ProcessedByUserId", sa.Integer(), nullable=True),
        sa.Column("AdminNotes", sa.Text(), nullable=True),
    )
    _index("redemption_requests", "Id")
    _index("redemption_requests", "UserId")
    _index("redemption_requests", "HouseholdId")
    _index("redemption_requests", "HouseholdId", "Status", name="ix_redemption_requests_household_status")

    op.create_table(
        "point_deductions",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("HouseholdId", sa.Integer(), nullable=False),
        sa.Column("PointsDeducted", sa.Integer(), nullable=False),
        sa.Column("Reason", sa.String(length=200), nullable=False),
        sa.Column("RedemptionRequestId", sa.Integer(), nullable=True),
        _timestamp("DeductedAt"),
        sa.Column("DeductedByUserId", sa.Integer(), nullable=False),
    )
    _index("point_deductions", "Id")
    _index("point_deductions", "UserId")
    _index("point_deductions", "HouseholdId")
    _index("point_deductions", "UserId", "HouseholdId", name="ix_point_deductions_user_household")


def downgrade() -> None:
    for table in (
        "point_deductions",
        "redemption_requests",
        "user_stats",
        "chore_completions",
        "chores",
        "user_invites",
        "household_members",
        "households",
        "refresh_tokens",
        "users",
    ):
        op.drop_table(table)
