from typing import Any

from pydantic import BaseModel, Field


class LegacyDataImport(BaseModel):
    Chores: list[dict[str, Any]] = Field(default_factory=list)
    Users: list[dict[str, Any]] = Field(default_factory=list)
    UserStats: dict[str, Any] | None = None
    LevelPersistence: dict[str, Any] | None = None
    PointDeductions: dict[str, Any] | None = None
    RedemptionRequests: list[dict[str, Any]] | None = None


class MigrationResult(BaseModel):
    Success: bool
    MigratedCount: int
    HouseholdId: int | None = None
    Message: str | None = None
    Error: str | None = None


class MigrationStatus(BaseModel):
    NeedsMigration: bool
    Reason: str


class MigrationInstructions(BaseModel):
    Instructions: list[str]
    LegacyKeys: list[str]
