import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.migration.schemas import (
    LegacyDataImport,
    MigrationInstructions,
    MigrationResult,
    MigrationStatus,
)
from dailybag.modules.migration.services import (
    CheckMigrationStatus,
    GetMigrationInstructions,
    MigrateLocalStorageData,
)

router = APIRouter(prefix="/api/migration", tags=["migration"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.migration")


@router.get("/status", response_model=MigrationStatus)
def GetStatus(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MigrationStatus:
    try:
        return MigrationStatus(**CheckMigrationStatus(db, user))
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/instructions", response_model=MigrationInstructions)
def GetInstructions() -> MigrationInstructions:
    return MigrationInstructions(**GetMigrationInstructions())


@router.post("", response_model=MigrationResult)
def MigrateLegacyData(
    payload: LegacyDataImport,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MigrationResult:
    try:
        return MigrationResult(**MigrateLocalStorageData(db, user, payload.model_dump()))
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
