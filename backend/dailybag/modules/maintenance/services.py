from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy.orm import Session

from dailybag.modules.auth.deps import NowUtc
from dailybag.modules.chores.services.schedule_service import RunPeriodicResets
from dailybag.modules.stats.services import CleanupExpiredLevelPersistence, RecalculateActiveHouseholdStats

logger = logging.getLogger("dailybag.maintenance")

JOBS = ("resets", "level_persistence", "stats")


def RunScheduledJobs(db: Session, now: datetime | None = None, jobs: list[str] | None = None) -> dict:
    selected = list(jobs) if jobs else list(JOBS)
    unknown = [job for job in selected if job not in JOBS]
    if unknown:
        raise ValueError(f"Unknown jobs: {', '.join(unknown)}")

    now = now or NowUtc()
    result: dict = {"RanAt": now}
    if "resets" in selected:
        result["Resets"] = RunPeriodicResets(db, now)
        db.commit()
    if "level_persistence" in selected:
        result["ExpiredLevelLocks"] = CleanupExpiredLevelPersistence(db, now)
        db.commit()
    if "stats" in selected:
        result["Stats"] = RecalculateActiveHouseholdStats(db, now)
        db.commit()
    logger.info("scheduled jobs complete jobs=%s", ",".join(selected))
    return result
