from datetime import datetime

from pydantic import BaseModel


class ScheduledJobsRequest(BaseModel):
    Jobs: list[str] | None = None


class ScheduledJobsResponse(BaseModel):
    RanAt: datetime
    Resets: dict[str, int] | None = None
    ExpiredLevelLocks: int | None = None
    Stats: dict[str, int] | None = None
