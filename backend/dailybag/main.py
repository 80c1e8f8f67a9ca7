import logging
import os
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dailybag.core.logging import setup_logging
from dailybag.modules.auth.router import router as auth_router
from dailybag.modules.billing.router import router as billing_router
from dailybag.modules.chores.router import router as chores_router
from dailybag.modules.core.router import router as core_router
from dailybag.modules.households.router import router as households_router
from dailybag.modules.invites.router import router as invites_router
from dailybag.modules.maintenance.router import router as maintenance_router
from dailybag.modules.migration.router import router as migration_router
from dailybag.modules.redemptions.router import router as redemptions_router
from dailybag.modules.siteadmin.router import router as siteadmin_router
from dailybag.modules.stats.router import router as stats_router
from dailybag.modules.users.router import router as users_router

setup_logging()

app = FastAPI(title="Daily Bag API")
logger = logging.getLogger("dailybag.request")
startup_logger = logging.getLogger("dailybag.startup")
startup_logger.info("startup complete")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "")
origin_list = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
if origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_logger(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = int((time.perf_counter() - start) * 1000)

    parts = [f"{request.method} {request.url.path}"]
    if request.url.query:
        parts.append(f"query={request.url.query}")

    status = response.status_code
    if status >= 400:
        if status == 404:
            parts.append("ERROR: endpoint not found")
        elif status >= 500:
            parts.append("ERROR: server error")
        else:
            parts.append("ERROR: client error")

    parts.append(f"status={status}")
    parts.append(f"{duration_ms}ms")
    parts.append(f"request_id={request_id}")

    log_msg = " | ".join(parts)
    if status >= 500:
        logger.error(log_msg)
    elif status >= 400:
        logger.warning(log_msg)
    else:
        logger.info(log_msg)

    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(core_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(households_router)
app.include_router(invites_router)
app.include_router(chores_router)
app.include_router(stats_router)
app.include_router(redemptions_router)
app.include_router(migration_router)
app.include_router(billing_router)
app.include_router(maintenance_router)
app.include_router(siteadmin_router)
