from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from alumni_registry.api.admin_routes import router as admin_router
from alumni_registry.api.routes import router as api_router
from alumni_registry.config import get_settings
from alumni_registry.core.runtime import get_employee_cache
from alumni_registry.core.scheduler import PeriodicTask
from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.db.init import init_database
from alumni_registry.db.session import SessionLocal
from alumni_registry.errors import RegistryError
from alumni_registry.logging_config import configure_logging

logger = logging.getLogger(__name__)


def run_approval_batch() -> dict:
    with SessionLocal() as db:
        return RegistrationWorkflow(db).process_pending_registrations().model_dump()


def build_background_tasks() -> list[PeriodicTask]:
    settings = get_settings()
    tasks: list[PeriodicTask] = []
    if settings.erp_enable_caching and not settings.erp_enable_mock_mode:
        tasks.append(
            PeriodicTask(
                "erp-cache-refresh",
                get_employee_cache().refresh,
                settings.erp_cache_refresh_interval_min * 60,
                run_immediately=settings.erp_refresh_on_startup,
            )
        )
    if settings.approval_job_enabled:
        tasks.append(PeriodicTask("approval-processor", run_approval_batch, settings.approval_job_interval_sec))
    return tasks


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name)
    app.state.background_tasks = []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RegistryError)
    async def _registry_error(request: Request, exc: RegistryError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_payload())

    @app.on_event("startup")
    async def _startup() -> None:
        configure_logging()
        init_database()
        app.state.background_tasks = build_background_tasks()
        for task in app.state.background_tasks:
            await task.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        for task in app.state.background_tasks:
            await task.stop()

    @app.get("/health")
    def health() -> JSONResponse:
        cache = get_employee_cache().stats()
        return JSONResponse({"status": "ok", "erpCacheHealthy": cache.healthy, "erpCacheRecords": cache.record_count})

    app.include_router(api_router)
    app.include_router(admin_router)
    return app
