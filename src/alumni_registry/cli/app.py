from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer
import uvicorn

from alumni_registry.api.app import create_app
from alumni_registry.config import get_settings
from alumni_registry.core.runtime import get_employee_cache, get_validation_service
from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.db.init import init_database
from alumni_registry.db.repositories import RegistrationRepository
from alumni_registry.db.session import SessionLocal
from alumni_registry.errors import RegistryError
from alumni_registry.logging_config import configure_logging
from alumni_registry.types import RegistrationRequest

app = typer.Typer(help="Alumni registry CLI")
cache_app = typer.Typer(help="HR roster cache")
registrations_app = typer.Typer(help="Registration review and processing")

app.add_typer(cache_app, name="cache")
app.add_typer(registrations_app, name="registrations")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: dict | list) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: RegistryError) -> NoReturn:
    payload = exc.to_payload()
    typer.echo(json.dumps(payload, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Create the database schema and data directory."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@cache_app.command("refresh")
def cache_refresh() -> None:
    configure_logging()
    result = get_employee_cache().refresh()
    _echo(result.model_dump(by_alias=True))
    if not result.success:
        raise typer.Exit(code=1)


@cache_app.command("stats")
def cache_stats() -> None:
    configure_logging()
    _echo(get_employee_cache().stats().model_dump(by_alias=True))


@cache_app.command("validate")
def cache_validate(
    id_number: str = typer.Option(..., "--id-number"),
    full_name: str | None = typer.Option(None, "--full-name"),
    refresh: bool = typer.Option(True, "--refresh/--no-refresh"),
) -> None:
    """Check one person against the HR roster."""
    configure_logging()
    if refresh:
        get_employee_cache().refresh()
    result = get_validation_service().validate(id_number, full_name)
    _echo(result.model_dump(by_alias=True))


@registrations_app.command("submit")
def registration_submit(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    configure_logging()
    ensure_initialized()
    payload = json.loads(file.read_text(encoding="utf-8"))
    items = payload if isinstance(payload, list) else [payload]

    created = []
    with SessionLocal() as db:
        workflow = RegistrationWorkflow(db)
        for item in items:
            try:
                registration = workflow.submit(RegistrationRequest.model_validate(item), created_by="cli")
            except RegistryError as exc:
                _fail(exc)
            created.append(
                {
                    "id": registration.id,
                    "registrationNumber": registration.registration_number,
                    "requiresManualReview": registration.requires_manual_review,
                }
            )
    _echo(created)


@registrations_app.command("approve")
def registration_approve(
    registration_id: str = typer.Option(..., "--id"),
    reviewer: str = typer.Option("admin", "--reviewer"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            registration = RegistrationWorkflow(db).approve(registration_id, reviewer, notes)
        except RegistryError as exc:
            _fail(exc)
        _echo({"id": registration.id, "status": registration.status})


@registrations_app.command("reject")
def registration_reject(
    registration_id: str = typer.Option(..., "--id"),
    reason: str = typer.Option(..., "--reason"),
    reviewer: str = typer.Option("admin", "--reviewer"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            registration = RegistrationWorkflow(db).reject(registration_id, reviewer, reason)
        except RegistryError as exc:
            _fail(exc)
        _echo({"id": registration.id, "status": registration.status})


@registrations_app.command("process-pending")
def registration_process_pending() -> None:
    """Run one approval batch immediately."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        summary = RegistrationWorkflow(db).process_pending_registrations()
    _echo(summary.model_dump())


@registrations_app.command("dashboard")
def registration_dashboard() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo(RegistrationRepository(db).dashboard_counts().model_dump(by_alias=True))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)


if __name__ == "__main__":
    app()
