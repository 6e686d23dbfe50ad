from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.db.repositories import RegistrationRepository
from alumni_registry.db.session import get_db_session


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_repository(db: Session = Depends(get_db)) -> RegistrationRepository:
    return RegistrationRepository(db)


def get_workflow(db: Session = Depends(get_db)) -> RegistrationWorkflow:
    return RegistrationWorkflow(db)
