from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from alumni_registry.db.base import utcnow
from alumni_registry.db.models import AuditLogEntry, Registration
from alumni_registry.errors import DuplicateError, RegistryError
from alumni_registry.types import (
    DashboardStats,
    DuplicateField,
    RegistrationFilter,
    RegistrationStatus,
)

logger = logging.getLogger(__name__)

NUMBER_ALLOCATION_ATTEMPTS = 3

_SORT_COLUMNS = {
    "fullname": Registration.full_name,
    "createdat": Registration.created_at,
    "status": Registration.status,
    "staffnumber": Registration.staff_number,
    "email": Registration.email,
}


def format_registration_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:05d}"


class RegistrationRepository:
    def __init__(self, session: Session):
        self.session = session

    def next_registration_number(self, prefix: str, year: int) -> str:
        stem = f"{prefix}-{year}-"
        escaped = stem.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        # Sequences widen past 99999, so longer numbers sort first.
        latest = self.session.scalar(
            select(Registration.registration_number)
            .where(Registration.registration_number.like(f"{escaped}%", escape="\\"))
            .order_by(func.length(Registration.registration_number).desc(), Registration.registration_number.desc())
            .limit(1)
        )
        sequence = int(latest.rsplit("-", 1)[1]) + 1 if latest else 1
        return format_registration_number(prefix, year, sequence)

    def create_registration(self, values: dict[str, Any], prefix: str) -> Registration:
        for attempt in range(1, NUMBER_ALLOCATION_ATTEMPTS + 1):
            number = self.next_registration_number(prefix, utcnow().year)
            registration = Registration(registration_number=number, **values)
            self.session.add(registration)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                duplicate = self.find_duplicate_field(
                    id_number=values.get("id_number"),
                    staff_number=values.get("staff_number"),
                    email=values.get("email"),
                    mobile_country_code=values.get("mobile_country_code"),
                    mobile_number=values.get("mobile_number"),
                    linkedin_profile=values.get("linkedin_profile"),
                )
                if duplicate:
                    raise DuplicateError(duplicate) from None
                logger.warning("Registration number %s collided (attempt %s)", number, attempt)
                continue
            self.session.refresh(registration)
            return registration
        raise RegistryError("Could not allocate a registration number")

    def get(self, registration_id: str) -> Registration | None:
        return self.session.get(Registration, registration_id)

    def get_by_email(self, email: str) -> Registration | None:
        return self.session.scalar(select(Registration).where(Registration.email == email.strip().lower()))

    def get_by_token(self, token: str) -> Registration | None:
        return self.session.scalar(select(Registration).where(Registration.email_verification_token == token))

    def is_registered(self, field: DuplicateField, value: str, country_code: str | None = None) -> bool:
        value = value.strip()
        if not value:
            return False
        if field == "id-number":
            condition = func.lower(Registration.id_number) == value.lower()
        elif field == "staff-number":
            condition = Registration.staff_number == value.upper()
        elif field == "email":
            condition = Registration.email == value.lower()
        elif field == "linkedin":
            condition = Registration.linkedin_profile == value.lower()
        elif field == "mobile":
            if not country_code:
                return False
            condition = and_(
                Registration.mobile_country_code == country_code.strip(),
                Registration.mobile_number == value,
            )
        else:
            raise ValueError(f"unknown duplicate field {field}")
        found = self.session.scalar(select(Registration.id).where(condition).limit(1))
        return found is not None

    def find_duplicate_field(
        self,
        *,
        id_number: str | None,
        staff_number: str | None,
        email: str | None,
        mobile_country_code: str | None,
        mobile_number: str | None,
        linkedin_profile: str | None,
    ) -> DuplicateField | None:
        checks: list[tuple[DuplicateField, str | None, str | None]] = [
            ("id-number", id_number, None),
            ("staff-number", staff_number, None),
            ("email", email, None),
            ("mobile", mobile_number, mobile_country_code),
            ("linkedin", linkedin_profile, None),
        ]
        for field, value, country_code in checks:
            if value and self.is_registered(field, value, country_code):
                return field
        return None

    def list_registrations(self, criteria: RegistrationFilter) -> tuple[list[Registration], int]:
        conditions = []
        if criteria.status:
            conditions.append(Registration.status == str(criteria.status))
        if criteria.requires_manual_review is not None:
            conditions.append(Registration.requires_manual_review == criteria.requires_manual_review)
        if criteria.search:
            pattern = f"%{criteria.search.strip().lower()}%"
            conditions.append(
                or_(
                    func.lower(Registration.registration_number).like(pattern),
                    func.lower(Registration.full_name).like(pattern),
                    Registration.email.like(pattern),
                    func.lower(Registration.staff_number).like(pattern),
                    func.lower(Registration.id_number).like(pattern),
                    func.lower(Registration.passport_number).like(pattern),
                )
            )
        if criteria.date_from:
            conditions.append(Registration.created_at >= criteria.date_from)
        if criteria.date_to:
            conditions.append(Registration.created_at <= criteria.date_to)
        if criteria.email_verified is not None:
            conditions.append(Registration.email_verified == criteria.email_verified)
        if criteria.department:
            conditions.append(func.lower(Registration.erp_department).like(f"%{criteria.department.lower()}%"))
        if criteria.country:
            conditions.append(func.lower(Registration.current_country) == criteria.country.strip().lower())
        if criteria.city:
            conditions.append(func.lower(Registration.current_city) == criteria.city.strip().lower())
        if criteria.industry:
            conditions.append(func.lower(Registration.industry) == criteria.industry.strip().lower())
        if criteria.erp_validated is not None:
            conditions.append(Registration.erp_validated == criteria.erp_validated)
        if criteria.registration_year:
            conditions.append(Registration.registration_number.like(f"%-{criteria.registration_year}-%"))

        where = and_(*conditions) if conditions else None
        count_stmt = select(func.count()).select_from(Registration)
        stmt = select(Registration)
        if where is not None:
            count_stmt = count_stmt.where(where)
            stmt = stmt.where(where)

        column = _SORT_COLUMNS.get(criteria.sort_by, Registration.created_at)
        stmt = stmt.order_by(column.desc() if criteria.sort_descending else column.asc())

        page = max(criteria.page, 1)
        page_size = min(max(criteria.page_size, 1), 500)
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)

        total = self.session.scalar(count_stmt) or 0
        return list(self.session.scalars(stmt).all()), total

    def list_pending_for_processing(self, created_before: datetime, limit: int) -> list[Registration]:
        statement = (
            select(Registration)
            .where(
                and_(
                    Registration.status == RegistrationStatus.PENDING.value,
                    Registration.created_at <= created_before,
                    Registration.manually_reviewed.is_(False),
                    Registration.requires_manual_review.is_(False),
                )
            )
            .order_by(Registration.created_at.asc())
            .limit(limit)
        )
        return list(self.session.scalars(statement).all())

    def list_requiring_manual_review(self) -> list[Registration]:
        statement = (
            select(Registration)
            .where(
                and_(
                    Registration.status == RegistrationStatus.PENDING.value,
                    Registration.requires_manual_review.is_(True),
                    Registration.manually_reviewed.is_(False),
                )
            )
            .order_by(Registration.created_at.asc())
        )
        return list(self.session.scalars(statement).all())

    def _count(self, *conditions) -> int:
        statement = select(func.count()).select_from(Registration)
        if conditions:
            statement = statement.where(and_(*conditions))
        return self.session.scalar(statement) or 0

    def dashboard_counts(self) -> DashboardStats:
        return DashboardStats(
            total=self._count(),
            pending=self._count(Registration.status == RegistrationStatus.PENDING.value),
            requiring_manual_review=self._count(
                Registration.requires_manual_review.is_(True),
                Registration.manually_reviewed.is_(False),
            ),
            approved=self._count(Registration.status == RegistrationStatus.APPROVED.value),
            rejected=self._count(Registration.status == RegistrationStatus.REJECTED.value),
            active=self._count(Registration.status == RegistrationStatus.ACTIVE.value),
            email_verified=self._count(Registration.email_verified.is_(True)),
            email_not_verified=self._count(Registration.email_verified.is_(False)),
        )

    def append_audit(
        self,
        *,
        registration_id: str,
        action: str,
        performed_by: str,
        previous_status: str | None = None,
        new_status: str | None = None,
        reason: str | None = None,
        notes: str | None = None,
        is_automated: bool = False,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            registration_id=registration_id,
            action=action,
            performed_by=performed_by,
            previous_status=previous_status,
            new_status=new_status,
            reason=reason,
            notes=notes,
            is_automated=is_automated,
            timestamp=utcnow(),
        )
        self.session.add(entry)
        return entry

    def list_audit_logs(self, registration_id: str) -> list[AuditLogEntry]:
        statement = (
            select(AuditLogEntry)
            .where(AuditLogEntry.registration_id == registration_id)
            .order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.desc())
        )
        return list(self.session.scalars(statement).all())

    def save(self, registration: Registration) -> Registration:
        self.session.add(registration)
        self.session.commit()
        self.session.refresh(registration)
        return registration
