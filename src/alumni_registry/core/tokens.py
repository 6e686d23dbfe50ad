from __future__ import annotations

import hashlib
import re
import secrets
from datetime import datetime, timedelta

from alumni_registry.db.base import utcnow

TOKEN_LENGTH = 32
TOKEN_RE = re.compile(rf"^[0-9a-f]{{{TOKEN_LENGTH}}}$")


class TokenService:
    def __init__(self, ttl_days: int = 30):
        self.ttl = timedelta(days=ttl_days)

    def generate(self, registration_id: str, email: str) -> str:
        seed = f"{registration_id}|{email.lower()}|{utcnow().timestamp()}|{secrets.token_hex(8)}"
        return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:TOKEN_LENGTH]

    def expiry_from(self, issued_at: datetime | None = None) -> datetime:
        return (issued_at or utcnow()) + self.ttl

    @staticmethod
    def is_well_formed(token: str | None) -> bool:
        return bool(token) and bool(TOKEN_RE.match(token))
