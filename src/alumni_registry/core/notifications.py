from __future__ import annotations

import logging
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

TemplateKey = Literal["confirmation", "approval", "rejection"]


class EmailSender(Protocol):
    def send(self, template: TemplateKey, to: str, variables: dict[str, str]) -> bool: ...


class LoggingEmailSender:
    """Default sender: records the message instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, str]]] = []

    def send(self, template: TemplateKey, to: str, variables: dict[str, str]) -> bool:
        self.sent.append((template, to, dict(variables)))
        logger.info("Email %s queued for %s", template, to)
        return True


def dispatch(sender: EmailSender, template: TemplateKey, to: str, variables: dict[str, str]) -> bool:
    try:
        delivered = sender.send(template, to, variables)
    except Exception:
        logger.exception("Sending %s email to %s failed", template, to)
        return False
    if not delivered:
        logger.warning("Email sender declined %s email to %s", template, to)
    return delivered
