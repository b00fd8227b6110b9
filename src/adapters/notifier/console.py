"""
Console notifier adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging participant messages for demo purposes.
"""

import logging
from datetime import datetime

from src.config.settings import get_settings

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - a WhatsApp or SMS adapter replaces
    it in production.
    """

    def __init__(self, date_format: str | None = None) -> None:
        self._date_format = date_format or get_settings().locale_date_format

    def send_verification_code(self, *, to: str, name: str, event_title: str, code: str) -> None:
        """
        Log verification code to console (simulates message delivery).

        The code is logged at INFO level to be visible in docker-compose logs.
        """
        logger.info(
            "[VERIFICATION] To: %s Name: %s Event: %s Code: %s", to, name, event_title, code
        )

    def send_registration_confirmation(
        self,
        *,
        to: str,
        name: str,
        event_title: str,
        event_date: datetime,
        event_local: str | None,
    ) -> None:
        logger.info(
            "[CONFIRMATION] To: %s Name: %s Event: %s Date: %s Local: %s",
            to,
            name,
            event_title,
            event_date.strftime(self._date_format),
            event_local or "TBD",
        )

    def send_cancellation_confirmation(self, *, to: str, name: str, event_title: str) -> None:
        logger.info("[CANCELLATION] To: %s Name: %s Event: %s", to, name, event_title)

    def send_event_reminder(
        self,
        *,
        to: str,
        name: str,
        event_title: str,
        event_date: datetime,
        event_local: str | None,
    ) -> None:
        logger.info(
            "[REMINDER] To: %s Name: %s Event: %s Date: %s Local: %s",
            to,
            name,
            event_title,
            event_date.strftime(self._date_format),
            event_local or "TBD",
        )
