"""
Notification dispatch - Fire-and-forget delivery of participant messages.

Notifications are requested only after the ledger mutation has
succeeded. The dispatcher hands the call to an executor and returns
immediately; delivery failures are logged and never reach the caller.
"""

import logging
from concurrent.futures import Executor, Future
from typing import Any

from .ports import Notifier

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Dispatches Notifier calls without blocking the use case.

    With no executor the call runs inline, which keeps unit tests
    deterministic while preserving the failure isolation.
    """

    def __init__(self, notifier: Notifier, executor: Executor | None = None) -> None:
        self._notifier = notifier
        self._executor = executor

    def dispatch(self, method: str, participant_id: str | None, **params: Any) -> Future | None:
        """
        Request a notification.

        Args:
            method: Notifier method name (e.g. "send_verification_code")
            participant_id: Registration id, used only for log context
            **params: Keyword arguments forwarded to the notifier

        Returns:
            The pending Future when an executor is configured, else None
        """
        send = getattr(self._notifier, method)

        if self._executor is None:
            try:
                send(**params)
            except Exception:
                logger.exception(
                    "Notification %s failed for participant %s", method, participant_id
                )
            return None

        try:
            future = self._executor.submit(send, **params)
        except RuntimeError:
            # Executor already shut down
            logger.exception(
                "Notification %s not scheduled for participant %s", method, participant_id
            )
            return None
        future.add_done_callback(lambda f: self._log_failure(f, method, participant_id))
        return future

    @staticmethod
    def _log_failure(future: Future, method: str, participant_id: str | None) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Notification %s failed for participant %s: %s",
                method,
                participant_id,
                error,
                exc_info=error,
            )
