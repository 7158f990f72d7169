"""
Dispatcher dependency for BillNotify.

This module provides the NotificationDispatcher instance and dependency
injection for FastAPI routes. Provider clients read their credentials and
endpoints from settings when the dispatcher is first built.
"""

from typing import Optional

from .services.dispatcher import NotificationDispatcher
from .utils.logging import get_logger

logger = get_logger(__name__)

# Module-level dispatcher cache for lazy initialization
_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """
    Get or create the NotificationDispatcher instance.

    The dispatcher holds no per-request state, so one instance is shared by
    every request. Tests replace it through ``app.dependency_overrides``.

    Returns:
        NotificationDispatcher: The shared dispatcher
    """
    global _dispatcher

    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
        logger.info(
            "Notification dispatcher initialized",
            extra={"use_invoice_template": _dispatcher.use_invoice_template},
        )

    return _dispatcher
