# src/wipledger/core/notifications/factory.py
"""Build a NotificationDispatcher from configuration.

Usage:
    from wipledger.core.notifications.factory import create_dispatcher

    dispatcher = create_dispatcher(settings.notifications, plugins=[SlackNotifier()])
    gateway = BoardGateway(db, settings=settings, dispatcher=dispatcher)

Plugins can also be named in configuration:

    notifications:
      plugins:
        - "board_hooks.slack:SlackNotifier"
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable

import structlog

from wipledger.core.config import NotificationSettings
from wipledger.core.notifications.dispatcher import NotificationDispatcher

logger = structlog.get_logger(__name__)


def load_plugins(paths: Iterable[str]) -> list[object]:
    """Import hook plugins named as "package.module:attribute".

    A class is instantiated with no arguments; any other object is
    registered as it is.

    Raises:
        ValueError: If a path is malformed or does not import
    """
    plugins: list[object] = []
    for path in paths:
        module_name, _, attribute = path.partition(":")
        if not module_name or not attribute:
            raise ValueError(f"Notification plugin must look like 'package.module:attribute', got {path!r}")
        try:
            target = getattr(importlib.import_module(module_name), attribute)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Cannot load notification plugin {path!r}: {e}") from e
        plugins.append(target() if isinstance(target, type) else target)
    return plugins


def create_dispatcher(
    settings: NotificationSettings,
    *,
    plugins: Iterable[object] = (),
) -> NotificationDispatcher | None:
    """Create a dispatcher for the configured plugins plus any given here.

    Returns:
        NotificationDispatcher if notifications are enabled, None otherwise.
        A gateway given None publishes nothing.

    Raises:
        ValueError: If a configured plugin does not load, or a plugin
            implements a hook with no specification
    """
    if not settings.enabled:
        logger.debug("Notifications disabled by configuration")
        return None

    plugin_list = [*load_plugins(settings.plugins), *plugins]
    dispatcher = NotificationDispatcher(plugin_list, queue_size=settings.queue_size)
    logger.debug(
        "Notification dispatcher created",
        plugins=[type(p).__name__ for p in plugin_list],
        queue_size=settings.queue_size,
    )
    return dispatcher
