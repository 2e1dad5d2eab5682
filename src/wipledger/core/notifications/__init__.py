"""Post-commit notifications delivered to pluggy hook plugins."""

from wipledger.core.notifications.dispatcher import NotificationDispatcher
from wipledger.core.notifications.factory import create_dispatcher, load_plugins
from wipledger.core.notifications.hookspecs import PROJECT_NAME, NotificationSpec, hookimpl, hookspec

__all__ = [
    "PROJECT_NAME",
    "NotificationDispatcher",
    "NotificationSpec",
    "create_dispatcher",
    "hookimpl",
    "hookspec",
    "load_plugins",
]
