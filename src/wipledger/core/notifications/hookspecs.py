# src/wipledger/core/notifications/hookspecs.py
"""pluggy hook specifications for board notifications.

Usage (implementing a notification plugin):
    from wipledger.core.notifications.hookspecs import hookimpl

    class SlackNotifier:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def wipledger_group_reassigned(self, notice):
            post_message(f"item {notice.item_id} moved")

Hooks run on the dispatcher's background thread, after the originating
transaction has committed. Return values are ignored and exceptions are
logged, never propagated back to the mutation.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from wipledger.contracts.notifications import BoardReset, GroupReassigned

# Project name for pluggy
PROJECT_NAME = "wipledger"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class NotificationSpec:
    """Hook specifications for notification plugins."""

    @hookspec
    def wipledger_group_reassigned(self, notice: "GroupReassigned") -> None:
        """An item moved to a different group."""

    @hookspec
    def wipledger_board_reset(self, notice: "BoardReset") -> None:
        """The domain tables were rewound or blown away."""
