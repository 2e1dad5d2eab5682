"""Post-commit notifications delivered to hook plugins.

Notifications are published only after the originating transaction has
committed. They are side-channel messages: losing one never affects the
board state or the ledger.
"""

from dataclasses import dataclass

from wipledger.contracts.enums import ResetMode


@dataclass(frozen=True)
class GroupReassigned:
    """An item moved from one group to another."""

    item_id: int
    old_group_id: int
    new_group_id: int
    event_id: int


@dataclass(frozen=True)
class BoardReset:
    """The domain tables were wiped, and rebuilt when mode is REWIND.

    For REWIND, events_applied counts the ledger events reapplied. For
    EMERGENCY_BLOW, rows_removed counts the rows deleted.
    """

    mode: ResetMode
    events_applied: int = 0
    rows_removed: int = 0


Notice = GroupReassigned | BoardReset
