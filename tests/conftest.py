# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Database fixtures are function-scoped: every test gets its own empty
in-memory board, because most tests assert on exact positions and ledger
counts.
"""

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from wipledger.contracts import BoardReset, GroupReassigned
from wipledger.core.config import BoardSettings
from wipledger.core.ledger import BoardDB, BoardGateway
from wipledger.core.notifications import NotificationDispatcher, hookimpl

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


class RecordingPlugin:
    """Hook plugin that remembers every notice it receives."""

    def __init__(self) -> None:
        self.reassigned: list[GroupReassigned] = []
        self.resets: list[BoardReset] = []

    @hookimpl
    def wipledger_group_reassigned(self, notice: GroupReassigned) -> None:
        self.reassigned.append(notice)

    @hookimpl
    def wipledger_board_reset(self, notice: BoardReset) -> None:
        self.resets.append(notice)


@pytest.fixture
def board_db() -> Iterator[BoardDB]:
    """Fresh in-memory board database."""
    db = BoardDB.in_memory()
    yield db
    db.close()


@pytest.fixture
def file_db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'board.db'}"


@pytest.fixture
def board_settings() -> BoardSettings:
    return BoardSettings()


@pytest.fixture
def gateway(board_db: BoardDB, board_settings: BoardSettings) -> BoardGateway:
    """Gateway without notifications."""
    return BoardGateway(board_db, settings=board_settings)


@pytest.fixture
def recording_plugin() -> RecordingPlugin:
    return RecordingPlugin()


@pytest.fixture
def dispatcher(recording_plugin: RecordingPlugin) -> Iterator[NotificationDispatcher]:
    dispatcher = NotificationDispatcher([recording_plugin], queue_size=100)
    yield dispatcher
    dispatcher.close()


@pytest.fixture
def notifying_gateway(board_db: BoardDB, board_settings: BoardSettings, dispatcher: NotificationDispatcher) -> BoardGateway:
    """Gateway wired to a dispatcher with a RecordingPlugin registered."""
    return BoardGateway(board_db, settings=board_settings, dispatcher=dispatcher)
