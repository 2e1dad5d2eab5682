# src/wipledger/core/__init__.py
"""Core infrastructure: ledger, canonical JSON, configuration, logging, notifications."""

from wipledger.core.canonical import canonical_json, stable_hash
from wipledger.core.config import BoardSettings, load_settings
from wipledger.core.ledger import BoardDB, BoardGateway, ReplayEngine
from wipledger.core.notifications import NotificationDispatcher

__all__ = [
    "BoardDB",
    "BoardGateway",
    "BoardSettings",
    "NotificationDispatcher",
    "ReplayEngine",
    "canonical_json",
    "load_settings",
    "stable_hash",
]
