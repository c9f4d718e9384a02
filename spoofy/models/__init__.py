"""Identifier, target, configuration and history models."""

from .common import Count, EnterpriseNumber, InterfaceName, PositiveSeconds, Seconds
from .config import DEFAULT_CONFIG_PATH, DuidTypeName, ReconnectMode, Settings, load_settings
from .identity import (
    HistoryEntry,
    IdentifierKind,
    InterfaceInfo,
    MutationResult,
    MutationState,
    MutationTarget,
    RestoreOutcome,
)


__all__ = [
    # Common types
    "Count",
    "EnterpriseNumber",
    "InterfaceName",
    "PositiveSeconds",
    "Seconds",
    # Configuration
    "DEFAULT_CONFIG_PATH",
    "DuidTypeName",
    "ReconnectMode",
    "Settings",
    "load_settings",
    # Identity models
    "HistoryEntry",
    "IdentifierKind",
    "InterfaceInfo",
    "MutationResult",
    "MutationState",
    "MutationTarget",
    "RestoreOutcome",
]
