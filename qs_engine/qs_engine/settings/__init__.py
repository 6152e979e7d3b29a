"""Per-query session parameters keyed by query fingerprint."""

from qs_engine.settings.applier import AppliedSettings, SessionSettingsApplier, load_registry, normalizer_for
from qs_engine.settings.errors import (
    RulesFileError,
    SettingApplyError,
    SettingResetError,
    SettingsError,
    UnknownSettingError,
)
from qs_engine.settings.rules import QuerySetting, SettingsRegistry, SettingsRule
from qs_engine.settings.session import InMemorySession, SettingsSession

__all__ = [
    "AppliedSettings",
    "InMemorySession",
    "QuerySetting",
    "RulesFileError",
    "SessionSettingsApplier",
    "SettingApplyError",
    "SettingResetError",
    "SettingsError",
    "SettingsRegistry",
    "SettingsRule",
    "SettingsSession",
    "UnknownSettingError",
    "load_registry",
    "normalizer_for",
]
