"""Exceptions raised by the per-query settings layer."""

from __future__ import annotations


class SettingsError(Exception):
    """Base exception for per-query settings."""


class RulesFileError(SettingsError):
    """A rules file could not be read or does not match the rules schema."""


class UnknownSettingError(SettingsError):
    """A session was asked to change a parameter it does not have."""


class SettingApplyError(SettingsError):
    """A setting could not be applied to the session.

    Parameters already set for the same query have been reset by the time
    this is raised.
    """

    def __init__(self, message: str, *, query_id: int, name: str) -> None:
        super().__init__(message)
        self.query_id = query_id
        self.name = name


class SettingResetError(SettingsError):
    """One or more parameters could not be reset to their defaults.

    Every other parameter was still reset.
    """

    def __init__(self, message: str, *, names: list[str]) -> None:
        super().__init__(message)
        self.names = names
