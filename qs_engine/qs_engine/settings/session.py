"""Session parameter targets.

:class:`SettingsSession` is the seam the applier writes through.  A real
database binding implements it with ``SET``/``RESET``; tests and the CLI
use :class:`InMemorySession`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from qs_engine.settings.errors import UnknownSettingError


@runtime_checkable
class SettingsSession(Protocol):
    """Something whose named parameters can be set and reset."""

    def set_option(self, name: str, value: str) -> None:
        """Set *name* to *value* for the current session."""
        ...

    def reset_option(self, name: str) -> None:
        """Return *name* to its session default."""
        ...


class InMemorySession:
    """A dictionary of parameters with known defaults.

    Parameter names are case-insensitive.  Setting or resetting a name
    that has no default raises :class:`UnknownSettingError`.
    """

    def __init__(self, defaults: Mapping[str, str] | None = None) -> None:
        self._defaults: dict[str, str] = {name.lower(): value for name, value in (defaults or {}).items()}
        self._current: dict[str, str] = dict(self._defaults)

    def _key(self, name: str) -> str:
        key = name.lower()
        if key not in self._defaults:
            raise UnknownSettingError(f"unrecognized configuration parameter {name!r}")
        return key

    def set_option(self, name: str, value: str) -> None:
        self._current[self._key(name)] = value

    def reset_option(self, name: str) -> None:
        key = self._key(name)
        self._current[key] = self._defaults[key]

    def get(self, name: str) -> str:
        return self._current[self._key(name)]

    def snapshot(self) -> dict[str, str]:
        return dict(self._current)
