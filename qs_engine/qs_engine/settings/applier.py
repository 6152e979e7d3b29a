"""Apply per-query session parameters around a query's execution.

The applier fingerprints the incoming query, looks its query id up in a
:class:`SettingsRegistry` and sets every matching parameter on the
session.  Whatever it set is remembered and reset by :meth:`restore`,
normally once the query has finished.

If setting a parameter fails part-way, the parameters already set for
that query are reset before the error propagates, so the session is
never left half-configured.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from qs_engine.config import Settings
from qs_engine.parser.fingerprint import fingerprint_query
from qs_engine.parser.normalizer import QueryNormalizer
from qs_engine.settings.errors import SettingApplyError, SettingResetError
from qs_engine.settings.rules import QuerySetting, SettingsRegistry
from qs_engine.settings.session import SettingsSession

logger = logging.getLogger(__name__)


def normalizer_for(settings: Settings) -> QueryNormalizer:
    """Return the normaliser configured by *settings*."""
    return QueryNormalizer(
        dialect=settings.dialect,
        drop_trailing_semicolon=settings.drop_trailing_semicolon,
    )


def load_registry(settings: Settings) -> SettingsRegistry:
    """Load ``settings.rules_file``, fingerprinting rule queries the same way
    an applier built from *settings* fingerprints incoming queries.

    Returns an empty registry when no rules file is configured.
    """
    if settings.rules_file is None:
        return SettingsRegistry()
    return SettingsRegistry.from_file(settings.rules_file, normalizer=normalizer_for(settings))


@dataclass(frozen=True, slots=True)
class AppliedSettings:
    """What one :meth:`SessionSettingsApplier.apply` call did."""

    query_id: int | None
    settings: tuple[QuerySetting, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.settings)


class SessionSettingsApplier:
    """Set a query's parameters before it runs and reset them afterwards.

    Parameters
    ----------
    registry:
        Settings keyed by query id.
    session:
        Target of ``set_option`` / ``reset_option`` calls.
    enabled:
        When false, :meth:`apply` does nothing and returns no query id.
    print_query_id:
        Log every computed query id at INFO.
    normalizer:
        Normaliser used to fingerprint queries.  Must match the one the
        registry's query ids were computed with.
    """

    def __init__(
        self,
        registry: SettingsRegistry,
        session: SettingsSession,
        *,
        enabled: bool = True,
        print_query_id: bool = False,
        normalizer: QueryNormalizer | None = None,
    ) -> None:
        self._registry = registry
        self._session = session
        self._enabled = enabled
        self._print_query_id = print_query_id
        self._normalizer = normalizer if normalizer is not None else QueryNormalizer()
        self._applied: list[QuerySetting] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: SettingsSession,
        registry: SettingsRegistry | None = None,
    ) -> SessionSettingsApplier:
        """Build an applier from engine configuration.

        The registry is loaded from ``settings.rules_file`` unless one is
        passed in; with neither, the applier has nothing to apply.
        """
        if registry is None:
            registry = load_registry(settings)
        return cls(
            registry,
            session,
            enabled=settings.enabled,
            print_query_id=settings.print_query_id,
            normalizer=normalizer_for(settings),
        )

    @property
    def registry(self) -> SettingsRegistry:
        return self._registry

    @property
    def applied(self) -> tuple[QuerySetting, ...]:
        """Settings currently in effect on the session."""
        return tuple(self._applied)

    def apply(self, sql: str) -> AppliedSettings:
        """Set every registered parameter for *sql* on the session.

        Raises
        ------
        SettingApplyError
            A parameter could not be set.  The parameters this call had
            already set have been reset.
        """
        if not self._enabled:
            return AppliedSettings(query_id=None)

        query_id = fingerprint_query(sql, normalizer=self._normalizer).query_id
        if self._print_query_id:
            logger.info("Query id is %d", query_id, extra={"query_id": query_id})

        matching = self._registry.lookup(query_id)
        if not matching:
            logger.debug("No settings for query id %d", query_id)
            return AppliedSettings(query_id=query_id)

        done: list[QuerySetting] = []
        for setting in matching:
            try:
                self._session.set_option(setting.name, setting.value)
            except Exception as exc:
                self._reset(reversed(done))
                raise SettingApplyError(
                    f"Failed to set {setting.name} = {setting.value!r} for query id {query_id}: {exc}",
                    query_id=query_id,
                    name=setting.name,
                ) from exc
            done.append(setting)
            logger.debug(
                "Set %s = %s",
                setting.name,
                setting.value,
                extra={"query_id": query_id, "setting": setting.name, "value": setting.value},
            )

        self._applied.extend(done)
        return AppliedSettings(query_id=query_id, settings=tuple(done))

    def restore(self) -> None:
        """Reset every parameter set since the last restore."""
        applied, self._applied = self._applied, []
        self._reset(reversed(applied))

    @contextmanager
    def for_query(self, sql: str) -> Iterator[AppliedSettings]:
        """Apply *sql*'s settings for the duration of the ``with`` block."""
        result = self.apply(sql)
        try:
            yield result
        finally:
            self.restore()

    def _reset(self, settings: Iterator[QuerySetting]) -> None:
        """Reset every setting, even when some resets fail.

        Raises
        ------
        SettingResetError
            One or more parameters could not be reset; the others were.
        """
        failures: list[tuple[str, Exception]] = []
        for setting in settings:
            try:
                self._session.reset_option(setting.name)
            except Exception as exc:
                logger.warning("Failed to reset %s: %s", setting.name, exc, extra={"setting": setting.name})
                failures.append((setting.name, exc))
                continue
            logger.debug("Reset %s", setting.name, extra={"query_id": setting.query_id, "setting": setting.name})

        if failures:
            names = [name for name, _ in failures]
            raise SettingResetError(f"Failed to reset {', '.join(names)}", names=names) from failures[0][1]
