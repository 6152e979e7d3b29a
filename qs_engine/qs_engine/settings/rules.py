"""Per-query settings rules.

A rule says "when a query with this fingerprint runs, set these session
parameters".  Rules are keyed by query id; a rule may instead give the
query text, which is fingerprinted when the rules are loaded.

Rules file format (YAML, or JSON with the same shape)::

    rules:
      - query_id: -6817542097380139105
        settings:
          work_mem: 64MB
          enable_seqscan: off
      - query: SELECT * FROM orders WHERE customer_id = 1
        settings:
          random_page_cost: 1.1
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from qs_engine.parser.fingerprint import fingerprint_query
from qs_engine.parser.normalizer import QueryNormalizer
from qs_engine.settings.errors import RulesFileError

logger = logging.getLogger(__name__)

# PostgreSQL query ids are signed bigints.
_QUERY_ID_MIN = -(2**63)
_QUERY_ID_MAX = 2**63 - 1

# GUC names: identifiers, optionally prefixed by an extension name.
_SETTING_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$"


def _setting_value(value: Any) -> str:
    """Render a YAML scalar the way PostgreSQL spells setting values."""
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    raise ValueError(f"setting values must be scalars, got {type(value).__name__}")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class QuerySetting(BaseModel):
    """One session parameter to set for one query id."""

    model_config = ConfigDict(frozen=True)

    query_id: int = Field(..., ge=_QUERY_ID_MIN, le=_QUERY_ID_MAX, description="Query fingerprint id.")
    name: str = Field(..., max_length=63, pattern=_SETTING_NAME_PATTERN, description="Parameter name.")
    value: str = Field(..., description="Value in PostgreSQL's text form.")

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> str:
        return _setting_value(value)


class SettingsRule(BaseModel):
    """A rules-file entry: one query and the parameters to set for it."""

    query_id: int | None = Field(default=None, ge=_QUERY_ID_MIN, le=_QUERY_ID_MAX)
    query: str | None = Field(default=None, min_length=1)
    settings: dict[str, str] = Field(default_factory=dict)

    @field_validator("settings", mode="before")
    @classmethod
    def _coerce_settings(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {str(name): _setting_value(raw) for name, raw in value.items()}
        return value

    @model_validator(mode="after")
    def _exactly_one_key(self) -> SettingsRule:
        if (self.query_id is None) == (self.query is None):
            raise ValueError("a rule needs exactly one of 'query_id' or 'query'")
        return self

    def resolve_query_id(self, normalizer: QueryNormalizer | None = None) -> int:
        if self.query_id is not None:
            return self.query_id
        if self.query is None:
            raise ValueError("a rule needs exactly one of 'query_id' or 'query'")
        return fingerprint_query(self.query, normalizer=normalizer).query_id

    def to_settings(self, normalizer: QueryNormalizer | None = None) -> list[QuerySetting]:
        query_id = self.resolve_query_id(normalizer)
        return [QuerySetting(query_id=query_id, name=name, value=value) for name, value in self.settings.items()]


class _RulesDocument(BaseModel):
    rules: list[SettingsRule] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class SettingsRegistry:
    """Settings grouped by query id, in the order they were added.

    Adding a parameter that is already set for the same query replaces
    its value in place.
    """

    def __init__(self, settings: Iterable[QuerySetting] = ()) -> None:
        self._by_query: dict[int, dict[str, QuerySetting]] = {}
        for setting in settings:
            self.add(setting)

    def add(self, setting: QuerySetting) -> None:
        per_query = self._by_query.setdefault(setting.query_id, {})
        per_query[setting.name.lower()] = setting

    def lookup(self, query_id: int) -> tuple[QuerySetting, ...]:
        """Return the settings for *query_id*, empty when there are none."""
        per_query = self._by_query.get(query_id)
        if not per_query:
            return ()
        return tuple(per_query.values())

    def query_ids(self) -> list[int]:
        return list(self._by_query)

    def __contains__(self, query_id: object) -> bool:
        return query_id in self._by_query

    def __len__(self) -> int:
        return sum(len(per_query) for per_query in self._by_query.values())

    def __iter__(self) -> Iterator[QuerySetting]:
        for per_query in self._by_query.values():
            yield from per_query.values()

    # -- construction --------------------------------------------------------

    @classmethod
    def from_rules(
        cls,
        rules: Iterable[SettingsRule],
        *,
        normalizer: QueryNormalizer | None = None,
    ) -> SettingsRegistry:
        registry = cls()
        for rule in rules:
            for setting in rule.to_settings(normalizer):
                registry.add(setting)
        return registry

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        normalizer: QueryNormalizer | None = None,
    ) -> SettingsRegistry:
        """Build a registry from an already-parsed rules document."""
        try:
            document = _RulesDocument.model_validate(data)
            return cls.from_rules(document.rules, normalizer=normalizer)
        except ValidationError as exc:
            raise RulesFileError(f"Invalid rules: {exc}") from exc

    @classmethod
    def from_file(
        cls,
        path: Path,
        *,
        normalizer: QueryNormalizer | None = None,
    ) -> SettingsRegistry:
        """Load a YAML or JSON rules file."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RulesFileError(f"Cannot read rules file {path}: {exc}") from exc

        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise RulesFileError(f"Failed to parse {path}: {exc}") from exc

        if not isinstance(data, Mapping):
            raise RulesFileError(f"{path} must contain a mapping with a 'rules' list")

        try:
            registry = cls.from_mapping(data, normalizer=normalizer)
        except RulesFileError as exc:
            raise RulesFileError(f"{path}: {exc}") from exc

        logger.debug("Loaded %d setting(s) for %d query id(s) from %s", len(registry), len(registry.query_ids()), path)
        return registry
