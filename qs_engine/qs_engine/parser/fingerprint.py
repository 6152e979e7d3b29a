"""Versioned query fingerprints.

A fingerprint reduces normalised query text to a stable identifier.  Two
forms are produced from the same SHA-256 digest:

* ``query_id``: a signed 64-bit integer, the width of a PostgreSQL
  ``queryid``, so it can key the same tables;
* ``digest``: the full 64-character hex digest, for logs and files.

Every fingerprint rule-set is versioned and the version string is mixed
into the hash, so changing the normalisation rules naturally invalidates
every stored query id instead of silently colliding with old ones.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum

from qs_engine.parser.normalizer import QueryNormalizer
from qs_engine.sql_toolkit import Dialect
from qs_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


class FingerprintVersion(str, Enum):
    """Versioned fingerprint rule-sets.

    Adding a new version here and updating ``CURRENT_VERSION`` changes
    every query id, forcing settings rules to be re-keyed.
    """

    V1 = "v1"


CURRENT_VERSION: FingerprintVersion = FingerprintVersion.V1


@dataclass(frozen=True, slots=True)
class QueryFingerprint:
    """Fingerprint of one query."""

    original: str
    normalized: str
    query_id: int
    digest: str
    version: FingerprintVersion = CURRENT_VERSION


def _hasher(normalized: str, version: FingerprintVersion) -> hashlib._Hash:
    hasher = hashlib.sha256()
    # Include version prefix so ids are scoped to the rule-set.
    hasher.update(f"pgqs-fingerprint-{version.value}:".encode())
    hasher.update(normalized.encode("utf-8", errors="surrogateescape"))
    return hasher


def compute_query_id(normalized: str, *, version: FingerprintVersion | None = None) -> int:
    """Return the signed 64-bit query id of already-normalised text.

    The first eight bytes of the SHA-256 digest, read big-endian as a
    two's-complement integer.
    """
    if version is None:
        version = CURRENT_VERSION
    return int.from_bytes(_hasher(normalized, version).digest()[:8], "big", signed=True)


def compute_digest(normalized: str, *, version: FingerprintVersion | None = None) -> str:
    """Return the 64-character SHA-256 hex digest of normalised text."""
    if version is None:
        version = CURRENT_VERSION
    return _hasher(normalized, version).hexdigest()


@profile_operation("sql.fingerprint")
def fingerprint_query(
    sql: str,
    *,
    preserve_space: bool = False,
    normalizer: QueryNormalizer | None = None,
    dialect: Dialect = Dialect.POSTGRES,
    version: FingerprintVersion | None = None,
) -> QueryFingerprint:
    """Normalise *sql* and fingerprint the result.

    Parameters
    ----------
    sql:
        Raw query text.
    preserve_space:
        Passed to the normaliser.  Readable, but less unifying: queries
        that differ only in spacing get different ids.
    normalizer:
        Normaliser to use.  Defaults to one for *dialect* that drops
        trailing semicolons.
    version:
        Fingerprint version.  Defaults to ``CURRENT_VERSION``.
    """
    if version is None:
        version = CURRENT_VERSION
    if normalizer is None:
        normalizer = QueryNormalizer(dialect=dialect)

    normalized = normalizer.normalize(sql, preserve_space)
    hasher = _hasher(normalized, version)
    fingerprint = QueryFingerprint(
        original=sql,
        normalized=normalized,
        query_id=int.from_bytes(hasher.digest()[:8], "big", signed=True),
        digest=hasher.hexdigest(),
        version=version,
    )
    logger.debug("Fingerprinted query as %d (%s)", fingerprint.query_id, version.value)
    return fingerprint


def get_fingerprint_version() -> str:
    """Return the current fingerprint version string."""
    return CURRENT_VERSION.value
