"""Query text normalisation and fingerprinting."""

from qs_engine.parser.fingerprint import (
    CURRENT_VERSION,
    FingerprintVersion,
    QueryFingerprint,
    compute_digest,
    compute_query_id,
    fingerprint_query,
    get_fingerprint_version,
)
from qs_engine.parser.normalizer import (
    GENERIC_OPERATOR,
    MASK,
    QueryNormalizer,
    normalize_into,
    normalize_query,
)

__all__ = [
    "CURRENT_VERSION",
    "FingerprintVersion",
    "GENERIC_OPERATOR",
    "MASK",
    "QueryFingerprint",
    "QueryNormalizer",
    "compute_digest",
    "compute_query_id",
    "fingerprint_query",
    "get_fingerprint_version",
    "normalize_into",
    "normalize_query",
]
